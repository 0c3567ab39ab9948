"""Clip descriptor JSON formatter for the rendering backend.

WHY: The rendering backend cuts each clip and burns in its captions. It
needs one document listing every clip window with its time range and its
styled, timed caption segments. The shape is a contract, so the output is
validated against a JSON schema before it leaves the process.

HOW: Serializes PipelineResult.clips via ClipWindow.to_dict(), wraps them
with the source duration and timing source, validates with jsonschema
against schemas/clips.schema.json and pretty-prints.

RULES:
- Output suffix: "-clips.json"
- Caption times stay in source-video seconds
- Validate before returning; jsonschema.ValidationError propagates
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from shortify.core.pipeline import PipelineResult
from shortify.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "clips.schema.json"

_CACHED_SCHEMA: dict[str, Any] | None = None


def get_schema() -> dict[str, Any]:
    """Load the clips schema, cached after the first call."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def build_clips_document(result: PipelineResult) -> dict[str, Any]:
    return {
        "version": "1.0.0",
        "durationSec": result.duration_sec,
        "timingSource": result.timing_source,
        "clips": [clip.to_dict() for clip in result.clips],
    }


class ClipsJSONFormatter(BaseFormatter):
    """Formatter producing the clip descriptor document."""

    suffix = "-clips.json"

    @property
    def name(self) -> str:
        return "Clip descriptors (JSON)"

    def format(self, result: PipelineResult) -> list[FormatterOutput]:
        document = build_clips_document(result)
        jsonschema.validate(instance=document, schema=get_schema())
        return [
            FormatterOutput(
                suffix="-clips.json",
                content=json.dumps(document, indent=2, ensure_ascii=False),
                media_type="application/json",
            )
        ]
