"""Export formatter registry.

WHY: The CLI and the API need a single lookup to find an exporter by name.
A central dict makes adding a format trivial: create the formatter class,
import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["clips_json"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and job requests)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from shortify.core.pipeline import PipelineResult
from shortify.formatters.clips_json import ClipsJSONFormatter
from shortify.formatters.srt_captions import SRTCaptionFormatter

if TYPE_CHECKING:
    from shortify.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "clips_json": ClipsJSONFormatter,
    "srt_captions": SRTCaptionFormatter,
}

DEFAULT_FORMATS: tuple[str, ...] = ("clips_json", "srt_captions")


def write_outputs(
    result: PipelineResult,
    output_dir: Path,
    stem: str,
    format_keys: Iterable[str] | None = None,
) -> list[str]:
    """Run the selected formatters and write their files to output_dir.

    RULES:
    - format_keys defaults to DEFAULT_FORMATS
    - Unknown keys raise ValueError before anything is written
    - Returns the written filenames in formatter order
    """
    keys = list(format_keys) if format_keys else list(DEFAULT_FORMATS)
    unknown = [k for k in keys if k not in FORMATTERS]
    if unknown:
        raise ValueError(
            "Unknown output format '{}'. Available: {}".format(
                unknown[0], ", ".join(sorted(FORMATTERS))
            )
        )

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for key in keys:
        for output in FORMATTERS[key]().format(result):
            filename = f"{stem}{output.suffix}"
            (output_dir / filename).write_text(output.content, encoding="utf-8")
            written.append(filename)
    return written
