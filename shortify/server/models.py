"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization and automatic OpenAPI documentation. Pydantic models
enforce field types at runtime and generate the JSON Schema shown in /docs.

HOW: Requests are JSON bodies: a job request (media URL or inline
transcript, plus caption and clip options) and a synchronous caption
request. Responses wrap job snapshots and the camelCase IR dicts produced by
to_dict(). Token validation (presets, animations, positions) happens in
captionkit, not here, so there is one source of truth for the token sets.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- OutputFormat values match keys in shortify.formatters.FORMATTERS exactly
- Response models never expose internal paths (output_dir stays private)
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shortify.config import DEFAULT_CLIP_COUNT, DEFAULT_MAX_CLIP_SEC, DEFAULT_MIN_CLIP_SEC


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """Available export format identifiers."""

    clips_json = "clips_json"
    srt_captions = "srt_captions"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CaptionOptions(BaseModel):
    """Caption segmentation and style options.

    RULES:
    - segment_preset: "social" (9:16) or "landscape" (16:9)
    - The max_* / min_gap_sec fields override single preset values
    - style_overrides uses camelCase style fields (fontSizePx, color, ...)
    """

    segment_preset: str = Field(
        default="social",
        description="Segmentation preset: 'social' or 'landscape'.",
    )
    max_segment_chars: Optional[int] = Field(
        default=None, ge=1, description="Maximum characters per caption."
    )
    max_segment_words: Optional[int] = Field(
        default=None, ge=1, description="Maximum words per caption."
    )
    max_segment_duration_sec: Optional[float] = Field(
        default=None, gt=0, description="Maximum caption duration in seconds."
    )
    min_gap_sec: Optional[float] = Field(
        default=None, ge=0, description="Minimum gap between consecutive captions."
    )
    split_on_sentence_end: Optional[bool] = Field(
        default=None,
        description="Also end a caption after sentence punctuation (. ! ?).",
    )
    style_preset: str = Field(
        default="tiktok",
        description="Caption style preset (see GET /styles).",
    )
    animation: Optional[str] = Field(
        default=None, description="Animation token overriding the preset's."
    )
    position: Optional[str] = Field(
        default=None, description="Position token overriding the preset's."
    )
    style_overrides: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Raw style field overrides, e.g. {\"color\": \"#FF0000\"}.",
    )


class ClipOptions(BaseModel):
    """Clip selection options."""

    clip_count: int = Field(
        default=DEFAULT_CLIP_COUNT, ge=0, description="Maximum number of clips."
    )
    min_clip_sec: float = Field(
        default=DEFAULT_MIN_CLIP_SEC, gt=0, description="Shortest clip in seconds."
    )
    max_clip_sec: float = Field(
        default=DEFAULT_MAX_CLIP_SEC, gt=0, description="Longest clip in seconds."
    )
    min_gap_between_clips_sec: float = Field(
        default=0.0, ge=0, description="Required gap between two clips in seconds."
    )
    fallback: bool = Field(
        default=True,
        description="Use evenly spaced heuristic spans when the analyser finds nothing.",
    )
    fallback_span_count: int = Field(
        default=3, ge=1, description="Number of heuristic fallback spans."
    )
    optimal: bool = Field(
        default=False,
        description="Maximise total confidence exactly instead of greedy selection.",
    )


class JobRequest(BaseModel):
    """Body of POST /jobs.

    RULES:
    - Either media_url, or transcript + duration_sec, must be given
    - words are optional provider timings ({text, start, end} or
      {text, startSec, endSec}); when present they are used as-is
    """

    media_url: Optional[str] = Field(
        default=None, description="URL of the media to transcribe."
    )
    transcript: Optional[str] = Field(
        default=None, description="Inline transcript text (skips transcription)."
    )
    duration_sec: Optional[float] = Field(
        default=None, description="Media duration in seconds (required with transcript)."
    )
    words: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Optional word timings for the inline transcript."
    )
    captions: CaptionOptions = Field(
        default_factory=CaptionOptions, description="Caption options."
    )
    clips: ClipOptions = Field(
        default_factory=ClipOptions, description="Clip selection options."
    )
    output_formats: Optional[List[OutputFormat]] = Field(
        default=None, description="Export formats to write. Defaults to all."
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "transcript": "Welcome to today's discussion about AI and the future of work.",
                "duration_sec": 600,
                "captions": {"style_preset": "tiktok", "max_segment_words": 3},
                "clips": {"clip_count": 2, "min_clip_sec": 30, "max_clip_sec": 60},
            }
        ]
    }}


class CaptionsRequest(BaseModel):
    """Body of POST /captions."""

    transcript: str = Field(description="Transcript text.")
    duration_sec: float = Field(description="Media duration in seconds.")
    words: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Optional provider word timings."
    )
    captions: CaptionOptions = Field(
        default_factory=CaptionOptions, description="Caption options."
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class JobResponse(BaseModel):
    """Clip job status response.

    RULES:
    - error / error_kind are only set when status is 'failed'
    - output_files is only populated when status is 'completed'
    """

    id: str = Field(description="Unique job identifier (UUID).")
    status: str = Field(description="Current job status.")
    source: str = Field(description="Media URL, or 'transcript' for inline input.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    updated_at: float = Field(description="Last status change (Unix epoch seconds).")
    config: Dict[str, Any] = Field(description="Request options used for this job.")
    error: Optional[str] = Field(
        default=None, description="Error message, only present when status is 'failed'."
    )
    error_kind: Optional[str] = Field(
        default=None,
        description="Machine-readable error kind (e.g. 'empty_transcript').",
    )
    timing_source: Optional[str] = Field(
        default=None, description="Caption timing source: 'asr' or 'heuristic'."
    )
    output_files: Optional[List[str]] = Field(
        default=None, description="Export filenames, only present when completed."
    )


class JobCreatedResponse(BaseModel):
    """Response returned when a new job is submitted."""

    id: str = Field(description="Unique job identifier (UUID) for polling status.")
    status: str = Field(description="Initial job status (always 'pending').")
    source: str = Field(description="Media URL, or 'transcript' for inline input.")


class ClipsResponse(BaseModel):
    """Clip windows of a completed job."""

    job_id: str = Field(description="The job ID.")
    duration_sec: float = Field(description="Source media duration in seconds.")
    timing_source: str = Field(description="Caption timing source.")
    clips: List[Dict[str, Any]] = Field(
        description="Clip windows (id, startSec, endSec, type, confidence, captions)."
    )


class CaptionsResponse(BaseModel):
    """Caption segments for a transcript."""

    timing_source: str = Field(description="Caption timing source: 'asr' or 'heuristic'.")
    duration_sec: float = Field(description="Media duration in seconds.")
    captions: List[Dict[str, Any]] = Field(
        description="Caption segments (startSec, endSec, text, words, style)."
    )


class StylesResponse(BaseModel):
    """Enumerated caption style tokens."""

    presets: List[str] = Field(description="Style preset names.")
    animations: List[str] = Field(description="Animation tokens.")
    positions: List[str] = Field(description="Position tokens.")


class FileInfo(BaseModel):
    """Metadata for a single export file."""

    filename: str = Field(description="Export filename.")
    media_type: str = Field(description="MIME type of the file content.")
    size: int = Field(description="File size in bytes.")


class FileListResponse(BaseModel):
    """List of export files for a completed job."""

    job_id: str = Field(description="The job ID these files belong to.")
    files: List[FileInfo] = Field(description="Available export files.")


class FormatInfo(BaseModel):
    """Description of an available export format."""

    key: str = Field(description="Format identifier used in requests.")
    name: str = Field(description="Human-readable format name.")
    suffix: str = Field(description="File suffix(es) produced (e.g. '-clips.json').")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
