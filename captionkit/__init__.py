"""Caption library for short-form video clips.

WHY: The shortify application needs timed, styled caption segments for each
clip it cuts. This package keeps that logic as a pure library with no I/O so
the job pipeline, the synchronous caption endpoint, the CLI and tests all
share one implementation, and concurrent jobs with different presets never
interfere.

HOW: The convenience entry point is caption_transcript(text, duration, ...).
It tokenizes the transcript (provider word timings first, duration heuristic
as fallback), resolves the caption style and groups the words into
segments. The individual stages (tokenize, segment_words, resolve_style) are
exported for callers that need them separately.

RULES:
- Segment presets: "social" (default) and "landscape".
- Style presets, animations and positions are closed sets; see
  list_style_tokens().
- Never mutate the preset constants, copies are made internally.
- Bad input raises the ValueError subclasses from captionkit.errors.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .core import (
    TIMING_ASR,
    TIMING_HEURISTIC,
    list_style_tokens,
    resolve_style,
    segment_config,
    segment_words,
    timing_source,
    tokenize,
    validate_word_timings,
)
from .errors import (
    EmptyTranscriptError,
    InvalidDurationError,
    InvalidTimingError,
    UnknownStyleTokenError,
)
from .models import CaptionSegment, StyleDescriptor, Word
from .presets import (
    ANIMATIONS,
    DEFAULT_SEGMENT_PRESET,
    DEFAULT_STYLE_PRESET,
    POSITIONS,
    SEGMENT_PRESETS,
    STYLE_PRESETS,
)

__all__ = [
    "caption_transcript",
    "tokenize",
    "timing_source",
    "validate_word_timings",
    "segment_config",
    "segment_words",
    "resolve_style",
    "list_style_tokens",
    "Word",
    "CaptionSegment",
    "StyleDescriptor",
    "EmptyTranscriptError",
    "InvalidDurationError",
    "InvalidTimingError",
    "UnknownStyleTokenError",
    "ANIMATIONS",
    "POSITIONS",
    "SEGMENT_PRESETS",
    "STYLE_PRESETS",
    "DEFAULT_SEGMENT_PRESET",
    "DEFAULT_STYLE_PRESET",
    "TIMING_ASR",
    "TIMING_HEURISTIC",
]


def caption_transcript(
    text: str,
    total_duration: float,
    words: Optional[Sequence[Any]] = None,
    segment_preset: str = DEFAULT_SEGMENT_PRESET,
    segment_overrides: Optional[Dict] = None,
    style_preset: str = DEFAULT_STYLE_PRESET,
    animation: Optional[str] = None,
    position: Optional[str] = None,
    style_overrides: Optional[Mapping[str, Any]] = None,
    tokenizer_config: Optional[Dict] = None,
) -> List[CaptionSegment]:
    """Turn a transcript into styled caption segments.

    HOW: tokenize() -> resolve_style() -> segment_words(). The style is
    resolved before segmentation so an unknown token fails fast, before
    any work is done.

    Raises:
        EmptyTranscriptError, InvalidDurationError, InvalidTimingError,
        UnknownStyleTokenError, ValueError (bad segment preset/overrides).
    """
    style = resolve_style(style_preset, animation, position, style_overrides)
    cfg = segment_config(segment_preset, segment_overrides)
    stream = tokenize(text, total_duration, words=words, config=tokenizer_config)
    return segment_words(stream, cfg, style=style)
