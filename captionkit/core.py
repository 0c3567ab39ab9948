"""Core caption logic: tokenizing, caption segmentation, style resolution.

WHY: This module holds the whole caption pipeline, from raw transcript text
(or provider word timings) to a list of styled CaptionSegments that a
renderer can burn into a clip. It is pure computation with no I/O so it can
run inside any job or request and be tested in isolation.

HOW: Three stages, each usable on its own:
  1. tokenize(): produce the ordered Word stream. Provider word timings are
     the primary source and are validated, not altered. Without them the
     media duration is distributed over the words by a per-character
     weight heuristic.
  2. segment_words(): greedy grouping of words into captions bounded by a
     character, word-count and duration budget, with a minimum visual gap
     between consecutive captions.
  3. resolve_style(): preset + animation + position + raw overrides into an
     immutable StyleDescriptor, rejecting unknown tokens.

RULES:
- ALL functions accept explicit config dicts, no global state. Concurrent
  calls with different presets are safe.
- Words are never dropped or reordered, and their text is never modified.
- Unknown style tokens raise UnknownStyleTokenError, never silently default.
- Heuristic timing is only used when no provider timings are supplied; the
  two are never blended.
"""

import copy
import dataclasses
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

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
    STYLE_FIELDS,
    STYLE_PRESETS,
    TOKENIZER_DEFAULTS,
)

# Sentence punctuation, optionally followed by closing quotes or brackets.
SENT_PUNCT_RE = re.compile(r"[.!?\u2026][\"'\u201d\u2019)\]]*$")

# Tolerance for float rounding when comparing provider timestamps.
_TIME_EPS = 1e-9

TIMING_ASR = "asr"
TIMING_HEURISTIC = "heuristic"

WordLike = Union[Word, Mapping[str, Any]]


# =============================================================================
# Tokenizer
# =============================================================================

def ends_sentence(text: str) -> bool:
    """True if text ends with sentence punctuation (. ! ? …)."""
    return bool(SENT_PUNCT_RE.search(text.strip()))


def split_transcript(text: str) -> List[str]:
    """Split transcript text into whitespace-separated word tokens."""
    return (text or "").split()


def timing_source(words: Optional[Sequence[WordLike]]) -> str:
    """Return which timing source tokenize() will use for these inputs.

    "asr" when provider word timings are present, "heuristic" otherwise.
    """
    return TIMING_ASR if _coerce_words(words) else TIMING_HEURISTIC


def validate_word_timings(words: Sequence[Word]) -> None:
    """Check that a word stream satisfies the Word ordering invariants.

    RULES:
    - end_sec > start_sec for every word
    - start_sec is non-decreasing
    - timestamps are finite
    - a word never starts before the previous word ended

    Raises:
        InvalidTimingError: On the first violation, naming the word index.
    """
    prev: Optional[Word] = None
    for i, w in enumerate(words):
        if not (math.isfinite(w.start_sec) and math.isfinite(w.end_sec)):
            raise InvalidTimingError(
                "Word {} ('{}') has a non-finite timestamp".format(i, w.text)
            )
        if w.end_sec <= w.start_sec:
            raise InvalidTimingError(
                "Word {} ('{}') has end {:.3f} <= start {:.3f}".format(
                    i, w.text, w.end_sec, w.start_sec
                )
            )
        if prev is not None:
            if w.start_sec < prev.start_sec - _TIME_EPS:
                raise InvalidTimingError(
                    "Word {} ('{}') starts before the previous word".format(i, w.text)
                )
            if w.start_sec < prev.end_sec - _TIME_EPS:
                raise InvalidTimingError(
                    "Word {} ('{}') overlaps the previous word ({:.3f} < {:.3f})".format(
                        i, w.text, w.start_sec, prev.end_sec
                    )
                )
        prev = w


def tokenize(
    text: str,
    total_duration: float,
    words: Optional[Sequence[WordLike]] = None,
    config: Optional[Dict] = None,
) -> List[Word]:
    """Produce the ordered, timed word stream for a transcript.

    WHY: Every downstream stage works on timed words. Providers sometimes
    return word-level timestamps and sometimes only text plus the media
    duration; this function hides that difference.

    HOW: If `words` is non-empty they are parsed, validated and returned
    unchanged (primary source). Otherwise the text is split on whitespace,
    each word gets the weight base_ms + per_char_ms * len(word), and the
    weights are scaled so the words tile [0, total_duration] exactly.

    RULES:
    - total_duration that is not a positive finite number raises
      InvalidDurationError (both modes).
    - Zero words raises EmptyTranscriptError.
    - Provider words with blank text are skipped; if none remain the
      heuristic is used.
    - The heuristic's last word always ends exactly at total_duration.

    Args:
        text: Raw transcript text.
        total_duration: Media duration in seconds.
        words: Optional provider word timings (Word objects or dicts).
        config: Optional dict with base_ms / per_char_ms.

    Returns:
        Ordered list of Word objects.
    """
    if (
        total_duration is None
        or not math.isfinite(total_duration)
        or total_duration <= 0
    ):
        raise InvalidDurationError(
            "Total duration must be a positive finite number, got {!r}".format(
                total_duration
            )
        )

    provided = _coerce_words(words)
    if provided:
        validate_word_timings(provided)
        return provided

    tokens = split_transcript(text)
    if not tokens:
        raise EmptyTranscriptError("Transcript contains no words")

    cfg = dict(TOKENIZER_DEFAULTS)
    if config:
        cfg.update(config)
    base_ms = float(cfg["base_ms"])
    per_char_ms = float(cfg["per_char_ms"])
    if base_ms < 0 or per_char_ms < 0:
        raise ValueError("Tokenizer weights must be non-negative")

    weights = [base_ms + per_char_ms * len(tok) for tok in tokens]
    total_weight = sum(weights)
    if total_weight <= 0:
        raise ValueError("Tokenizer weights sum to zero; set base_ms or per_char_ms")

    scale = float(total_duration) / total_weight
    result: List[Word] = []
    t = 0.0
    last = len(tokens) - 1
    for i, (tok, weight) in enumerate(zip(tokens, weights)):
        end = float(total_duration) if i == last else t + weight * scale
        result.append(Word(text=tok, start_sec=t, end_sec=end))
        t = end
    return result


def _coerce_words(words: Optional[Iterable[WordLike]]) -> List[Word]:
    """Parse provider words into Word objects, dropping blank ones."""
    if not words:
        return []
    parsed: List[Word] = []
    for w in words:
        word = w if isinstance(w, Word) else Word.from_dict(w)
        if word.text.strip():
            parsed.append(word)
    return parsed


# =============================================================================
# Caption Segmenter
# =============================================================================

def segment_config(
    preset: str = DEFAULT_SEGMENT_PRESET,
    overrides: Optional[Dict] = None,
) -> Dict:
    """Return a validated copy of a segmentation preset with overrides applied.

    Raises:
        ValueError: Unknown preset, unknown override key, or a budget that
            is not positive.
    """
    if preset not in SEGMENT_PRESETS:
        raise ValueError(
            "Unknown segment preset '{}'. Available: {}".format(
                preset, ", ".join(SEGMENT_PRESETS.keys())
            )
        )
    cfg = copy.deepcopy(SEGMENT_PRESETS[preset])
    for key, value in (overrides or {}).items():
        if key not in cfg:
            raise ValueError("Unknown segmenter setting '{}'".format(key))
        if value is not None:
            cfg[key] = value

    if int(cfg["max_segment_chars"]) < 1 or int(cfg["max_segment_words"]) < 1:
        raise ValueError("max_segment_chars and max_segment_words must be >= 1")
    if float(cfg["max_segment_duration_sec"]) <= 0:
        raise ValueError("max_segment_duration_sec must be positive")
    if float(cfg["min_gap_sec"]) < 0:
        raise ValueError("min_gap_sec must be >= 0")
    return cfg


def segment_words(
    words: Sequence[Word],
    config: Optional[Dict] = None,
    style: Optional[StyleDescriptor] = None,
) -> List[CaptionSegment]:
    """Group a word stream into caption segments.

    WHY: Captions must be short enough to read at a glance. The budget is
    expressed three ways (characters, words, seconds) because vertical
    shorts run out of width, word slots and time at different rates.

    HOW: Greedy single pass. The pending word joins the current segment
    while all three hold:
      current_chars + 1 + len(word) <= max_segment_chars
      word_count < max_segment_words
      word.end_sec - segment_start <= max_segment_duration_sec
    otherwise the segment is closed and the word opens a new one. After
    grouping, consecutive segments closer than min_gap_sec get the next
    segment's first word start pushed to prev_end + min_gap_sec (capped at
    that word's midpoint so it keeps a positive duration).
    With split_on_sentence_end a word ending in ".", "!", "?" or an
    ellipsis also closes its segment; the three budgets still apply.

    RULES:
    - Every input word lands in exactly one segment, in order.
    - A word that alone busts a budget still forms its own segment.
    - The gap adjustment replaces the first Word value; its text is kept.
    - Missing config keys fall back to the default ("social") preset.

    Args:
        words: Ordered Word stream (see tokenize()).
        config: Partial or full segmentation config dict.
        style: Optional StyleDescriptor attached to every segment.

    Returns:
        Ordered, non-overlapping CaptionSegments.
    """
    cfg = segment_config(overrides=config)
    if not words:
        return []

    max_chars = int(cfg["max_segment_chars"])
    max_words = int(cfg["max_segment_words"])
    max_dur = float(cfg["max_segment_duration_sec"])
    min_gap = float(cfg["min_gap_sec"])
    sentence_breaks = bool(cfg.get("split_on_sentence_end", False))

    groups: List[List[Word]] = []
    current: List[Word] = []
    current_chars = 0
    segment_start = 0.0
    closed = False

    for word in words:
        fits = bool(current) and (
            not closed
            and current_chars + 1 + len(word.text) <= max_chars
            and len(current) < max_words
            and word.end_sec - segment_start <= max_dur
        )
        if fits:
            current.append(word)
            current_chars += 1 + len(word.text)
        else:
            if current:
                groups.append(current)
            current = [word]
            current_chars = len(word.text)
            segment_start = word.start_sec
        closed = sentence_breaks and ends_sentence(word.text)

    if current:
        groups.append(current)

    segments: List[CaptionSegment] = []
    prev_end: Optional[float] = None
    for group in groups:
        if prev_end is not None and min_gap > 0:
            group = _apply_min_gap(group, prev_end, min_gap)
        segment = CaptionSegment.from_words(group, style=style)
        segments.append(segment)
        prev_end = segment.end_sec

    return segments


def _apply_min_gap(group: List[Word], prev_end: float, min_gap: float) -> List[Word]:
    """Delay the first word of a group so it starts min_gap after prev_end."""
    first = group[0]
    target = prev_end + min_gap
    if first.start_sec >= target:
        return group
    new_start = min(target, first.start_sec + first.duration_sec / 2.0)
    if new_start <= first.start_sec:
        return group
    return [dataclasses.replace(first, start_sec=new_start)] + group[1:]


# =============================================================================
# Style Resolver
# =============================================================================

def list_style_tokens() -> Dict[str, List[str]]:
    """Return the enumerated style tokens, sorted for stable output."""
    return {
        "presets": sorted(STYLE_PRESETS.keys()),
        "animations": sorted(ANIMATIONS),
        "positions": sorted(POSITIONS),
    }


def resolve_style(
    preset: str = DEFAULT_STYLE_PRESET,
    animation: Optional[str] = None,
    position: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> StyleDescriptor:
    """Merge a preset, animation, position and overrides into a StyleDescriptor.

    WHY: Renderers need one fully specified style per caption. Callers pick
    a named look and tweak a few fields; silently falling back to a default
    on a typo would ship the wrong look, so every token is checked.

    HOW: Start from a copy of STYLE_PRESETS[preset], replace animation and
    position when given, then apply raw overrides (camelCase field names)
    last so they can override anything.

    RULES:
    - Unknown preset/animation/position â UnknownStyleTokenError.
    - Unknown override key â UnknownStyleTokenError(kind="override").
    - Override values for animation/position are validated as tokens.
    - fontSizePx and fontWeight must be positive integers (ValueError).
    """
    if preset not in STYLE_PRESETS:
        raise UnknownStyleTokenError("preset", preset, STYLE_PRESETS.keys())

    fields = dict(STYLE_PRESETS[preset])

    if animation is not None:
        _check_token("animation", animation, ANIMATIONS)
        fields["animation"] = animation
    if position is not None:
        _check_token("position", position, POSITIONS)
        fields["position"] = position

    for key, value in (overrides or {}).items():
        if key not in STYLE_FIELDS:
            raise UnknownStyleTokenError("override", key, STYLE_FIELDS)
        if key == "animation":
            _check_token("animation", value, ANIMATIONS)
        elif key == "position":
            _check_token("position", value, POSITIONS)
        fields[key] = value

    try:
        style = StyleDescriptor.from_dict(fields)
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid style value: {}".format(exc)) from exc

    if style.font_size_px <= 0 or style.font_weight <= 0:
        raise ValueError("fontSizePx and fontWeight must be positive")
    return style


def _check_token(kind: str, token: Any, allowed) -> None:
    if token not in allowed:
        raise UnknownStyleTokenError(kind, str(token), allowed)
