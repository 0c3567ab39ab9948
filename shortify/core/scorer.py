"""Highlight scorer: turn analyser output into clean, scored spans.

WHY: The content analyser (an LLM) returns highlight suggestions in a loose
shape: extra type names, 0-100 scores mixed with 0-1 confidences, spans past
the end of the video, near-duplicates. The windower needs a clean list of
ScoredSpan values it can trust. The scorer never invents AI scores; when the
analyser gives nothing usable it either falls back to an explicit,
deterministic heuristic or fails loudly.

HOW: normalize_spans() parses, clamps, clips and deduplicates raw span
dicts. heuristic_spans() produces evenly spaced fallback spans.
score_spans() chains the two according to a ScorerConfig.

RULES:
- Span types: hook, highlight, conclusion. "key_point" and
  "emotional_peak" map to highlight; anything else is dropped with a warning.
- confidence is clamped into [0, 1]. When only engagementScore or score is
  given, a value above 1 is read as 0-100 and divided by 100 first.
- Spans are clipped to [0, total_duration]; zero/negative spans are dropped.
- Near-identical spans (interval Jaccard > dedupe_threshold) collapse to the
  higher confidence one (tie: earlier start).
- Analyser spans get source="ai", fallback spans source="heuristic".
- No randomness anywhere.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from captionkit.models import Word, join_words

from shortify.core.ir import SOURCE_AI, SOURCE_HEURISTIC, SPAN_TYPES, ScoredSpan
from shortify.errors import InvalidDurationError, NoHighlightsFoundError

logger = logging.getLogger(__name__)

TYPE_ALIASES: dict[str, str] = {
    "key_point": "highlight",
    "emotional_peak": "highlight",
}

_SUMMARY_MAX_WORDS = 12

_PERCENT_KEYS = ("engagementScore", "score")


@dataclass(frozen=True)
class ScorerConfig:
    """Scorer parameters.

    Attributes:
        fallback: Use heuristic spans when the analyser yields nothing usable.
        fallback_span_count: Number of evenly spaced heuristic spans.
        dedupe_threshold: Interval Jaccard above which two spans are duplicates.
    """

    fallback: bool = True
    fallback_span_count: int = 3
    dedupe_threshold: float = 0.9


def interval_jaccard(a: ScoredSpan, b: ScoredSpan) -> float:
    """Intersection over union of two time intervals."""
    inter = min(a.end_sec, b.end_sec) - max(a.start_sec, b.start_sec)
    if inter <= 0:
        return 0.0
    union = max(a.end_sec, b.end_sec) - min(a.start_sec, b.start_sec)
    return inter / union if union > 0 else 0.0


def normalize_spans(
    raw_spans: Iterable[dict],
    total_duration: float,
    dedupe_threshold: float = 0.9,
    source: str = SOURCE_AI,
) -> list[ScoredSpan]:
    """Parse and clean raw analyser spans.

    Accepts the analyser's camelCase keys (startTime/endTime or
    startSec/endSec, confidence or engagementScore, summary/description).
    Malformed entries are skipped with a warning, never raised, because one
    bad suggestion should not sink the whole analysis.

    Returns:
        Spans sorted by start time.
    """
    spans: list[ScoredSpan] = []
    for raw in raw_spans or []:
        span = _parse_span(raw, total_duration, source)
        if span is not None:
            spans.append(span)

    spans = _dedupe(spans, dedupe_threshold)
    spans.sort(key=lambda s: (s.start_sec, s.end_sec))
    return spans


def _parse_span(raw: dict, total_duration: float, source: str) -> ScoredSpan | None:
    if not isinstance(raw, dict):
        logger.warning("Skipping non-object span: %r", raw)
        return None

    span_type = str(raw.get("type", "")).strip().lower()
    span_type = TYPE_ALIASES.get(span_type, span_type)
    if span_type not in SPAN_TYPES:
        logger.warning("Dropping span with unknown type %r", raw.get("type"))
        return None

    start = _first(raw, ("startSec", "startTime", "start_sec", "start"))
    end = _first(raw, ("endSec", "endTime", "end_sec", "end"))
    try:
        start_sec = float(start)
        end_sec = float(end)
    except (TypeError, ValueError):
        logger.warning("Dropping span with bad timing: %r", raw)
        return None
    if not (math.isfinite(start_sec) and math.isfinite(end_sec)):
        logger.warning("Dropping span with non-finite timing: %r", raw)
        return None

    start_sec = max(0.0, start_sec)
    end_sec = min(float(total_duration), end_sec)
    if end_sec <= start_sec:
        logger.debug("Dropping empty span %.2f-%.2f", start_sec, end_sec)
        return None

    conf = _confidence(raw)

    summary = _first(raw, ("summary", "description", "title")) or ""

    return ScoredSpan(
        start_sec=start_sec,
        end_sec=end_sec,
        type=span_type,
        confidence=conf,
        summary=str(summary),
        source=source,
    )


def _positive_finite(value: float) -> bool:
    return math.isfinite(value) and value > 0


def _first(raw: dict, keys: Sequence[str]):
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _confidence(raw: dict) -> float:
    """confidence is clamped as given; engagementScore/score may be 0-100."""
    value = raw.get("confidence")
    percent = False
    if value is None:
        value = _first(raw, _PERCENT_KEYS)
        percent = True
    try:
        conf = float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(conf):
        return 0.0
    if percent and conf > 1.0:
        conf = conf / 100.0
    return min(1.0, max(0.0, conf))


def _dedupe(spans: list[ScoredSpan], threshold: float) -> list[ScoredSpan]:
    """Keep the best of each group of near-identical spans."""
    ranked = sorted(spans, key=lambda s: (-s.confidence, s.start_sec))
    kept: list[ScoredSpan] = []
    for span in ranked:
        if any(interval_jaccard(span, k) > threshold for k in kept):
            logger.debug(
                "Dropping duplicate span %.2f-%.2f (%.2f)",
                span.start_sec, span.end_sec, span.confidence,
            )
            continue
        kept.append(span)
    return kept


def heuristic_spans(
    total_duration: float,
    count: int = 3,
    words: Sequence[Word] | None = None,
) -> list[ScoredSpan]:
    """Split the timeline into `count` equal spans.

    Deterministic fallback when no analyser output is usable. Each span gets
    type "highlight", confidence 0.5 and a summary built from the first
    words that start inside it.
    """
    if not _positive_finite(total_duration):
        raise InvalidDurationError(
            f"Total duration must be positive, got {total_duration!r}"
        )
    count = max(1, int(count))
    step = float(total_duration) / count

    spans = []
    for i in range(count):
        start = i * step
        end = float(total_duration) if i == count - 1 else (i + 1) * step
        inside = [w for w in (words or []) if start <= w.start_sec < end]
        spans.append(
            ScoredSpan(
                start_sec=start,
                end_sec=end,
                type="highlight",
                confidence=0.5,
                summary=join_words(inside[:_SUMMARY_MAX_WORDS]),
                source=SOURCE_HEURISTIC,
            )
        )
    return spans


def score_spans(
    raw_spans: Iterable[dict] | None,
    total_duration: float,
    words: Sequence[Word] | None = None,
    config: ScorerConfig | None = None,
) -> list[ScoredSpan]:
    """Normalise analyser output, falling back to the heuristic if configured.

    Raises:
        InvalidDurationError: total_duration is not a positive finite number.
        NoHighlightsFoundError: Nothing usable and fallback disabled.
    """
    cfg = config or ScorerConfig()
    if total_duration is None or not _positive_finite(total_duration):
        raise InvalidDurationError(
            f"Total duration must be positive, got {total_duration!r}"
        )

    spans = normalize_spans(raw_spans or [], total_duration, cfg.dedupe_threshold)
    if spans:
        return spans

    if not cfg.fallback:
        raise NoHighlightsFoundError("Analyser returned no usable highlight spans")

    logger.info(
        "No usable analyser spans, using %d heuristic spans", cfg.fallback_span_count
    )
    return heuristic_spans(total_duration, cfg.fallback_span_count, words)
