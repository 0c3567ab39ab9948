"""Clip windower: choose non-overlapping clip windows from scored spans.

WHY: The analyser's spans have arbitrary lengths and overlap freely, but a
short-form clip has a hard duration range and two clips of one video must
never show the same footage. The windower turns spans into at most
max_clip_count ClipWindows that satisfy both constraints, then attaches the
caption segments that fall inside each window.

HOW:
  1. clamp_span() extends or trims each span symmetrically around its
     centre to [min_clip_sec, max_clip_sec], then shifts it to stay inside
     [0, total_duration].
  2. select_windows() (default) sorts by confidence descending, tie-break
     earlier start, and greedily accepts spans that keep the gap buffer to
     every accepted window. select_windows_optimal() instead maximises the
     total confidence with weighted interval scheduling (sort by end + DP).
  3. Accepted windows are re-sorted by start and numbered clip_1, clip_2...
  4. attach_captions() gives each window the caption segments that
     intersect it, clipped at the window boundaries.

RULES:
- A video shorter than min_clip_sec yields no clips (no window can fit).
- Too few candidates is not an error; fewer clips are returned.
- No two returned windows overlap, including the gap buffer.
- Caption words outside a window are dropped; boundary words have their
  times clipped to the window.
- Every word lands in at most one window: a word overlapping two windows
  goes to the one it overlaps most.
"""

from __future__ import annotations

import bisect
import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from captionkit.models import CaptionSegment, Word

from shortify.config import DEFAULT_CLIP_COUNT, DEFAULT_MAX_CLIP_SEC, DEFAULT_MIN_CLIP_SEC
from shortify.core.ir import ClipWindow, ScoredSpan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowerConfig:
    """Clip window constraints.

    Attributes:
        min_clip_sec: Shortest allowed clip.
        max_clip_sec: Longest allowed clip.
        max_clip_count: Upper bound on returned clips.
        min_gap_between_clips_sec: Required distance between two clips.
    """

    min_clip_sec: float = DEFAULT_MIN_CLIP_SEC
    max_clip_sec: float = DEFAULT_MAX_CLIP_SEC
    max_clip_count: int = DEFAULT_CLIP_COUNT
    min_gap_between_clips_sec: float = 0.0

    def validate(self) -> None:
        if self.min_clip_sec <= 0:
            raise ValueError("min_clip_sec must be positive")
        if self.max_clip_sec < self.min_clip_sec:
            raise ValueError("max_clip_sec must be >= min_clip_sec")
        if self.max_clip_count < 0:
            raise ValueError("max_clip_count must be >= 0")
        if self.min_gap_between_clips_sec < 0:
            raise ValueError("min_gap_between_clips_sec must be >= 0")


def clamp_span(
    span: ScoredSpan,
    total_duration: float,
    config: WindowerConfig,
) -> ScoredSpan | None:
    """Fit a span into the clip duration range and the video bounds.

    Returns None when the video itself is shorter than min_clip_sec.
    """
    total = float(total_duration)
    if total < config.min_clip_sec:
        return None

    length = min(max(span.duration_sec, config.min_clip_sec), config.max_clip_sec, total)
    start = span.center_sec - length / 2.0
    end = start + length
    if start < 0:
        start, end = 0.0, length
    if end > total:
        start, end = total - length, total
    return dataclasses.replace(span, start_sec=start, end_sec=end)


def _conflicts(a: ScoredSpan, b: ScoredSpan, gap: float) -> bool:
    return a.start_sec < b.end_sec + gap and b.start_sec < a.end_sec + gap


def _to_windows(accepted: Sequence[ScoredSpan]) -> list[ClipWindow]:
    ordered = sorted(accepted, key=lambda s: (s.start_sec, s.end_sec))
    return [
        ClipWindow(
            id=f"clip_{i}",
            start_sec=s.start_sec,
            end_sec=s.end_sec,
            type=s.type,
            confidence=s.confidence,
            summary=s.summary,
            source=s.source,
        )
        for i, s in enumerate(ordered, start=1)
    ]


def _candidates(
    spans: Sequence[ScoredSpan], total_duration: float, config: WindowerConfig
) -> list[ScoredSpan]:
    config.validate()
    if total_duration < config.min_clip_sec:
        logger.info(
            "Video (%.1fs) shorter than min clip (%.1fs), no clips",
            total_duration, config.min_clip_sec,
        )
        return []
    clamped = (clamp_span(s, total_duration, config) for s in spans)
    return [s for s in clamped if s is not None]


def select_windows(
    spans: Sequence[ScoredSpan],
    total_duration: float,
    config: WindowerConfig | None = None,
) -> list[ClipWindow]:
    """Greedy-by-confidence window selection.

    Returns:
        Windows sorted by start, ids clip_1..clip_N, captions empty.
    """
    cfg = config or WindowerConfig()
    candidates = _candidates(spans, total_duration, cfg)
    candidates.sort(key=lambda s: (-s.confidence, s.start_sec))

    gap = cfg.min_gap_between_clips_sec
    accepted: list[ScoredSpan] = []
    for span in candidates:
        if len(accepted) >= cfg.max_clip_count:
            break
        if any(_conflicts(span, a, gap) for a in accepted):
            logger.debug(
                "Rejecting span %.1f-%.1f (%.2f): overlaps an accepted clip",
                span.start_sec, span.end_sec, span.confidence,
            )
            continue
        accepted.append(span)

    return _to_windows(accepted)


def select_windows_optimal(
    spans: Sequence[ScoredSpan],
    total_duration: float,
    config: WindowerConfig | None = None,
) -> list[ClipWindow]:
    """Exact selection maximising total confidence.

    Weighted interval scheduling with a count limit: candidates sorted by
    end, best[i][k] is the best total using the first i candidates and at
    most k clips. O(n * max_clip_count).
    """
    cfg = config or WindowerConfig()
    candidates = _candidates(spans, total_duration, cfg)
    if not candidates or cfg.max_clip_count == 0:
        return []

    candidates.sort(key=lambda s: (s.end_sec, s.start_sec))
    ends = [s.end_sec for s in candidates]
    gap = cfg.min_gap_between_clips_sec
    n = len(candidates)
    k_max = cfg.max_clip_count

    # prev[i]: number of candidates (prefix length) compatible with candidate i
    prev = [bisect.bisect_right(ends, c.start_sec - gap, 0, i) for i, c in enumerate(candidates)]

    best = [[0.0] * (k_max + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        span = candidates[i - 1]
        for k in range(1, k_max + 1):
            skip = best[i - 1][k]
            take = best[prev[i - 1]][k - 1] + span.confidence
            best[i][k] = take if take > skip else skip

    accepted: list[ScoredSpan] = []
    i, k = n, k_max
    while i > 0 and k > 0:
        if best[i][k] == best[i - 1][k]:
            i -= 1
            continue
        accepted.append(candidates[i - 1])
        i = prev[i - 1]
        k -= 1

    return _to_windows(accepted)


def clip_segment(
    segment: CaptionSegment, start_sec: float, end_sec: float
) -> CaptionSegment | None:
    """Restrict a caption segment to [start_sec, end_sec].

    Words entirely outside are dropped, boundary words get their times
    clipped. Returns None when nothing is left.
    """
    words: list[Word] = []
    for w in segment.words:
        if w.end_sec <= start_sec or w.start_sec >= end_sec:
            continue
        clipped_start = max(w.start_sec, start_sec)
        clipped_end = min(w.end_sec, end_sec)
        if clipped_end <= clipped_start:
            continue
        if clipped_start != w.start_sec or clipped_end != w.end_sec:
            w = dataclasses.replace(w, start_sec=clipped_start, end_sec=clipped_end)
        words.append(w)
    if not words:
        return None
    if tuple(words) == segment.words:
        return segment
    return CaptionSegment.from_words(words, style=segment.style)


def _owning_window(word: Word, windows: Sequence[ClipWindow]) -> int | None:
    """Index of the window sharing the most time with the word (tie: earlier)."""
    best, best_overlap = None, 0.0
    for i, window in enumerate(windows):
        overlap = min(word.end_sec, window.end_sec) - max(word.start_sec, window.start_sec)
        if overlap > best_overlap:
            best, best_overlap = i, overlap
    return best


def attach_captions(
    windows: Sequence[ClipWindow],
    segments: Sequence[CaptionSegment],
) -> list[ClipWindow]:
    """Return copies of the windows carrying their caption segments.

    A word that straddles the boundary of two adjacent windows is given to
    the one it overlaps most, so no word appears in two clips.
    """
    owners = [[_owning_window(w, windows) for w in seg.words] for seg in segments]

    result = []
    for i, window in enumerate(windows):
        captions = []
        for seg, seg_owners in zip(segments, owners):
            if seg.start_sec >= window.end_sec or seg.end_sec <= window.start_sec:
                continue
            owned = [w for w, owner in zip(seg.words, seg_owners) if owner == i]
            if not owned:
                continue
            if len(owned) != len(seg.words):
                seg = CaptionSegment.from_words(owned, style=seg.style)
            clipped = clip_segment(seg, window.start_sec, window.end_sec)
            if clipped is not None:
                captions.append(clipped)
        result.append(dataclasses.replace(window, captions=tuple(captions)))
    return result
