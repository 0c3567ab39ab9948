"""Intermediate representation for highlight spans and clip windows.

WHY: The analyser returns loosely shaped highlight suggestions; the
windower, the formatters and the HTTP layer all need the same well-typed
values. The IR is the stable contract between scoring, windowing and
export.

HOW: Two frozen dataclasses:
  ScoredSpan:  a candidate moment with a type, confidence and source
  ClipWindow:  an accepted, non-overlapping clip with its captions
Both serialize to the camelCase JSON shape consumed by the rendering
backend (to_dict / from_dict).

RULES:
- type is one of SPAN_TYPES ("hook", "highlight", "conclusion")
- confidence is always within [0, 1]
- source is "ai" for analyser spans, "heuristic" for fallback spans
- All times are float seconds from the start of the source video
- Values are immutable; edits go through dataclasses.replace
"""

from __future__ import annotations

from dataclasses import dataclass, field

from captionkit.models import CaptionSegment

SPAN_TYPES: tuple[str, ...] = ("hook", "highlight", "conclusion")

SOURCE_AI = "ai"
SOURCE_HEURISTIC = "heuristic"


@dataclass(frozen=True)
class ScoredSpan:
    """A candidate highlight moment.

    RULES:
    - start_sec < end_sec once normalised by the scorer
    - spans may overlap each other; the windower resolves that
    """

    start_sec: float
    end_sec: float
    type: str
    confidence: float
    summary: str = ""
    source: str = SOURCE_AI

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    @property
    def center_sec(self) -> float:
        return (self.start_sec + self.end_sec) / 2.0

    def to_dict(self) -> dict:
        return {
            "startSec": self.start_sec,
            "endSec": self.end_sec,
            "type": self.type,
            "confidence": self.confidence,
            "summary": self.summary,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ScoredSpan:
        return cls(
            start_sec=float(data["startSec"]),
            end_sec=float(data["endSec"]),
            type=data["type"],
            confidence=float(data["confidence"]),
            summary=data.get("summary", ""),
            source=data.get("source", SOURCE_AI),
        )


@dataclass(frozen=True)
class ClipWindow:
    """An accepted clip: a time range to cut, plus its captions.

    WHY: This is what the rendering backend receives. Caption times stay in
    source-video seconds; exporters convert to clip-relative times when a
    format needs it.

    RULES:
    - id is "clip_N", N counting from 1 in start order
    - min_clip_sec <= duration_sec <= max_clip_sec
    - captions only cover [start_sec, end_sec]
    """

    id: str
    start_sec: float
    end_sec: float
    type: str
    confidence: float
    summary: str = ""
    source: str = SOURCE_AI
    captions: tuple[CaptionSegment, ...] = field(default_factory=tuple)

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startSec": self.start_sec,
            "endSec": self.end_sec,
            "type": self.type,
            "confidence": self.confidence,
            "summary": self.summary,
            "source": self.source,
            "captions": [c.to_dict() for c in self.captions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> ClipWindow:
        return cls(
            id=data["id"],
            start_sec=float(data["startSec"]),
            end_sec=float(data["endSec"]),
            type=data["type"],
            confidence=float(data["confidence"]),
            summary=data.get("summary", ""),
            source=data.get("source", SOURCE_AI),
            captions=tuple(
                CaptionSegment.from_dict(c) for c in data.get("captions", [])
            ),
        )
