"""Data models for the caption library.

WHY: Every stage of the caption pipeline (tokenizing, segmenting, styling and
clip windowing downstream) passes the same small set of values around.
Keeping them in one module makes the JSON contract with the persistence
layer and the rendering backend explicit.

HOW: Three frozen dataclasses:
  Word:             one timed word of the transcript
  StyleDescriptor:  resolved caption style (preset + overrides)
  CaptionSegment:   a contiguous run of words shown as one caption
Each has to_dict()/from_dict() that produce/accept the camelCase JSON shape
(startSec, endSec, fontSizePx, ...).

RULES:
- Values are immutable. Any edit produces a new value (dataclasses.replace).
- Word.text is never modified by the library, only timing may be adjusted
  on a replacement Word.
- CaptionSegment.words is a tuple and never empty; start_sec/end_sec always
  equal words[0].start_sec / words[-1].end_sec.
- Timestamps are float seconds.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from .errors import InvalidTimingError


@dataclass(frozen=True)
class Word:
    """A single timed word.

    Attributes:
        text: The word text as it appears in the transcript.
        start_sec: Start time in seconds.
        end_sec: End time in seconds (strictly greater than start_sec).
    """
    text: str
    start_sec: float
    end_sec: float

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "startSec": self.start_sec, "endSec": self.end_sec}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Word":
        """Parse a word dict.

        Accepts the canonical camelCase keys and the start/end/word keys
        most speech-to-text providers emit.
        """
        if not isinstance(data, dict):
            raise InvalidTimingError("Word entry must be an object: {!r}".format(data))
        text = data.get("text", data.get("word", ""))
        start = data.get("startSec", data.get("start"))
        end = data.get("endSec", data.get("end"))
        if start is None or end is None:
            raise InvalidTimingError("Word is missing start/end timing: {!r}".format(data))
        try:
            start_sec, end_sec = float(start), float(end)
        except (TypeError, ValueError):
            raise InvalidTimingError(
                "Word timing is not a number: {!r}".format(data)
            ) from None
        return cls(text=str(text).strip(), start_sec=start_sec, end_sec=end_sec)


@dataclass(frozen=True)
class StyleDescriptor:
    """Renderable caption style.

    Produced only by resolve_style(); never constructed from untrusted
    input without validation.
    """
    font_size_px: int
    color: str
    background_color: str
    font_weight: int
    animation: str
    position: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fontSizePx": self.font_size_px,
            "color": self.color,
            "backgroundColor": self.background_color,
            "fontWeight": self.font_weight,
            "animation": self.animation,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StyleDescriptor":
        return cls(
            font_size_px=int(data["fontSizePx"]),
            color=str(data["color"]),
            background_color=str(data["backgroundColor"]),
            font_weight=int(data["fontWeight"]),
            animation=str(data["animation"]),
            position=str(data["position"]),
        )


@dataclass(frozen=True)
class CaptionSegment:
    """A caption: contiguous words displayed together.

    Build with CaptionSegment.from_words() so the timing invariant holds.
    """
    start_sec: float
    end_sec: float
    text: str
    words: Tuple[Word, ...] = field(default_factory=tuple)
    style: Optional[StyleDescriptor] = None

    @classmethod
    def from_words(
        cls,
        words: Iterable[Word],
        style: Optional[StyleDescriptor] = None,
    ) -> "CaptionSegment":
        ws = tuple(words)
        if not ws:
            raise ValueError("CaptionSegment needs at least one word")
        return cls(
            start_sec=ws[0].start_sec,
            end_sec=ws[-1].end_sec,
            text=join_words(ws),
            words=ws,
            style=style,
        )

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startSec": self.start_sec,
            "endSec": self.end_sec,
            "text": self.text,
            "words": [w.to_dict() for w in self.words],
            "style": self.style.to_dict() if self.style is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptionSegment":
        style_data = data.get("style")
        return cls.from_words(
            [Word.from_dict(w) for w in data["words"]],
            style=StyleDescriptor.from_dict(style_data) if style_data else None,
        )


def join_words(words: Iterable[Word]) -> str:
    """Join word texts with single spaces."""
    return " ".join(w.text for w in words if w.text)
