"""Provider response dataclasses.

WHY: Gemini wraps the model output in a candidates/content/parts envelope,
and the transcription answer inside it is loose JSON. Typed dataclasses make
both shapes explicit and keep the parsing rules in one place.

HOW: GenerateContentResponse maps the REST envelope and exposes the joined
text of the first candidate. TranscriptionResult is what every Transcriber
returns, with a from_dict() that accepts the JSON the transcription prompt
asks the model for.

RULES:
- TranscriptionResult.words is None when the provider gave no word timings
  (the tokenizer then falls back to the duration heuristic)
- duration_sec must be positive; the tokenizer enforces it
- A response with no candidates has empty text (the caller decides)
"""

from __future__ import annotations

from dataclasses import dataclass

from captionkit.models import Word


@dataclass(frozen=True)
class TranscriptionResult:
    """Transcript text, media duration and optional word timings."""

    text: str
    duration_sec: float
    words: tuple[Word, ...] | None = None
    language: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TranscriptionResult:
        """Parse the transcription JSON returned by the model.

        RULES:
        - text comes from "fullText" (or "text")
        - duration comes from "duration" (or "durationSec")
        - "words" entries use text/start/end; an empty list means None
        """
        words = data.get("words") or None
        return cls(
            text=str(data.get("fullText", data.get("text", ""))),
            duration_sec=float(data.get("duration", data.get("durationSec", 0)) or 0),
            words=tuple(Word.from_dict(w) for w in words) if words else None,
            language=data.get("language"),
        )


@dataclass
class GenerateContentResponse:
    """Envelope of a POST models/{model}:generateContent response."""

    text: str
    finish_reason: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> GenerateContentResponse:
        candidates = data.get("candidates") or []
        if not candidates:
            return cls(text="")
        first = candidates[0]
        parts = (first.get("content") or {}).get("parts") or []
        return cls(
            text="".join(p.get("text", "") for p in parts),
            finish_reason=first.get("finishReason"),
        )
