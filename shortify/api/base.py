"""Provider interfaces for transcription and content analysis.

WHY: The pipeline must not care which vendor transcribes the media or
finds its highlights, and tests must be able to substitute fakes. Two small
ABCs pin down exactly what the pipeline calls.

HOW: Both interfaces are async and double as async context managers so the
pipeline can open and close any provider the same way. The default
__aenter__/__aexit__ do nothing; clients that own connections override them.

RULES:
- transcribe() returns a TranscriptionResult; words may be None
- analyze() returns raw highlight dicts; the scorer normalises them
- Transient failures raise ProviderUnavailableError so the pipeline retries
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from shortify.api.models import TranscriptionResult


class _AsyncProvider:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        return None


class Transcriber(_AsyncProvider, ABC):
    """Turns a media URL into transcript text, duration and word timings."""

    @abstractmethod
    async def transcribe(self, media_url: str) -> TranscriptionResult:
        """Transcribe the media at media_url."""


class ContentAnalyzer(_AsyncProvider, ABC):
    """Suggests highlight spans for a transcript."""

    @abstractmethod
    async def analyze(self, transcript: str, duration_sec: float) -> list[dict]:
        """Return raw highlight dicts (startTime, endTime, type, confidence...)."""
