"""Error taxonomy for shortify jobs.

WHY: A failed job must tell the caller what went wrong in a stable,
machine-readable way, and the pipeline must know which failures are worth
retrying. Collecting the exception classes in one module makes both
decisions explicit.

HOW: Bad-input errors come from captionkit (re-exported here) and from the
scorer. Provider failures are split into retryable
(ProviderUnavailableError) and terminal (ProviderResponseError, plus the
client's GeminiAPIError). error_kind() maps an exception to the string
stored on the job record.

RULES:
- Only ProviderUnavailableError is retried
- Cancellation is not a failure: JobCancelledError ends a job "cancelled"
- Unknown exceptions map to "internal"
"""

from __future__ import annotations

from captionkit.errors import (
    EmptyTranscriptError,
    InvalidDurationError,
    InvalidTimingError,
    UnknownStyleTokenError,
)

__all__ = [
    "EmptyTranscriptError",
    "InvalidDurationError",
    "InvalidTimingError",
    "UnknownStyleTokenError",
    "NoHighlightsFoundError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderResponseError",
    "JobCancelledError",
    "error_kind",
]


class NoHighlightsFoundError(Exception):
    """The analyser produced no usable spans and fallback is disabled."""


class ProviderError(Exception):
    """Base class for transcription / analysis provider failures."""


class ProviderUnavailableError(ProviderError):
    """The provider is temporarily unavailable (timeout, 429, 5xx).

    Raised by provider clients; the pipeline retries these with bounded
    exponential backoff before giving up.
    """


class ProviderResponseError(ProviderError):
    """The provider answered, but its output could not be used."""


class JobCancelledError(Exception):
    """The job was cancelled before the next stage started."""


# Checked in order; subclasses must come before their bases.
_ERROR_KINDS: list[tuple[type[BaseException], str]] = [
    (EmptyTranscriptError, "empty_transcript"),
    (InvalidDurationError, "invalid_duration"),
    (InvalidTimingError, "invalid_timing"),
    (UnknownStyleTokenError, "unknown_style_token"),
    (NoHighlightsFoundError, "no_highlights"),
    (ProviderUnavailableError, "provider_unavailable"),
    (ProviderResponseError, "provider_response"),
    (ProviderError, "provider_error"),
    (JobCancelledError, "cancelled"),
]


def error_kind(exc: BaseException) -> str:
    """Map an exception to the error kind stored on a failed job."""
    for exc_type, kind in _ERROR_KINDS:
        if isinstance(exc, exc_type):
            return kind
    if isinstance(exc, ValueError):
        return "invalid_input"
    return "internal"
