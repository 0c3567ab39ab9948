"""Provider interfaces and the Gemini REST client.

WHY: The pipeline needs two external capabilities, transcription and
content analysis, but must not depend on any one vendor. This package
defines the provider interfaces and ships one async implementation.

HOW: base.py declares the Transcriber and ContentAnalyzer ABCs, models.py
the TranscriptionResult value, client.py the GeminiClient implementing both
over httpx.AsyncClient.

RULES:
- All HTTP calls go through a provider client (no direct httpx elsewhere)
- Authentication is via the API key from config
- Retryable failures raise ProviderUnavailableError, nothing else
"""

from shortify.api.base import ContentAnalyzer, Transcriber
from shortify.api.client import GeminiAPIError, GeminiClient
from shortify.api.models import TranscriptionResult

__all__ = [
    "ContentAnalyzer",
    "Transcriber",
    "GeminiAPIError",
    "GeminiClient",
    "TranscriptionResult",
]
