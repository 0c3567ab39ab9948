"""Async HTTP client for the Gemini generateContent REST API.

WHY: Shortify uses one LLM provider for two jobs: transcribing a media URL
and suggesting highlight moments in a transcript. This module hides the
REST envelope, authentication and error mapping behind a single client
class implementing both provider interfaces, so the pipeline only sees
TranscriptionResult values and raw highlight dicts.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. GeminiClient is an async
context manager: enter it to get an authenticated connection pool, exit to
close it. Each capability builds a prompt, calls generate(), and extracts
the JSON object from the model text.

RULES:
- Always use the async context manager (async with GeminiClient() as client:)
- Default model is gemini-1.5-flash (override with GEMINI_MODEL)
- HTTP 429, 5xx and transport errors raise ProviderUnavailableError (retryable)
- Other non-2xx responses raise GeminiAPIError (terminal)
- Model output without a parseable JSON object raises ProviderResponseError
- The client never retries by itself; the pipeline owns the retry policy
"""

from __future__ import annotations

import json
import logging
import mimetypes
import re

import httpx

from shortify.api.base import ContentAnalyzer, Transcriber
from shortify.api.models import GenerateContentResponse, TranscriptionResult
from shortify.config import (
    DEFAULT_CLIP_COUNT,
    DEFAULT_MAX_CLIP_SEC,
    DEFAULT_MIN_CLIP_SEC,
    GEMINI_BASE_URL,
    GEMINI_MODEL,
    GEMINI_TIMEOUT_S,
    load_api_key,
)
from shortify.errors import ProviderError, ProviderResponseError, ProviderUnavailableError

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_DEFAULT_MEDIA_MIME = "video/mp4"

TRANSCRIBE_PROMPT = """\
You are an expert transcription AI. Transcribe the attached video.

Detect and transcribe in the original language.

Provide the response in this exact JSON format:
{{
  "fullText": "Complete transcription text",
  "language": "detected language code (e.g., 'en')",
  "duration": duration_in_seconds,
  "words": [
    {{"text": "word", "start": start_in_seconds, "end": end_in_seconds}}
  ]
}}

Video URL: {media_url}
"""

ANALYZE_PROMPT = """\
You are an expert content strategist for viral short-form videos. Analyze this
transcript and identify the best moments for short clips.

TRANSCRIPT ({duration:.0f} seconds total):
\"\"\"
{transcript}
\"\"\"

Respond in this exact JSON format:
{{
  "summary": "Brief 2-3 sentence summary of the entire content",
  "highlights": [
    {{
      "startTime": start_in_seconds,
      "endTime": end_in_seconds,
      "type": "hook|highlight|conclusion|key_point|emotional_peak",
      "confidence": 0.0-1.0,
      "summary": "Why this moment is engaging"
    }}
  ]
}}

Requirements:
- Identify the {clip_count} best moments
- Each moment should be {min_clip:.0f}-{max_clip:.0f} seconds
- Prioritize: hooks (attention-grabbing openings), emotional peaks, and actionable conclusions
"""


class GeminiAPIError(ProviderError):
    """Raised when the Gemini API returns a non-retryable error response.

    Carries the HTTP status code and response body so callers can tell a
    bad request or bad key apart from an outage.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Gemini API error {status_code}: {message}")


def extract_json_object(text: str) -> dict:
    """Pull the outermost JSON object out of free-form model text.

    Models wrap JSON in prose or markdown fences; the first "{" to the last
    "}" is taken and parsed.

    Raises:
        ProviderResponseError: No object found or it is not valid JSON.
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ProviderResponseError("Model response contains no JSON object")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ProviderResponseError(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ProviderResponseError("Model JSON is not an object")
    return data


class GeminiClient(Transcriber, ContentAnalyzer):
    """Async client for Gemini transcription and highlight analysis.

    RULES:
    - Use as: async with GeminiClient() as client: ...
    - api_key defaults to load_api_key() from .env
    - base_url / model default to GEMINI_BASE_URL / GEMINI_MODEL from config
    - clip_count / min_clip_sec / max_clip_sec only shape the analysis prompt
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout_s: float | None = None,
        clip_count: int = DEFAULT_CLIP_COUNT,
        min_clip_sec: float = DEFAULT_MIN_CLIP_SEC,
        max_clip_sec: float = DEFAULT_MAX_CLIP_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or GEMINI_BASE_URL).rstrip("/")
        self._model = model or GEMINI_MODEL
        self._timeout_s = timeout_s or GEMINI_TIMEOUT_S
        self._clip_count = clip_count
        self._min_clip_sec = min_clip_sec
        self._max_clip_sec = max_clip_sec
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GeminiClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"x-goog-api-key": self._api_key},
            timeout=httpx.Timeout(self._timeout_s, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "GeminiClient must be used as an async context manager: "
                "async with GeminiClient() as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Raw call
    # ------------------------------------------------------------------

    async def generate(self, prompt: str, media_url: str | None = None) -> str:
        """Send one generateContent request and return the model text.

        HOW: POST /models/{model}:generateContent with a text part and,
        when media_url is given, a fileData part pointing at the media.
        JSON output is requested via responseMimeType.
        """
        client = self._ensure_client()

        parts: list[dict] = [{"text": prompt}]
        if media_url:
            mime, _ = mimetypes.guess_type(media_url)
            parts.append({
                "fileData": {
                    "fileUri": media_url,
                    "mimeType": mime or _DEFAULT_MEDIA_MIME,
                }
            })
        body = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseMimeType": "application/json"},
        }

        try:
            resp = await client.post(f"/models/{self._model}:generateContent", json=body)
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(f"Gemini request failed: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise ProviderUnavailableError(
                f"Gemini unavailable ({resp.status_code}): {resp.text[:200]}"
            )
        if resp.status_code != 200:
            raise GeminiAPIError(resp.status_code, resp.text)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProviderResponseError("Gemini returned a non-JSON envelope") from exc

        result = GenerateContentResponse.from_dict(payload)
        if not result.text:
            raise ProviderResponseError(
                f"Gemini returned no text (finishReason={result.finish_reason})"
            )
        return result.text

    # ------------------------------------------------------------------
    # Provider interfaces
    # ------------------------------------------------------------------

    async def transcribe(self, media_url: str) -> TranscriptionResult:
        """Transcribe the media at media_url.

        RULES:
        - Word timings are used only when the model returns them
        - A missing or non-positive duration raises ProviderResponseError
        """
        logger.info("Transcribing %s with %s", media_url, self._model)
        text = await self.generate(TRANSCRIBE_PROMPT.format(media_url=media_url), media_url)
        data = extract_json_object(text)
        try:
            result = TranscriptionResult.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise ProviderResponseError(f"Unusable transcription: {exc}") from exc
        if result.duration_sec <= 0:
            raise ProviderResponseError("Transcription has no media duration")
        return result

    async def analyze(self, transcript: str, duration_sec: float) -> list[dict]:
        """Ask the model for highlight spans and return them unprocessed."""
        prompt = ANALYZE_PROMPT.format(
            transcript=transcript,
            duration=duration_sec,
            clip_count=self._clip_count,
            min_clip=self._min_clip_sec,
            max_clip=self._max_clip_sec,
        )
        text = await self.generate(prompt)
        data = extract_json_object(text)
        highlights = data.get("highlights")
        if highlights is None:
            highlights = data.get("clipRecommendations", [])
        if not isinstance(highlights, list):
            raise ProviderResponseError("Model 'highlights' is not a list")
        logger.info("Analyser returned %d highlight suggestions", len(highlights))
        return highlights
