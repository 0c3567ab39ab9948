"""Configuration constants and .env loading.

WHY: Centralizes all configurable values so they are easy to find, update
and override: provider endpoints, model names, job store limits and the
default clip parameters. They are plain module constants, not buried in
logic.

HOW: python-dotenv loads the .env file on import. Constants are read from
the environment with defaults. load_api_key() provides a clear error when
the key is missing.

RULES:
- API key is loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
- Values here are defaults only; per-job options travel in PipelineOptions
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------

GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
GEMINI_TIMEOUT_S = float(os.getenv("GEMINI_TIMEOUT_S", "120"))

# ---------------------------------------------------------------------------
# Clip defaults
# ---------------------------------------------------------------------------

DEFAULT_CLIP_COUNT = int(os.getenv("SHORTIFY_CLIP_COUNT", "3"))
DEFAULT_MIN_CLIP_SEC = float(os.getenv("SHORTIFY_MIN_CLIP_SEC", "15"))
DEFAULT_MAX_CLIP_SEC = float(os.getenv("SHORTIFY_MAX_CLIP_SEC", "60"))

# ---------------------------------------------------------------------------
# Job store / server
# ---------------------------------------------------------------------------

JOB_TTL_SECONDS = int(os.getenv("SHORTIFY_JOB_TTL_SECONDS", "3600"))
MAX_JOBS = int(os.getenv("SHORTIFY_MAX_JOBS", "100"))
CLEANUP_INTERVAL_SECONDS = int(os.getenv("SHORTIFY_CLEANUP_INTERVAL_SECONDS", "300"))
API_HOST = os.getenv("SHORTIFY_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("SHORTIFY_API_PORT", "8000"))


def load_api_key() -> str:
    """Load the Gemini API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("GEMINI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Gemini API key not configured. "
            "Add GEMINI_API_KEY to the .env file in the app folder."
        )
    return key


def has_api_key() -> bool:
    """Return True when a Gemini API key is configured."""
    return bool(os.getenv("GEMINI_API_KEY", "").strip())
