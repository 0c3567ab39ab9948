"""Shared test fixtures for the shortify test suite.

WHY: Several test modules need the same word streams, highlight spans,
pipeline results and fake providers. Centralizing them here keeps the
scenarios consistent and avoids duplicating setup code.

HOW: pytest auto-discovers this file. Fixtures build small deterministic
inputs; the fake providers implement the Transcriber / ContentAnalyzer
interfaces in memory so no network is touched.

RULES:
- Fixtures never touch the network or read a .env key
- The sample highlight set matches the hook/highlight/conclusion scenario
  used across scorer, windower and API tests
- Fakes record their calls so tests can assert on them
"""

from __future__ import annotations

import shutil

import pytest

from captionkit import tokenize
from captionkit.models import Word
from shortify.api.base import ContentAnalyzer, Transcriber
from shortify.api.models import TranscriptionResult
from shortify.core.pipeline import PipelineOptions, PipelineResult, build_captions, build_clips
from shortify.core.scorer import score_spans
from shortify.core.windower import WindowerConfig
from shortify.server.jobs import JobStore

WELCOME_TEXT = "Welcome to today's discussion about AI and the future of work."

SAMPLE_HIGHLIGHTS = [
    {"startTime": 0, "endTime": 15, "type": "hook", "confidence": 0.95,
     "summary": "Strong opening question"},
    {"startTime": 120, "endTime": 150, "type": "highlight", "confidence": 0.89,
     "summary": "Surprising statistic"},
    {"startTime": 480, "endTime": 510, "type": "conclusion", "confidence": 0.92,
     "summary": "Actionable takeaway"},
]


def long_transcript(word_count: int = 200) -> str:
    """Deterministic filler transcript: w0 w1 w2 ..."""
    return " ".join("w{}".format(i) for i in range(word_count))


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeTranscriber(Transcriber):
    """Returns a fixed TranscriptionResult, optionally failing first."""

    def __init__(self, result: TranscriptionResult, failures=None):
        self.result = result
        self.failures = list(failures or [])
        self.calls = []

    async def transcribe(self, media_url: str) -> TranscriptionResult:
        self.calls.append(media_url)
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class FakeAnalyzer(ContentAnalyzer):
    """Returns fixed raw highlight dicts, optionally failing first."""

    def __init__(self, highlights=None, failures=None):
        self.highlights = list(highlights if highlights is not None else SAMPLE_HIGHLIGHTS)
        self.failures = list(failures or [])
        self.calls = []

    async def analyze(self, transcript: str, duration_sec: float) -> list:
        self.calls.append((transcript, duration_sec))
        if self.failures:
            raise self.failures.pop(0)
        return list(self.highlights)


class RecordingSleep:
    """Async sleep stand-in that records the requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def welcome_words():
    """11 words spread uniformly over 10 seconds."""
    return tokenize(WELCOME_TEXT, 10.0, config={"per_char_ms": 0})


@pytest.fixture
def asr_words():
    """Provider word timings with small pauses between words."""
    return [
        Word("Hello", 0.0, 0.4),
        Word("and", 0.5, 0.7),
        Word("welcome", 0.8, 1.3),
        Word("back", 1.4, 1.8),
        Word("everyone", 2.0, 2.6),
    ]


@pytest.fixture
def sample_highlights():
    return [dict(h) for h in SAMPLE_HIGHLIGHTS]


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture
def make_analyzer():
    """Factory fixture: make_analyzer(highlights=None, failures=None)."""
    return FakeAnalyzer


@pytest.fixture
def make_transcriber():
    """Factory fixture: make_transcriber(result, failures=None)."""
    return FakeTranscriber


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def sample_result():
    """A full PipelineResult for a 600 s heuristic-timed transcript."""
    options = PipelineOptions(
        windower=WindowerConfig(min_clip_sec=30, max_clip_sec=60, max_clip_count=2),
    )
    text = long_transcript()
    words = tokenize(text, 600.0)
    captions = build_captions(text, 600.0, options=options)
    spans = score_spans(SAMPLE_HIGHLIGHTS, 600.0, words)
    clips = build_clips(spans, captions, 600.0, options)
    return PipelineResult(
        transcript_text=text,
        duration_sec=600.0,
        timing_source="heuristic",
        words=tuple(words),
        captions=tuple(captions),
        spans=tuple(spans),
        clips=tuple(clips),
    )


@pytest.fixture
def job_store():
    """A fresh JobStore whose temp directories are removed afterwards."""
    store = JobStore()
    yield store
    for job in store.list_jobs():
        if job.output_dir.exists():
            shutil.rmtree(job.output_dir, ignore_errors=True)
