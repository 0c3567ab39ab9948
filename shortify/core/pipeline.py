"""Per-job pipeline: transcribe, analyze, segment, window.

WHY: A job turns one video (or a ready transcript) into captioned clip
windows. The stages live in different modules and two of them call
external providers; this module chains them in a fixed order, records
which caption timing source was used, retries provider outages with a
bounded backoff and honours cancellation between stages.

HOW: build_captions() and build_clips() are the synchronous halves, usable
on their own (the /captions endpoint and the CLI call them directly).
run_pipeline() is the async driver used by jobs: before each stage it checks
is_cancelled() and reports the stage through on_stage(), then runs it.
Provider calls go through call_with_retries().

RULES:
- Stage order: transcribing -> analyzing -> segmenting -> windowing
- Cancellation is checked before a stage, never mid-stage
- Only ProviderUnavailableError is retried; everything else propagates
- The style is resolved before any provider call so bad tokens fail fast
- No analyser means no AI spans; the scorer's fallback decides what happens
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from captionkit import resolve_style, segment_config, segment_words, timing_source, tokenize
from captionkit.models import CaptionSegment, StyleDescriptor, Word

from shortify.api.base import ContentAnalyzer, Transcriber
from shortify.core.ir import ClipWindow, ScoredSpan
from shortify.core.scorer import ScorerConfig, score_spans
from shortify.core.windower import (
    WindowerConfig,
    attach_captions,
    select_windows,
    select_windows_optimal,
)
from shortify.errors import JobCancelledError, ProviderUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_TRANSCRIBING = "transcribing"
STAGE_ANALYZING = "analyzing"
STAGE_SEGMENTING = "segmenting"
STAGE_WINDOWING = "windowing"

STAGES: tuple[str, ...] = (
    STAGE_TRANSCRIBING,
    STAGE_ANALYZING,
    STAGE_SEGMENTING,
    STAGE_WINDOWING,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for provider calls.

    Delays are initial_s, initial_s * factor, ... capped at max_s, with
    `attempts` calls in total.
    """

    attempts: int = 4
    initial_s: float = 1.0
    factor: float = 2.0
    max_s: float = 8.0

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""
        out = []
        delay = self.initial_s
        for _ in range(max(0, self.attempts - 1)):
            out.append(delay)
            delay = min(delay * self.factor, self.max_s)
        return out


@dataclass(frozen=True)
class PipelineOptions:
    """Everything a job can tune, with the defaults of the social preset."""

    segment_preset: str = "social"
    segment_overrides: dict | None = None
    tokenizer_config: dict | None = None
    style_preset: str = "tiktok"
    animation: str | None = None
    position: str | None = None
    style_overrides: dict | None = None
    scorer: ScorerConfig = field(default_factory=ScorerConfig)
    windower: WindowerConfig = field(default_factory=WindowerConfig)
    optimal_windows: bool = False
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def resolve_style(self) -> StyleDescriptor:
        return resolve_style(
            self.style_preset, self.animation, self.position, self.style_overrides
        )


@dataclass(frozen=True)
class PipelineResult:
    """Output of one pipeline run. Consumed by formatters and the API."""

    transcript_text: str
    duration_sec: float
    timing_source: str
    words: tuple[Word, ...]
    captions: tuple[CaptionSegment, ...]
    spans: tuple[ScoredSpan, ...]
    clips: tuple[ClipWindow, ...]

    def to_dict(self) -> dict:
        return {
            "transcript": self.transcript_text,
            "durationSec": self.duration_sec,
            "timingSource": self.timing_source,
            "words": [w.to_dict() for w in self.words],
            "captions": [c.to_dict() for c in self.captions],
            "spans": [s.to_dict() for s in self.spans],
            "clips": [c.to_dict() for c in self.clips],
        }


# ---------------------------------------------------------------------------
# Synchronous stages
# ---------------------------------------------------------------------------


def _segment(
    words: Sequence[Word],
    options: PipelineOptions,
    style: StyleDescriptor | None = None,
) -> list[CaptionSegment]:
    cfg = segment_config(options.segment_preset, options.segment_overrides)
    return segment_words(words, cfg, style=style or options.resolve_style())


def build_captions(
    text: str,
    duration_sec: float,
    words: Sequence[Any] | None = None,
    options: PipelineOptions | None = None,
) -> list[CaptionSegment]:
    """Tokenize a transcript and group it into styled caption segments."""
    opts = options or PipelineOptions()
    style = opts.resolve_style()
    stream = tokenize(text, duration_sec, words=words, config=opts.tokenizer_config)
    return _segment(stream, opts, style)


def build_clips(
    spans: Sequence[ScoredSpan],
    segments: Sequence[CaptionSegment],
    duration_sec: float,
    options: PipelineOptions | None = None,
) -> list[ClipWindow]:
    """Select clip windows from spans and attach their captions."""
    opts = options or PipelineOptions()
    select = select_windows_optimal if opts.optimal_windows else select_windows
    windows = select(spans, duration_sec, opts.windower)
    return attach_captions(windows, segments)


# ---------------------------------------------------------------------------
# Async driver
# ---------------------------------------------------------------------------


async def call_with_retries(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "provider call",
) -> T:
    """Await call(), retrying ProviderUnavailableError per the policy.

    The last ProviderUnavailableError is re-raised once attempts run out.
    """
    delays = policy.delays()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await call()
        except ProviderUnavailableError as exc:
            if attempt > len(delays):
                logger.error("%s failed after %d attempts: %s", label, attempt, exc)
                raise
            delay = delays[attempt - 1]
            logger.warning(
                "%s unavailable (attempt %d/%d), retrying in %.1fs: %s",
                label, attempt, policy.attempts, delay, exc,
            )
            await sleep(delay)


async def run_pipeline(
    transcriber: Transcriber | None,
    analyzer: ContentAnalyzer | None,
    options: PipelineOptions | None = None,
    media_url: str | None = None,
    transcript: str | None = None,
    duration_sec: float | None = None,
    words: Sequence[Any] | None = None,
    is_cancelled: Callable[[], bool] | None = None,
    on_stage: Callable[[str], None] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> PipelineResult:
    """Run all stages for one job.

    Input is either media_url (transcribed by `transcriber`) or a ready
    transcript with duration_sec and optional provider words.

    Raises:
        JobCancelledError: is_cancelled() returned True before a stage.
        ValueError: Missing inputs, or any captionkit input error.
        NoHighlightsFoundError: Nothing to window and fallback disabled.
        ProviderError: Provider failure (after retries when retryable).
    """
    opts = options or PipelineOptions()
    style = opts.resolve_style()

    def checkpoint(stage: str) -> None:
        if is_cancelled is not None and is_cancelled():
            raise JobCancelledError(f"Job cancelled before {stage}")
        logger.debug("Pipeline stage: %s", stage)
        if on_stage is not None:
            on_stage(stage)

    # Stage 1: transcript + word stream
    checkpoint(STAGE_TRANSCRIBING)
    if media_url:
        if transcriber is None:
            raise ValueError("A transcriber is required for media_url input")
        result = await call_with_retries(
            lambda: transcriber.transcribe(media_url), opts.retry, sleep, "transcription"
        )
        text, duration, provider_words = result.text, result.duration_sec, result.words
    else:
        if transcript is None or duration_sec is None:
            raise ValueError("Either media_url or transcript + duration_sec is required")
        text, duration, provider_words = transcript, duration_sec, words

    stream = tokenize(text, duration, words=provider_words, config=opts.tokenizer_config)
    source = timing_source(provider_words)
    logger.info("Tokenized %d words (timing source: %s)", len(stream), source)

    # Stage 2: highlight spans
    checkpoint(STAGE_ANALYZING)
    raw_spans: list[dict] = []
    if analyzer is not None:
        raw_spans = await call_with_retries(
            lambda: analyzer.analyze(text, duration), opts.retry, sleep, "analysis"
        )
    spans = score_spans(raw_spans, duration, stream, opts.scorer)

    # Stage 3: captions
    checkpoint(STAGE_SEGMENTING)
    captions = _segment(stream, opts, style)

    # Stage 4: clip windows
    checkpoint(STAGE_WINDOWING)
    clips = build_clips(spans, captions, duration, opts)
    logger.info("Selected %d clips from %d spans", len(clips), len(spans))

    return PipelineResult(
        transcript_text=text,
        duration_sec=float(duration),
        timing_source=source,
        words=tuple(stream),
        captions=tuple(captions),
        spans=tuple(spans),
        clips=tuple(clips),
    )
