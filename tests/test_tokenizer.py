"""Tests for captionkit.tokenize and word timing validation.

WHY: Every caption and clip is built on the word stream. If heuristic
timings drift past the media end, or bad provider timings slip through,
captions flash at the wrong moment in every clip of the job.

HOW: Heuristic mode is checked for tiling and weighting; provider mode for
pass-through and validation. Error cases assert the specific exception.

RULES:
- Provider timings are never altered
- Heuristic words tile [0, duration] exactly
"""

from __future__ import annotations

import pytest

from captionkit import (
    EmptyTranscriptError,
    InvalidDurationError,
    InvalidTimingError,
    timing_source,
    tokenize,
)
from captionkit.core import validate_word_timings
from captionkit.models import Word


class TestHeuristicTiming:
    """Without provider words the duration is spread over the text."""

    def test_word_count_matches_text(self):
        words = tokenize("one two three four", 4.0)
        assert [w.text for w in words] == ["one", "two", "three", "four"]

    def test_words_tile_the_duration(self):
        words = tokenize("the quick brown fox jumps", 7.5)
        assert words[0].start_sec == 0.0
        assert words[-1].end_sec == 7.5
        for prev, cur in zip(words, words[1:]):
            assert cur.start_sec == prev.end_sec

    def test_equal_length_words_get_equal_time(self):
        words = tokenize("hello world", 2.0)
        assert words[0].end_sec == pytest.approx(1.0)
        assert words[1].duration_sec == pytest.approx(1.0)

    def test_longer_words_get_more_time(self):
        words = tokenize("a extraordinary", 3.0)
        assert words[1].duration_sec > words[0].duration_sec

    def test_uniform_weights_with_zero_per_char(self, welcome_words):
        assert len(welcome_words) == 11
        for w in welcome_words:
            assert w.duration_sec == pytest.approx(10.0 / 11)

    def test_whitespace_is_collapsed(self):
        words = tokenize("  spaced\n\nout\ttext  ", 3.0)
        assert [w.text for w in words] == ["spaced", "out", "text"]

    def test_is_deterministic(self):
        assert tokenize("same input text", 5.0) == tokenize("same input text", 5.0)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            tokenize("hello", 1.0, config={"base_ms": -1})

    def test_zero_weights_rejected(self):
        with pytest.raises(ValueError):
            tokenize("hello", 1.0, config={"base_ms": 0, "per_char_ms": 0})


class TestProviderTiming:
    """Provider words are the primary source and pass through unchanged."""

    def test_words_returned_unchanged(self, asr_words):
        words = tokenize("ignored text", 3.0, words=asr_words)
        assert words == asr_words

    def test_dict_words_are_parsed(self):
        words = tokenize("", 2.0, words=[
            {"text": "hi", "start": 0.0, "end": 0.5},
            {"word": "there", "startSec": 0.6, "endSec": 1.0},
        ])
        assert words == [Word("hi", 0.0, 0.5), Word("there", 0.6, 1.0)]

    def test_blank_words_are_dropped(self):
        words = tokenize("", 2.0, words=[
            {"text": "hi", "start": 0.0, "end": 0.5},
            {"text": "  ", "start": 0.5, "end": 0.6},
        ])
        assert [w.text for w in words] == ["hi"]

    def test_only_blank_words_falls_back_to_heuristic(self):
        words = tokenize("hi there", 2.0, words=[{"text": " ", "start": 0, "end": 1}])
        assert [w.text for w in words] == ["hi", "there"]
        assert words[-1].end_sec == 2.0

    def test_timing_source(self, asr_words):
        assert timing_source(asr_words) == "asr"
        assert timing_source(None) == "heuristic"
        assert timing_source([]) == "heuristic"

    def test_missing_timing_raises(self):
        with pytest.raises(InvalidTimingError):
            tokenize("", 1.0, words=[{"text": "hi", "start": 0.0}])

    @pytest.mark.parametrize("start", [[0], {"t": 0}, "soon"])
    def test_non_numeric_timing_raises(self, start):
        with pytest.raises(InvalidTimingError, match="not a number"):
            tokenize("", 1.0, words=[{"text": "hi", "start": start, "end": 1.0}])


class TestTimingValidation:
    """validate_word_timings() enforces ordering and positive durations."""

    def test_end_before_start(self):
        with pytest.raises(InvalidTimingError):
            tokenize("", 5.0, words=[Word("a", 1.0, 0.5)])

    def test_zero_duration_word(self):
        with pytest.raises(InvalidTimingError):
            validate_word_timings([Word("a", 1.0, 1.0)])

    def test_start_goes_backwards(self):
        with pytest.raises(InvalidTimingError):
            validate_word_timings([Word("a", 2.0, 2.5), Word("b", 1.0, 1.5)])

    def test_overlapping_words(self):
        with pytest.raises(InvalidTimingError, match="overlaps"):
            validate_word_timings([Word("a", 0.0, 1.0), Word("b", 0.8, 1.5)])

    def test_touching_words_are_valid(self):
        validate_word_timings([Word("a", 0.0, 1.0), Word("b", 1.0, 1.5)])

    def test_non_finite_timestamp(self):
        with pytest.raises(InvalidTimingError, match="non-finite"):
            validate_word_timings([Word("a", 0.0, float("nan"))])


class TestTokenizerErrors:

    def test_empty_transcript(self):
        with pytest.raises(EmptyTranscriptError):
            tokenize("   ", 10.0)

    @pytest.mark.parametrize("duration", [0, -1.0, float("nan"), float("inf")])
    def test_invalid_duration(self, duration):
        with pytest.raises(InvalidDurationError):
            tokenize("hello", duration)

    def test_duration_checked_even_with_provider_words(self, asr_words):
        with pytest.raises(InvalidDurationError):
            tokenize("", 0, words=asr_words)

    def test_errors_are_value_errors(self):
        assert issubclass(EmptyTranscriptError, ValueError)
        assert issubclass(InvalidTimingError, ValueError)
