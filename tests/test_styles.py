"""Tests for caption style resolution and the caption_transcript facade.

WHY: The rendering backend trusts the resolved style blindly. A typo in a
preset or animation name must be rejected up front rather than silently
rendered with a default look.

HOW: Each preset is resolved; animation, position and raw overrides are
layered on top; unknown tokens assert UnknownStyleTokenError with its kind.

RULES:
- Preset constants must be unchanged after any resolution
"""

from __future__ import annotations

import copy

import pytest

from captionkit import (
    ANIMATIONS,
    POSITIONS,
    STYLE_PRESETS,
    UnknownStyleTokenError,
    caption_transcript,
    list_style_tokens,
    resolve_style,
)


class TestResolvePresets:

    def test_tiktok_defaults(self):
        style = resolve_style("tiktok")
        assert style.font_size_px == 48
        assert style.font_weight == 800
        assert style.animation == "bounce"
        assert style.position == "center"
        assert style.background_color == "rgba(0, 0, 0, 0.8)"

    @pytest.mark.parametrize("preset", sorted(STYLE_PRESETS))
    def test_every_preset_resolves(self, preset):
        style = resolve_style(preset)
        assert style.animation in ANIMATIONS
        assert style.position in POSITIONS
        assert style.to_dict() == STYLE_PRESETS[preset]

    def test_default_preset_is_tiktok(self):
        assert resolve_style() == resolve_style("tiktok")


class TestStyleOverrides:

    def test_animation_override(self):
        assert resolve_style("tiktok", animation="karaoke").animation == "karaoke"

    def test_position_override(self):
        assert resolve_style("tiktok", position="top").position == "top"

    def test_raw_overrides_win(self):
        style = resolve_style("tiktok", animation="fade", overrides={"animation": "scale"})
        assert style.animation == "scale"

    def test_field_override_keeps_other_fields(self):
        style = resolve_style("youtube", overrides={"fontSizePx": 60, "color": "#FF0000"})
        assert style.font_size_px == 60
        assert style.color == "#FF0000"
        assert style.font_weight == 500
        assert style.position == "bottom"

    def test_presets_not_mutated(self):
        before = copy.deepcopy(STYLE_PRESETS)
        resolve_style("tiktok", animation="none", overrides={"fontSizePx": 10})
        assert STYLE_PRESETS == before

    @pytest.mark.parametrize("value", [0, -4, "big"])
    def test_bad_font_size(self, value):
        with pytest.raises(ValueError):
            resolve_style("tiktok", overrides={"fontSizePx": value})


class TestUnknownTokens:
    """Unknown tokens raise with the failing token family."""

    def test_unknown_preset(self):
        with pytest.raises(UnknownStyleTokenError) as exc_info:
            resolve_style("comic-sans")
        assert exc_info.value.kind == "preset"
        assert exc_info.value.token == "comic-sans"

    def test_unknown_animation(self):
        with pytest.raises(UnknownStyleTokenError) as exc_info:
            resolve_style("tiktok", animation="spin")
        assert exc_info.value.kind == "animation"

    def test_unknown_position(self):
        with pytest.raises(UnknownStyleTokenError) as exc_info:
            resolve_style("tiktok", position="middle")
        assert exc_info.value.kind == "position"

    def test_unknown_override_key(self):
        with pytest.raises(UnknownStyleTokenError) as exc_info:
            resolve_style("tiktok", overrides={"fontFamily": "Inter"})
        assert exc_info.value.kind == "override"

    def test_override_value_checked(self):
        with pytest.raises(UnknownStyleTokenError) as exc_info:
            resolve_style("tiktok", overrides={"position": "middle"})
        assert exc_info.value.kind == "position"

    def test_message_lists_alternatives(self):
        with pytest.raises(UnknownStyleTokenError, match="Available: .*tiktok"):
            resolve_style("tiktokk")


class TestListStyleTokens:

    def test_token_sets(self):
        tokens = list_style_tokens()
        assert len(tokens["presets"]) == 11
        assert len(tokens["animations"]) == 10
        assert len(tokens["positions"]) == 6

    def test_sorted(self):
        tokens = list_style_tokens()
        for values in tokens.values():
            assert values == sorted(values)


class TestCaptionTranscript:
    """The facade chains tokenize, resolve_style and segment_words."""

    def test_styled_segments(self):
        segments = caption_transcript(
            "Welcome to today's discussion about AI and the future of work.",
            10.0,
            style_preset="neon",
            segment_overrides={"max_segment_words": 3},
        )
        assert len(segments) == 4
        assert all(s.style.animation == "glow-pulse" for s in segments)

    def test_uses_provider_words(self, asr_words):
        segments = caption_transcript("", 3.0, words=asr_words)
        assert segments[0].words[0] == asr_words[0]

    def test_bad_style_fails_before_tokenizing(self):
        # an empty transcript would raise EmptyTranscriptError if tokenized first
        with pytest.raises(UnknownStyleTokenError):
            caption_transcript("", 10.0, style_preset="nope")
