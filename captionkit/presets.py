"""Caption presets: segmentation budgets and visual style tokens.

WHY: Captions for a vertical 9:16 short and for a 16:9 landscape clip need
different budgets (characters, words, seconds per caption), and the product
offers a fixed catalogue of visual styles. Centralizing both as importable
constants lets callers select by name and lets tests assert exhaustiveness
against the enumerated token sets.

HOW: SEGMENT_PRESETS maps a delivery target to a segmentation config dict
(max_segment_chars, max_segment_words, max_segment_duration_sec,
min_gap_sec). STYLE_PRESETS maps a preset name to the six style fields of a
StyleDescriptor, using the camelCase keys of the JSON contract.
ANIMATIONS and POSITIONS are the closed token sets. TOKENIZER_DEFAULTS
holds the duration-distribution heuristic weights.

RULES:
- Presets are frozen constants, never mutate them at runtime.
- Callers copy a preset before modifying it (the library does this
  internally).
- backgroundColor values already fold in the preset's opacity (rgba).
- "custom" is a real preset (neutral base meant to be overridden).
"""

from typing import Dict, FrozenSet

# Vertical 9:16 shorts: few words, big type, fast turnover
SEGMENT_SOCIAL: Dict = {
    "max_segment_chars": 32,
    "max_segment_words": 4,
    "max_segment_duration_sec": 4.0,
    "min_gap_sec": 0.1,
    "split_on_sentence_end": False,
}

# 16:9 landscape clips: one readable line
SEGMENT_LANDSCAPE: Dict = {
    "max_segment_chars": 42,
    "max_segment_words": 8,
    "max_segment_duration_sec": 5.0,
    "min_gap_sec": 0.1,
    "split_on_sentence_end": False,
}

SEGMENT_PRESETS: Dict[str, Dict] = {
    "social": SEGMENT_SOCIAL,
    "landscape": SEGMENT_LANDSCAPE,
}

DEFAULT_SEGMENT_PRESET = "social"

# Heuristic word timing: base + per-character milliseconds, normalised to
# the real media duration afterwards.
TOKENIZER_DEFAULTS: Dict = {
    "base_ms": 150.0,
    "per_char_ms": 60.0,
}

ANIMATIONS: FrozenSet[str] = frozenset({
    "none",
    "fade",
    "bounce",
    "scale",
    "slide-up",
    "slide-down",
    "typewriter",
    "karaoke",
    "word-by-word",
    "glow-pulse",
})

POSITIONS: FrozenSet[str] = frozenset({
    "bottom",
    "center",
    "top",
    "bottom-left",
    "bottom-right",
    "custom",
})

STYLE_PRESETS: Dict[str, Dict] = {
    "tiktok": {
        "fontSizePx": 48,
        "color": "#FFFFFF",
        "backgroundColor": "rgba(0, 0, 0, 0.8)",
        "fontWeight": 800,
        "animation": "bounce",
        "position": "center",
    },
    "youtube": {
        "fontSizePx": 32,
        "color": "#FFFFFF",
        "backgroundColor": "rgba(0, 0, 0, 0.7)",
        "fontWeight": 500,
        "animation": "fade",
        "position": "bottom",
    },
    "minimal": {
        "fontSizePx": 28,
        "color": "#FFFFFF",
        "backgroundColor": "transparent",
        "fontWeight": 400,
        "animation": "fade",
        "position": "bottom",
    },
    "bold": {
        "fontSizePx": 56,
        "color": "#FFFFFF",
        "backgroundColor": "rgba(0, 0, 0, 0.9)",
        "fontWeight": 900,
        "animation": "scale",
        "position": "center",
    },
    "neon": {
        "fontSizePx": 44,
        "color": "#00D4FF",
        "backgroundColor": "rgba(0, 0, 0, 0.5)",
        "fontWeight": 700,
        "animation": "glow-pulse",
        "position": "center",
    },
    "karaoke": {
        "fontSizePx": 40,
        "color": "#FFFFFF",
        "backgroundColor": "rgba(0, 0, 0, 0.6)",
        "fontWeight": 700,
        "animation": "karaoke",
        "position": "bottom",
    },
    "typewriter": {
        "fontSizePx": 36,
        "color": "#00FF88",
        "backgroundColor": "rgba(0, 10, 20, 0.8)",
        "fontWeight": 500,
        "animation": "typewriter",
        "position": "center",
    },
    "gradient": {
        "fontSizePx": 48,
        "color": "linear-gradient(90deg, #00D4FF, #9D4EFF, #FF006E)",
        "backgroundColor": "rgba(0, 0, 0, 0.7)",
        "fontWeight": 800,
        "animation": "scale",
        "position": "center",
    },
    "shadow": {
        "fontSizePx": 44,
        "color": "#FFFFFF",
        "backgroundColor": "transparent",
        "fontWeight": 700,
        "animation": "bounce",
        "position": "center",
    },
    "outline": {
        "fontSizePx": 52,
        "color": "transparent",
        "backgroundColor": "transparent",
        "fontWeight": 900,
        "animation": "scale",
        "position": "center",
    },
    "custom": {
        "fontSizePx": 36,
        "color": "#FFFFFF",
        "backgroundColor": "rgba(0, 0, 0, 0.6)",
        "fontWeight": 600,
        "animation": "fade",
        "position": "bottom",
    },
}

DEFAULT_STYLE_PRESET = "tiktok"

STYLE_FIELDS: FrozenSet[str] = frozenset({
    "fontSizePx",
    "color",
    "backgroundColor",
    "fontWeight",
    "animation",
    "position",
})
