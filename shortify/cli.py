"""Command-line interface for shortify.

WHY: Editors want clip suggestions and caption files for a transcript or a
video without running the API server. The CLI wires the whole pipeline
(transcript loading or Gemini transcription, highlight scoring, caption
segmentation, clip windowing and export) behind a single command.

HOW: argparse accepts the input (a transcript file, or a media URL with
--media-url), caption and clip options, and export selection. The async
pipeline runs via asyncio.run(). Status messages go to stderr; export files
are saved next to the input (or to --output-dir).

RULES:
- Positional argument: transcript .txt / .json path, or a URL with --media-url
- .txt input requires --duration; .json input is {text, durationSec, words?}
  or a bare list of word timings
- Highlights come from Gemini when GEMINI_API_KEY is set (unless --no-ai),
  otherwise from the heuristic fallback
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-clips-2.json)
- Status output goes to stderr; exit code 1 on any error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, List, Optional, Tuple

from captionkit import list_style_tokens
from captionkit.models import Word
from shortify.api.client import GeminiClient
from shortify.config import (
    DEFAULT_CLIP_COUNT,
    DEFAULT_MAX_CLIP_SEC,
    DEFAULT_MIN_CLIP_SEC,
    has_api_key,
)
from shortify.core.pipeline import PipelineOptions, PipelineResult, run_pipeline
from shortify.core.scorer import ScorerConfig
from shortify.core.windower import WindowerConfig
from shortify.errors import NoHighlightsFoundError, ProviderError
from shortify.formatters import DEFAULT_FORMATS, FORMATTERS
from shortify.formatters.base import FormatterOutput

_TRANSCRIPT_SUFFIXES = (".txt", ".json")


class InputError(ValueError):
    """The CLI input file or arguments are unusable."""


def _status(msg: str) -> None:
    """Print a status message to stderr (stdout stays pipeable)."""
    print(msg, file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Input loading
# ---------------------------------------------------------------------------


def load_transcript(
    path: Path,
    duration: Optional[float] = None,
) -> Tuple[str, float, Optional[List[Word]]]:
    """Load transcript text, duration and optional word timings from a file.

    RULES:
    - .txt: whole file is the transcript; duration must be given
    - .json object: text/transcript/fullText, durationSec/duration, words
    - .json list: word timings; text is their join, duration defaults to
      the last word's end
    - An explicit duration argument always wins

    Raises:
        InputError: Unsupported suffix, unreadable JSON or missing duration.
    """
    suffix = path.suffix.lower()
    if suffix not in _TRANSCRIPT_SUFFIXES:
        raise InputError(
            "Unsupported input type '{}'. Use a .txt or .json transcript, "
            "or --media-url.".format(suffix)
        )

    raw = path.read_text(encoding="utf-8")
    if suffix == ".txt":
        if duration is None:
            raise InputError("--duration is required for .txt transcripts")
        return raw, duration, None

    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InputError("Invalid JSON in {}: {}".format(path.name, exc))

    if isinstance(data, list):
        words = [Word.from_dict(w) for w in data]
        text = " ".join(w.text for w in words)
        file_duration = words[-1].end_sec if words else None
    elif isinstance(data, dict):
        text = data.get("text", data.get("transcript", data.get("fullText", "")))
        raw_words = data.get("words") or None
        words = [Word.from_dict(w) for w in raw_words] if raw_words else None
        file_duration = data.get("durationSec", data.get("duration"))
    else:
        raise InputError("JSON transcript must be an object or a list of words")

    final_duration = duration if duration is not None else file_duration
    if final_duration is None:
        raise InputError("No duration in {}; pass --duration".format(path.name))
    return text, float(final_duration), words


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Return {stem}{suffix}, or {stem}{name}-N{ext} if that already exists."""
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name, suffix_ext = suffix[:dot_idx], suffix[dot_idx:]
    else:
        suffix_name, suffix_ext = suffix, ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _print_summary(result: PipelineResult) -> None:
    _status("")
    _status("Timing source: {}".format(result.timing_source))
    _status("{} captions, {} spans, {} clips".format(
        len(result.captions), len(result.spans), len(result.clips)
    ))
    for clip in result.clips:
        _status("  {}  {:7.1f}s - {:7.1f}s  {:<10} {:.2f}  ({} captions)".format(
            clip.id, clip.start_sec, clip.end_sec, clip.type,
            clip.confidence, len(clip.captions),
        ))


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def build_options(args: argparse.Namespace) -> PipelineOptions:
    """Translate parsed CLI arguments into PipelineOptions."""
    overrides = {}
    if args.max_words is not None:
        overrides["max_segment_words"] = args.max_words
    if args.max_chars is not None:
        overrides["max_segment_chars"] = args.max_chars
    if args.sentence_breaks:
        overrides["split_on_sentence_end"] = True

    return PipelineOptions(
        segment_preset=args.segment_preset,
        segment_overrides=overrides or None,
        style_preset=args.preset,
        animation=args.animation,
        position=args.position,
        scorer=ScorerConfig(fallback=not args.no_fallback),
        windower=WindowerConfig(
            min_clip_sec=args.min_clip,
            max_clip_sec=args.max_clip,
            max_clip_count=args.max_clips,
        ),
        optimal_windows=args.optimal,
    )


async def _run_pipeline(args: argparse.Namespace) -> None:
    """Load input, run the pipeline, save exports. Exits 1 on any error."""
    try:
        if args.formats:
            format_keys = [f.strip() for f in args.formats.split(",")]
            for key in format_keys:
                if key not in FORMATTERS:
                    raise InputError(
                        "Unknown format '{}'. Available formats: {}".format(
                            key, ", ".join(sorted(FORMATTERS.keys()))
                        )
                    )
        else:
            format_keys = list(DEFAULT_FORMATS)

        options = build_options(args)
        options.resolve_style()
        options.windower.validate()

        transcript = duration = words = None
        if args.media_url:
            stem = "shortify"
            default_dir = Path.cwd()
        else:
            input_path = Path(args.input).resolve()
            if not input_path.is_file():
                raise InputError("File not found: {}".format(input_path))
            transcript, duration, words = load_transcript(input_path, args.duration)
            stem = input_path.stem
            default_dir = input_path.parent

        output_dir = Path(args.output_dir).resolve() if args.output_dir else default_dir
        if not output_dir.is_dir():
            raise InputError("Output directory does not exist: {}".format(output_dir))

        use_ai = has_api_key() and not args.no_ai
        if not use_ai:
            _status("No Gemini analysis; using heuristic highlight spans.")

        transcriber = GeminiClient() if args.media_url else None
        analyzer = (
            GeminiClient(
                clip_count=args.max_clips,
                min_clip_sec=args.min_clip,
                max_clip_sec=args.max_clip,
            )
            if use_ai else None
        )

        async with AsyncExitStack() as stack:
            if transcriber is not None:
                await stack.enter_async_context(transcriber)
            if analyzer is not None:
                await stack.enter_async_context(analyzer)
            result = await run_pipeline(
                transcriber,
                analyzer,
                options,
                media_url=args.input if args.media_url else None,
                transcript=transcript,
                duration_sec=duration,
                words=words,
                on_stage=lambda stage: _status("{}...".format(stage.capitalize())),
            )

        _print_summary(result)

        _status("")
        _status("Exporting...")
        saved: List[Path] = []
        for key in format_keys:
            formatter = FORMATTERS[key]()
            for output in formatter.format(result):
                path = _save_output(output, stem, output_dir)
                saved.append(path)
                _status("  Saved: {}".format(path.name))

        _status("Done! Saved {} file(s) to {}".format(len(saved), output_dir))

    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except (ValueError, ProviderError, NoHighlightsFoundError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser (separate from main() so tests can inspect it)."""
    tokens = list_style_tokens()
    parser = argparse.ArgumentParser(
        prog="shortify",
        description="Find the best short clips in a transcript or video and "
                    "produce captioned clip descriptors and SRT files.",
    )

    parser.add_argument(
        "input",
        help="Transcript file (.txt or .json), or a media URL with --media-url.",
    )
    parser.add_argument(
        "--media-url",
        action="store_true",
        help="Treat INPUT as a media URL and transcribe it with Gemini.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Media duration in seconds (required for .txt transcripts).",
    )

    captions = parser.add_argument_group("captions")
    captions.add_argument(
        "--segment-preset",
        default="social",
        choices=["social", "landscape"],
        help="Caption segmentation preset (default: %(default)s).",
    )
    captions.add_argument(
        "--preset",
        default="tiktok",
        choices=tokens["presets"],
        help="Caption style preset (default: %(default)s).",
    )
    captions.add_argument(
        "--animation",
        default=None,
        choices=tokens["animations"],
        help="Caption animation (default: the preset's).",
    )
    captions.add_argument(
        "--position",
        default=None,
        choices=tokens["positions"],
        help="Caption position (default: the preset's).",
    )
    captions.add_argument("--max-words", type=int, default=None, help="Max words per caption.")
    captions.add_argument("--max-chars", type=int, default=None, help="Max characters per caption.")
    captions.add_argument(
        "--sentence-breaks", action="store_true",
        help="Also end a caption after sentence punctuation.",
    )

    clips = parser.add_argument_group("clips")
    clips.add_argument(
        "--max-clips", type=int, default=DEFAULT_CLIP_COUNT,
        help="Maximum number of clips (default: %(default)s).",
    )
    clips.add_argument(
        "--min-clip", type=float, default=DEFAULT_MIN_CLIP_SEC,
        help="Shortest clip in seconds (default: %(default)s).",
    )
    clips.add_argument(
        "--max-clip", type=float, default=DEFAULT_MAX_CLIP_SEC,
        help="Longest clip in seconds (default: %(default)s).",
    )
    clips.add_argument(
        "--optimal", action="store_true",
        help="Maximise total confidence exactly instead of greedy selection.",
    )
    clips.add_argument(
        "--no-fallback", action="store_true",
        help="Fail instead of using heuristic spans when no highlights are found.",
    )
    clips.add_argument(
        "--no-ai", action="store_true",
        help="Skip Gemini analysis even if an API key is configured.",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of export formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save export files (default: next to the input).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI (``shortify`` / ``python -m shortify``).

    argv=None means use sys.argv; explicit argv is for testing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    asyncio.run(_run_pipeline(args))


if __name__ == "__main__":
    main()
