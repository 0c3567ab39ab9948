"""SRT caption formatter: one file per clip plus the full timeline.

WHY: Editors who cut clips by hand still want the captions. Each clip gets
an SRT whose times start at 00:00:00,000 at the clip start, so it lines up
with the cut file; a full-timeline SRT covers the source video.

HOW: generate_srt() renders a list of caption segments with an optional
time offset. The formatter calls it once per clip (offset = clip start) and
once for all captions.

RULES:
- Suffixes: "-clip-N.srt" (N as in clip_N) and "-captions.srt"
- Media type: "application/x-subrip"
- SRT indices are 1-based; timestamps HH:MM:SS,mmm rounded to milliseconds
- Segments are never overlapping already; no timing is adjusted here
"""

from __future__ import annotations

from collections.abc import Sequence

from captionkit.models import CaptionSegment

from shortify.core.pipeline import PipelineResult
from shortify.formatters.base import BaseFormatter, FormatterOutput

_SRT_MEDIA_TYPE = "application/x-subrip"


def seconds_to_srt_time(seconds: float) -> str:
    """Convert seconds to SRT timestamp format: HH:MM:SS,mmm"""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def generate_srt(segments: Sequence[CaptionSegment], offset_sec: float = 0.0) -> str:
    """Render caption segments as SRT, shifting times by -offset_sec."""
    lines = []
    for i, seg in enumerate(segments, 1):
        lines.append(str(i))
        lines.append("{} --> {}".format(
            seconds_to_srt_time(seg.start_sec - offset_sec),
            seconds_to_srt_time(seg.end_sec - offset_sec),
        ))
        lines.append(seg.text)
        lines.append("")
    return "\n".join(lines)


class SRTCaptionFormatter(BaseFormatter):
    """Per-clip SRT files with clip-relative times, plus a full-timeline SRT."""

    suffix = "-clip-N.srt, -captions.srt"

    @property
    def name(self) -> str:
        return "SRT Captions"

    def format(self, result: PipelineResult) -> list[FormatterOutput]:
        outputs = []
        for clip in result.clips:
            number = clip.id.rsplit("_", 1)[-1]
            outputs.append(
                FormatterOutput(
                    suffix=f"-clip-{number}.srt",
                    content=generate_srt(clip.captions, offset_sec=clip.start_sec),
                    media_type=_SRT_MEDIA_TYPE,
                )
            )
        outputs.append(
            FormatterOutput(
                suffix="-captions.srt",
                content=generate_srt(result.captions),
                media_type=_SRT_MEDIA_TYPE,
            )
        )
        return outputs
