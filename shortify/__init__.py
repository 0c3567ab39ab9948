"""Shortify: turn long-form video transcripts into captioned short clips.

WHY: A long video contains a few moments worth cutting into vertical
shorts. Finding them, choosing non-overlapping clip windows and attaching
readable captions is the algorithmic core the rendering backend depends on.

HOW: Four-stage pipeline: transcribe (provider client), analyze (highlight
scorer), segment (captionkit), window (clip windower). Each stage is a plain
function over immutable values, so it is independently testable; only the
provider calls are async.

RULES:
- All exports consume the same PipelineResult
- Providers and the job store are constructed and injected, never global
- Bad input fails the job immediately; only provider outages are retried
"""

__version__ = "0.1.0"
