"""Core clip selection modules.

WHY: The core package holds the stable heart of shortify: the span and
clip IR, the highlight scorer, the clip windower and the pipeline that
chains them with captionkit.

HOW: ir.py defines the data structures, scorer.py normalises analyser
output into scored spans, windower.py picks non-overlapping clip windows
and attaches captions, pipeline.py runs the stages for one job.

RULES:
- IR dataclasses are the contract, change with care
- Scorer and windower are synchronous and deterministic
- Only pipeline.py talks to providers
"""
