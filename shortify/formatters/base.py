"""Abstract base formatter and output container.

WHY: Every export consumes the same PipelineResult but produces different
file content. A common base class lets the CLI and the job runner work with
any formatter generically.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles a file suffix with its content and MIME
type.

RULES:
- ``format()`` returns a list; multi-file formatters return several items
- ``suffix`` starts with a hyphen, e.g. ``"-clips.json"``
- The caller prepends the output stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from shortify.core.pipeline import PipelineResult


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: Appended to the output stem, e.g. ``"-clips.json"`` →
                ``"interview-clips.json"``.
        content: File content.
        media_type: MIME type, e.g. ``"application/json"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all export formatters.

    `suffix` describes the file suffix(es) produced, for listings.

    To add a new export format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS in formatters/__init__.py
    """

    suffix: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Clip descriptors (JSON)'."""

    @abstractmethod
    def format(self, result: PipelineResult) -> list[FormatterOutput]:
        """Convert a pipeline result into one or more output files."""
