"""
Page Layout Data Classes.

This module defines data structures for positioned text, providing
a standardized format for fragments, lines and pages regardless of
which PDF backend produced them.

Coordinates use a bottom-left origin: a larger y is higher on the page,
so reading order is descending y.

Classes:
    TextFragment: One positioned run of text
    RawPage: Unordered fragments of one page plus its viewport
    Line: Fragments sharing a baseline, ordered left to right
    PageModel: Lines of one page, ordered top to bottom

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Tuple
import json


@dataclass(frozen=True)
class TextFragment:
    """
    One positioned run of text emitted by the document text layer.

    A fragment is not necessarily a whole word: a header label may be
    split into single glyphs, and several numeric fields may arrive glued
    into one fragment.

    Attributes:
        text: The text content
        x: Left edge of the run
        y: Baseline, measured from the bottom of the page
        width: Advance width of the run
        height: Font height of the run
        page_index: Zero-based page number

    Example:
        >>> fragment = TextFragment("数量", x=320.0, y=560.5, width=24.0)
        >>> fragment.center_x
        332.0
    """
    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    page_index: int = 0

    @property
    def center_x(self) -> float:
        """Horizontal center of the run."""
        return self.x + self.width / 2

    @property
    def right(self) -> float:
        """Right edge of the run."""
        return self.x + self.width

    @property
    def stripped(self) -> str:
        """Text without surrounding whitespace."""
        return self.text.strip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'text': self.text,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'page_index': self.page_index
        }

    def __repr__(self) -> str:
        return f"TextFragment('{self.text}', x={self.x:.1f}, y={self.y:.1f})"


@dataclass
class RawPage:
    """
    Unordered fragments of a single page, as produced by the decoder.

    Attributes:
        page_index: Zero-based page number
        width: Viewport width
        height: Viewport height
        fragments: Positioned fragments in emission order
    """
    page_index: int
    width: float
    height: float
    fragments: List[TextFragment] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"RawPage(index={self.page_index}, fragments={len(self.fragments)}, "
            f"size={self.width:.0f}x{self.height:.0f})"
        )


@dataclass(frozen=True)
class Line:
    """
    Fragments sharing (within tolerance) one baseline.

    Attributes:
        y: Representative baseline of the line
        fragments: Fragments ordered by ascending x
    """
    y: float
    fragments: Tuple[TextFragment, ...] = ()

    @property
    def text(self) -> str:
        """Fragment texts concatenated without separators."""
        return ''.join(f.text for f in self.fragments)

    @property
    def spaced_text(self) -> str:
        """Fragment texts joined with single spaces."""
        return ' '.join(f.text for f in self.fragments)

    def __len__(self) -> int:
        return len(self.fragments)

    def __iter__(self) -> Iterator[TextFragment]:
        return iter(self.fragments)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'y': self.y,
            'text': self.spaced_text,
            'fragments': [f.to_dict() for f in self.fragments]
        }


@dataclass(frozen=True)
class PageModel:
    """
    Reconstructed reading order of one page.

    Built once per page by the PageReconstructor and read-only
    afterwards.

    Attributes:
        page_index: Zero-based page number
        lines: Lines ordered by descending y (top to bottom)
        width: Viewport width
        height: Viewport height

    Example:
        >>> page = reconstructor.reconstruct(fragments, 0, 595.0, 842.0)
        >>> print(page.text)
    """
    page_index: int
    lines: Tuple[Line, ...] = ()
    width: float = 0.0
    height: float = 0.0

    @property
    def text(self) -> str:
        """Full page text, one line per row of fragments."""
        return '\n'.join(line.spaced_text for line in self.lines)

    @property
    def fragments(self) -> Iterator[TextFragment]:
        """Iterate every fragment in reading order."""
        for line in self.lines:
            yield from line.fragments

    @property
    def fragment_count(self) -> int:
        """Total number of fragments on the page."""
        return sum(len(line) for line in self.lines)

    def is_empty(self) -> bool:
        """Check if the page carries no positioned text."""
        return not self.lines

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for serialization."""
        return {
            'page_index': self.page_index,
            'width': self.width,
            'height': self.height,
            'lines': [line.to_dict() for line in self.lines]
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __repr__(self) -> str:
        return (
            f"PageModel(index={self.page_index}, lines={len(self.lines)}, "
            f"fragments={self.fragment_count})"
        )
