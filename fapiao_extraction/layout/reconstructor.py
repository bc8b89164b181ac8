"""
Page Reconstructor Module.

Groups the unordered positioned fragments of a page into lines and
orders them for reading: fragments left to right inside a line, lines
top to bottom.

Author: ML Engineering Team
"""

from typing import Iterable, List, Optional, Sequence

from config.parser_settings import ParserSettings
from fapiao_extraction.utils.logger import get_logger
from .models import Line, PageModel, RawPage, TextFragment

# Initialize module logger
logger = get_logger(__name__)


class PageReconstructor:
    """
    Rebuilds reading order from positioned fragments.

    Each fragment joins the first existing line whose representative y
    lies within the y-axis tolerance; otherwise it starts a new line.
    The representative y of a line is the y of the fragment that opened
    it.

    Attributes:
        y_tolerance: Max baseline difference within one line

    Example:
        >>> reconstructor = PageReconstructor(ParserSettings())
        >>> page = reconstructor.reconstruct(fragments, 0, 595.0, 842.0)
        >>> [line.text for line in page.lines]
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the reconstructor with parser settings."""
        settings = settings or ParserSettings()
        self.y_tolerance = settings.tolerances.y_axis

    def reconstruct(
        self,
        fragments: Iterable[TextFragment],
        page_index: int = 0,
        width: float = 0.0,
        height: float = 0.0
    ) -> PageModel:
        """
        Build a page model from unordered fragments.

        Args:
            fragments: Fragments of a single page, in any order.
            page_index: Zero-based page number.
            width: Viewport width.
            height: Viewport height.

        Returns:
            PageModel with x-ascending lines ordered by descending y.
            Empty input yields a page with no lines.
        """
        buckets: List[List[TextFragment]] = []
        keys: List[float] = []

        for fragment in fragments:
            for index, key in enumerate(keys):
                if abs(fragment.y - key) <= self.y_tolerance:
                    buckets[index].append(fragment)
                    break
            else:
                keys.append(fragment.y)
                buckets.append([fragment])

        lines = [
            Line(y=key, fragments=tuple(sorted(bucket, key=lambda f: f.x)))
            for key, bucket in zip(keys, buckets)
        ]
        lines.sort(key=lambda line: line.y, reverse=True)

        page = PageModel(
            page_index=page_index,
            lines=tuple(lines),
            width=width,
            height=height
        )
        logger.debug(f"Reconstructed {page}")
        return page

    def reconstruct_page(self, raw_page: RawPage) -> PageModel:
        """Build a page model from a decoded raw page."""
        return self.reconstruct(
            raw_page.fragments,
            page_index=raw_page.page_index,
            width=raw_page.width,
            height=raw_page.height
        )

    def reconstruct_document(self, raw_pages: Sequence[RawPage]) -> List[PageModel]:
        """Build page models for every decoded page, keeping page order."""
        return [self.reconstruct_page(raw_page) for raw_page in raw_pages]
