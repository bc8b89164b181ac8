"""
Column Mapper Module.

Derives the x-coordinate of every line-item column from the table header
line. Labels are matched by keyword, split two-glyph labels are paired,
and columns that are still missing are placed from the spacing of the
columns that were found.

Author: ML Engineering Team
"""

import re
from typing import Dict, List, Optional

from config.parser_settings import FIELD_ORDER, ParserSettings
from fapiao_extraction.layout.models import Line, TextFragment
from fapiao_extraction.utils.logger import get_logger
from .models import ColumnMapping, ColumnSpan

# Initialize module logger
logger = get_logger(__name__)


def _normalize(text: str) -> str:
    return re.sub(r'\s+', '', text)


class ColumnMapper:
    """
    Builds a ColumnMapping from a header line.

    Example:
        >>> mapper = ColumnMapper(ParserSettings())
        >>> mapping = mapper.detect(header_line)
        >>> mapping.amount.center_x
        412.5
    """

    # Fallback widths of inferred columns
    INFERRED_WIDTHS = {
        'unit': 30.0,
        'quantity': 40.0,
    }

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the mapper with parser settings."""
        self.settings = settings or ParserSettings()
        self.keywords = self.settings.keywords
        self.tolerances = self.settings.tolerances

    def detect(self, header_line: Line) -> ColumnMapping:
        """
        Detect column positions from a header line.

        Args:
            header_line: The line carrying the table header labels.

        Returns:
            ColumnMapping. Partial when fewer than two labels were found,
            since inference needs at least two known columns.
        """
        fragments = [f for f in header_line.fragments if f.text.strip()]

        spans: Dict[str, ColumnSpan] = {}

        # Rate label first, so a trailing suffix fragment widens the span
        span = self._match_tax_rate_label(fragments)
        if span:
            spans['tax_rate'] = span

        self._match_keywords(fragments, spans)

        for name, glyphs in self.keywords.split_labels.items():
            if name in spans:
                continue
            span = self._pair_split_label(fragments, glyphs)
            if span:
                spans[name] = span
                logger.debug(f"Paired split label {name}: x={span.center_x:.0f}")

        mapping = ColumnMapping(**spans)
        mapping = self.infer_missing(mapping)

        positions = {name: round(span.center_x) for name, span in mapping.detected()}
        logger.debug(f"Column mapping: {positions}")
        return mapping

    def _match_keywords(
        self,
        fragments: List[TextFragment],
        spans: Dict[str, ColumnSpan]
    ) -> Dict[str, ColumnSpan]:
        """Match each fragment against the keyword lists of the unmapped fields."""
        for fragment in fragments:
            text = _normalize(fragment.text)
            for name in FIELD_ORDER:
                if name in spans:
                    continue
                keywords = self.keywords.columns.get(name, ())
                if any(_normalize(keyword) in text for keyword in keywords):
                    spans[name] = ColumnSpan(fragment.center_x, fragment.width)
                    logger.debug(f"Matched column {name}: '{text}' -> x={fragment.center_x:.0f}")

        return spans

    def _match_tax_rate_label(self, fragments: List[TextFragment]) -> Optional[ColumnSpan]:
        """Find a tax-rate label, joining it with a following suffix fragment."""
        for index, fragment in enumerate(fragments):
            if not any(label in fragment.text for label in self.keywords.tax_rate_labels):
                continue

            width = fragment.width
            if index + 1 < len(fragments) and self.keywords.tax_rate_suffix in fragments[index + 1].text:
                following = fragments[index + 1]
                width = following.right - fragment.x
            return ColumnSpan(fragment.x + width / 2, width)

        return None

    def _pair_split_label(
        self,
        fragments: List[TextFragment],
        glyphs: tuple
    ) -> Optional[ColumnSpan]:
        """Pair the two glyphs of a label emitted as separate fragments."""
        first, second = glyphs
        lookahead = self.tolerances.pair_lookahead

        for i, fragment in enumerate(fragments):
            if fragment.text.strip() != first:
                continue
            for j in range(i + 1, min(i + lookahead, len(fragments))):
                if fragments[j].text.strip() == second:
                    width = fragments[j].right - fragment.x
                    return ColumnSpan(fragment.x + width / 2, width)

        return None

    def infer_missing(self, mapping: ColumnMapping) -> ColumnMapping:
        """
        Place unmapped columns from the spacing of the mapped ones.

        The gap between neighbouring columns is the median of all gaps
        between mapped columns. Walking the canonical field order, each
        missing column is put at the midpoint of its nearest mapped
        neighbours, or one gap per step away from a single neighbour.

        Args:
            mapping: Mapping built from header labels.

        Returns:
            Mapping with inferred columns flagged ``inferred=True``.
        """
        detected = mapping.detected()
        if len(detected) < 2:
            return mapping

        gaps = sorted(
            right.center_x - left.center_x
            for (_, left), (_, right) in zip(detected, detected[1:])
        )
        gap = gaps[len(gaps) // 2] or self.tolerances.default_column_gap

        known = {name: span for name, span in detected}
        inferred = mapping

        for index, name in enumerate(FIELD_ORDER):
            if name in known:
                continue

            left = next(
                (i for i in range(index - 1, -1, -1) if FIELD_ORDER[i] in known), None
            )
            right = next(
                (i for i in range(index + 1, len(FIELD_ORDER)) if FIELD_ORDER[i] in known), None
            )

            if left is not None and right is not None:
                center = (known[FIELD_ORDER[left]].center_x + known[FIELD_ORDER[right]].center_x) / 2
            elif left is not None:
                center = known[FIELD_ORDER[left]].center_x + gap * (index - left)
            elif right is not None:
                center = known[FIELD_ORDER[right]].center_x - gap * (right - index)
            else:
                continue

            span = ColumnSpan(center, self._inferred_width(name, gap), inferred=True)
            inferred = inferred.with_column(name, span)
            logger.debug(f"Inferred column {name}: x={center:.0f}")

        return inferred

    def _inferred_width(self, name: str, gap: float) -> float:
        if name == 'specification':
            return gap * 0.8
        if name == 'goods_name':
            return gap
        return self.INFERRED_WIDTHS.get(name, 60.0)
