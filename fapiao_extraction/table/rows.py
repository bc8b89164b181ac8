"""
Row Segmenter Module.

Groups the fragments lying inside a table region into item rows and
classifies each fragment of a row as item name, specification, unit,
tax rate or numeric value.

Item rows are delimited by their *category* marker: row heights vary
with wrapped names, so the markers are the only reliable delimiter.

Author: ML Engineering Team
"""

import re
from typing import List, Optional

from config.parser_settings import ParserSettings
from fapiao_extraction.layout.models import PageModel, TextFragment
from fapiao_extraction.utils.logger import get_logger
from .models import (
    ClassifiedRow,
    ColumnMapping,
    FieldBoundaries,
    RawRow,
    TableRegion
)

# Initialize module logger
logger = get_logger(__name__)


class RowSegmenter:
    """
    Segments table regions into classified item rows.

    Example:
        >>> segmenter = RowSegmenter(settings)
        >>> for raw_row in segmenter.segment(page, region):
        ...     row = segmenter.classify(raw_row, region, page.width)
        ...     print(row.goods_name, [f.text for f in row.numeric_runs])
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the segmenter and compile the pattern tables."""
        self.settings = settings or ParserSettings()
        self.tolerances = self.settings.tolerances
        patterns = self.settings.patterns

        self.item_marker = re.compile(patterns.item_marker)
        self.plain_tax_rate = re.compile(patterns.plain_tax_rate)
        self.exempt_token = re.compile(patterns.exempt_token)
        self.numeric_run = re.compile(patterns.numeric_run)
        self.numeric_like = re.compile(patterns.numeric_like)
        self.long_digit_code = re.compile(patterns.long_digit_code)
        self.invalid_text = [re.compile(p) for p in patterns.invalid_text]
        self.irrelevant_text = [re.compile(p) for p in patterns.irrelevant_text]

    # =========================================================================
    # SEGMENTATION
    # =========================================================================

    def table_fragments(self, page: PageModel, region: TableRegion) -> List[TextFragment]:
        """Fragments strictly inside the region, minus header/footer repeats."""
        fragments = []
        for line in page.lines:
            if not region.contains_y(line.y):
                continue
            for fragment in line.fragments:
                text = fragment.stripped
                if not text:
                    continue
                if any(keyword in text for keyword in self.settings.keywords.skip_in_table):
                    continue
                fragments.append(fragment)
        return fragments

    def segment(self, page: PageModel, region: TableRegion) -> List[RawRow]:
        """
        Split the fragments of a table region into item rows.

        A row spans from its marker (plus a small top margin) down to just
        above the next marker, or to the footer for the last row. The
        ranges of consecutive rows never overlap.

        Args:
            page: Page model.
            region: Table region of the page.

        Returns:
            Raw rows in top-to-bottom order; empty if no marker was found.
        """
        fragments = self.table_fragments(page, region)
        markers = [f for f in fragments if self.item_marker.match(f.stripped)]
        if not markers:
            if fragments:
                logger.debug(f"Page {page.page_index}: no item markers in table region")
            return []

        markers.sort(key=lambda f: f.y, reverse=True)

        rows = []
        upper = markers[0].y + self.tolerances.marker_top_margin
        for index, marker in enumerate(markers):
            if index + 1 < len(markers):
                lower = markers[index + 1].y + self.tolerances.marker_bottom_margin
            else:
                lower = region.footer_y

            members = [f for f in fragments if lower < f.y <= upper]
            rows.append(RawRow(
                page_index=page.page_index,
                top_y=upper,
                bottom_y=lower,
                marker=marker,
                fragments=members
            ))
            upper = lower

        logger.debug(f"Page {page.page_index}: {len(rows)} item rows")
        return rows

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================

    def boundaries(
        self,
        name_start: float,
        mapping: ColumnMapping,
        page_width: float
    ) -> FieldBoundaries:
        """
        Compute the x boundaries of the text columns of a row.

        Exact boundaries come from the specification and unit columns;
        without them the boundaries are fractions of the page width
        measured from the start of the item name.

        Args:
            name_start: x of the row's marker fragment.
            mapping: Column mapping of the table.
            page_width: Viewport width of the page.

        Returns:
            FieldBoundaries for the row.
        """
        spec = mapping.specification
        unit = mapping.unit
        quantity = mapping.quantity

        def data_start(ratio: float) -> float:
            if quantity:
                return quantity.center_x - 40
            return name_start + page_width * ratio

        if spec and unit:
            return FieldBoundaries(
                name_right=spec.left - 10,
                spec_left=spec.left - 15,
                spec_right=spec.right + 15,
                unit_left=unit.left - 15,
                data_start=data_start(0.5)
            )

        if spec:
            return FieldBoundaries(
                name_right=spec.left - 10,
                spec_left=spec.left - 15,
                spec_right=spec.right + 15,
                unit_left=name_start + page_width * 0.38,
                data_start=data_start(0.45)
            )

        if unit:
            return FieldBoundaries(
                name_right=unit.left - 30,
                spec_left=name_start + page_width * 0.25,
                spec_right=unit.left - 10,
                unit_left=unit.left - 15,
                data_start=data_start(0.45)
            )

        return FieldBoundaries(
            name_right=name_start + page_width * 0.28,
            spec_left=name_start + page_width * 0.25,
            spec_right=name_start + page_width * 0.38,
            unit_left=name_start + page_width * 0.38,
            data_start=name_start + page_width * 0.45
        )

    def is_invalid(self, text: str) -> bool:
        """Check for totals, amounts in words and other non-item text."""
        return any(p.search(text) for p in self.invalid_text)

    def is_irrelevant(self, text: str) -> bool:
        """Check for invoice codes, bracketed codes and stray glyphs."""
        return any(p.search(text) for p in self.irrelevant_text)

    def classify(self, row: RawRow, region: TableRegion, page_width: float) -> ClassifiedRow:
        """
        Classify every fragment of a raw row.

        Tax rates take precedence, then the marker, then column-proximity
        tests for unit and specification. Numeric-shaped text is queued
        with its x for column matching; text combining digits with a
        percent sign is queued for the numeric disambiguator. Remaining
        text goes to the name or specification by position.

        Args:
            row: Raw row from ``segment``.
            region: Table region of the row's page.
            page_width: Viewport width of the page.

        Returns:
            ClassifiedRow.
        """
        mapping = region.column_mapping
        bounds = self.boundaries(row.marker.x, mapping, page_width)
        unit_column = mapping.unit
        spec_column = mapping.specification
        quantity_column = mapping.quantity

        result = ClassifiedRow(marker=row.marker, page_index=row.page_index)

        for fragment in row.fragments:
            text = fragment.stripped
            if not text:
                continue

            if self.is_invalid(text) or self.is_irrelevant(text):
                logger.debug(f"Skipped fragment '{text}'")
                continue

            if self.plain_tax_rate.match(text):
                result.tax_rate = text
                continue
            if self.exempt_token.match(text):
                result.tax_rate = self.settings.exempt_label
                continue

            if self.item_marker.match(text):
                result.name_parts.append(text)
                continue

            numeric_shaped = bool(self.numeric_run.match(text))
            numeric_like = bool(self.numeric_like.match(text))

            if unit_column and unit_column.contains(fragment.x, self.tolerances.unit_column):
                if 1 <= len(text) <= 4 and not numeric_shaped:
                    result.unit = text
                    continue

            if spec_column and spec_column.contains(fragment.x, self.tolerances.spec_column):
                if self.long_digit_code.match(text) or (not numeric_like and len(text) < 50):
                    result.spec_parts.append(text)
                    continue

            if '%' in text and re.search(r'\d', text):
                result.rate_runs.append(fragment)
                continue

            if numeric_shaped and text != '-':
                result.numeric_runs.append(fragment)
                continue

            if not spec_column and not numeric_like and len(text) < 40:
                if unit_column:
                    right_edge = bounds.unit_left
                elif quantity_column:
                    right_edge = quantity_column.center_x - 15
                else:
                    right_edge = None
                if right_edge is not None and bounds.spec_left < fragment.x < right_edge:
                    result.spec_parts.append(text)
                    continue

            if fragment.x < bounds.name_right:
                result.name_parts.append(text)
                continue

            if bounds.spec_left < fragment.x < bounds.spec_right:
                if not numeric_like and len(text) < 40:
                    result.spec_parts.append(text)
                    continue

            result.name_parts.append(text)

        return result
