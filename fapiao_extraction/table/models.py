"""
Table Data Classes.

This module defines the intermediate structures of table reconstruction:
    - ColumnSpan / ColumnMapping: x-coordinate of each table column
    - TableRegion: vertical bounds of the table on one page
    - RawRow / ClassifiedRow: fragments of one item row, before and after
      classification

Author: ML Engineering Team
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from config.parser_settings import FIELD_ORDER, NUMERIC_FIELDS
from fapiao_extraction.layout.models import TextFragment


@dataclass(frozen=True)
class ColumnSpan:
    """
    Horizontal position of one table column.

    Attributes:
        center_x: Center of the column header
        width: Width of the column header
        inferred: True if placed from neighbouring columns
    """
    center_x: float
    width: float
    inferred: bool = False

    @property
    def left(self) -> float:
        return self.center_x - self.width / 2

    @property
    def right(self) -> float:
        return self.center_x + self.width / 2

    def contains(self, x: float, tolerance: float) -> bool:
        """Check if x lies within the column widened by ``tolerance``."""
        return self.left - tolerance <= x <= self.right + tolerance


@dataclass(frozen=True)
class ColumnMapping:
    """
    Column positions of the line-item table, one slot per field.

    Detected once per document from the first header line and shared by
    every page.
    """
    goods_name: Optional[ColumnSpan] = None
    specification: Optional[ColumnSpan] = None
    unit: Optional[ColumnSpan] = None
    quantity: Optional[ColumnSpan] = None
    unit_price: Optional[ColumnSpan] = None
    amount: Optional[ColumnSpan] = None
    tax_rate: Optional[ColumnSpan] = None
    tax_amount: Optional[ColumnSpan] = None

    def get(self, name: str) -> Optional[ColumnSpan]:
        if name not in FIELD_ORDER:
            raise KeyError(name)
        return getattr(self, name)

    def with_column(self, name: str, span: ColumnSpan) -> 'ColumnMapping':
        """Return a copy with one slot set."""
        if name not in FIELD_ORDER:
            raise KeyError(name)
        return replace(self, **{name: span})

    def detected(self) -> List[Tuple[str, ColumnSpan]]:
        """Mapped columns ordered by ascending x."""
        columns = [(name, self.get(name)) for name in FIELD_ORDER if self.get(name)]
        return sorted(columns, key=lambda pair: pair[1].center_x)

    @property
    def detected_count(self) -> int:
        return sum(1 for name in FIELD_ORDER if self.get(name) is not None)

    def missing(self) -> List[str]:
        """Unmapped field names in canonical order."""
        return [name for name in FIELD_ORDER if self.get(name) is None]

    def match_numeric(self, x: float, base_tolerance: float = 25.0) -> Optional[str]:
        """
        Find the numeric column closest to a fragment's x.

        The tolerance shrinks as more numeric columns are known, so that
        neighbouring columns do not overlap. A fragment with no column
        inside the tolerance falls back to the nearest column within twice
        the adaptive tolerance.

        Args:
            x: Left edge of the numeric fragment.
            base_tolerance: Base matching distance.

        Returns:
            Field name, or None when no column is close enough.
        """
        columns = [(name, self.get(name)) for name in NUMERIC_FIELDS if self.get(name)]
        if len(columns) >= 4:
            adaptive = base_tolerance * 0.8
        elif len(columns) == 3:
            adaptive = base_tolerance
        else:
            adaptive = base_tolerance * 1.2

        best = None
        for name, span in columns:
            distance = abs(x - span.center_x)
            if distance <= min(adaptive, span.width * 0.6):
                if best is None or distance < best[1]:
                    best = (name, distance)

        if best is None:
            for name, span in columns:
                distance = abs(x - span.center_x)
                if distance <= adaptive * 2:
                    if best is None or distance < best[1]:
                        best = (name, distance)

        return best[0] if best else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: (
                {'center_x': span.center_x, 'width': span.width, 'inferred': span.inferred}
                if span else None
            )
            for name, span in ((name, self.get(name)) for name in FIELD_ORDER)
        }


@dataclass(frozen=True)
class TableRegion:
    """
    Vertical extent of the line-item table on one page.

    Attributes:
        page_index: Zero-based page number
        header_y: y of the header line (rows lie strictly below)
        footer_y: y of the subtotal line, 0 when the page has none
        column_mapping: Column positions shared by the document
    """
    page_index: int
    header_y: float
    footer_y: float
    column_mapping: ColumnMapping

    def contains_y(self, y: float) -> bool:
        """Check if a baseline lies strictly inside the table."""
        if y >= self.header_y:
            return False
        if self.footer_y > 0 and y <= self.footer_y:
            return False
        return True


@dataclass
class RawRow:
    """
    Fragments belonging to one item row.

    Attributes:
        page_index: Zero-based page number
        top_y: Upper bound of the row (inclusive)
        bottom_y: Lower bound of the row (exclusive)
        marker: The *category* fragment that opened the row
        fragments: Fragments of the row ordered by ascending x
    """
    page_index: int
    top_y: float
    bottom_y: float
    marker: TextFragment
    fragments: List[TextFragment] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.fragments = sorted(self.fragments, key=lambda f: f.x)


@dataclass(frozen=True)
class FieldBoundaries:
    """
    x boundaries separating the text columns of an item row.

    Attributes:
        name_right: Text left of this belongs to the item name
        spec_left: Left edge of the specification window
        spec_right: Right edge of the specification window
        unit_left: Left edge of the unit window
        data_start: Where the numeric columns begin
    """
    name_right: float
    spec_left: float
    spec_right: float
    unit_left: float
    data_start: float


@dataclass(frozen=True)
class NumericFragment:
    """A numeric value queued for column matching, with its x."""
    text: str
    x: float
    column: Optional[str] = None


@dataclass
class ClassifiedRow:
    """
    An item row after fragment classification.

    Attributes:
        marker: The *category* fragment that opened the row
        name_parts: Item name pieces in reading order
        spec_parts: Specification pieces in reading order
        unit: Unit of measure
        tax_rate: Stand-alone tax rate or exempt label
        numeric_runs: Numeric-shaped fragments (queued with their x)
        rate_runs: Fragments gluing numbers and a percent sign
    """
    marker: TextFragment
    page_index: int = 0
    name_parts: List[str] = field(default_factory=list)
    spec_parts: List[str] = field(default_factory=list)
    unit: Optional[str] = None
    tax_rate: Optional[str] = None
    numeric_runs: List[TextFragment] = field(default_factory=list)
    rate_runs: List[TextFragment] = field(default_factory=list)

    @property
    def goods_name(self) -> str:
        return ''.join(self.name_parts)

    @property
    def specification(self) -> Optional[str]:
        parts = [part for part in self.spec_parts if 0 < len(part) < 50]
        return ' '.join(parts) if parts else None
