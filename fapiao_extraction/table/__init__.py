"""
Table Module.

Line-item table reconstruction from page models:
    - AnchorLocator: table bounds and document-level fields by coordinates
    - TextAnchorLocator: document-level fields from flattened text
    - ColumnMapper: x-coordinate of every table column
    - RowSegmenter: item rows and fragment classification
"""

from .models import (
    ColumnSpan,
    ColumnMapping,
    TableRegion,
    RawRow,
    FieldBoundaries,
    NumericFragment,
    ClassifiedRow
)
from .columns import ColumnMapper
from .anchors import AnchorLocator
from .fallback import TextAnchorLocator
from .rows import RowSegmenter

__all__ = [
    'ColumnSpan',
    'ColumnMapping',
    'TableRegion',
    'RawRow',
    'FieldBoundaries',
    'NumericFragment',
    'ClassifiedRow',
    'ColumnMapper',
    'AnchorLocator',
    'TextAnchorLocator',
    'RowSegmenter',
]
