"""
Main Post-Processor Module.

This module provides the PostProcessor class that turns classified
table rows into line items and finalizes document-level fields.

Operations:
    - Match numeric values to table columns
    - Disambiguate concatenated numeric strings
    - Assign unmatched numbers by position
    - Repair amounts glued to their tax amount
    - Validate items and documents
    - Summarize amounts per tax rate

Author: ML Engineering Team
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from config.parser_settings import ParserSettings
from fapiao_extraction.layout.models import TextFragment
from fapiao_extraction.records import (
    FieldSource,
    InvoiceFields,
    LineItem,
    STATUS_FAILED,
    TaxRateEntry
)
from fapiao_extraction.table.models import ClassifiedRow, NumericFragment, TableRegion
from fapiao_extraction.utils.helpers import parse_number
from fapiao_extraction.utils.logger import get_logger
from .normalizers import DateNormalizer
from .numeric import NumericDisambiguator, SplitResult
from .validators import FieldValidator

# Initialize module logger
logger = get_logger(__name__)


# Order in which numbers are assigned to empty fields
POSITIONAL_ORDER = ('quantity', 'unit_price', 'amount', 'tax_amount')


class PostProcessor:
    """
    Assembles line items and finalizes document fields.

    Attributes:
        disambiguator: NumericDisambiguator instance
        field_validator: FieldValidator instance
        date_normalizer: DateNormalizer instance

    Example:
        >>> processor = PostProcessor(settings)
        >>> item = processor.build_item(row, region, line_number=1)
        >>> processor.validate_item(item)
        >>> print(item.status, item.error_message)
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the post-processor with all sub-components."""
        self.settings = settings or ParserSettings()

        self.disambiguator = NumericDisambiguator(self.settings)
        self.field_validator = FieldValidator(self.settings)
        self.date_normalizer = DateNormalizer(self.settings)

        self.invalid_item_names = [
            re.compile(pattern) for pattern in self.settings.patterns.invalid_item_name
        ]

        logger.debug("PostProcessor initialized")

    # =========================================================================
    # LINE ITEMS
    # =========================================================================

    def build_item(
        self,
        row: ClassifiedRow,
        region: TableRegion,
        line_number: int,
        meta: Optional[Dict[str, Any]] = None
    ) -> LineItem:
        """
        Build a line item from a classified row.

        Numbers are first matched to columns by x. A concatenated
        fragment carrying a tax rate is split by the disambiguator, whose
        arithmetically checked result outranks column matches. Numbers
        matching no column fill the remaining fields by position, unless a
        split already supplied the numbers.

        Args:
            row: Classified row.
            region: Table region of the row's page.
            line_number: 1-based item number in the document.
            meta: Source invoice number/date/type and file name.

        Returns:
            LineItem with status success.
        """
        item = LineItem(line_number=line_number, page_index=row.page_index, **(meta or {}))

        item.goods_name = row.goods_name or None
        item.specification = row.specification
        item.unit = row.unit
        item.tax_rate = row.tax_rate

        split, unsplit = self._split_rate_runs(row)
        if split is not None:
            item.tax_rate = split.tax_rate

        numbers = self._match_columns(row, region)
        numbers += self._read_unsplit_runs(item, unsplit, region)
        for name in POSITIONAL_ORDER:
            matched = next((n for n in numbers if n.column == name), None)
            if matched:
                item.set_field(name, matched.text, FieldSource.COLUMN)

        if split is not None:
            source = FieldSource.DEGRADED_SPLIT if split.degraded else FieldSource.ARITHMETIC_SPLIT
            for name, value in split.values():
                item.set_field(name, value, source)

        unmatched = [n for n in numbers if n.column is None]
        if unmatched and split is None:
            self.assign_unmatched(item, unmatched)

        if item.tax_rate == self.settings.exempt_label and not item.tax_amount:
            item.set_field('tax_amount', '0', FieldSource.POSITIONAL)

        self.repair_amount_pair(item)

        logger.debug(
            f"Item {line_number}: {(item.goods_name or '')[:20]} | qty={item.quantity} "
            f"price={item.unit_price} amount={item.amount} rate={item.tax_rate} "
            f"tax={item.tax_amount}"
        )
        return item

    def _split_rate_runs(
        self,
        row: ClassifiedRow
    ) -> Tuple[Optional[SplitResult], List[TextFragment]]:
        """
        Disambiguate the rate-bearing runs; the last successful split wins.

        Runs the disambiguator cannot split are returned so that their
        numbers are read as a plain multi-number run.
        """
        split = None
        unsplit = []
        for fragment in row.rate_runs:
            result = self.disambiguator.split(fragment.stripped)
            if result is None:
                unsplit.append(fragment)
                continue
            split = result
            if result.degraded:
                logger.warning(f"Degraded split of '{fragment.stripped}': amount={result.amount}")
        return split, unsplit

    def _read_unsplit_runs(
        self,
        item: LineItem,
        runs: List[TextFragment],
        region: TableRegion
    ) -> List[NumericFragment]:
        """Read unsplit rate runs as plain numbers, keeping any rate they carry."""
        mapping = region.column_mapping
        base = self.settings.tolerances.numeric_column
        numbers = []
        for fragment in runs:
            before, rate, after = self.disambiguator.partition_rate(fragment.stripped)
            if rate and not item.tax_rate:
                item.tax_rate = rate
            logger.debug(f"Unsplit run '{fragment.stripped}' read as {before!r}, {rate}, {after!r}")

            column = mapping.match_numeric(fragment.x, base)
            for part in (before, after):
                for value in self.disambiguator.extract_all_numbers(part):
                    numbers.append(NumericFragment(value, fragment.x, column))
        return numbers

    def _match_columns(self, row: ClassifiedRow, region: TableRegion) -> List[NumericFragment]:
        """Extract the numbers of each numeric run and match them to columns."""
        mapping = region.column_mapping
        base = self.settings.tolerances.numeric_column
        numbers = []
        for fragment in row.numeric_runs:
            for value in self.disambiguator.extract_all_numbers(fragment.stripped):
                column = mapping.match_numeric(fragment.x, base)
                numbers.append(NumericFragment(value, fragment.x, column))
        return numbers

    def assign_unmatched(self, item: LineItem, unmatched: List[NumericFragment]) -> None:
        """
        Assign numbers that matched no column to the still-empty fields.

        Numbers are taken left to right. With as many numbers as empty
        fields they are assigned in order; when all four fields are empty
        the values are placed by shape (a small integer is a quantity, a
        two-decimal value under 1000 is a tax amount, the larger of the
        rest is the amount). With more numbers than fields the leftmost
        ones are used; with fewer, fields are filled from the right so
        that amount and tax amount are kept.
        """
        values = [n.text for n in sorted(unmatched, key=lambda n: n.x)]
        targets = [name for name in POSITIONAL_ORDER if not getattr(item, name)]
        if not targets:
            return

        logger.debug(f"Positional assignment of {values} to {targets}")

        if len(values) == len(targets) == 4:
            for name, value in self._assign_by_shape(values).items():
                item.set_field(name, value, FieldSource.POSITIONAL)
            return

        if len(values) >= len(targets):
            pairs = zip(targets, values)
        else:
            pairs = zip(reversed(targets), reversed(values))

        for name, value in pairs:
            item.set_field(name, value, FieldSource.POSITIONAL)

    @staticmethod
    def _assign_by_shape(values: List[str]) -> Dict[str, str]:
        def likely_quantity(value: str) -> bool:
            two_decimals = '.' in value and len(value.split('.')[1]) == 2
            return float(value) <= 20 and not two_decimals

        def likely_tax(value: str) -> bool:
            two_decimals = '.' in value and len(value.split('.')[1]) == 2
            return two_decimals and float(value) < 1000

        remaining = list(values)
        assigned = {}

        index = next((i for i, v in enumerate(remaining) if likely_quantity(v)), 0)
        assigned['quantity'] = remaining.pop(index)

        index = next((i for i, v in enumerate(remaining) if likely_tax(v)), len(remaining) - 1)
        assigned['tax_amount'] = remaining.pop(index)

        first, second = remaining
        if float(first) > float(second):
            assigned['amount'], assigned['unit_price'] = first, second
        else:
            assigned['unit_price'], assigned['amount'] = first, second
        return assigned

    def repair_amount_pair(self, item: LineItem) -> None:
        """Split an amount glued to its tax amount when no tax amount is set."""
        if not item.amount or item.tax_amount:
            return
        pair = self.disambiguator.split_amount_pair(item.amount)
        if pair:
            logger.debug(f"Split glued amounts {item.amount} -> {pair}")
            item.set_field('amount', pair[0], FieldSource.PAIR_REPAIR, force=True)
            item.set_field('tax_amount', pair[1], FieldSource.PAIR_REPAIR)

    def is_item_row(self, item: LineItem) -> bool:
        """
        Check that an assembled item is a real line item.

        Rows without a name and an amount, and rows whose name is a
        subtotal, remark or code, are dropped.
        """
        if not item.goods_name and not item.amount:
            return False
        if item.goods_name:
            name = item.goods_name.strip()
            if any(pattern.search(name) for pattern in self.invalid_item_names):
                return False
        return True

    def validate_item(self, item: LineItem) -> LineItem:
        """
        Validate an item and attach the warnings.

        A failed check marks the item failed but keeps every value.
        """
        result = self.field_validator.validate_item(item)
        if not result.is_valid:
            item.warnings = result.messages
            item.mark_failed(result.summary())
            logger.warning(f"Item {item.line_number} failed validation: {result.summary()}")
        return item

    # =========================================================================
    # DOCUMENT FIELDS
    # =========================================================================

    def summarize_tax_rates(self, fields: InvoiceFields, items: List[LineItem]) -> InvoiceFields:
        """
        Fill the per-rate amount of every tax-rate entry.

        When the anchors found no rate, rates are taken from the items in
        order of first appearance.
        """
        if not fields.tax_rates:
            seen = []
            for item in items:
                if self.settings.is_valid_rate_label(item.tax_rate) and item.tax_rate not in seen:
                    seen.append(item.tax_rate)
            fields.tax_rates = [
                TaxRateEntry(rate=rate, index=index)
                for index, rate in enumerate(seen, start=1)
            ]

        for entry in fields.tax_rates:
            amounts = [
                parse_number(item.amount) for item in items
                if item.tax_rate == entry.rate
            ]
            amounts = [amount for amount in amounts if amount is not None]
            if amounts:
                entry.amount = f"{sum(amounts):.2f}"

        return fields

    def finalize_fields(self, fields: InvoiceFields, items: List[LineItem]) -> InvoiceFields:
        """
        Normalize, summarize and validate document fields.

        Validation failures mark the fields failed with the joined
        messages; values are kept.
        """
        if fields.invoice_date:
            fields.invoice_date = self.date_normalizer.normalize(fields.invoice_date) or fields.invoice_date

        self.summarize_tax_rates(fields, items)

        result = self.field_validator.validate_document(fields)
        if not result.is_valid:
            fields.status = STATUS_FAILED
            fields.error_message = result.summary()
            logger.warning(f"Document fields failed validation: {result.summary()}")
        return fields
