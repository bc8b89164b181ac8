"""
Anchor Locator Module.

Finds the table header and footer lines and extracts document-level
fields (invoice number, type, date, totals, tax rates) from the page
models by keyword anchors and coordinates.

Document-level fields are read from the first page, totals from the
last page.

Author: ML Engineering Team
"""

import re
from typing import List, Optional, Sequence

from config.parser_settings import ParserSettings
from fapiao_extraction.layout.models import Line, PageModel
from fapiao_extraction.postprocessor.normalizers import AmountNormalizer, DateNormalizer
from fapiao_extraction.records import InvoiceFields, TaxRateEntry
from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.exceptions import TableNotFoundError
from .columns import ColumnMapper
from .models import ColumnMapping, TableRegion

# Initialize module logger
logger = get_logger(__name__)


class AnchorLocator:
    """
    Locates keyword anchors in reconstructed pages.

    Attributes:
        settings: Parser settings (keywords, patterns, tolerances)

    Example:
        >>> locator = AnchorLocator(settings)
        >>> regions = locator.detect_table_regions(pages, ColumnMapper(settings))
        >>> fields = locator.extract_invoice_fields(pages)
        >>> fields.invoice_number
        '24442000000123456789'
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the locator with parser settings."""
        self.settings = settings or ParserSettings()
        self.keywords = self.settings.keywords
        self.patterns = self.settings.patterns
        self.tolerances = self.settings.tolerances

        self.date_normalizer = DateNormalizer(self.settings)
        self.amount_normalizer = AmountNormalizer()

        length = self.settings.invoice_number_length
        self._invoice_number = re.compile(rf'(?<!\d)(\d{{{length}}})(?!\d)')

    # =========================================================================
    # TABLE BOUNDS
    # =========================================================================

    def find_header_line(self, page: PageModel) -> Optional[Line]:
        """Return the first line containing a table header keyword."""
        for line in page.lines:
            text = line.text
            if any(keyword in text for keyword in self.keywords.table_header):
                return line
        return None

    def find_footer_line(self, page: PageModel) -> Optional[Line]:
        """
        Return the first subtotal line of the item table.

        The grand-total row also contains the footer keyword and is
        skipped.
        """
        for line in page.lines:
            text = line.text
            if any(keyword in text for keyword in self.keywords.grand_total):
                continue
            if any(keyword in text for keyword in self.keywords.table_footer):
                return line
        return None

    def detect_table_regions(
        self,
        pages: Sequence[PageModel],
        mapper: ColumnMapper,
        file_name: Optional[str] = None
    ) -> List[Optional[TableRegion]]:
        """
        Determine the table region of every page.

        The column mapping is detected once, from the first page carrying
        a header line, and shared by all pages. A later page without a
        header is a continuation page: its table starts at the top of the
        page.

        Args:
            pages: Page models in document order.
            mapper: Column mapper used on the header line.
            file_name: Document name for the error details.

        Returns:
            One entry per page; None for a leading page with no table.

        Raises:
            TableNotFoundError: If no page carries a header line.
        """
        headers = [self.find_header_line(page) for page in pages]

        mapping: Optional[ColumnMapping] = None
        for header in headers:
            if header is not None:
                mapping = mapper.detect(header)
                break

        if mapping is None:
            raise TableNotFoundError(file_name, len(pages))

        regions: List[Optional[TableRegion]] = []
        seen_header = False
        for page, header in zip(pages, headers):
            footer = self.find_footer_line(page)
            footer_y = footer.y if footer else 0.0

            if header is not None:
                seen_header = True
                regions.append(TableRegion(page.page_index, header.y, footer_y, mapping))
            elif seen_header:
                regions.append(TableRegion(page.page_index, page.height, footer_y, mapping))
            else:
                regions.append(None)

        logger.debug(f"Table regions: {[r and (round(r.header_y), round(r.footer_y)) for r in regions]}")
        return regions

    # =========================================================================
    # DOCUMENT FIELDS
    # =========================================================================

    def extract_invoice_fields(self, pages: Sequence[PageModel]) -> InvoiceFields:
        """
        Extract document-level fields from coordinates.

        Args:
            pages: Page models in document order.

        Returns:
            InvoiceFields; fields whose anchor was not found stay None.
        """
        fields = InvoiceFields(strategy='coordinate')
        if not pages:
            return fields

        exempt = self.is_tax_exempt(pages)

        fields.invoice_number = self.extract_invoice_number(pages[0])
        fields.invoice_type = self.extract_invoice_type(pages[0])
        fields.invoice_date = self.extract_invoice_date(pages[0])
        fields.amount, fields.tax_amount = self.extract_subtotals(pages[-1], exempt)
        fields.total_amount = self.extract_total_amount(pages[-1])
        fields.tax_rates = self.extract_tax_rates(pages, exempt)

        logger.debug(f"Coordinate fields: {fields.to_dict()}")
        return fields

    def is_tax_exempt(self, pages: Sequence[PageModel]) -> bool:
        text = '\n'.join(page.text for page in pages)
        return any(marker in text for marker in self.keywords.exemption)

    def extract_invoice_number(self, page: PageModel) -> Optional[str]:
        """Find the fixed-length digit run following the invoice-number anchor."""
        anchor = self.keywords.invoice_number

        for line in page.lines:
            for index, fragment in enumerate(line.fragments):
                position = fragment.text.find(anchor)
                if position < 0:
                    continue

                candidates = [fragment.text[position + len(anchor):]]
                candidates.extend(f.text for f in line.fragments[index + 1:])
                for text in candidates:
                    match = self._invoice_number.search(text)
                    if match:
                        return match.group(1)
        return None

    def extract_invoice_type(self, page: PageModel) -> Optional[str]:
        """Read the invoice type from the title in the header region."""
        threshold = page.height * self.tolerances.header_region_ratio
        labels = self.settings.invoice_type_labels

        for line in page.lines:
            if line.y < threshold:
                continue
            text = line.text
            if any(keyword in text for keyword in self.keywords.special_invoice):
                return labels['special']
            if any(keyword in text for keyword in self.keywords.general_invoice):
                return labels['general']
            if (re.search(self.patterns.electronic_invoice, text)
                    and re.search(self.patterns.general_marker, text)):
                return labels['general']
        return None

    def extract_invoice_date(self, page: PageModel) -> Optional[str]:
        for line in page.lines:
            date = self.date_normalizer.extract_date(line.spaced_text)
            if date:
                return date
        return None

    def extract_subtotals(self, page: PageModel, exempt: bool = False):
        """
        Read amount and tax amount from the subtotal line.

        Monetary values of the line are ordered by x: the amount is the
        second to last (or the only one), the tax amount is the last one
        when there are at least two.

        Returns:
            Tuple of (amount, tax_amount); tax is "0.00" on exempt invoices.
        """
        amount = tax = None
        for line in self._subtotal_lines(page):
            values = []
            for fragment in line.fragments:
                match = re.search(self.patterns.line_amount, fragment.text)
                if match:
                    values.append((fragment.x, self.amount_normalizer.normalize(match.group('value'))))
            values = [value for value in sorted(values, key=lambda v: v[0]) if value[1]]
            if not values:
                continue

            amount = values[-2][1] if len(values) >= 2 else values[0][1]
            tax = values[-1][1] if len(values) >= 2 else None
            break

        if exempt:
            tax = '0.00'
        return amount, tax

    def _subtotal_lines(self, page: PageModel):
        for line in page.lines:
            text = line.text
            if any(keyword in text for keyword in self.keywords.grand_total):
                continue
            if re.search(self.patterns.subtotal_line, text):
                yield line

    def extract_total_amount(self, page: PageModel) -> Optional[str]:
        """Read the grand total: first currency-prefixed value of its line."""
        for line in page.lines:
            if not re.search(self.patterns.grand_total_line, line.spaced_text):
                continue
            for fragment in line.fragments:
                match = re.search(self.patterns.currency_amount, fragment.text)
                if match:
                    return self.amount_normalizer.normalize(match.group('value'))
        return None

    def extract_tax_rates(
        self,
        pages: Sequence[PageModel],
        exempt: bool = False
    ) -> List[TaxRateEntry]:
        """
        Collect the distinct tax rates of the rate column.

        The column is located by the first tax-rate label; every fragment
        within the x-axis tolerance of it is scanned on all pages.

        Returns:
            Rates in order of first appearance with 1-based indexes.
        """
        if exempt:
            return [TaxRateEntry(rate=self.settings.exempt_label, index=1)]

        column_x = None
        for page in pages:
            for fragment in page.fragments:
                if re.search(self.patterns.tax_rate_anchor, fragment.text):
                    column_x = fragment.x
                    break
            if column_x is not None:
                break

        if column_x is None:
            return []

        rates: List[TaxRateEntry] = []
        seen = set()
        for page in pages:
            for fragment in page.fragments:
                if abs(fragment.x - column_x) > self.tolerances.x_axis:
                    continue

                match = re.search(self.patterns.rate_in_text, fragment.text)
                if match:
                    rate = f"{match.group(1)}%"
                    if self.settings.is_whitelisted_rate(rate) and rate not in seen:
                        seen.add(rate)
                        rates.append(TaxRateEntry(rate=rate, index=len(rates) + 1))

                if re.match(self.patterns.exempt_token, fragment.stripped):
                    label = self.settings.exempt_label
                    if label not in seen:
                        seen.add(label)
                        rates.append(TaxRateEntry(rate=label, index=len(rates) + 1))

        return rates
