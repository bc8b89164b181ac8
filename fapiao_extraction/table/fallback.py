"""
Full-Text Anchor Module.

Regular-expression extraction of document-level fields from the
flattened page text. Used when the pages carry no positioned fragments,
or to fill the fields the coordinate anchors could not find.

Author: ML Engineering Team
"""

import re
from typing import Iterable, List, Optional

from config.parser_settings import ParserSettings
from fapiao_extraction.postprocessor.normalizers import AmountNormalizer, DateNormalizer
from fapiao_extraction.records import InvoiceFields, TaxRateEntry
from fapiao_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class TextAnchorLocator:
    """
    Extracts document-level fields from plain text.

    Every pattern table lists alternatives from most to least specific;
    the first pattern yielding a valid value wins.

    Example:
        >>> locator = TextAnchorLocator(settings)
        >>> fields = locator.extract_invoice_fields(full_text)
        >>> fields.degraded
        True
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the locator with parser settings."""
        self.settings = settings or ParserSettings()
        self.keywords = self.settings.keywords
        self.patterns = self.settings.patterns

        self.date_normalizer = DateNormalizer(self.settings)
        self.amount_normalizer = AmountNormalizer()

        length = self.settings.invoice_number_length
        self._invoice_number_patterns = [
            re.compile(pattern.replace('{length}', f'{{{length}}}'), re.IGNORECASE)
            for pattern in self.patterns.fallback_invoice_number
        ]

    def extract_invoice_fields(self, text: str) -> InvoiceFields:
        """
        Extract document-level fields from flattened text.

        Args:
            text: Full document text.

        Returns:
            InvoiceFields flagged as degraded.
        """
        fields = InvoiceFields(strategy='full_text', degraded=True)
        if not text:
            return fields

        exempt = self.is_tax_exempt(text)

        fields.invoice_number = self.extract_invoice_number(text)
        fields.invoice_type = self.extract_invoice_type(text, exempt)
        fields.invoice_date = self.date_normalizer.extract_date(text)
        fields.amount = self._first_amount(text, self.patterns.fallback_amount)
        fields.tax_amount = (
            '0.00' if exempt else self._first_amount(text, self.patterns.fallback_tax_amount)
        )
        fields.total_amount = self._first_amount(text, self.patterns.fallback_total_amount)
        fields.tax_rates = self.extract_tax_rates(text, exempt)

        logger.debug(f"Full-text fields: {fields.to_dict()}")
        return fields

    def is_tax_exempt(self, text: str) -> bool:
        return any(marker in text for marker in self.keywords.exemption)

    def extract_invoice_number(self, text: str) -> Optional[str]:
        for pattern in self._invoice_number_patterns:
            match = pattern.search(text)
            if match:
                return match.group('value')
        return None

    def extract_invoice_type(self, text: str, exempt: bool = False) -> Optional[str]:
        """
        Determine the invoice type from titles, the invoice code or exemption.

        The first digit of the invoice code identifies the type when no
        title is found; exempt invoices are always general invoices.
        """
        labels = self.settings.invoice_type_labels

        if (any(keyword in text for keyword in self.keywords.special_invoice)
                or labels['special'] in text):
            return labels['special']

        if (any(keyword in text for keyword in self.keywords.general_invoice)
                or labels['general'] in text
                or (re.search(self.patterns.electronic_invoice, text)
                    and re.search(self.patterns.general_marker, text))):
            return labels['general']

        match = re.search(self.patterns.fallback_invoice_code, text)
        if match:
            first_digit = match.group('value')[0]
            for invoice_type, digits in self.settings.code_type_digits.items():
                if first_digit in digits:
                    return labels[invoice_type]

        if exempt:
            return labels['general']
        return None

    def _first_amount(self, text: str, patterns: Iterable[str]) -> Optional[str]:
        for pattern in patterns:
            match = re.search(pattern, text)
            if not match:
                continue
            value = self.amount_normalizer.normalize(match.group('value'))
            if value is not None:
                return value
        return None

    def extract_tax_rates(self, text: str, exempt: bool = False) -> List[TaxRateEntry]:
        """Collect whitelisted rates with the first pattern that finds any."""
        if exempt:
            return [TaxRateEntry(rate=self.settings.exempt_label, index=1)]

        for pattern in self.patterns.fallback_tax_rate:
            rates: List[TaxRateEntry] = []
            seen = set()
            for match in re.finditer(pattern, text):
                rate = f"{match.group('value')}%"
                if self.settings.is_whitelisted_rate(rate) and rate not in seen:
                    seen.add(rate)
                    rates.append(TaxRateEntry(rate=rate, index=len(rates) + 1))
            if rates:
                return rates

        return []
