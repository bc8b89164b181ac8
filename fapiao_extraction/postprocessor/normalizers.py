"""
Data Normalizers Module.

This module provides normalization functions for:
    - Chinese invoice dates (年月日) to ISO format
    - Currency/amount strings to plain decimal strings

Author: ML Engineering Team
"""

import re
from typing import Optional
from dateutil import parser as date_parser

from config.parser_settings import ParserSettings
from fapiao_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class DateNormalizer:
    """
    Normalizes invoice dates to ISO format (YYYY-MM-DD).

    The year-month-day pattern of the settings is tried first; anything
    else goes through dateutil's parser.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("2024年3月5日")
        '2024-03-05'
        >>> normalizer.extract_date("开票日期：2024年03月15日")
        '2024-03-15'
    """

    OUTPUT_FORMAT = "%Y-%m-%d"

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the date normalizer with parser settings."""
        settings = settings or ParserSettings()
        self.pattern = re.compile(settings.patterns.invoice_date)

    def extract_date(self, text: str) -> Optional[str]:
        """
        Find the first year-month-day date in text.

        Args:
            text: Text that may contain a date.

        Returns:
            Zero-padded ISO date, or None.
        """
        if not text:
            return None
        match = self.pattern.search(text)
        if not match:
            return None
        year, month, day = match.groups()[:3]
        return f"{year}-{int(month):02d}-{int(day):02d}"

    def normalize(self, date_str: str) -> Optional[str]:
        """
        Normalize a date string to ISO format.

        Args:
            date_str: Date in 年月日 or any format dateutil understands.

        Returns:
            Normalized date string, or None if parsing fails.
        """
        if not date_str:
            return None

        extracted = self.extract_date(date_str)
        if extracted:
            return extracted

        try:
            parsed = date_parser.parse(date_str.strip(), fuzzy=True)
        except (ValueError, OverflowError):
            logger.debug(f"Could not parse date: {date_str}")
            return None
        return parsed.strftime(self.OUTPUT_FORMAT)


class AmountNormalizer:
    """
    Normalizes amount strings to plain decimal strings.

    Thousands separators, currency glyphs and whitespace are removed.
    The digits are otherwise kept as printed so that no precision is
    lost.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.normalize("¥1,234.56")
        '1234.56'
    """

    STRIP_PATTERN = re.compile(r'[,，\s￥¥$]')

    def normalize(self, amount_str: Optional[str]) -> Optional[str]:
        """
        Normalize an amount string.

        Args:
            amount_str: Raw amount (e.g. "¥ 1,234.56").

        Returns:
            Cleaned amount string (e.g. "1234.56"), or None if the result
            is not a number.
        """
        if not amount_str:
            return None

        cleaned = self.STRIP_PATTERN.sub('', amount_str)
        if not re.fullmatch(r'\d+(\.\d+)?', cleaned):
            logger.debug(f"Could not parse amount: {amount_str}")
            return None
        return cleaned
