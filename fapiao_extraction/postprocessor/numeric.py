"""
Numeric Disambiguator Module.

Recovers invoice numbers that the text layer emitted glued together.
A fragment such as "444.16176.6413%22.96" packs quantity, unit price,
amount, tax rate and tax amount with no separator. Every partition of
the digits in front of the tax rate is tried and checked against the
invoice arithmetic:

    quantity x unit_price ~ amount
    amount x tax_rate ~ tax_amount

Among the consistent partitions the one satisfying the most
constraints wins.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from config.parser_settings import ParserSettings
from fapiao_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


_NUMBER_FORMAT = re.compile(r'^\d+\.?\d*$')


def is_valid_number_format(value: Optional[str]) -> bool:
    """
    Check that a string is an acceptable invoice number.

    Accepted: "123", "123.45", "0", "0.45".
    Rejected: "55." (trailing dot), "0055" and "00.5" (leading zeros).
    """
    if not value or not _NUMBER_FORMAT.match(value):
        return False
    if value.endswith('.'):
        return False
    if len(value) > 1 and value[0] == '0' and value[1] != '.':
        return False
    return True


# =============================================================================
# SPLIT CANDIDATES
# =============================================================================

@dataclass(frozen=True)
class BareAmount:
    """Only an amount precedes the tax rate."""
    amount: str

    def score(self, has_tax: bool) -> int:
        return 0


@dataclass(frozen=True)
class QuantityPriceAmount:
    """Quantity, unit price and amount, with quantity x price ~ amount."""
    quantity: str
    unit_price: str
    amount: str

    def score(self, has_tax: bool) -> int:
        return 1 if has_tax else 2


@dataclass(frozen=True)
class PriceAmount:
    """Unit price equal to the amount: an implicit quantity of one."""
    unit_price: str
    amount: str

    def score(self, has_tax: bool) -> int:
        return 2 if has_tax else 3


@dataclass(frozen=True)
class QuantityAmount:
    """An integer quantity followed by the amount, no unit price."""
    quantity: str
    amount: str

    def score(self, has_tax: bool) -> int:
        return 3 if has_tax else 10


SplitCandidate = Union[BareAmount, QuantityPriceAmount, PriceAmount, QuantityAmount]


@dataclass(frozen=True)
class SplitResult:
    """
    Outcome of disambiguating one concatenated fragment.

    Attributes:
        quantity: Quantity, when the winning split has one
        unit_price: Unit price, when the winning split has one
        amount: Line amount
        tax_rate: Detected tax rate ("13%")
        tax_amount: Digits following the rate, if any
        degraded: True when no split passed the arithmetic checks and
            everything before the rate was taken as the amount
        candidate: The winning candidate, None when degraded
    """
    tax_rate: str
    quantity: Optional[str] = None
    unit_price: Optional[str] = None
    amount: Optional[str] = None
    tax_amount: Optional[str] = None
    degraded: bool = False
    candidate: Optional[SplitCandidate] = None

    def values(self) -> List[Tuple[str, str]]:
        """Non-empty numeric fields as (name, value) pairs."""
        pairs = (
            ('quantity', self.quantity),
            ('unit_price', self.unit_price),
            ('amount', self.amount),
            ('tax_amount', self.tax_amount),
        )
        return [(name, value) for name, value in pairs if value]


# =============================================================================
# DISAMBIGUATOR
# =============================================================================

class NumericDisambiguator:
    """
    Splits concatenated numeric strings using arithmetic consistency.

    Attributes:
        floor: Absolute floor of the arithmetic tolerance
        ratio: Relative part of the arithmetic tolerance

    Example:
        >>> disambiguator = NumericDisambiguator()
        >>> result = disambiguator.split("145.7545.7513%5.95")
        >>> (result.quantity, result.unit_price, result.amount, result.tax_amount)
        ('1', '45.75', '45.75', '5.95')
        >>> disambiguator.extract_all_numbers("9.080.82")
        ['9.08', '0.82']
    """

    CLEAN_PATTERN = re.compile(r'[,，\s￥¥]')
    CLEAN_SIGNED_PATTERN = re.compile(r'[,，\s￥¥\-]')
    THOUSANDS_PATTERN = re.compile(r'^\d{1,3}([,，]\d{3})+(\.\d+)?$')
    TWO_DECIMALS_PATTERN = re.compile(r'^(\d+\.\d{2})(\d+\.\d{2})$')
    DECIMAL_PATTERN = re.compile(r'^\d+\.\d+$')

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the disambiguator with parser settings."""
        self.settings = settings or ParserSettings()
        self.floor = self.settings.tolerances.arithmetic_floor
        self.ratio = self.settings.tolerances.arithmetic_ratio
        self.pair_ratio = self.settings.tolerances.amount_pair_ratio
        self.rate_pattern = re.compile(self.settings.patterns.concatenated_rate)

    def tolerance(self, value: float) -> float:
        """Allowed deviation for a value: max(floor, value x ratio)."""
        return max(self.floor, value * self.ratio)

    def within_tolerance(self, expected: float, observed: float, reference: float) -> bool:
        return abs(expected - observed) <= self.tolerance(reference)

    def _find_rate(self, cleaned: str) -> Optional[re.Match]:
        """Rightmost whitelisted tax-rate match."""
        matches = [
            m for m in self.rate_pattern.finditer(cleaned)
            if self.settings.is_whitelisted_rate(m.group(0))
        ]
        return matches[-1] if matches else None

    def split(self, text: str) -> Optional[SplitResult]:
        """
        Split a fragment containing a tax rate into its numeric fields.

        Args:
            text: Fragment text such as "75.2213%" or "13%15.19".

        Returns:
            SplitResult, or None if the text contains no whitelisted
            tax rate (it is then a plain number run).
        """
        cleaned = self.CLEAN_PATTERN.sub('', text)

        match = self._find_rate(cleaned)
        if match is None:
            return None

        tax_rate = match.group(0)
        before = cleaned[:match.start()]
        after = cleaned[match.end():]

        tax_match = re.match(r'[\d.]+', after)
        tax_amount = tax_match.group(0) if tax_match else None
        tax_value = _to_float(tax_amount)
        has_tax = tax_value is not None and tax_value > 0

        if not before:
            return SplitResult(tax_rate=tax_rate, tax_amount=tax_amount)

        rate = int(tax_rate[:-1]) / 100
        candidates = self._enumerate(before, rate, tax_value if has_tax else None)

        if not candidates:
            logger.debug(f"No consistent split for '{text}', using '{before}' as amount")
            return SplitResult(
                tax_rate=tax_rate,
                amount=before,
                tax_amount=tax_amount,
                degraded=True
            )

        best = sorted(candidates, key=lambda c: c.score(has_tax))[0]
        logger.debug(f"Split '{text}' -> {best} (of {len(candidates)} candidates)")

        return SplitResult(
            tax_rate=tax_rate,
            quantity=getattr(best, 'quantity', None),
            unit_price=getattr(best, 'unit_price', None),
            amount=best.amount,
            tax_amount=tax_amount,
            candidate=best
        )

    def _enumerate(
        self,
        before: str,
        rate: float,
        tax_value: Optional[float]
    ) -> List[SplitCandidate]:
        """
        Enumerate every partition of the digits in front of the rate.

        Candidates are produced in a fixed order (amount start ascending,
        then unit-price start ascending) so that equal scores keep a
        deterministic order after the stable sort.
        """
        candidates: List[SplitCandidate] = []

        def tax_ok(amount: float) -> bool:
            return tax_value is None or self.within_tolerance(amount * rate, tax_value, tax_value)

        for amount_start in range(len(before)):
            amount_str = before[amount_start:]
            if not is_valid_number_format(amount_str):
                continue
            amount = float(amount_str)
            if amount <= 0:
                continue

            prefix = before[:amount_start]
            if not prefix:
                if tax_ok(amount):
                    candidates.append(BareAmount(amount_str))
                continue

            for price_start in range(len(prefix) + 1):
                quantity_str = prefix[:price_start]
                price_str = prefix[price_start:]

                if quantity_str and price_str:
                    if not (is_valid_number_format(quantity_str) and is_valid_number_format(price_str)):
                        continue
                    quantity, price = float(quantity_str), float(price_str)
                    if quantity <= 0 or price <= 0:
                        continue
                    if self.within_tolerance(quantity * price, amount, amount) and tax_ok(amount):
                        candidates.append(QuantityPriceAmount(quantity_str, price_str, amount_str))

                elif quantity_str:
                    if not is_valid_number_format(quantity_str):
                        continue
                    quantity = float(quantity_str)
                    if quantity <= 0 or not quantity.is_integer():
                        continue
                    if tax_ok(amount):
                        candidates.append(QuantityAmount(quantity_str, amount_str))

                elif price_str:
                    if not is_valid_number_format(price_str):
                        continue
                    price = float(price_str)
                    if price <= 0:
                        continue
                    if self.within_tolerance(price, amount, amount) and tax_ok(amount):
                        candidates.append(PriceAmount(price_str, amount_str))

        return candidates

    def partition_rate(self, text: str) -> Tuple[str, Optional[str], str]:
        """
        Separate a plain "<n>%" rate from the numbers around it.

        Used for runs that ``split`` cannot check arithmetically. The
        rate is read from the last two digits in front of the percent
        sign, else the last one; it must be whitelisted and must not
        leave a dangling decimal point in front of it.

        Args:
            text: Fragment text such as "45.0017%7.65".

        Returns:
            Tuple of (before, tax_rate, after). Without a usable rate,
            tax_rate is None and the text is cut at the percent sign.
        """
        cleaned = self.CLEAN_PATTERN.sub('', text)
        match = re.search(r'(\d+)%', cleaned)
        if match:
            digits = match.group(1)
            for size in (2, 1):
                rate_digits = digits[-size:]
                if len(rate_digits) < size or (size == 2 and rate_digits[0] == '0'):
                    continue
                before = cleaned[:match.end(1) - size]
                rate = f"{int(rate_digits)}%"
                if self.settings.is_whitelisted_rate(rate) and not before.endswith('.'):
                    return before, rate, cleaned[match.end():]

        before, _, after = cleaned.partition('%')
        return before, None, after

    def extract_all_numbers(self, text: str) -> List[str]:
        """
        Extract the numbers of a numeric run without a tax rate.

        Two numbers glued together ("9.080.82") are split back apart.
        Signs are dropped: invoice numeric fields are never negative.
        Text with separators other than proper thousands grouping is
        not a numeric run and yields nothing.

        Args:
            text: Numeric-shaped fragment text.

        Returns:
            List of number strings.
        """
        if re.search(r'[,，]', text) and not self.THOUSANDS_PATTERN.match(text.strip()):
            return []

        cleaned = self.CLEAN_SIGNED_PATTERN.sub('', text)
        if not cleaned or not re.search(r'\d', cleaned):
            return []

        match = self.TWO_DECIMALS_PATTERN.match(cleaned)
        if match:
            return [match.group(1), match.group(2)]

        if cleaned.count('.') == 2:
            second_dot = cleaned.index('.', cleaned.index('.') + 1)
            split_index = second_dot - 1
            while split_index > 0 and cleaned[split_index - 1].isdigit():
                head, tail = cleaned[:split_index], cleaned[split_index:]
                if self.DECIMAL_PATTERN.match(head) and self.DECIMAL_PATTERN.match(tail):
                    return [head, tail]
                split_index -= 1

        numbers = re.findall(r'\d+\.?\d*', cleaned)
        return [n for n in numbers if float(n) > 0]

    def split_amount_pair(self, value: Optional[str]) -> Optional[Tuple[str, str]]:
        """
        Split an amount glued to its tax amount ("9.080.82").

        The second value must be clearly smaller than the first, as a tax
        amount is a fraction of the line amount.

        Returns:
            Tuple of (amount, tax_amount), or None.
        """
        if not value:
            return None
        match = self.TWO_DECIMALS_PATTERN.match(value)
        if not match:
            return None
        first, second = float(match.group(1)), float(match.group(2))
        if first > 0 and second < first and second / first < self.pair_ratio:
            return match.group(1), match.group(2)
        return None


def _to_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value else None
    except ValueError:
        return None
