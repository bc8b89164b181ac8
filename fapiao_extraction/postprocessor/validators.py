"""
Data Validators Module.

This module provides the arithmetic cross-checks of extracted data:
    - Line items: number formats, tax-rate whitelist,
      quantity x unit price ~ amount, amount x rate ~ tax amount
    - Documents: invoice number format, amount ranges,
      amount + tax ~ grand total

Validation never rewrites field values; it only reports warnings that
the caller attaches to the record.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import List, Optional

from config.parser_settings import NUMERIC_FIELDS, ParserSettings
from fapiao_extraction.records import InvoiceFields, LineItem
from fapiao_extraction.utils.helpers import parse_number
from fapiao_extraction.utils.logger import get_logger
from .numeric import is_valid_number_format

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class ValidationWarning:
    """
    A cross-field inconsistency found by validation.

    Attributes:
        field: Field the warning is about
        message: Human-readable description
        expected: Value implied by the other fields, if computed
        observed: Value read from the document
    """
    field: str
    message: str
    expected: Optional[str] = None
    observed: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class ValidationResult:
    """
    Contains the result of validation checks.

    Attributes:
        is_valid: Overall validation result
        warnings: Collected warnings
    """

    def __init__(self) -> None:
        self.is_valid = True
        self.warnings: List[ValidationWarning] = []

    def add(self, warning: ValidationWarning) -> None:
        """Add a warning and mark the result invalid."""
        self.warnings.append(warning)
        self.is_valid = False

    @property
    def messages(self) -> List[str]:
        return [w.message for w in self.warnings]

    def summary(self) -> str:
        """Warnings joined into a single error message."""
        return '; '.join(self.messages)

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.is_valid}, warnings={len(self.warnings)})"


class FieldValidator:
    """
    Cross-checks line items and document fields.

    Tolerances: line arithmetic allows max(floor, value x ratio); the
    document total allows a fixed number of cents, computed in integer
    cents.

    Example:
        >>> validator = FieldValidator(settings)
        >>> result = validator.validate_item(item)
        >>> print(result.is_valid, result.summary())
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize the validator with parser settings."""
        self.settings = settings or ParserSettings()
        self.tolerances = self.settings.tolerances
        logger.debug("FieldValidator initialized")

    def _tolerance(self, value: float) -> float:
        return max(self.tolerances.arithmetic_floor, abs(value) * self.tolerances.arithmetic_ratio)

    def rate_fraction(self, rate: Optional[str]) -> Optional[float]:
        """Convert a whitelisted "<n>%" to a fraction; None otherwise."""
        if not self.settings.is_whitelisted_rate(rate):
            return None
        return int(rate[:-1]) / 100

    # =========================================================================
    # LINE ITEMS
    # =========================================================================

    def validate_item(self, item: LineItem) -> ValidationResult:
        """
        Validate one line item.

        Args:
            item: Line item with extracted values.

        Returns:
            ValidationResult with one warning per failed check.
        """
        result = ValidationResult()

        for name in NUMERIC_FIELDS:
            value = getattr(item, name)
            if value is not None and not is_valid_number_format(value):
                result.add(ValidationWarning(
                    field=name,
                    message=f"{name} '{value}' is not a valid number",
                    observed=value
                ))

        if item.tax_rate is not None and not self.settings.is_valid_rate_label(item.tax_rate):
            result.add(ValidationWarning(
                field='tax_rate',
                message=f"tax rate {item.tax_rate} is not an allowed rate",
                observed=item.tax_rate
            ))

        quantity = parse_number(item.quantity)
        unit_price = parse_number(item.unit_price)
        amount = parse_number(item.amount)
        tax_amount = parse_number(item.tax_amount)

        if quantity is not None and unit_price is not None and amount is not None:
            expected = quantity * unit_price
            if abs(expected - amount) > self._tolerance(amount):
                result.add(ValidationWarning(
                    field='amount',
                    message=(
                        f"quantity x unit price = {expected:.2f} "
                        f"does not match amount {item.amount}"
                    ),
                    expected=f"{expected:.2f}",
                    observed=item.amount
                ))

        rate = self.rate_fraction(item.tax_rate)
        if rate is not None and amount is not None and tax_amount is not None:
            expected = amount * rate
            if abs(expected - tax_amount) > self._tolerance(tax_amount):
                result.add(ValidationWarning(
                    field='tax_amount',
                    message=(
                        f"amount x {item.tax_rate} = {expected:.2f} "
                        f"does not match tax amount {item.tax_amount}"
                    ),
                    expected=f"{expected:.2f}",
                    observed=item.tax_amount
                ))

        return result

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def validate_document(self, fields: InvoiceFields) -> ValidationResult:
        """
        Validate document-level fields.

        Args:
            fields: Document fields.

        Returns:
            ValidationResult; the total check is skipped when amount, tax
            or total is missing.
        """
        result = ValidationResult()
        length = self.settings.invoice_number_length

        number = fields.invoice_number
        if number and not (number.isdigit() and len(number) == length):
            result.add(ValidationWarning(
                field='invoice_number',
                message=f"invoice number must be {length} digits",
                observed=number
            ))

        amount = parse_number(fields.amount)
        tax_amount = parse_number(fields.tax_amount)
        total = parse_number(fields.total_amount)

        if fields.amount and (amount is None or amount <= 0):
            result.add(ValidationWarning('amount', "amount must be positive", observed=fields.amount))

        if fields.tax_amount and (tax_amount is None or tax_amount < 0):
            result.add(ValidationWarning('tax_amount', "tax amount must not be negative",
                                         observed=fields.tax_amount))

        if fields.total_amount:
            if total is None or total <= 0:
                result.add(ValidationWarning('total_amount', "total amount must be positive",
                                             observed=fields.total_amount))
            elif tax_amount is not None and tax_amount > total:
                result.add(ValidationWarning('tax_amount', "tax amount exceeds total amount",
                                             expected=fields.total_amount,
                                             observed=fields.tax_amount))

        for entry in fields.tax_rates:
            if not self.settings.is_valid_rate_label(entry.rate):
                result.add(ValidationWarning('tax_rates', f"tax rate {entry.rate} is not an allowed rate",
                                             observed=entry.rate))

        if amount is not None and tax_amount is not None and total is not None:
            sum_cents = round(amount * 100) + round(tax_amount * 100)
            total_cents = round(total * 100)
            difference = abs(sum_cents - total_cents)
            if difference > self.tolerances.document_total_cents:
                result.add(ValidationWarning(
                    field='total_amount',
                    message=f"amount + tax differs from total by {difference / 100:.2f}",
                    expected=f"{sum_cents / 100:.2f}",
                    observed=fields.total_amount
                ))

        return result
