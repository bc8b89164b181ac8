"""
Result Records Module.

This module defines the records produced by the extraction pipeline:
    - LineItem: one row of the line-item table
    - InvoiceFields: document-level fields and tax-rate summary
    - DocumentResult: everything extracted from one document

Field values are kept as the strings read from the document so that no
precision is lost before export.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional
import json


STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


class FieldSource(IntEnum):
    """
    Where a line-item value came from, ranked by trust.

    A value is only overwritten by a source of strictly higher rank.
    """
    POSITIONAL = 1
    COLUMN = 2
    PAIR_REPAIR = 3
    DEGRADED_SPLIT = 4
    ARITHMETIC_SPLIT = 5


@dataclass
class LineItem:
    """
    One line-item row of an invoice table.

    Attributes:
        line_number: 1-based position of the row in the document
        goods_name: Item name, including its *category* tag
        specification: Specification / model
        unit: Unit of measure
        quantity: Quantity
        unit_price: Unit price
        amount: Line amount before tax
        tax_rate: "<n>%" or the exempt label
        tax_amount: Tax amount
        status: "success" or "failed"
        error_message: Joined failure or validation messages
        page_index: Zero-based page the row was found on
        warnings: Validation messages attached to the row

    Example:
        >>> item = LineItem(line_number=1, goods_name="*纸制品*打印纸")
        >>> item.set_field("amount", "45.75", FieldSource.COLUMN)
        True
    """
    line_number: int
    goods_name: Optional[str] = None
    specification: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[str] = None
    unit_price: Optional[str] = None
    amount: Optional[str] = None
    tax_rate: Optional[str] = None
    tax_amount: Optional[str] = None
    status: str = STATUS_SUCCESS
    error_message: Optional[str] = None
    page_index: int = 0
    source_invoice_number: Optional[str] = None
    source_invoice_date: Optional[str] = None
    source_invoice_type: Optional[str] = None
    source_file_name: Optional[str] = None
    parse_time: str = field(default_factory=lambda: datetime.now().isoformat())
    warnings: List[str] = field(default_factory=list)
    _sources: Dict[str, FieldSource] = field(default_factory=dict, repr=False)

    def set_field(
        self,
        name: str,
        value: Optional[str],
        source: FieldSource,
        force: bool = False
    ) -> bool:
        """
        Set a field value if ``source`` outranks the one that set it last.

        Args:
            name: Field name (e.g. "amount").
            value: New value; empty values are ignored.
            source: Provenance of the value.
            force: Write regardless of rank (refinement of the same value).

        Returns:
            True if the value was written.
        """
        if not value:
            return False
        current = self._sources.get(name)
        if not force and current is not None and source <= current:
            return False
        setattr(self, name, value)
        self._sources[name] = source
        return True

    def source_of(self, name: str) -> Optional[FieldSource]:
        """Return the source that set a field, if any."""
        return self._sources.get(name)

    def mark_failed(self, message: str) -> None:
        """Mark the item failed, keeping every extracted value."""
        self.status = STATUS_FAILED
        self.error_message = message

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED

    @classmethod
    def failure(cls, line_number: int, message: str, **meta: Any) -> 'LineItem':
        """Create a failed item carrying no field values."""
        return cls(
            line_number=line_number,
            status=STATUS_FAILED,
            error_message=message,
            **meta
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'line_number': self.line_number,
            'goods_name': self.goods_name,
            'specification': self.specification,
            'unit': self.unit,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'amount': self.amount,
            'tax_rate': self.tax_rate,
            'tax_amount': self.tax_amount,
            'status': self.status,
            'error_message': self.error_message,
            'page_index': self.page_index,
            'source_invoice_number': self.source_invoice_number,
            'source_invoice_date': self.source_invoice_date,
            'source_invoice_type': self.source_invoice_type,
            'source_file_name': self.source_file_name,
            'parse_time': self.parse_time,
            'warnings': list(self.warnings),
        }

    def __repr__(self) -> str:
        return (
            f"LineItem(#{self.line_number}, name='{self.goods_name}', "
            f"amount={self.amount}, rate={self.tax_rate}, status={self.status})"
        )


@dataclass
class TaxRateEntry:
    """
    One distinct tax rate found on an invoice.

    Attributes:
        rate: "<n>%" or the exempt label
        amount: Sum of the line amounts carrying this rate
        index: 1-based order of first appearance
    """
    rate: str
    amount: Optional[str] = None
    index: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {'rate': self.rate, 'amount': self.amount, 'index': self.index}


@dataclass
class InvoiceFields:
    """
    Document-level invoice fields.

    Attributes:
        invoice_number: Fixed-length digit string
        invoice_type: Invoice type label
        invoice_date: ISO date (YYYY-MM-DD)
        amount: Subtotal before tax
        tax_amount: Total tax
        total_amount: Grand total including tax
        tax_rates: Distinct tax rates in order of appearance
        status: "success" or "failed" after validation
        error_message: Joined validation messages
        strategy: Name of the strategy that produced the fields
        degraded: True if produced by the full-text fallback
    """
    invoice_number: Optional[str] = None
    invoice_type: Optional[str] = None
    invoice_date: Optional[str] = None
    amount: Optional[str] = None
    tax_amount: Optional[str] = None
    total_amount: Optional[str] = None
    tax_rates: List[TaxRateEntry] = field(default_factory=list)
    status: str = STATUS_SUCCESS
    error_message: Optional[str] = None
    strategy: Optional[str] = None
    degraded: bool = False

    SCALAR_FIELDS = (
        'invoice_number',
        'invoice_type',
        'invoice_date',
        'amount',
        'tax_amount',
        'total_amount',
    )

    def is_empty(self) -> bool:
        """Check if no field was extracted."""
        return not self.tax_rates and all(
            getattr(self, name) is None for name in self.SCALAR_FIELDS
        )

    def missing_fields(self) -> List[str]:
        """Names of the fields still unset."""
        missing = [name for name in self.SCALAR_FIELDS if getattr(self, name) is None]
        if not self.tax_rates:
            missing.append('tax_rates')
        return missing

    def fill_missing(self, other: 'InvoiceFields') -> List[str]:
        """
        Copy fields that are unset here but set on ``other``.

        Args:
            other: Fields from a lower-precision strategy.

        Returns:
            Names of the fields that were filled.
        """
        filled = []
        for name in self.SCALAR_FIELDS:
            if getattr(self, name) is None and getattr(other, name) is not None:
                setattr(self, name, getattr(other, name))
                filled.append(name)
        if not self.tax_rates and other.tax_rates:
            self.tax_rates = list(other.tax_rates)
            filled.append('tax_rates')
        return filled

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'invoice_number': self.invoice_number,
            'invoice_type': self.invoice_type,
            'invoice_date': self.invoice_date,
            'amount': self.amount,
            'tax_amount': self.tax_amount,
            'total_amount': self.total_amount,
            'tax_rates': [entry.to_dict() for entry in self.tax_rates],
            'status': self.status,
            'error_message': self.error_message,
            'strategy': self.strategy,
            'degraded': self.degraded,
        }


@dataclass
class DocumentResult:
    """
    Everything extracted from one document.

    Attributes:
        file_name: Display name of the document
        invoice_number: Copied from the document fields
        invoice_date: Copied from the document fields
        invoice_type: Copied from the document fields
        items: Line items in document order
        status: "success" or "failed"
        error_message: Reason for a document-level failure
        fields: Document-level fields and tax-rate summary
        page_count: Number of decoded pages
        processing_time: Wall-clock seconds spent on the document

    Example:
        >>> result = extractor.extract(data, "invoice.pdf")
        >>> print(result.to_json())
    """
    file_name: str
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    invoice_type: Optional[str] = None
    items: List[LineItem] = field(default_factory=list)
    status: str = STATUS_SUCCESS
    error_message: Optional[str] = None
    fields: InvoiceFields = field(default_factory=InvoiceFields)
    page_count: int = 0
    processing_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def failed_items(self) -> List[LineItem]:
        return [item for item in self.items if item.failed]

    @classmethod
    def failure(
        cls,
        file_name: str,
        message: str,
        fields: Optional[InvoiceFields] = None
    ) -> 'DocumentResult':
        """Create a failed result, keeping any document fields found."""
        fields = fields or InvoiceFields()
        return cls(
            file_name=file_name,
            invoice_number=fields.invoice_number,
            invoice_date=fields.invoice_date,
            invoice_type=fields.invoice_type,
            status=STATUS_FAILED,
            error_message=message,
            fields=fields
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for serialization."""
        return {
            'file_name': self.file_name,
            'invoice_number': self.invoice_number,
            'invoice_date': self.invoice_date,
            'invoice_type': self.invoice_type,
            'status': self.status,
            'error_message': self.error_message,
            'page_count': self.page_count,
            'processing_time': round(self.processing_time, 3),
            'fields': self.fields.to_dict(),
            'items': [item.to_dict() for item in self.items],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __repr__(self) -> str:
        return (
            f"DocumentResult(file='{self.file_name}', status={self.status}, "
            f"items={len(self.items)})"
        )
