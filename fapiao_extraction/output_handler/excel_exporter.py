"""
Excel Exporter Module.

This module provides Excel file generation for fapiao extraction
results. Uses openpyxl for modern Excel format support.

Features:
    - Formatted headers
    - Auto-column width
    - One row per line item, tagged with its source invoice
    - Invoice summary sheet with the tax-rate breakdown

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from fapiao_extraction.records import DocumentResult
from fapiao_extraction.utils.helpers import ensure_directory, generate_timestamp, parse_number
from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.exceptions import ExcelExportError

# Initialize module logger
logger = get_logger(__name__)


# Fields written as numbers instead of text
NUMERIC_FIELDS = {'quantity', 'unit_price', 'amount', 'tax_amount', 'total_amount'}


class ExcelExporter:
    """
    Exports extraction results to Excel format.

    Attributes:
        output_dir: Directory for output files
        items_sheet: Title of the line-item sheet
        invoices_sheet: Title of the invoice summary sheet

    Example:
        >>> exporter = ExcelExporter("outputs")
        >>> filepath = exporter.export(results, "fapiao.xlsx")
        >>> print(f"Saved to: {filepath}")
    """

    # Column definitions
    ITEM_COLUMNS = [
        ('File', 'source_file_name'),
        ('Invoice Number', 'source_invoice_number'),
        ('Invoice Date', 'source_invoice_date'),
        ('Invoice Type', 'source_invoice_type'),
        ('Line', 'line_number'),
        ('Goods Name', 'goods_name'),
        ('Specification', 'specification'),
        ('Unit', 'unit'),
        ('Quantity', 'quantity'),
        ('Unit Price', 'unit_price'),
        ('Amount', 'amount'),
        ('Tax Rate', 'tax_rate'),
        ('Tax Amount', 'tax_amount'),
        ('Status', 'status'),
        ('Error', 'error_message'),
    ]

    INVOICE_COLUMNS = [
        ('File', 'file_name'),
        ('Invoice Number', 'invoice_number'),
        ('Invoice Date', 'invoice_date'),
        ('Invoice Type', 'invoice_type'),
        ('Amount', 'amount'),
        ('Tax Amount', 'tax_amount'),
        ('Total Amount', 'total_amount'),
        ('Tax Rates', 'tax_rates'),
        ('Items', 'item_count'),
        ('Failed Items', 'failed_count'),
        ('Status', 'status'),
        ('Error', 'error_message'),
    ]

    def __init__(
        self,
        output_dir: Union[str, Path] = "outputs",
        items_sheet: str = "Items",
        invoices_sheet: str = "Invoices"
    ) -> None:
        """
        Initialize the Excel exporter.

        Args:
            output_dir: Default directory for exported files.
            items_sheet: Title of the line-item sheet.
            invoices_sheet: Title of the invoice summary sheet.
        """
        self.output_dir = Path(output_dir)
        self.items_sheet = items_sheet
        self.invoices_sheet = invoices_sheet

        logger.debug(f"ExcelExporter initialized (output_dir: {self.output_dir})")

    def export(
        self,
        results: Union[DocumentResult, Sequence[DocumentResult]],
        filename: Optional[str] = None,
        output_dir: Optional[str] = None
    ) -> str:
        """
        Export extraction results to an Excel file.

        Args:
            results: Single result or list of results to export.
            filename: Output filename. If None, auto-generated.
            output_dir: Output directory. If None, uses configured dir.

        Returns:
            Path to the created Excel file.

        Raises:
            ExcelExportError: If export fails.
        """
        if isinstance(results, DocumentResult):
            results = [results]
        results = list(results)

        if not results:
            raise ExcelExportError("No results", "No results to export")

        out_dir = Path(output_dir) if output_dir else self.output_dir
        ensure_directory(out_dir)

        if filename is None:
            filename = self.get_default_filename()

        filepath = out_dir / filename

        try:
            workbook = openpyxl.Workbook()

            items_sheet = workbook.active
            items_sheet.title = self.items_sheet
            self._write_sheet(
                items_sheet, self.ITEM_COLUMNS, self._item_rows(results), "4472C4"
            )

            invoices_sheet = workbook.create_sheet(title=self.invoices_sheet)
            self._write_sheet(
                invoices_sheet, self.INVOICE_COLUMNS, self._invoice_rows(results), "548235"
            )

            workbook.save(filepath)

        except (OSError, ValueError) as e:
            logger.error(f"Excel export failed: {e}")
            raise ExcelExportError(str(filepath), str(e))

        item_count = sum(len(r.items) for r in results)
        logger.info(f"Excel file saved: {filepath} ({len(results)} invoices, {item_count} items)")
        return str(filepath)

    def _item_rows(self, results: List[DocumentResult]) -> List[List[Any]]:
        rows = []
        for result in results:
            for item in result.items:
                values = item.to_dict()
                rows.append([
                    self._cell_value(field_name, values.get(field_name))
                    for _, field_name in self.ITEM_COLUMNS
                ])
        return rows

    def _invoice_rows(self, results: List[DocumentResult]) -> List[List[Any]]:
        rows = []
        for result in results:
            fields = result.fields
            values = {
                'file_name': result.file_name,
                'invoice_number': result.invoice_number,
                'invoice_date': result.invoice_date,
                'invoice_type': result.invoice_type,
                'amount': fields.amount,
                'tax_amount': fields.tax_amount,
                'total_amount': fields.total_amount,
                'tax_rates': ', '.join(
                    f"{entry.rate}: {entry.amount}" if entry.amount else entry.rate
                    for entry in fields.tax_rates
                ),
                'item_count': len(result.items),
                'failed_count': len(result.failed_items),
                'status': result.status,
                'error_message': result.error_message or fields.error_message,
            }
            rows.append([
                self._cell_value(field_name, values[field_name])
                for _, field_name in self.INVOICE_COLUMNS
            ])
        return rows

    @staticmethod
    def _cell_value(field_name: str, value: Any) -> Any:
        """Numeric fields become numbers when they parse; None becomes ''."""
        if value is None:
            return ''
        if field_name in NUMERIC_FIELDS and isinstance(value, str):
            number = parse_number(value)
            return number if number is not None else value
        return value

    @staticmethod
    def _write_sheet(
        sheet,
        columns: List[Tuple[str, str]],
        rows: List[List[Any]],
        header_color: str
    ) -> None:
        """
        Write a header row and data rows to a sheet.

        Args:
            sheet: openpyxl Worksheet.
            columns: (header name, field name) pairs.
            rows: Cell values in column order.
            header_color: Header fill as a hex RGB string.
        """
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color=header_color, end_color=header_color, fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        for col, (header_name, _) in enumerate(columns, 1):
            cell = sheet.cell(row=1, column=col, value=header_name)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = thin_border

        for row_num, values in enumerate(rows, 2):
            for col, value in enumerate(values, 1):
                cell = sheet.cell(row=row_num, column=col, value=value)
                cell.border = thin_border

        # Adjust column widths
        for col, (header_name, _) in enumerate(columns, 1):
            max_length = len(header_name)
            for values in rows:
                if values[col - 1] != '':
                    max_length = max(max_length, len(str(values[col - 1])))
            sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, 50)

        # Freeze header row
        sheet.freeze_panes = 'A2'

    @staticmethod
    def get_default_filename() -> str:
        """Generate a default filename with timestamp."""
        return f"fapiao_extractions_{generate_timestamp()}.xlsx"
