"""
Main Output Handler Module.

This module provides the unified OutputHandler class that coordinates
all output operations (Excel and JSON).

Author: ML Engineering Team
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union, TYPE_CHECKING

from fapiao_extraction.records import DocumentResult
from fapiao_extraction.utils.helpers import ensure_directory, generate_timestamp
from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.exceptions import OutputError
from .excel_exporter import ExcelExporter

if TYPE_CHECKING:
    from config import ConfigurationManager

# Initialize module logger
logger = get_logger(__name__)


class OutputHandler:
    """
    Unified output handler for extraction results.

    Coordinates output to Excel workbooks and JSON files. Either can be
    switched on or off through the ``output`` configuration section or
    the constructor overrides.

    Attributes:
        output_dir: Directory for all output files
        excel_enabled: Whether Excel export is enabled
        json_enabled: Whether JSON export is enabled
        json_indent: Indentation of JSON output

    Example:
        >>> handler = OutputHandler(config)
        >>> info = handler.save(results)
        >>> print(info['excel_path'])
    """

    def __init__(
        self,
        config: Optional['ConfigurationManager'] = None,
        output_dir: Optional[Union[str, Path]] = None,
        excel_enabled: Optional[bool] = None,
        json_enabled: Optional[bool] = None
    ) -> None:
        """
        Initialize the output handler.

        Args:
            config: Loaded configuration (defaults used when None).
            output_dir: Override for ``paths.output_dir``.
            excel_enabled: Override config for Excel output.
            json_enabled: Override config for JSON output.
        """
        def setting(key: str, default: Any) -> Any:
            return config.get(key, default) if config is not None else default

        self.output_dir = Path(output_dir or setting("paths.output_dir", "outputs"))
        self.excel_enabled = excel_enabled if excel_enabled is not None else \
            setting("output.excel.enabled", True)
        self.json_enabled = json_enabled if json_enabled is not None else \
            setting("output.json.enabled", False)
        self.json_indent = setting("output.json.indent", 2)

        self._items_sheet = setting("output.excel.items_sheet", "Items")
        self._invoices_sheet = setting("output.excel.invoices_sheet", "Invoices")

        # Exporter is created on first use
        self._excel_exporter = None

        logger.info(
            f"OutputHandler initialized "
            f"(excel={self.excel_enabled}, json={self.json_enabled})"
        )

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter(
                self.output_dir, self._items_sheet, self._invoices_sheet
            )
        return self._excel_exporter

    def save(
        self,
        results: Union[DocumentResult, Sequence[DocumentResult]],
        excel_filename: Optional[str] = None,
        json_filename: Optional[str] = None
    ) -> Dict[str, Optional[str]]:
        """
        Save results to all enabled outputs.

        A failure in one output is logged and does not prevent the other.

        Args:
            results: Single result or list of results.
            excel_filename: Custom Excel filename (optional).
            json_filename: Custom JSON filename (optional).

        Returns:
            Dictionary with output details:
            {
                'excel_path': 'path/to/file.xlsx',
                'json_path': 'path/to/file.json'
            }
        """
        if isinstance(results, DocumentResult):
            results = [results]

        output_info = {
            'excel_path': None,
            'json_path': None
        }

        if self.excel_enabled:
            try:
                output_info['excel_path'] = self.to_excel(results, excel_filename)
            except OutputError as e:
                logger.error(f"Excel export failed: {e}")

        if self.json_enabled:
            try:
                output_info['json_path'] = self.to_json(results, json_filename)
            except OutputError as e:
                logger.error(f"JSON export failed: {e}")

        return output_info

    def to_excel(
        self,
        results: Union[DocumentResult, Sequence[DocumentResult]],
        filename: Optional[str] = None
    ) -> str:
        """Export results to an Excel file and return its path."""
        return self.excel_exporter.export(results, filename)

    def to_json(
        self,
        results: Union[DocumentResult, Sequence[DocumentResult]],
        filename: Optional[str] = None
    ) -> str:
        """
        Write results as a JSON array of documents.

        Args:
            results: Results to export.
            filename: Output filename. If None, auto-generated.

        Returns:
            Path to the created JSON file.

        Raises:
            OutputError: If the file cannot be written.
        """
        if isinstance(results, DocumentResult):
            results = [results]

        ensure_directory(self.output_dir)
        filepath = self.output_dir / (filename or f"fapiao_extractions_{generate_timestamp()}.json")

        payload = [result.to_dict() for result in results]
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=self.json_indent, ensure_ascii=False)
        except OSError as e:
            raise OutputError(f"Could not write {filepath}", {'reason': str(e)})

        logger.info(f"JSON file saved: {filepath} ({len(payload)} documents)")
        return str(filepath)
