"""
Output Handler Module for Fapiao Extraction System.

This module provides functionality for:
    - Excel file generation (line items and invoice summary)
    - JSON output of full document results

Author: ML Engineering Team
"""

from .handler import OutputHandler
from .excel_exporter import ExcelExporter

__all__ = ['OutputHandler', 'ExcelExporter']
