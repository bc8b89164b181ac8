"""
Fapiao Extraction System - Source Package.

This package reconstructs the line-item table of machine-generated
Chinese VAT invoices (fapiao) from the positioned text of their PDF
text layer. Each module has a single responsibility.

Modules:
    - input_handler: PDF decoding into positioned fragments
    - layout: Reading-order reconstruction (lines and pages)
    - table: Anchors, column mapping and row segmentation
    - postprocessor: Numeric disambiguation, item assembly, validation
    - pipeline: Per-document extraction and async batch processing
    - output_handler: Excel and JSON output

Architecture:
    Input → Layout → Table → Post-Processing → Output
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'input_handler',
    'layout',
    'table',
    'postprocessor',
    'pipeline',
    'output_handler',
    'records',
    'utils'
]
