"""
Input Handler Module.

Reads invoice files and decodes their text layer into positioned
fragments.
"""

from .pdf_processor import DecodedDocument, PDFProcessor
from .handler import InputHandler

__all__ = ['DecodedDocument', 'PDFProcessor', 'InputHandler']
