"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the fapiao
extraction system. Using specific exceptions allows for better error
handling and more informative error messages.

Exception Hierarchy:
    InvoiceExtractionError (base)
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   ├── FileNotFoundError
    │   └── DecodeError
    ├── ExtractionError
    │   ├── TableNotFoundError
    │   └── RowParseError
    └── OutputError
        └── ExcelExportError

Cross-field arithmetic mismatches are not exceptions: they are collected
as ValidationWarning values (see postprocessor.validators) and attached
to the affected record.
"""


class InvoiceExtractionError(Exception):
    """
    Base exception for all fapiao extraction errors.

    All custom exceptions in this system inherit from this class,
    allowing for easy catching of all system-specific errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(InvoiceExtractionError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an unsupported file type is provided.

    Example:
        >>> raise UnsupportedFileTypeError(".doc", [".pdf"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class FileNotFoundError(InputError):
    """Raised when input file cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


class DecodeError(InputError):
    """
    Raised when document bytes are not a well-formed document.

    Fatal for the document: no page model can be built from it.
    """

    def __init__(self, file_name: str, reason: str = None):
        message = f"Could not decode document: {file_name}"
        details = {"file_name": file_name, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(InvoiceExtractionError):
    """Base exception for table and row extraction errors."""
    pass


class TableNotFoundError(ExtractionError):
    """
    Raised when no page carries a line-item table header.

    Fatal for item extraction only; document-level fields may still
    have been extracted.
    """

    def __init__(self, file_name: str = None, page_count: int = 0):
        message = "No line-item table header found"
        details = {"file_name": file_name, "page_count": page_count}
        super().__init__(message, details)


class RowParseError(ExtractionError):
    """
    Raised when one item row cannot be classified or assembled.

    Recovered by the extractor: the row becomes a failed LineItem and
    sibling rows are unaffected.
    """

    def __init__(self, line_number: int, reason: str = None):
        message = f"Failed to parse item row {line_number}"
        details = {"line_number": line_number, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(InvoiceExtractionError):
    """Base exception for output handling errors."""
    pass


class ExcelExportError(OutputError):
    """Raised when Excel export fails."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export Excel file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# Export all exceptions
__all__ = [
    'InvoiceExtractionError',
    'InputError',
    'UnsupportedFileTypeError',
    'FileNotFoundError',
    'DecodeError',
    'ExtractionError',
    'TableNotFoundError',
    'RowParseError',
    'OutputError',
    'ExcelExportError',
]
