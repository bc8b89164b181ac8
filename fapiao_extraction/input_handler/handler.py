"""
Main Input Handler Module.

This module provides the InputHandler class that serves as the main
interface for reading invoice files and decoding them into positioned
text.

Usage:
    from fapiao_extraction.input_handler import InputHandler

    handler = InputHandler()
    document = handler.load("invoice.pdf")

    # Collect a directory
    paths = handler.collect("./invoices/")

Classes:
    InputHandler: Main class for file input handling
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.helpers import get_file_extension, validate_file_exists
from fapiao_extraction.utils.exceptions import (
    UnsupportedFileTypeError,
    FileNotFoundError
)

from .pdf_processor import DecodedDocument, PDFProcessor


# Initialize module logger
logger = get_logger(__name__)


class InputHandler:
    """
    Main input handler for invoice files.

    Reads raw bytes from disk and delegates decoding to the PDFProcessor.
    Reading and decoding are separate steps so that a batch runner can
    await each of them off the event loop.

    Attributes:
        supported_extensions: Set of supported file extensions
        pdf_processor: PDFProcessor instance

    Example:
        >>> handler = InputHandler()
        >>> data = handler.read_bytes("invoice.pdf")
        >>> document = handler.decode(data, "invoice.pdf")
        >>> print(f"Loaded {document.page_count} pages")
    """

    PDF_EXTENSIONS = {'.pdf'}

    def __init__(
        self,
        backend: str = "pymupdf",
        supported_extensions: Optional[Iterable[str]] = None
    ) -> None:
        """
        Initialize the InputHandler.

        Args:
            backend: Coordinate backend handed to the PDFProcessor.
            supported_extensions: Accepted file extensions (default: .pdf).
        """
        self.supported_extensions = {
            ext.lower() for ext in (supported_extensions or self.PDF_EXTENSIONS)
        }
        self.pdf_processor = PDFProcessor(backend=backend)

        logger.debug(f"InputHandler initialized (extensions: {sorted(self.supported_extensions)})")

    def read_bytes(self, filepath: Union[str, Path]) -> bytes:
        """
        Read a document from disk after validating its path and type.

        Args:
            filepath: Path to the document.

        Returns:
            Raw file bytes.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            UnsupportedFileTypeError: If the extension is not supported.
        """
        filepath = Path(filepath)

        if not validate_file_exists(filepath):
            raise FileNotFoundError(str(filepath))

        extension = get_file_extension(filepath)
        if extension not in self.supported_extensions:
            raise UnsupportedFileTypeError(extension, sorted(self.supported_extensions))

        return filepath.read_bytes()

    def decode(self, data: bytes, file_name: str) -> DecodedDocument:
        """
        Decode raw bytes into positioned text.

        Raises:
            DecodeError: If the bytes are not a readable document.
        """
        return self.pdf_processor.decode(data, file_name)

    def load(self, filepath: Union[str, Path]) -> DecodedDocument:
        """
        Read and decode a document in one call.

        Args:
            filepath: Path to the document.

        Returns:
            DecodedDocument for the file.
        """
        filepath = Path(filepath)
        logger.info(f"Loading file: {filepath.name}")
        return self.decode(self.read_bytes(filepath), filepath.name)

    def collect(self, input_path: Union[str, Path]) -> List[Path]:
        """
        List supported documents at a path.

        Args:
            input_path: A single file or a directory (not recursive).

        Returns:
            Sorted list of document paths.

        Raises:
            FileNotFoundError: If the path doesn't exist.
            UnsupportedFileTypeError: If a single file has the wrong type.
        """
        input_path = Path(input_path)

        if not input_path.exists():
            raise FileNotFoundError(str(input_path))

        if input_path.is_file():
            extension = get_file_extension(input_path)
            if extension not in self.supported_extensions:
                raise UnsupportedFileTypeError(extension, sorted(self.supported_extensions))
            return [input_path]

        files = sorted(
            path for path in input_path.iterdir()
            if path.is_file() and get_file_extension(path) in self.supported_extensions
        )

        if not files:
            logger.warning(f"No supported files found in: {input_path}")
        else:
            logger.info(f"Found {len(files)} files to process")

        return files
