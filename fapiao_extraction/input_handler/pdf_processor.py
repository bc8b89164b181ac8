"""
PDF Processor Module.

This module turns PDF bytes into positioned text:
    - Span-level fragments with coordinates (PyMuPDF)
    - Word-level fragments with coordinates (pdfplumber, alternative backend)
    - Flattened full-page text for regex fallbacks
    - PDF metadata extraction

Coordinates are converted to a bottom-left origin so that the page
reconstructor can order lines by descending y.

Author: ML Engineering Team
"""

import io
from dataclasses import dataclass, field
from typing import Any, Dict, List

import fitz  # PyMuPDF
import pdfplumber

from fapiao_extraction.layout.models import RawPage, TextFragment
from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.exceptions import DecodeError

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class DecodedDocument:
    """
    Positioned text of a whole document.

    Attributes:
        file_name: Display name of the source document
        pages: Raw pages in document order
        full_text: Flattened text of every page, newline separated
        backend: Backend that produced the coordinates
        metadata: PDF metadata (title, creator, ...)
    """
    file_name: str
    pages: List[RawPage] = field(default_factory=list)
    full_text: str = ""
    backend: str = "pymupdf"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        """Number of decoded pages."""
        return len(self.pages)

    @property
    def has_coordinates(self) -> bool:
        """Check if any page carries positioned fragments."""
        return any(page.fragments for page in self.pages)

    def __repr__(self) -> str:
        return (
            f"DecodedDocument(file='{self.file_name}', pages={self.page_count}, "
            f"backend='{self.backend}')"
        )


class PDFProcessor:
    """
    Decoder for machine-generated PDF invoices.

    Extracts positioned fragments from the PDF text layer. PyMuPDF is the
    default backend (one fragment per text span); pdfplumber can be
    selected to get one fragment per word instead. The flattened text is
    always produced with PyMuPDF.

    Attributes:
        backend: "pymupdf" or "pdfplumber"

    Example:
        >>> processor = PDFProcessor()
        >>> document = processor.decode(pdf_bytes, "invoice.pdf")
        >>> print(f"Decoded {document.page_count} pages")
    """

    def __init__(self, backend: str = "pymupdf") -> None:
        """
        Initialize the PDF processor.

        Args:
            backend: Coordinate backend, "pymupdf" or "pdfplumber".
        """
        if backend not in ("pymupdf", "pdfplumber"):
            raise ValueError(f"Unknown PDF backend: {backend}")
        self.backend = backend
        logger.debug(f"PDFProcessor initialized (backend={self.backend})")

    def decode(self, data: bytes, file_name: str = "document.pdf") -> DecodedDocument:
        """
        Decode PDF bytes into positioned text.

        Args:
            data: Raw PDF bytes.
            file_name: Display name used in logs and errors.

        Returns:
            DecodedDocument with one RawPage per PDF page.

        Raises:
            DecodeError: If the bytes are not a readable PDF.
        """
        if not data:
            raise DecodeError(file_name, "empty input")

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"PyMuPDF could not open {file_name}: {e}")
            raise DecodeError(file_name, str(e)) from e

        try:
            if doc.needs_pass:
                raise DecodeError(file_name, "document is encrypted")
            if doc.page_count == 0:
                raise DecodeError(file_name, "document has no pages")

            metadata = self._extract_metadata(doc)
            full_text = '\n'.join(page.get_text("text") for page in doc)

            if self.backend == "pymupdf":
                pages = [self._spans_from_page(page, index) for index, page in enumerate(doc)]
        finally:
            doc.close()

        if self.backend == "pdfplumber":
            pages = self._words_with_pdfplumber(data, file_name)

        document = DecodedDocument(
            file_name=file_name,
            pages=pages,
            full_text=full_text,
            backend=self.backend,
            metadata=metadata
        )
        logger.debug(f"Decoded {document}")
        return document

    def _spans_from_page(self, page: "fitz.Page", page_index: int) -> RawPage:
        """
        Collect span fragments of one page using PyMuPDF.

        Args:
            page: PyMuPDF page.
            page_index: Zero-based page number.

        Returns:
            RawPage with bottom-origin coordinates.
        """
        height = page.rect.height
        fragments = []

        text_dict = page.get_text("dict")

        # Parse blocks -> lines -> spans
        for block in text_dict.get("blocks", []):
            if block.get("type") != 0:  # 0 = text block
                continue

            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue

                    x0, _, x1, _ = span["bbox"]
                    origin_x, origin_y = span.get("origin", (x0, span["bbox"][3]))
                    fragments.append(TextFragment(
                        text=text,
                        x=origin_x,
                        y=height - origin_y,
                        width=x1 - x0,
                        height=span.get("size", 0.0),
                        page_index=page_index
                    ))

        return RawPage(
            page_index=page_index,
            width=page.rect.width,
            height=height,
            fragments=fragments
        )

    def _words_with_pdfplumber(self, data: bytes, file_name: str) -> List[RawPage]:
        """
        Collect word fragments of every page using pdfplumber.

        Args:
            data: Raw PDF bytes.
            file_name: Display name used in errors.

        Returns:
            List of RawPage with bottom-origin coordinates.

        Raises:
            DecodeError: If pdfplumber cannot read the document.
        """
        pages = []
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for index, page in enumerate(pdf.pages):
                    fragments = [
                        TextFragment(
                            text=word["text"],
                            x=word["x0"],
                            y=page.height - word["bottom"],
                            width=word["x1"] - word["x0"],
                            height=word["bottom"] - word["top"],
                            page_index=index
                        )
                        for word in page.extract_words(use_text_flow=True)
                        if word["text"].strip()
                    ]
                    pages.append(RawPage(
                        page_index=index,
                        width=page.width,
                        height=page.height,
                        fragments=fragments
                    ))
        except Exception as e:
            logger.error(f"pdfplumber could not read {file_name}: {e}")
            raise DecodeError(file_name, str(e)) from e

        return pages

    def _extract_metadata(self, doc: "fitz.Document") -> Dict[str, Any]:
        """
        Extract metadata from an open PDF.

        Args:
            doc: Open PyMuPDF document.

        Returns:
            Dictionary of metadata.
        """
        metadata = {'total_pages': doc.page_count}
        pdf_metadata = doc.metadata or {}

        metadata['pdf_title'] = pdf_metadata.get('title', '')
        metadata['pdf_creator'] = pdf_metadata.get('creator', '')
        metadata['pdf_producer'] = pdf_metadata.get('producer', '')
        metadata['pdf_creation_date'] = pdf_metadata.get('creationDate', '')

        return metadata
