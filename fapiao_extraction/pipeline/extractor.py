"""
Invoice Extractor Module.

This module provides the InvoiceExtractor class that runs the whole
per-document pipeline:

    bytes → decode → page reconstruction → document fields
          → table regions → item rows → line items → validation

Parsing of one document is synchronous; stages run in strict order as
each needs the previous one's output.

Author: ML Engineering Team
"""

import time
from typing import Dict, List, Optional, Sequence

from config.parser_settings import ParserSettings
from fapiao_extraction.input_handler.pdf_processor import DecodedDocument, PDFProcessor
from fapiao_extraction.layout.models import PageModel
from fapiao_extraction.layout.reconstructor import PageReconstructor
from fapiao_extraction.postprocessor.processor import PostProcessor
from fapiao_extraction.records import DocumentResult, InvoiceFields, LineItem, STATUS_FAILED
from fapiao_extraction.table.anchors import AnchorLocator
from fapiao_extraction.table.columns import ColumnMapper
from fapiao_extraction.table.fallback import TextAnchorLocator
from fapiao_extraction.table.models import TableRegion
from fapiao_extraction.table.rows import RowSegmenter
from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.exceptions import (
    DecodeError,
    RowParseError,
    TableNotFoundError
)
from .strategies import StrategyOutcome, first_success

# Initialize module logger
logger = get_logger(__name__)


class InvoiceExtractor:
    """
    Per-document extraction pipeline.

    A pure function of document bytes plus settings: instances hold no
    per-document state and can be shared by concurrent batches.

    Attributes:
        settings: Parser settings threaded to every component

    Example:
        >>> extractor = InvoiceExtractor(settings)
        >>> result = extractor.extract(pdf_bytes, "invoice.pdf")
        >>> for item in result.items:
        ...     print(item.goods_name, item.amount, item.tax_rate)
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """
        Initialize the extractor and its components.

        Args:
            settings: Parser settings (defaults when None).
        """
        self.settings = settings or ParserSettings()

        self.pdf_processor = PDFProcessor(backend=self.settings.coordinate_backend)
        self.reconstructor = PageReconstructor(self.settings)
        self.anchor_locator = AnchorLocator(self.settings)
        self.text_locator = TextAnchorLocator(self.settings)
        self.column_mapper = ColumnMapper(self.settings)
        self.row_segmenter = RowSegmenter(self.settings)
        self.post_processor = PostProcessor(self.settings)

        logger.debug(f"InvoiceExtractor initialized (backend={self.settings.coordinate_backend})")

    def decode(self, data: bytes, file_name: str) -> DecodedDocument:
        """
        Decode document bytes.

        Raises:
            DecodeError: If the bytes are not a readable document.
        """
        return self.pdf_processor.decode(data, file_name)

    def extract(self, data: bytes, file_name: str) -> DocumentResult:
        """
        Extract a document from its bytes.

        Args:
            data: Raw document bytes.
            file_name: Display name.

        Returns:
            DocumentResult; an undecodable document yields a failed result.
        """
        start = time.time()
        try:
            document = self.decode(data, file_name)
        except DecodeError as e:
            logger.error(f"{file_name}: {e}")
            result = DocumentResult.failure(file_name, e.message)
            result.processing_time = time.time() - start
            return result

        result = self.extract_decoded(document)
        result.processing_time = time.time() - start
        return result

    def extract_decoded(self, document: DecodedDocument) -> DocumentResult:
        """Extract a document that has already been decoded."""
        if not document.has_coordinates:
            logger.warning(f"{document.file_name}: no positioned text, only the text fallback applies")
        pages = self.reconstructor.reconstruct_document(document.pages)
        return self.extract_pages(pages, document.file_name, document.full_text)

    def extract_pages(
        self,
        pages: Sequence[PageModel],
        file_name: str,
        full_text: Optional[str] = None
    ) -> DocumentResult:
        """
        Extract document fields and line items from page models.

        Args:
            pages: Reconstructed pages in document order.
            file_name: Display name.
            full_text: Flattened document text for the regex fallback
                (built from the pages when None).

        Returns:
            DocumentResult. A document without a table keeps its
            document-level fields but is marked failed.
        """
        if full_text is None:
            full_text = '\n'.join(page.text for page in pages)

        fields = self.extract_fields(pages, full_text)
        meta = {
            'source_invoice_number': fields.invoice_number,
            'source_invoice_date': fields.invoice_date,
            'source_invoice_type': fields.invoice_type,
            'source_file_name': file_name,
        }

        try:
            regions = self.anchor_locator.detect_table_regions(
                pages, self.column_mapper, file_name
            )
        except TableNotFoundError as e:
            logger.warning(f"{file_name}: {e.message}")
            self.post_processor.finalize_fields(fields, [])
            result = DocumentResult.failure(file_name, e.message, fields)
            result.page_count = len(pages)
            return result

        items = self.extract_items(pages, regions, meta)
        self.post_processor.finalize_fields(fields, items)

        result = DocumentResult(
            file_name=file_name,
            invoice_number=fields.invoice_number,
            invoice_date=fields.invoice_date,
            invoice_type=fields.invoice_type,
            items=items,
            fields=fields,
            page_count=len(pages)
        )

        if not items:
            result.status = STATUS_FAILED
            result.error_message = "No line items found in table"
            logger.warning(f"{file_name}: no line items found")
        else:
            logger.info(
                f"{file_name}: {len(items)} items "
                f"({len(result.failed_items)} failed), invoice #{fields.invoice_number or 'N/A'}"
            )

        return result

    # =========================================================================
    # DOCUMENT FIELDS
    # =========================================================================

    def extract_fields(self, pages: Sequence[PageModel], full_text: str) -> InvoiceFields:
        """
        Extract document-level fields with the coordinate strategy first.

        Fields the winning strategy leaves empty are filled from the
        full-text strategy.
        """
        outcome = first_success(
            [self._coordinate_fields, self._text_fields], pages, full_text
        )
        if not outcome.succeeded:
            logger.warning(f"Document fields not found: {outcome.error}")
            return InvoiceFields()

        fields: InvoiceFields = outcome.value
        if outcome.strategy == 'coordinate' and fields.missing_fields():
            fallback = self.text_locator.extract_invoice_fields(full_text)
            filled = fields.fill_missing(fallback)
            if filled:
                logger.debug(f"Filled from full text: {filled}")
        return fields

    def _coordinate_fields(self, pages: Sequence[PageModel], full_text: str) -> StrategyOutcome:
        if not any(page.lines for page in pages):
            return StrategyOutcome.err("pages carry no positioned text", 'coordinate')
        fields = self.anchor_locator.extract_invoice_fields(pages)
        if fields.is_empty():
            return StrategyOutcome.err("no anchor found", 'coordinate')
        return StrategyOutcome.ok(fields, 'coordinate')

    def _text_fields(self, pages: Sequence[PageModel], full_text: str) -> StrategyOutcome:
        fields = self.text_locator.extract_invoice_fields(full_text)
        if fields.is_empty():
            return StrategyOutcome.err("no field matched the full text", 'full_text')
        logger.info("Document fields extracted from full text (degraded)")
        return StrategyOutcome.degraded(fields, 'full_text')

    # =========================================================================
    # LINE ITEMS
    # =========================================================================

    def extract_items(
        self,
        pages: Sequence[PageModel],
        regions: Sequence[Optional[TableRegion]],
        meta: Dict[str, Optional[str]]
    ) -> List[LineItem]:
        """
        Build line items for every page carrying a table region.

        A row that fails is recorded as a failed item; the remaining rows
        are unaffected.
        """
        items: List[LineItem] = []
        line_number = 1

        for page, region in zip(pages, regions):
            if region is None:
                continue

            for raw_row in self.row_segmenter.segment(page, region):
                try:
                    row = self.row_segmenter.classify(raw_row, region, page.width)
                    item = self.post_processor.build_item(row, region, line_number, meta)
                except Exception as e:
                    error = RowParseError(line_number, str(e))
                    logger.warning(f"{error.message}: {e}")
                    items.append(LineItem.failure(
                        line_number, str(error), page_index=page.page_index, **meta
                    ))
                    line_number += 1
                    continue

                if not self.post_processor.is_item_row(item):
                    logger.debug(f"Dropped non-item row: {item.goods_name}")
                    continue

                items.append(self.post_processor.validate_item(item))
                line_number += 1

        return items
