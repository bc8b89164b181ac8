"""
Batch Processor Module.

Processes many documents concurrently, a fixed number at a time. The
file read and the document decode run in worker threads and are
awaited; parsing itself is synchronous. A batch starts only after every
document of the previous batch has settled, which bounds memory use.

Author: ML Engineering Team
"""

import asyncio
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from fapiao_extraction.input_handler.handler import InputHandler
from fapiao_extraction.records import DocumentResult
from fapiao_extraction.utils.helpers import chunked
from fapiao_extraction.utils.logger import get_logger
from fapiao_extraction.utils.exceptions import InvoiceExtractionError
from .extractor import InvoiceExtractor

# Initialize module logger
logger = get_logger(__name__)


# A source is a path on disk or an in-memory (file name, bytes) pair
Source = Union[str, Path, Tuple[str, bytes]]
ProgressCallback = Callable[[float, str], None]


class BatchProcessor:
    """
    Concurrent extraction over many documents.

    Documents share no mutable state, so no locking is needed. Every
    document yields exactly one DocumentResult; a document that fails
    never aborts the batch.

    Attributes:
        extractor: InvoiceExtractor shared by all documents
        batch_size: Documents in flight at once
        input_handler: Reads and decodes the sources

    Example:
        >>> processor = BatchProcessor(InvoiceExtractor(settings))
        >>> results = processor.run(["a.pdf", "b.pdf"],
        ...                         progress=lambda pct, name: print(f"{pct:.0f}% {name}"))
    """

    def __init__(
        self,
        extractor: Optional[InvoiceExtractor] = None,
        batch_size: Optional[int] = None,
        input_handler: Optional[InputHandler] = None
    ) -> None:
        """
        Initialize the batch processor.

        Args:
            extractor: Extractor to use (default settings when None).
            batch_size: Concurrency width (settings.batch_size when None).
            input_handler: Input handler for reading paths.
        """
        self.extractor = extractor or InvoiceExtractor()
        self.batch_size = batch_size or self.extractor.settings.batch_size
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        self.input_handler = input_handler or InputHandler(
            backend=self.extractor.settings.coordinate_backend
        )

    @staticmethod
    def source_name(source: Source) -> str:
        if isinstance(source, tuple):
            return source[0]
        return Path(source).name

    async def process_one(self, source: Source) -> DocumentResult:
        """
        Read, decode and parse one document.

        Returns:
            DocumentResult; any failure becomes a failed result.
        """
        name = self.source_name(source)
        start = time.time()

        try:
            if isinstance(source, tuple):
                data = source[1]
            else:
                data = await asyncio.to_thread(self.input_handler.read_bytes, source)

            document = await asyncio.to_thread(self.extractor.decode, data, name)
            result = self.extractor.extract_decoded(document)

        except InvoiceExtractionError as e:
            logger.error(f"{name}: {e.message}")
            result = DocumentResult.failure(name, e.message)

        except Exception as e:
            logger.error(f"{name}: unexpected error: {e}")
            result = DocumentResult.failure(name, f"Unexpected error: {e}")

        result.processing_time = time.time() - start
        return result

    async def process(
        self,
        sources: Sequence[Source],
        progress: Optional[ProgressCallback] = None
    ) -> List[DocumentResult]:
        """
        Process documents in batches of ``batch_size``.

        Args:
            sources: Paths or (file name, bytes) pairs.
            progress: Called with (percent complete, file name) after each
                document completes.

        Returns:
            Results in the order of ``sources``.
        """
        total = len(sources)
        results: List[DocumentResult] = []
        done = 0

        async def run(source: Source) -> DocumentResult:
            nonlocal done
            result = await self.process_one(source)
            done += 1
            if progress is not None:
                progress(done / total * 100, result.file_name)
            return result

        for batch_index, batch in enumerate(chunked(list(sources), self.batch_size)):
            logger.debug(f"Batch {batch_index + 1}: {len(batch)} documents")
            results.extend(await asyncio.gather(*(run(source) for source in batch)))

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"Processed {total} documents ({succeeded} succeeded, {total - succeeded} failed)")
        return results

    def run(
        self,
        sources: Sequence[Source],
        progress: Optional[ProgressCallback] = None
    ) -> List[DocumentResult]:
        """Synchronous wrapper around ``process``."""
        return asyncio.run(self.process(sources, progress))
