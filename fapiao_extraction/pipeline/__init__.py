"""
Pipeline Module.

Per-document extraction and batch processing:
    - InvoiceExtractor: bytes to DocumentResult
    - BatchProcessor: concurrent batches with progress reporting
    - first_success: ordered strategies with tagged outcomes
"""

from .strategies import OutcomeStatus, StrategyOutcome, first_success
from .extractor import InvoiceExtractor
from .batch_processor import BatchProcessor

__all__ = [
    'OutcomeStatus',
    'StrategyOutcome',
    'first_success',
    'InvoiceExtractor',
    'BatchProcessor',
]
