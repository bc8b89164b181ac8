"""
Post-Processing Module.

Turns classified rows into validated line items:
    - NumericDisambiguator: splits concatenated numeric strings
    - FieldValidator: line-level and document-level arithmetic checks
    - Date and amount normalizers
    - PostProcessor: item assembly and document finalization
"""

from .normalizers import DateNormalizer, AmountNormalizer
from .numeric import (
    NumericDisambiguator,
    SplitResult,
    BareAmount,
    QuantityPriceAmount,
    PriceAmount,
    QuantityAmount,
    is_valid_number_format
)
from .validators import FieldValidator, ValidationResult, ValidationWarning
from .processor import PostProcessor

__all__ = [
    'DateNormalizer',
    'AmountNormalizer',
    'NumericDisambiguator',
    'SplitResult',
    'BareAmount',
    'QuantityPriceAmount',
    'PriceAmount',
    'QuantityAmount',
    'is_valid_number_format',
    'FieldValidator',
    'ValidationResult',
    'ValidationWarning',
    'PostProcessor',
]
