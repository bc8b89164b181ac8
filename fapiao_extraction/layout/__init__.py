"""
Layout Module.

Positioned-text data model and reading-order reconstruction:
    - TextFragment, RawPage: decoder output
    - Line, PageModel: reconstructed reading order
    - PageReconstructor: y-clustering of fragments into lines
"""

from .models import TextFragment, RawPage, Line, PageModel
from .reconstructor import PageReconstructor

__all__ = ['TextFragment', 'RawPage', 'Line', 'PageModel', 'PageReconstructor']
