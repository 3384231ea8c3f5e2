"""
Core backend for the PDF read-along narrator.
PDF loading and per-page text extraction only.
"""

from .document import PageText, PDFDocumentReader

__all__ = [
    "PageText",
    "PDFDocumentReader",
]
