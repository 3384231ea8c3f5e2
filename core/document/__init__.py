"""PDF document loading and page text extraction."""

from .models import PageText
from .pdf_reader import OCRFunction, PDFDocumentReader

__all__ = [
    "OCRFunction",
    "PageText",
    "PDFDocumentReader",
]
