"""
PDF document reading for the read-along pipeline.

Extracts plain text per page with PyMuPDF.  Pages that carry images but
no text layer can be handed to an optional OCR callable; OCR itself is
not performed here.
"""

import logging
from typing import Callable, Iterator, List, Optional

import fitz  # PyMuPDF
from PIL import Image

from narration.errors import OCRError, PDFLoadError, TextExtractionError

from .models import PageText

logger = logging.getLogger(__name__)

# Receives a rendered page, returns the recognised text
OCRFunction = Callable[[Image.Image], str]


class PDFDocumentReader:
    """
    Loads a PDF and extracts narration text page by page.

    Usage::

        with PDFDocumentReader("book.pdf") as reader:
            pages = reader.extract_pages()
    """

    def __init__(
        self,
        file_path: Optional[str] = None,
        ocr: Optional[OCRFunction] = None,
        ocr_scale: float = 2.0,
        ocr_mixed_pages: bool = False,
    ):
        self.doc: Optional[fitz.Document] = None
        self.total_pages: int = 0
        self.current_file_path: Optional[str] = None
        self.ocr = ocr
        self.ocr_scale = ocr_scale
        self.ocr_mixed_pages = ocr_mixed_pages
        if file_path is not None:
            self.load_pdf(file_path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load_pdf(self, file_path: str) -> int:
        """
        Load a PDF document, closing any previous one.

        Returns:
            Number of pages.

        Raises:
            PDFLoadError: If the file cannot be opened or has no pages.
        """
        if self.doc:
            self.close_document()

        try:
            doc = fitz.open(file_path)
        except Exception as e:
            raise PDFLoadError(
                f"Failed to open PDF '{file_path}': {e}", {"filePath": file_path}
            ) from e

        if doc.page_count == 0:
            doc.close()
            raise PDFLoadError(
                f"PDF '{file_path}' has no pages", {"filePath": file_path}
            )

        self.doc = doc
        self.total_pages = doc.page_count
        self.current_file_path = file_path
        logger.debug("Loaded %s (%d pages)", file_path, self.total_pages)
        return self.total_pages

    def close_document(self) -> None:
        """Close the current PDF document and clear all state."""
        if self.doc:
            self.doc.close()
            self.doc = None
        self.total_pages = 0
        self.current_file_path = None

    def is_loaded(self) -> bool:
        return self.doc is not None

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_page(self, page_number: int) -> PageText:
        """
        Extract the text of a 1-based page.

        Image-only pages go through OCR when an OCR callable is set.
        With ``ocr_mixed_pages``, pages that have both text and images
        are OCR-ed too and the recognised text is appended ("mixed").

        Raises:
            TextExtractionError: If PyMuPDF fails on the page.
            OCRError:            If the OCR callable fails.
        """
        result = self.extract_text_layer(page_number)
        if not result.has_images or self.ocr is None:
            return result

        if result.is_blank:
            result.text = self.ocr_page(page_number)
            result.extraction_method = "ocr"
        elif self.ocr_mixed_pages:
            ocr_text = self.ocr_page(page_number)
            if ocr_text:
                result.text = f"{result.text.rstrip()}\n{ocr_text}"
                result.extraction_method = "mixed"
        return result

    def extract_text_layer(self, page_number: int) -> PageText:
        """Extract only the embedded text of a 1-based page, never OCR."""
        page = self._load_page(page_number)
        try:
            text = page.get_text("text")
            has_images = bool(page.get_images(full=False))
        except Exception as e:
            raise TextExtractionError(
                f"Failed to extract text from page {page_number}: {e}",
                {"pageNumber": page_number, "extractionMethod": "text"},
            ) from e
        return PageText(page_number=page_number, text=text, has_images=has_images)

    def ocr_page(self, page_number: int) -> str:
        """
        Render a page and run the OCR callable on it.

        Raises:
            OCRError: If no OCR callable is configured or it fails.
        """
        if self.ocr is None:
            raise OCRError(
                "No OCR engine configured", {"pageNumber": page_number}
            )
        image = self.render_page(page_number, scale=self.ocr_scale)
        try:
            text = self.ocr(image)
        except Exception as e:
            raise OCRError(
                f"OCR failed on page {page_number}: {e}", {"pageNumber": page_number}
            ) from e
        logger.debug("OCR page %d: %d chars", page_number, len(text or ""))
        return (text or "").strip()

    def iter_pages(self) -> Iterator[PageText]:
        for page_number in range(1, self.total_pages + 1):
            yield self.extract_page(page_number)

    def extract_pages(self) -> List[PageText]:
        """Extract every page in order."""
        return list(self.iter_pages())

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_page(self, page_number: int, scale: float = 1.5) -> Image.Image:
        """Render a 1-based page to a PIL RGB image."""
        page = self._load_page(page_number)
        mat = fitz.Matrix(scale, scale)
        pix = page.get_pixmap(matrix=mat, alpha=False)
        return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_page(self, page_number: int) -> fitz.Page:
        if not self.doc:
            raise TextExtractionError("No PDF document loaded")
        if page_number < 1 or page_number > self.total_pages:
            raise TextExtractionError(
                f"Page {page_number} out of range "
                f"(document has {self.total_pages} pages)",
                {"pageNumber": page_number},
            )
        return self.doc.load_page(page_number - 1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_document()
        return False

    def __repr__(self) -> str:
        return f"PDFDocumentReader('{self.current_file_path}', pages={self.total_pages})"
