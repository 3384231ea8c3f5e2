"""Tests for PDF text extraction and the OCR hook."""

import asyncio
import io

import fitz
import pytest
from PIL import Image

from core.document import PDFDocumentReader
from narration.errors import ErrorType, OCRError, PDFLoadError, TextExtractionError
from narration.pipeline import NarrationConfig, ReadAlongSession


def _png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (120, 60), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sample_pdf(tmp_path):
    """Three pages: text, image only, text plus image."""
    path = tmp_path / "sample.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "The quick brown fox jumps. It lands softly.")
    page = doc.new_page()
    page.insert_image(fitz.Rect(72, 72, 312, 192), stream=_png_bytes())
    page = doc.new_page()
    page.insert_text((72, 72), "A caption sits below the chart.")
    page.insert_image(fitz.Rect(72, 100, 312, 220), stream=_png_bytes())
    doc.save(str(path))
    doc.close()
    return path


class TestReader:
    def test_extracts_text_layer(self, sample_pdf):
        with PDFDocumentReader(str(sample_pdf)) as reader:
            assert reader.total_pages == 3
            first = reader.extract_page(1)
            assert "quick brown fox" in first.text
            assert not first.has_images
            assert first.extraction_method == "text"

    def test_image_only_page_without_ocr_is_blank(self, sample_pdf):
        with PDFDocumentReader(str(sample_pdf)) as reader:
            page = reader.extract_page(2)
            assert page.has_images
            assert page.is_blank
            assert page.extraction_method == "text"

    def test_image_only_page_goes_through_ocr(self, sample_pdf):
        seen = []

        def ocr(image):
            seen.append(image.size)
            return "Recognised words from the scan."

        with PDFDocumentReader(str(sample_pdf), ocr=ocr) as reader:
            pages = reader.extract_pages()
        assert pages[1].text == "Recognised words from the scan."
        assert pages[1].extraction_method == "ocr"
        assert pages[2].extraction_method == "text"
        assert len(seen) == 1

    def test_mixed_pages_are_ocr_augmented(self, sample_pdf):
        reader = PDFDocumentReader(
            str(sample_pdf), ocr=lambda image: "Chart shows growth.", ocr_mixed_pages=True
        )
        page = reader.extract_page(3)
        reader.close_document()
        assert page.extraction_method == "mixed"
        assert page.text.endswith("Chart shows growth.")
        assert "caption" in page.text

    def test_ocr_failure_raises(self, sample_pdf):
        def broken(image):
            raise RuntimeError("tesseract missing")

        with PDFDocumentReader(str(sample_pdf), ocr=broken) as reader:
            with pytest.raises(OCRError):
                reader.extract_page(2)
            with pytest.raises(OCRError):
                PDFDocumentReader(str(sample_pdf)).ocr_page(2)

    def test_page_out_of_range(self, sample_pdf):
        with PDFDocumentReader(str(sample_pdf)) as reader:
            with pytest.raises(TextExtractionError):
                reader.extract_page(0)
            with pytest.raises(TextExtractionError):
                reader.extract_page(4)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PDFLoadError):
            PDFDocumentReader(str(tmp_path / "missing.pdf"))

    def test_render_page(self, sample_pdf):
        with PDFDocumentReader(str(sample_pdf)) as reader:
            image = reader.render_page(1, scale=1.0)
        assert image.mode == "RGB"
        assert image.width > 0


class TestSessionDocument:
    def _session(self, ocr=None):
        config = NarrationConfig(debounce_seconds=0.01, disable_tqdm=True)
        return ReadAlongSession(config, ocr=ocr)

    def test_load_document(self, sample_pdf):
        session = self._session(ocr=lambda image: "Scanned page reads well.")
        page_map = asyncio.run(session.load_document(str(sample_pdf)))
        assert page_map.total_pages == 3
        assert page_map.total_sentences == 4
        assert [p.extraction_method for p in session.pages] == ["text", "ocr", "text"]
        session.close()

    def test_ocr_failure_falls_back_to_text_layer(self, sample_pdf):
        def broken(image):
            raise RuntimeError("tesseract missing")

        session = self._session(ocr=broken)
        page_map = asyncio.run(session.load_document(str(sample_pdf)))
        assert page_map.total_pages == 3
        assert session.pages[1].is_blank
        info = session.errors.entries()[0]
        assert info.type == ErrorType.OCR_ERROR
        assert info.details["pageNumber"] == 2
        assert info.recovered
        session.close()

    def test_unreadable_file_is_reported(self, tmp_path):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"this is not a pdf")
        session = self._session()
        with pytest.raises(PDFLoadError):
            asyncio.run(session.load_document(str(bad)))
        info = session.errors.entries()[0]
        assert info.type == ErrorType.PDF_LOAD_ERROR
        assert info.is_user_visible

    def test_failed_reload_keeps_open_document(self, sample_pdf, tmp_path):
        blank = tmp_path / "blank.pdf"
        doc = fitz.open()
        doc.new_page()
        doc.new_page()
        doc.save(str(blank))
        doc.close()

        session = self._session()
        asyncio.run(session.load_document(str(sample_pdf)))
        with pytest.raises(TextExtractionError):
            asyncio.run(session.load_document(str(blank)))

        assert session.document_path == str(sample_pdf)
        assert session.sync.get_state().total_pages == 3
        assert len(session.pages) == 3
        assert "quick brown fox" in session.pages[0].text
        session.close()
        assert session.document_path is None

    def test_unreadable_reload_keeps_open_document(self, sample_pdf, tmp_path):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"this is not a pdf")
        session = self._session()
        asyncio.run(session.load_document(str(sample_pdf)))
        with pytest.raises(PDFLoadError):
            asyncio.run(session.load_document(str(bad)))
        assert session.document_path == str(sample_pdf)
        assert session.sync.get_state().total_pages == 3
        session.close()
