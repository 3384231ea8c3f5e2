"""
Extraction records for PDF pages.
"""

from dataclasses import dataclass


@dataclass
class PageText:
    """Text extracted from one page, with how it was obtained."""

    page_number: int  # 1-based
    text: str = ""
    has_images: bool = False
    extraction_method: str = "text"  # text | ocr | mixed

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    def __repr__(self) -> str:
        preview = self.text[:40].replace("\n", " ")
        return (
            f"PageText(page={self.page_number}, {self.extraction_method}, "
            f"images={self.has_images}, '{preview}')"
        )
