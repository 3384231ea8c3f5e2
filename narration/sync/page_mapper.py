"""
Page mapper: partitions the narration sentences across the document's
pages.

The partition is a fixed-block linear estimate: every page receives
``ceil(sentences / pages)`` consecutive sentences until the sentences
run out, so trailing pages may be empty.  It does not look at the real
text density of each page.
"""

import logging
import math
from collections.abc import Sequence
from typing import Dict, List, Optional

from core.document.models import PageText
from narration.errors import PageMapError

from .models import EXTRACTION_METHODS, PageMap, PageMapping

logger = logging.getLogger(__name__)


def sentences_per_page(sentence_count: int, total_pages: int) -> int:
    """Block size of the linear partition."""
    return math.ceil(sentence_count / total_pages)


def build_page_map(
    sentences: Sequence,
    total_pages: int,
    page_sources: Optional[Sequence[PageText]] = None,
) -> PageMap:
    """
    Build the page ↔ sentence index for a document.

    Args:
        sentences:    Narration units in document order.
        total_pages:  Number of pages in the document (> 0).
        page_sources: Optional per-page extraction records, one per page
                      in page order, supplying ``has_images`` and
                      ``extraction_method``.

    Returns:
        A :class:`PageMap` with exactly one :class:`PageMapping` for
        every page ``1..total_pages``.

    Raises:
        PageMapError: On degenerate input.
    """
    _validate(sentences, total_pages, page_sources)

    block = sentences_per_page(len(sentences), total_pages)
    pages: Dict[int, PageMapping] = {}
    sentence_pages: List[int] = []
    sentence_offsets: List[int] = []

    char_index = 0
    sentence_index = 0

    for page_number in range(1, total_pages + 1):
        start = (page_number - 1) * block
        end = min(start + block, len(sentences))
        page_sentences = list(sentences[start:end]) if start < end else []

        text = " ".join(page_sentences)
        start_char = char_index
        end_char = start_char + len(text) - 1

        offset = start_char
        for s in page_sentences:
            sentence_pages.append(page_number)
            sentence_offsets.append(offset)
            offset += len(s) + 1

        has_images = False
        method = "text"
        if page_sources is not None:
            source = page_sources[page_number - 1]
            has_images = source.has_images
            method = source.extraction_method

        pages[page_number] = PageMapping(
            page_number=page_number,
            start_char_index=start_char,
            end_char_index=end_char,
            start_sentence_index=sentence_index,
            end_sentence_index=sentence_index + len(page_sentences) - 1,
            word_count=len(text.split()),
            text_content=text,
            is_empty=not text.strip(),
            has_images=has_images,
            extraction_method=method,
        )

        char_index = end_char + 1
        sentence_index += len(page_sentences)

    page_map = PageMap(
        pages=pages,
        sentence_pages=sentence_pages,
        sentence_offsets=sentence_offsets,
    )
    logger.debug(
        "Page map built: %d sentences over %d pages (%d per page)",
        len(sentences),
        total_pages,
        block,
    )
    return page_map


def _validate(
    sentences: Sequence,
    total_pages: int,
    page_sources: Optional[Sequence[PageText]],
) -> None:
    if isinstance(total_pages, bool) or not isinstance(total_pages, int):
        raise PageMapError(f"total_pages must be an integer, got {total_pages!r}")
    if total_pages <= 0:
        raise PageMapError(f"total_pages must be positive, got {total_pages}")
    if isinstance(sentences, (str, bytes)) or not isinstance(sentences, Sequence):
        raise PageMapError(
            f"sentences must be a sequence of strings, got {type(sentences).__name__}"
        )
    for i, s in enumerate(sentences):
        if not isinstance(s, str):
            raise PageMapError(
                f"sentence {i} is {type(s).__name__}, expected str",
                {"sentenceIndex": i},
            )
    if page_sources is not None:
        if len(page_sources) != total_pages:
            raise PageMapError(
                f"{len(page_sources)} page sources for {total_pages} pages"
            )
        for source in page_sources:
            if source.extraction_method not in EXTRACTION_METHODS:
                raise PageMapError(
                    f"Unknown extraction method {source.extraction_method!r} "
                    f"on page {source.page_number}"
                )
