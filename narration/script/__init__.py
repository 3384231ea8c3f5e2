"""Sentence segmentation of extracted PDF text."""

from .text_preprocessor import (
    clean_text,
    is_narratable,
    iter_sentences,
    segment_pages,
    segment_text,
    split_sentences,
)

__all__ = [
    "clean_text",
    "is_narratable",
    "iter_sentences",
    "segment_pages",
    "segment_text",
    "split_sentences",
]
