"""
Text preprocessing and sentence segmentation for narration.

Cleans raw PDF text and splits it into narration units ("sentences").
The index of a sentence in :func:`segment_text`'s output is the
canonical sentence index used by the page map, the playback tracker,
and the narration player.
"""

import re
from typing import Iterable, Iterator, List

# -----------------------------------------------------------------
# Regex patterns
# -----------------------------------------------------------------

# Hyphenation at line break: "com-\nputer" → "computer"
_RE_HYPHEN_LINEBREAK = re.compile(r"(\w)-\s*\n\s*(\w)")

# Any run of whitespace (PDF lines ≠ sentences)
_RE_WHITESPACE = re.compile(r"\s+")

# Sentence boundaries:
#   ". "   punctuation followed by whitespace
#   ".N"   punctuation glued to an uppercase letter (missing space)
_RE_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])(?:\s+|(?=[A-Z]))")

_RE_HAS_LETTER = re.compile(r"[A-Za-z]")


# -----------------------------------------------------------------
# Public API
# -----------------------------------------------------------------


def clean_text(text: str) -> str:
    """
    Normalise raw extracted text.

    Steps:
    1. Rejoin hyphenated line breaks
    2. Collapse all whitespace (including newlines) to single spaces
    """
    if not text:
        return ""
    t = _RE_HYPHEN_LINEBREAK.sub(r"\1\2", text)
    return _RE_WHITESPACE.sub(" ", t).strip()


def split_sentences(text: str) -> List[str]:
    """
    Split cleaned text at sentence-terminal punctuation.

    Returns stripped, non-empty candidates.  No noise filtering is
    applied here; see :func:`is_narratable`.
    """
    if not text:
        return []
    return [s.strip() for s in _RE_SENTENCE_BOUNDARY.split(text) if s.strip()]


def is_narratable(candidate: str) -> bool:
    """
    Whether *candidate* is a real narration unit.

    Empty candidates, candidates without a letter, and single words
    are extraction noise (page numbers, stray headers, bullets).
    """
    stripped = candidate.strip()
    if not stripped:
        return False
    if not _RE_HAS_LETTER.search(stripped):
        return False
    return len(stripped.split()) > 1


def iter_sentences(text: str) -> Iterator[str]:
    """Lazily yield the narration units of *text* in order."""
    for candidate in split_sentences(clean_text(text)):
        if is_narratable(candidate):
            yield candidate


def segment_text(text: str) -> List[str]:
    """
    Full segmentation: clean, split, and drop noise.

    An empty result is legitimate ("no content"), not an error.
    """
    return list(iter_sentences(text))


def segment_pages(page_texts: Iterable[str]) -> List[str]:
    """
    Segment a whole document given its page texts in page order.

    Pages are joined with a single space before splitting, so a
    sentence that runs across a page break stays one unit.
    """
    return segment_text(" ".join(t for t in page_texts if t))
