"""
Data models for page–audio synchronisation.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

EXTRACTION_METHODS = ("text", "ocr", "mixed")


@dataclass(frozen=True)
class PageMapping:
    """
    Association between one page and its slice of the narration.

    Character offsets index into :attr:`PageMap.narration_text`; both
    ranges are inclusive.  An empty page has ``end < start`` for both
    ranges.
    """

    page_number: int  # 1-based
    start_char_index: int
    end_char_index: int
    start_sentence_index: int
    end_sentence_index: int
    word_count: int
    text_content: str
    is_empty: bool
    has_images: bool = False
    extraction_method: str = "text"  # text | ocr | mixed

    @property
    def sentence_count(self) -> int:
        return max(0, self.end_sentence_index - self.start_sentence_index + 1)

    def contains_sentence(self, sentence_index: int) -> bool:
        return self.start_sentence_index <= sentence_index <= self.end_sentence_index

    def __repr__(self) -> str:
        if self.is_empty:
            return f"PageMapping(page={self.page_number}, EMPTY)"
        return (
            f"PageMapping(page={self.page_number}, "
            f"sentences=[{self.start_sentence_index},{self.end_sentence_index}], "
            f"chars=[{self.start_char_index},{self.end_char_index}], "
            f"words={self.word_count}, {self.extraction_method})"
        )


@dataclass
class PlaybackState:
    """Current read-along position.  One mutable instance per session."""

    current_page: int = 1
    current_sentence_index: int = 0
    current_char_index: int = 0
    total_pages: int = 0
    total_sentences: int = 0
    is_playing: bool = False
    playback_position: float = 0.0  # progress within the current page, 0..1


@dataclass(frozen=True)
class AudioPosition:
    """Where narration should start to play a given page."""

    sentence_index: int
    page_number: int
    character_offset: int


@dataclass
class PageMap:
    """
    The page ↔ sentence index for one document.

    Built wholesale by :func:`~narration.sync.page_mapper.build_page_map`
    and read-only afterwards.
    """

    pages: Dict[int, PageMapping] = field(default_factory=dict)
    sentence_pages: List[int] = field(default_factory=list)
    sentence_offsets: List[int] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def total_sentences(self) -> int:
        return len(self.sentence_pages)

    @property
    def narration_text(self) -> str:
        return "".join(p.text_content for p in self.ordered())

    def get(self, page_number: int) -> Optional[PageMapping]:
        return self.pages.get(page_number)

    def page_for_sentence(self, sentence_index: int) -> Optional[int]:
        if 0 <= sentence_index < len(self.sentence_pages):
            return self.sentence_pages[sentence_index]
        return None

    def char_offset(self, sentence_index: int) -> Optional[int]:
        if 0 <= sentence_index < len(self.sentence_offsets):
            return self.sentence_offsets[sentence_index]
        return None

    def next_non_empty(self, page_number: int) -> Optional[int]:
        """First page after *page_number* that has content, if any."""
        for number in range(page_number + 1, self.total_pages + 1):
            mapping = self.pages.get(number)
            if mapping is not None and not mapping.is_empty:
                return number
        return None

    def ordered(self) -> List[PageMapping]:
        return [self.pages[n] for n in sorted(self.pages)]

    def __iter__(self) -> Iterator[PageMapping]:
        return iter(self.ordered())

    def __len__(self) -> int:
        return len(self.pages)

    def __repr__(self) -> str:
        empty = sum(1 for p in self.pages.values() if p.is_empty)
        return (
            f"PageMap(pages={self.total_pages}, sentences={self.total_sentences}, "
            f"empty={empty})"
        )
