"""Tests for the page ↔ sentence map."""

import pytest

from core.document import PageText
from narration.errors import ErrorType, PageMapError
from narration.sync import build_page_map, sentences_per_page


def _sentences(n):
    return [f"Sentence number {i}." for i in range(n)]


class TestPartition:
    def test_block_size_is_ceiling(self):
        assert sentences_per_page(95, 10) == 10
        assert sentences_per_page(100, 10) == 10
        assert sentences_per_page(101, 10) == 11
        assert sentences_per_page(0, 4) == 0

    def test_every_page_is_mapped(self):
        page_map = build_page_map(_sentences(95), 10)
        assert page_map.total_pages == 10
        assert sorted(page_map.pages) == list(range(1, 11))

    def test_ranges_are_contiguous_and_cover_all_sentences(self):
        page_map = build_page_map(_sentences(95), 10)
        covered = []
        for mapping in page_map:
            covered.extend(
                range(mapping.start_sentence_index, mapping.end_sentence_index + 1)
            )
        assert covered == list(range(95))

    def test_last_page_gets_the_remainder(self):
        page_map = build_page_map(_sentences(95), 10)
        last = page_map.get(10)
        assert (last.start_sentence_index, last.end_sentence_index) == (90, 94)
        assert last.sentence_count == 5
        assert page_map.page_for_sentence(94) == 10

    def test_trailing_pages_can_be_empty(self):
        page_map = build_page_map(_sentences(3), 5)
        for number in (4, 5):
            mapping = page_map.get(number)
            assert mapping.is_empty
            assert mapping.word_count == 0
            assert mapping.text_content == ""
            assert mapping.end_sentence_index == mapping.start_sentence_index - 1
            assert mapping.end_char_index == mapping.start_char_index - 1
        assert page_map.next_non_empty(3) is None

    def test_no_sentences_gives_all_empty_pages(self):
        page_map = build_page_map([], 3)
        assert page_map.total_sentences == 0
        assert all(m.is_empty for m in page_map)


class TestCharacterOffsets:
    def test_single_page(self):
        page_map = build_page_map(["Alpha beta.", "Gamma delta."], 1)
        page = page_map.get(1)
        assert page.text_content == "Alpha beta. Gamma delta."
        assert (page.start_char_index, page.end_char_index) == (0, 23)
        assert page_map.char_offset(0) == 0
        assert page_map.char_offset(1) == 12

    def test_offsets_index_into_narration_text(self):
        page_map = build_page_map(["One two.", "Three four."], 2)
        text = page_map.narration_text
        second = page_map.get(2)
        assert text == "One two.Three four."
        assert (
            text[second.start_char_index : second.end_char_index + 1]
            == second.text_content
        )
        assert page_map.char_offset(1) == 8

    def test_word_count(self):
        page_map = build_page_map(["One two three.", "Four five."], 1)
        assert page_map.get(1).word_count == 5


class TestPageSources:
    def test_extraction_metadata_is_carried(self):
        sources = [
            PageText(1, "One two.", has_images=False),
            PageText(2, "Three four.", has_images=True, extraction_method="ocr"),
        ]
        page_map = build_page_map(["One two.", "Three four."], 2, sources)
        assert page_map.get(1).extraction_method == "text"
        assert page_map.get(2).has_images
        assert page_map.get(2).extraction_method == "ocr"

    def test_source_count_must_match(self):
        with pytest.raises(PageMapError):
            build_page_map(["One two."], 2, [PageText(1, "One two.")])

    def test_unknown_extraction_method(self):
        sources = [PageText(1, "x", extraction_method="magic")]
        with pytest.raises(PageMapError):
            build_page_map(["One two."], 1, sources)


class TestValidation:
    @pytest.mark.parametrize("total_pages", [0, -3, 2.5, True, None, "4"])
    def test_rejects_bad_page_count(self, total_pages):
        with pytest.raises(PageMapError):
            build_page_map(_sentences(4), total_pages)

    @pytest.mark.parametrize("sentences", ["not a list", None, 7, ["ok", 3]])
    def test_rejects_bad_sentences(self, sentences):
        with pytest.raises(PageMapError):
            build_page_map(sentences, 2)

    def test_error_is_classified_as_synchronization(self):
        with pytest.raises(PageMapError) as excinfo:
            build_page_map(_sentences(2), 0)
        assert excinfo.value.error_type == ErrorType.SYNCHRONIZATION_ERROR
