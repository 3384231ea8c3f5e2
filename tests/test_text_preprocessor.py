"""Tests for text cleaning and sentence segmentation."""

from narration.script import (
    clean_text,
    is_narratable,
    segment_pages,
    segment_text,
    split_sentences,
)


class TestCleanText:
    def test_rejoins_hyphenated_line_breaks(self):
        assert clean_text("com-\nputer science") == "computer science"

    def test_collapses_whitespace(self):
        assert clean_text("  one\n\ntwo\t three  ") == "one two three"

    def test_empty(self):
        assert clean_text("") == ""


class TestSplitSentences:
    def test_splits_on_terminal_punctuation(self):
        parts = split_sentences("Hello world. Is it? Yes it is! ok")
        assert parts == ["Hello world.", "Is it?", "Yes it is!", "ok"]

    def test_splits_when_space_is_missing(self):
        assert split_sentences("It ends here.Next one starts") == [
            "It ends here.",
            "Next one starts",
        ]

    def test_empty(self):
        assert split_sentences("") == []


class TestIsNarratable:
    def test_real_sentence(self):
        assert is_narratable("The cat sat.")

    def test_rejects_noise(self):
        assert not is_narratable("")
        assert not is_narratable("   ")
        assert not is_narratable("42.")
        assert not is_narratable("3.14 15")
        assert not is_narratable("Chapter")


class TestSegmentation:
    def test_drops_noise_between_sentences(self):
        text = "The cat sat down. 42. Dogs bark loudly."
        assert segment_text(text) == ["The cat sat down.", "Dogs bark loudly."]

    def test_sentence_across_page_break_stays_whole(self):
        pages = ["The story begins", "here. It ends now."]
        assert segment_pages(pages) == ["The story begins here.", "It ends now."]

    def test_blank_pages_yield_no_sentences(self):
        assert segment_pages(["", "  \n", "7"]) == []
