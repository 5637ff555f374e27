"""Tests for the sentence-aware page chunker."""

from __future__ import annotations

import re

import pytest

from cmsrag.chunk import (
    BaseChunker,
    SectionChunker,
    apply_headers,
    chunk_page,
    chunk_pages,
    split_sentences,
)
from cmsrag.config import CmsragConfig, default_config
from cmsrag.types import PageContent, SectionState

_ID_RE = re.compile(r"^page-\d+-chunk-\d+$")


def _page(text: str, page_number: int = 1) -> PageContent:
    return PageContent(page_number=page_number, text=text)


def _long_text(n_sentences: int = 40) -> str:
    """Roughly 60 chars per sentence; 40 sentences is ~2400 chars."""
    return " ".join(
        f"Sentence number {i} describes a home health requirement." for i in range(n_sentences)
    )


# ---------------------------------------------------------------------------
# Empty and trivial inputs
# ---------------------------------------------------------------------------


class TestEmptyInput:
    def test_no_pages_returns_empty(self):
        assert chunk_pages([]) == []

    def test_whitespace_page_produces_nothing(self):
        assert chunk_pages([_page("   \n\t  ")]) == []

    def test_whitespace_page_keeps_state(self):
        state = SectionState(section="10 - Main")
        chunks, new_state = chunk_page(_page("  \n "), state)
        assert chunks == []
        assert new_state == state

    def test_whitespace_page_between_pages(self):
        pages = [_page("First page.", 1), _page("   ", 2), _page("Third page.", 3)]
        result = chunk_pages(pages)
        assert [c.page_number for c in result] == [1, 3]


# ---------------------------------------------------------------------------
# Short-page fast path
# ---------------------------------------------------------------------------


class TestShortPage:
    def test_single_chunk_verbatim(self):
        text = "This is a short page with some text about home health services."
        result = chunk_pages([_page(text)])
        assert len(result) == 1
        assert result[0].page_number == 1
        assert result[0].text == text
        assert result[0].chunk_id == "page-1-chunk-1"

    def test_exactly_target_length_is_short(self):
        text = "A" * 799 + "."
        result = chunk_pages([_page(text)])
        assert len(result) == 1
        assert result[0].text == text

    def test_whitespace_kept_verbatim(self):
        text = "  \n10 - Section\n\nBody text.  \n"
        result = chunk_pages([_page(text)])
        assert result[0].text == text

    def test_short_page_tagged_with_its_own_headers(self):
        text = "Intro line.\n\n10 - Late Header\n\nAfter header."
        result = chunk_pages([_page(text)])
        assert result[0].section == "10 - Late Header"


# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------


class TestHeaderDetection:
    def test_section_header(self):
        text = (
            "10 - Conditions Patient Must Meet to Qualify\n\n"
            "The patient must meet certain conditions."
        )
        result = chunk_pages([_page(text)])
        assert result[0].section == "10 - Conditions Patient Must Meet to Qualify"

    @pytest.mark.parametrize("dash", ["-", "\u2013", "\u2014"])
    def test_dash_variants(self, dash: str):
        text = f"20 {dash} Another Section Title\n\nSome content here."
        result = chunk_pages([_page(text)])
        assert result[0].section == f"20 {dash} Another Section Title"

    def test_subsection_header(self):
        text = "10 - Main Section\n\n10.1 - Confined to the Home\n\nThe patient must be confined."
        result = chunk_pages([_page(text)])
        assert result[0].section == "10 - Main Section"
        assert result[0].subsection == "10.1 - Confined to the Home"

    def test_subsection_is_not_a_section(self):
        state = apply_headers("10.1 - Confined to the Home")
        assert state.section == ""
        assert state.subsection == "10.1 - Confined to the Home"

    def test_header_lines_are_trimmed(self):
        state = apply_headers("   30 - Skilled Services   \n")
        assert state.section == "30 - Skilled Services"

    def test_no_spaces_around_dash(self):
        assert apply_headers("40-Coverage").section == "40-Coverage"

    def test_bare_number_is_not_a_header(self):
        assert apply_headers("10 -").section == ""
        assert apply_headers("Page 10 - of 200").section == ""

    def test_last_header_wins(self):
        state = apply_headers("10 - First\n10.1 - A\n10.2 - B\n20 - Second\n20.1 - C")
        assert state == SectionState(section="20 - Second", subsection="20.1 - C")

    def test_section_resets_subsection(self):
        state = apply_headers("10 - First\n10.1 - Sub\n20 - Second")
        assert state.section == "20 - Second"
        assert state.subsection == ""

    def test_apply_headers_threads_state(self):
        state = apply_headers("Body only.", SectionState(section="10 - Kept"))
        assert state.section == "10 - Kept"


# ---------------------------------------------------------------------------
# Sentence splitting
# ---------------------------------------------------------------------------


class TestSplitSentences:
    def test_basic_split(self):
        assert split_sentences("One. Two! Three?") == ["One.", "Two!", "Three?"]

    def test_trailing_text_without_punctuation(self):
        assert split_sentences("One. trailing words") == ["One.", "trailing words"]

    def test_period_inside_token_does_not_split(self):
        assert split_sentences("See section 30.1.2 for details. Next.") == [
            "See section 30.1.2 for details.",
            "Next.",
        ]

    def test_newline_counts_as_whitespace(self):
        assert split_sentences("First.\nSecond.") == ["First.", "Second."]

    def test_empty_sentences_dropped(self):
        assert split_sentences("  ") == []
        assert split_sentences("One.   ") == ["One."]

    def test_sentences_are_trimmed(self):
        assert split_sentences("  One.   Two.  ") == ["One.", "Two."]


# ---------------------------------------------------------------------------
# Long pages
# ---------------------------------------------------------------------------


class TestLongPage:
    def test_multiple_chunks(self):
        result = chunk_pages([_page(_long_text())])
        assert len(result) > 1

    def test_overlap_prefix(self):
        long_text = "A" * 400 + ". " + "B" * 400 + ". " + "C" * 400 + ". " + "D" * 400 + "."
        result = chunk_pages([_page(long_text)])

        assert len(result) > 1
        for prev, curr in zip(result, result[1:], strict=False):
            assert curr.text.startswith(prev.text[-200:])

    def test_overlap_prefix_sentence_text(self):
        result = chunk_pages([_page(_long_text(60))])
        for prev, curr in zip(result, result[1:], strict=False):
            assert curr.text.startswith(prev.text[-200:])

    def test_chunk_size_bound(self):
        result = chunk_pages([_page(_long_text(60))])
        longest_sentence = max(len(s) for s in split_sentences(_long_text(60)))
        for chunk in result:
            assert len(chunk.text) <= max(800, 200 + 1 + longest_sentence)

    def test_oversized_sentence_stands_alone(self):
        giant = "X" * 1500 + "."
        text = "Short opener. " + giant + " Closing sentence."
        result = chunk_pages([_page(text)])
        assert result[0].text == "Short opener."
        assert any(giant in c.text for c in result)

    def test_no_mid_word_split(self):
        text = (
            "This is the first sentence. "
            + "A" * 750
            + ". This is another sentence that should be in the next chunk."
        )
        result = chunk_pages([_page(text)])
        for chunk in result:
            assert re.search(r"[.!?a-zA-Z0-9]$", chunk.text.strip())

    def test_every_sentence_is_covered(self):
        text = _long_text(50)
        joined = " ".join(c.text for c in chunk_pages([_page(text)]))
        for sentence in split_sentences(text):
            assert sentence in joined

    def test_zero_overlap(self):
        result = chunk_pages([_page(_long_text())], overlap_chars=0)
        assert len(result) > 1
        assert not result[1].text.startswith(" ")
        assert result[1].text.startswith("Sentence number")

    def test_custom_target(self):
        small = chunk_pages([_page(_long_text())], target_chars=300, overlap_chars=50)
        default = chunk_pages([_page(_long_text())])
        assert len(small) > len(default)


# ---------------------------------------------------------------------------
# Page boundaries and IDs
# ---------------------------------------------------------------------------


class TestPageBoundary:
    def test_chunks_keep_page_numbers(self):
        pages = [_page("Content from page five.", 5), _page("Content from page six.", 6)]
        result = chunk_pages(pages)
        page5 = [c for c in result if c.page_number == 5]
        page6 = [c for c in result if c.page_number == 6]
        assert page5
        assert page6
        assert "page five" in page5[0].text
        assert "page six" in page6[0].text

    def test_no_chunk_spans_pages(self):
        pages = [_page("End of page one.", 1), _page("Start of page two.", 2)]
        result = chunk_pages(pages)
        assert all("page one" not in c.text for c in result if c.page_number == 2)

    def test_no_overlap_across_pages(self):
        pages = [_page(_long_text(), 1), _page(_long_text(), 2)]
        result = chunk_pages(pages)
        first_of_page_2 = next(c for c in result if c.page_number == 2)
        assert first_of_page_2.text.startswith("Sentence number 0")


class TestChunkIds:
    def test_id_format_and_uniqueness(self):
        pages = [_page("Sentence one. " * 100, 3), _page("Short page.", 4)]
        result = chunk_pages(pages)

        for chunk in result:
            assert _ID_RE.match(chunk.chunk_id)

        ids = [c.chunk_id for c in result]
        assert len(set(ids)) == len(ids)

    def test_sequence_restarts_per_page(self):
        pages = [_page("Sentence one. " * 100, 3), _page("Short page.", 4)]
        result = chunk_pages(pages)
        page3 = [c for c in result if c.page_number == 3]
        assert page3[0].chunk_id == "page-3-chunk-1"
        assert page3[1].chunk_id == "page-3-chunk-2"
        assert result[-1].chunk_id == "page-4-chunk-1"

    def test_page_order_preserved(self):
        pages = [_page("Page two text.", 2), _page("Page one text.", 1)]
        assert [c.page_number for c in chunk_pages(pages)] == [2, 1]


# ---------------------------------------------------------------------------
# Section inheritance
# ---------------------------------------------------------------------------


class TestSectionInheritance:
    def test_inherits_most_recent_headers(self):
        text = (
            "10 - First Section\n\n"
            "Some initial content here.\n\n"
            "10.1 - First Subsection\n\n"
            f"Content under first subsection. {'X' * 800}\n\n"
            "10.2 - Second Subsection\n\n"
            "Content under second subsection."
        )
        result = chunk_pages([_page(text)])

        for chunk in result:
            assert chunk.section == "10 - First Section"
        assert result[0].subsection == "10.1 - First Subsection"
        assert result[-1].subsection == "10.2 - Second Subsection"

    def test_state_carries_across_pages(self):
        pages = [
            _page("10 - Homebound Status\n\nOpening text.", 1),
            _page("Continuation with no headers.", 2),
        ]
        result = chunk_pages(pages)
        assert result[1].section == "10 - Homebound Status"

    def test_new_section_on_later_page_clears_subsection(self):
        pages = [
            _page("10 - First\n10.1 - Sub\nBody.", 1),
            _page("20 - Second\nBody.", 2),
        ]
        result = chunk_pages(pages)
        assert result[1].section == "20 - Second"
        assert result[1].subsection == ""

    def test_header_mid_page_does_not_relabel_earlier_chunks(self):
        body = _long_text(20)
        text = body + "\n40 - Late Section\n" + _long_text(5)
        result = chunk_pages([_page(text)])
        assert result[0].section == ""
        assert result[-1].section == "40 - Late Section"

    def test_chunk_page_returns_final_state(self):
        text = _long_text(20) + "\n50 - Tail\n50.3 - Tail Sub\nDone."
        _chunks, state = chunk_page(_page(text), SectionState())
        assert state == SectionState(section="50 - Tail", subsection="50.3 - Tail Sub")


# ---------------------------------------------------------------------------
# SectionChunker adapter
# ---------------------------------------------------------------------------


class TestSectionChunker:
    def test_is_base_chunker(self):
        assert isinstance(SectionChunker(), BaseChunker)

    def test_uses_config(self):
        config = CmsragConfig()
        config.chunk.target_chars = 300
        config.chunk.overlap_chars = 50
        pages = [_page(_long_text())]
        assert SectionChunker().chunk(pages, config) == chunk_pages(
            pages, target_chars=300, overlap_chars=50
        )

    def test_default_config_matches_defaults(self):
        pages = [_page(_long_text())]
        assert SectionChunker().chunk(pages, default_config()) == chunk_pages(pages)

    def test_deterministic(self):
        pages = [_page(_long_text(), 1), _page("10 - Section\nShort.", 2)]
        assert SectionChunker().chunk(pages, default_config()) == SectionChunker().chunk(
            pages, default_config()
        )
