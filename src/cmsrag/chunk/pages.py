"""Sentence-aware page chunker with section/subsection tracking.

Splits manual pages into Chunk objects:
- Short pages pass through verbatim as a single chunk
- Long pages are split at sentence boundaries, never mid-sentence
- Consecutive chunks of a page share a fixed-size character overlap
- Numbered headers ("10 - ...", "10.1 - ...") set the section labels
  carried by every later chunk, across page boundaries
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from cmsrag.chunk.base import BaseChunker
from cmsrag.types import Chunk, SectionState

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cmsrag.config import CmsragConfig
    from cmsrag.types import PageContent

__all__ = [
    "DEFAULT_OVERLAP_CHARS",
    "DEFAULT_TARGET_CHARS",
    "SectionChunker",
    "apply_headers",
    "chunk_page",
    "chunk_pages",
    "split_sentences",
]

logger = logging.getLogger(__name__)

DEFAULT_TARGET_CHARS = 800
DEFAULT_OVERLAP_CHARS = 200

# "10.1 - Confined to the Home" (hyphen, en dash or em dash)
_SUBSECTION_RE = re.compile(r"^\d+\.\d+\s*[-–—]\s*.+$")

# "10 - Conditions Patient Must Meet to Qualify"
_SECTION_RE = re.compile(r"^\d+\s*[-–—]\s*.+$")

_SENTENCE_TERMINATORS = frozenset(".!?")

_SECTION = "section"
_SUBSECTION = "subsection"

# (line start offset in page text, header kind, trimmed header line)
_HeaderEvent = tuple[int, str, str]


def _classify_line(line: str) -> tuple[str, str] | None:
    """Return ``(kind, header)`` if the trimmed line is a numbered header."""
    stripped = line.strip()
    if _SUBSECTION_RE.match(stripped):
        return _SUBSECTION, stripped
    if _SECTION_RE.match(stripped):
        return _SECTION, stripped
    return None


def _header_events(text: str) -> list[_HeaderEvent]:
    """Scan text line by line and record every header with its offset."""
    events: list[_HeaderEvent] = []
    offset = 0
    for line in text.split("\n"):
        header = _classify_line(line)
        if header is not None:
            events.append((offset, header[0], header[1]))
        offset += len(line) + 1
    return events


def _transition(state: SectionState, kind: str, header: str) -> SectionState:
    if kind == _SUBSECTION:
        return state.enter_subsection(header)
    return state.enter_section(header)


def _apply_events(state: SectionState, events: Iterable[_HeaderEvent]) -> SectionState:
    for _offset, kind, header in events:
        state = _transition(state, kind, header)
    return state


def apply_headers(text: str, state: SectionState | None = None) -> SectionState:
    """Return the section state after reading every header line in ``text``.

    Most-recent-wins: the last section and last subsection seen are kept,
    and a section header clears any subsection before it.
    """
    return _apply_events(state or SectionState(), _header_events(text))


def _sentence_spans(text: str) -> list[tuple[str, int]]:
    """Split text into trimmed sentences paired with their end offset."""
    spans: list[tuple[str, int]] = []
    start = 0
    length = len(text)

    for i, ch in enumerate(text):
        if ch in _SENTENCE_TERMINATORS and (i + 1 == length or text[i + 1].isspace()):
            sentence = text[start : i + 1].strip()
            if sentence:
                spans.append((sentence, i + 1))
            start = i + 1

    tail = text[start:].strip()
    if tail:
        spans.append((tail, length))

    return spans


def split_sentences(text: str) -> list[str]:
    """Split text at ``.``, ``!`` or ``?`` followed by whitespace or end of text."""
    return [sentence for sentence, _end in _sentence_spans(text)]


def _make_chunk(page_number: int, sequence: int, text: str, state: SectionState) -> Chunk:
    return Chunk(
        chunk_id=f"page-{page_number}-chunk-{sequence}",
        text=text,
        page_number=page_number,
        section=state.section,
        subsection=state.subsection,
    )


def chunk_page(
    page: PageContent,
    state: SectionState,
    target_chars: int = DEFAULT_TARGET_CHARS,
    overlap_chars: int = DEFAULT_OVERLAP_CHARS,
) -> tuple[list[Chunk], SectionState]:
    """Chunk a single page, threading the section state through it.

    Args:
        page: The page to split.
        state: Section state carried over from the previous page.
        target_chars: Size a chunk may not grow past once it holds a sentence.
            Pages no longer than this are emitted verbatim.
        overlap_chars: Trailing characters of a closed chunk that open the next.

    Returns:
        The page's chunks and the section state after the whole page.
    """
    text = page.text
    if not text.strip():
        return [], state

    events = _header_events(text)

    if len(text) <= target_chars:
        state = _apply_events(state, events)
        return [_make_chunk(page.page_number, 1, text, state)], state

    chunks: list[Chunk] = []
    buffer = ""
    next_event = 0

    for sentence, end in _sentence_spans(text):
        candidate = f"{buffer} {sentence}" if buffer else sentence

        if len(candidate) > target_chars and buffer:
            chunks.append(_make_chunk(page.page_number, len(chunks) + 1, buffer, state))
            overlap = buffer[-overlap_chars:] if overlap_chars > 0 else ""
            candidate = f"{overlap} {sentence}" if overlap else sentence

        buffer = candidate

        # Headers whose line starts inside the consumed text now apply.
        while next_event < len(events) and events[next_event][0] < end:
            _offset, kind, header = events[next_event]
            state = _transition(state, kind, header)
            next_event += 1

    state = _apply_events(state, events[next_event:])

    if buffer.strip():
        chunks.append(_make_chunk(page.page_number, len(chunks) + 1, buffer, state))

    return chunks, state


def chunk_pages(
    pages: Iterable[PageContent],
    target_chars: int = DEFAULT_TARGET_CHARS,
    overlap_chars: int = DEFAULT_OVERLAP_CHARS,
) -> list[Chunk]:
    """Chunk pages in order; section state persists from one page to the next."""
    state = SectionState()
    chunks: list[Chunk] = []

    for page in pages:
        page_chunks, state = chunk_page(page, state, target_chars, overlap_chars)
        chunks.extend(page_chunks)

    return chunks


class SectionChunker(BaseChunker):
    """Config-driven chunker for numbered regulatory manuals."""

    def chunk(self, pages: Sequence[PageContent], config: CmsragConfig) -> list[Chunk]:
        """Split pages into overlapping, section-annotated chunks.

        Args:
            pages: Source pages in document order.
            config: Project config with chunk settings.

        Returns:
            List of Chunk objects with page and section metadata.
        """
        target_chars = config.chunk.target_chars
        overlap_chars = config.chunk.overlap_chars

        chunks = chunk_pages(pages, target_chars=target_chars, overlap_chars=overlap_chars)

        logger.info(
            "Chunked %d pages into %d chunks (target=%d chars, overlap=%d chars)",
            len(pages),
            len(chunks),
            target_chars,
            overlap_chars,
        )
        return chunks
