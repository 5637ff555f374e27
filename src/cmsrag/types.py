"""Pipeline data contracts for cmsrag.

Frozen dataclasses that flow between pipeline stages:
  Path → ParsedDocument → list[Chunk] → list[EmbeddedChunk] → stored
  query vector → list[CandidateMatch] → list[RetrievalResult]
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

__all__ = [
    "CandidateMatch",
    "Chunk",
    "EmbeddedChunk",
    "MatchMetadata",
    "PageContent",
    "ParsedDocument",
    "RetrievalResult",
    "SectionState",
]


@dataclass(frozen=True)
class PageContent:
    """Text of one physical source page."""

    page_number: int
    text: str


@dataclass(frozen=True)
class SectionState:
    """Most recently seen section and subsection headers.

    An empty string means no header of that kind is active.
    """

    section: str = ""
    subsection: str = ""

    def enter_section(self, header: str) -> SectionState:
        """Start a new top-level section; the current subsection ends with it."""
        return SectionState(section=header, subsection="")

    def enter_subsection(self, header: str) -> SectionState:
        return replace(self, subsection=header)


@dataclass(frozen=True)
class ParsedDocument:
    """Output of a parser: ordered pages plus document metadata."""

    doc_id: str
    pages: tuple[PageContent, ...] = ()
    doc_type: str = ""
    title: str = ""
    source_path: str = ""

    @property
    def char_count(self) -> int:
        return sum(len(p.text) for p in self.pages)


@dataclass(frozen=True)
class Chunk:
    """A bounded span of page text with its inherited section labels."""

    chunk_id: str
    text: str
    page_number: int
    section: str = ""
    subsection: str = ""


@dataclass(frozen=True)
class EmbeddedChunk:
    """A chunk with its embedding vector attached."""

    chunk: Chunk
    embedding: tuple[float, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MatchMetadata:
    """Chunk metadata stored alongside a vector in the index."""

    text: str = ""
    page_number: int = 0
    section: str = ""
    subsection: str = ""


@dataclass(frozen=True)
class CandidateMatch:
    """A nearest-neighbour hit returned by the vector store.

    ``score`` is a similarity (higher is better). ``embedding`` is empty when
    the store did not return the stored vector.
    """

    match_id: str
    score: float = 0.0
    embedding: tuple[float, ...] = field(default_factory=tuple)
    metadata: MatchMetadata | None = None

    @property
    def has_embedding(self) -> bool:
        return len(self.embedding) > 0


@dataclass(frozen=True)
class RetrievalResult:
    """A reranked passage ready for a response-generation step."""

    text: str
    page_number: int
    section: str
    subsection: str
    score: float
