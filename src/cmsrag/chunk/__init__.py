"""Chunking: sentence-aware page splitting with section tracking."""

from cmsrag.chunk.base import BaseChunker
from cmsrag.chunk.pages import (
    SectionChunker,
    apply_headers,
    chunk_page,
    chunk_pages,
    split_sentences,
)

__all__ = [
    "BaseChunker",
    "SectionChunker",
    "apply_headers",
    "chunk_page",
    "chunk_pages",
    "split_sentences",
]
