"""Abstract base class for vector stores."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cmsrag.types import CandidateMatch, EmbeddedChunk

__all__ = ["BaseStore"]

logger = logging.getLogger(__name__)


class BaseStore(ABC):
    """Base class for all vector stores.

    Subclasses persist embedded chunks keyed by chunk ID and answer
    nearest-neighbour queries with scored candidates.
    """

    @abstractmethod
    def upsert(self, chunks: list[EmbeddedChunk], doc_id: str) -> int:
        """Insert or overwrite embedded chunks.

        Args:
            chunks: Embedded chunks to store.
            doc_id: Document ID these chunks belong to.

        Returns:
            Number of chunks written.

        Raises:
            StoreError: If storage fails.
        """

    @abstractmethod
    def query(self, vector: list[float], k: int = 10) -> list[CandidateMatch]:
        """Return up to ``k`` nearest chunks to ``vector``.

        Each match carries a similarity score (higher is better), the stored
        embedding and the chunk metadata.

        Raises:
            StoreError: If the query fails.
        """

    @abstractmethod
    def delete(self, doc_id: str) -> int:
        """Delete all chunks for a document.

        Returns:
            Number of chunks deleted.

        Raises:
            StoreError: If deletion fails.
        """

    @abstractmethod
    def count(self) -> int:
        """Return the total number of chunks in the store."""
