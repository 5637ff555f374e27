"""Abstract base class for chunking strategies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cmsrag.config import CmsragConfig
    from cmsrag.types import Chunk, PageContent

__all__ = ["BaseChunker"]

logger = logging.getLogger(__name__)


class BaseChunker(ABC):
    """Base class for all chunking strategies.

    Subclasses split an ordered sequence of pages into a list of ``Chunk`` objects.
    """

    @abstractmethod
    def chunk(self, pages: Sequence[PageContent], config: CmsragConfig) -> list[Chunk]:
        """Split pages into chunks.

        Args:
            pages: Source pages in document order.
            config: Project configuration (target size, overlap).

        Returns:
            List of chunks with page and section metadata.
        """
