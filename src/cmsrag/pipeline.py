"""Ingestion pipeline for cmsrag.

Composes parser → chunker → embedder → store via constructor injection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cmsrag.exceptions import PipelineError

if TYPE_CHECKING:
    from pathlib import Path

    from cmsrag.chunk.base import BaseChunker
    from cmsrag.config import CmsragConfig
    from cmsrag.embed.base import BaseEmbedder
    from cmsrag.ingest.base import BaseParser
    from cmsrag.store.base import BaseStore

__all__ = ["IngestStats", "Pipeline"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestStats:
    """Counts reported for one processed document."""

    pages: int
    chunks: int


class Pipeline:
    """Orchestrates the document ingestion pipeline.

    All dependencies are injected via the constructor, making the pipeline
    fully testable with mock implementations.

    Usage::

        pipeline = Pipeline(
            parser=PdfParser(),
            chunker=SectionChunker(),
            embedder=openai_embedder,
            store=chroma_store,
            config=config,
        )
        stats = pipeline.process(Path("bp102c07.pdf"), doc_id="bp102c07_pdf")
    """

    def __init__(
        self,
        parser: BaseParser,
        chunker: BaseChunker,
        embedder: BaseEmbedder,
        store: BaseStore,
        config: CmsragConfig,
    ) -> None:
        self.parser = parser
        self.chunker = chunker
        self.embedder = embedder
        self.store = store
        self.config = config

    def process(self, path: Path, doc_id: str) -> IngestStats:
        """Run the full pipeline: parse → chunk → embed → upsert.

        Args:
            path: Path to the document file.
            doc_id: Unique document identifier.

        Returns:
            Page and stored chunk counts.

        Raises:
            PipelineError: If any pipeline stage fails.
        """
        try:
            logger.info("Processing %s (doc_id=%s)", path, doc_id)

            document = self.parser.parse(path, self.config)
            logger.info(
                "Extracted %s: %d pages, %d chars",
                path.name,
                len(document.pages),
                document.char_count,
            )

            chunks = self.chunker.chunk(document.pages, self.config)
            logger.info("Chunked into %d chunks", len(chunks))

            if not chunks:
                logger.warning("No chunks produced for %s", path)
                return IngestStats(pages=len(document.pages), chunks=0)

            embedded = self.embedder.embed_chunks(chunks)
            logger.info("Embedded %d chunks", len(embedded))

            count = self.store.upsert(embedded, doc_id)
            logger.info("Stored %d chunks for %s", count, doc_id)

            return IngestStats(pages=len(document.pages), chunks=count)

        except PipelineError:
            raise
        except Exception as e:
            raise PipelineError(f"Pipeline failed processing {path}: {e}") from e

    def remove(self, doc_id: str) -> int:
        """Remove a document from the store.

        Raises:
            PipelineError: If removal fails.
        """
        try:
            count = self.store.delete(doc_id)
            logger.info("Removed %d chunks for %s", count, doc_id)
            return count
        except Exception as e:
            raise PipelineError(f"Pipeline failed removing {doc_id}: {e}") from e
