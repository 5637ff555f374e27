"""ChromaDB built-in embedding provider using ONNX runtime.

Offline embedding (ChromaDB is already a project dependency).
Uses the all-MiniLM-L6-v2 model via ONNX, with no API key needed.
Model is auto-downloaded on first use (~80MB).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chromadb.utils.embedding_functions import DefaultEmbeddingFunction

from cmsrag.embed.base import BaseEmbedder
from cmsrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from cmsrag.config import CmsragConfig

__all__ = ["ChromaDBEmbedder"]

logger = logging.getLogger(__name__)


class ChromaDBEmbedder(BaseEmbedder):
    """Embedding provider using ChromaDB's built-in ONNX embedding function.

    Uses ``all-MiniLM-L6-v2`` (384 dimensions). Its cosine scores run lower
    than OpenAI's, so ``retrieval.score_threshold`` usually needs lowering.

    Config fields used::

        [embedding]
        provider = "chromadb"
        batch_size = 100
    """

    _FIXED_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, config: CmsragConfig) -> None:
        if config.embedding.model and config.embedding.model != self._FIXED_MODEL:
            logger.warning(
                "ChromaDB provider only supports %s, ignoring model=%r",
                self._FIXED_MODEL,
                config.embedding.model,
            )

        self.batch_size = config.embedding.batch_size
        self.max_batch_tokens = config.embedding.max_batch_tokens

        try:
            self._ef = DefaultEmbeddingFunction()
        except Exception as e:
            raise EmbeddingError(f"Failed to initialize ChromaDB embedding function: {e}") from e

        self._dimension: int | None = None
        logger.info("ChromaDBEmbedder initialized (ONNX %s)", self._FIXED_MODEL)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings locally through the ONNX model.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        for batch in self.iter_batches(texts):
            try:
                raw = self._ef(batch)
            except Exception as e:
                raise EmbeddingError(f"ChromaDB embedding failed: {e}") from e

            if len(raw) != len(batch):
                raise EmbeddingError(
                    f"ChromaDB returned {len(raw)} embeddings for {len(batch)} inputs"
                )
            vectors.extend([float(v) for v in vec] for vec in raw)

        if vectors and self._dimension is None:
            self._dimension = len(vectors[0])

        logger.info("Embedded %d texts via ChromaDB (ONNX)", len(vectors))
        return vectors

    @property
    def dimension(self) -> int:
        """Return the dimensionality of the embedding vectors (384 for MiniLM)."""
        if self._dimension is None:
            vec = self.embed("dimension check")
            self._dimension = len(vec)
        return self._dimension
