"""Abstract base class for embedding providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
from urllib.error import HTTPError, URLError

import backoff

from cmsrag.exceptions import EmbeddingError
from cmsrag.tokens import count_tokens
from cmsrag.types import EmbeddedChunk

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cmsrag.types import Chunk

__all__ = ["MAX_TRIES", "BaseEmbedder", "retry_transient"]

logger = logging.getLogger(__name__)

MAX_TRIES = 3


def _is_permanent(exc: Exception) -> bool:
    """HTTP errors other than rate limits and server errors are not retried."""
    return isinstance(exc, HTTPError) and exc.code != 429 and exc.code < 500


def _log_retry(details: dict[str, Any]) -> None:
    logger.warning(
        "Embedding request failed (attempt %d of %d), retrying in %.1fs: %s",
        details["tries"],
        MAX_TRIES,
        details["wait"],
        details["exception"],
    )


# Waits 1s then 2s between attempts. HTTPError subclasses URLError, so 429 and
# 5xx responses are retried while other HTTP errors give up immediately.
retry_transient = backoff.on_exception(
    backoff.expo,
    (ConnectionError, URLError),
    max_tries=MAX_TRIES,
    giveup=_is_permanent,
    jitter=None,
    on_backoff=_log_retry,
)


class BaseEmbedder(ABC):
    """Base class for all embedding providers.

    Subclasses implement ``embed_batch`` and ``dimension``; single-text and
    chunk embedding are built on top of the batch call.
    """

    batch_size: int = 100
    max_batch_tokens: int = 250_000

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts, one vector per text.

        Args:
            texts: Texts to embed.

        Returns:
            Embedding vectors in input order.

        Raises:
            EmbeddingError: If embedding generation fails.
        """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    def embed(self, text: str) -> list[float]:
        """Generate an embedding for a single text (typically a query).

        Raises:
            EmbeddingError: If the text is empty or embedding fails.
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")
        vectors = self.embed_batch([text.strip()])
        if len(vectors) != 1:
            raise EmbeddingError(f"Expected 1 embedding, got {len(vectors)}")
        return vectors[0]

    def embed_chunks(self, chunks: list[Chunk]) -> list[EmbeddedChunk]:
        """Generate embeddings for chunks and attach them.

        Raises:
            EmbeddingError: If embedding fails or the vector count is wrong.
        """
        if not chunks:
            return []

        vectors = self.embed_batch([c.text for c in chunks])
        if len(vectors) != len(chunks):
            raise EmbeddingError(f"Got {len(vectors)} embeddings for {len(chunks)} chunks")

        return [
            EmbeddedChunk(chunk=chunk, embedding=tuple(float(v) for v in vec))
            for chunk, vec in zip(chunks, vectors, strict=True)
        ]

    def iter_batches(self, texts: list[str]) -> Iterator[list[str]]:
        """Yield consecutive batches bounded by ``batch_size`` and ``max_batch_tokens``.

        A single text over the token budget still gets a batch of its own.
        """
        batch: list[str] = []
        batch_tokens = 0

        for text in texts:
            tokens = count_tokens(text)
            if batch and (
                len(batch) >= self.batch_size or batch_tokens + tokens > self.max_batch_tokens
            ):
                yield batch
                batch = []
                batch_tokens = 0
            batch.append(text)
            batch_tokens += tokens

        if batch:
            yield batch
