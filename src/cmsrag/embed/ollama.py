"""Ollama embedding provider using the /api/embed endpoint.

Local alternative to the OpenAI API, e.g. with ``nomic-embed-text``.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from cmsrag.embed.base import BaseEmbedder, retry_transient
from cmsrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from cmsrag.config import CmsragConfig

__all__ = ["OllamaEmbedder"]

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"


@retry_transient
def _post(req: Request, timeout: float) -> bytes:
    with urlopen(req, timeout=timeout) as resp:
        return resp.read()


class OllamaEmbedder(BaseEmbedder):
    """Embedding provider using a local Ollama instance.

    Config fields used::

        [embedding]
        provider = "ollama"
        model = "nomic-embed-text"
        base_url = ""           # empty = http://localhost:11434
        batch_size = 100
    """

    _DEFAULT_TIMEOUT = 120  # seconds

    def __init__(self, config: CmsragConfig) -> None:
        self._model = config.embedding.model
        self._base_url = (config.embedding.base_url or _DEFAULT_BASE_URL).rstrip("/")
        self.batch_size = config.embedding.batch_size
        self.max_batch_tokens = config.embedding.max_batch_tokens
        self._dimension: int | None = None

        if self.batch_size < 1:
            raise EmbeddingError(f"batch_size must be >= 1, got {self.batch_size}")

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings via Ollama, split into batches.

        Raises:
            EmbeddingError: If Ollama is not reachable or returns an error.
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        for batch in self.iter_batches(texts):
            vectors.extend(self._call_embed(batch))

        logger.info("Embedded %d texts via Ollama (%s)", len(vectors), self._model)
        return vectors

    @property
    def dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Warning:
            First access makes a network call to query the model.
        """
        if self._dimension is None:
            vec = self.embed("dimension check")
            self._dimension = len(vec)
        return self._dimension

    def _call_embed(self, texts: list[str]) -> list[list[float]]:
        """Call the Ollama /api/embed endpoint.

        Raises:
            EmbeddingError: On connection or API errors.
        """
        url = f"{self._base_url}/api/embed"
        payload = json.dumps({"model": self._model, "input": texts}).encode("utf-8")
        req = Request(url, data=payload, headers={"Content-Type": "application/json"})

        try:
            data = json.loads(_post(req, self._DEFAULT_TIMEOUT))
        except json.JSONDecodeError as e:
            raise EmbeddingError(f"Ollama returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise EmbeddingError(f"Ollama API error (HTTP {e.code}): {e.reason}") from e
        except (ConnectionError, URLError) as e:
            raise EmbeddingError(
                f"Ollama not reachable at {self._base_url}. Is Ollama running? Error: {e}"
            ) from e

        embeddings: list[list[float]] = data.get("embeddings", [])
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )

        if embeddings and self._dimension is None:
            self._dimension = len(embeddings[0])

        return embeddings
