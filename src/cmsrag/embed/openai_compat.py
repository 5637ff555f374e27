"""OpenAI-compatible embedding provider.

Default provider for cmsrag, using ``text-embedding-3-small`` (1536 dimensions).
Works with any server implementing the OpenAI /v1/embeddings API:
OpenAI, LiteLLM proxy, vLLM, Ollama (OpenAI-compat mode), etc.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from cmsrag.embed.base import BaseEmbedder, retry_transient
from cmsrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from cmsrag.config import CmsragConfig

__all__ = ["OpenAICompatEmbedder"]

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"


@retry_transient
def _post(req: Request, timeout: float) -> bytes:
    with urlopen(req, timeout=timeout) as resp:
        return resp.read()


class OpenAICompatEmbedder(BaseEmbedder):
    """Embedding provider using any OpenAI-compatible /v1/embeddings endpoint.

    Supports both cloud APIs (with API key) and local servers (without API key).

    Config fields used::

        [embedding]
        provider = "openai"
        model = "text-embedding-3-small"
        api_key_env = "OPENAI_API_KEY"   # env var name; empty = no auth
        base_url = ""                     # empty = https://api.openai.com/v1
        batch_size = 100
        max_batch_tokens = 250000
        dimensions = 0                    # 0 = model default; >0 is sent to the API
    """

    _DEFAULT_TIMEOUT = 120  # seconds

    def __init__(self, config: CmsragConfig) -> None:
        self._model = config.embedding.model
        self._base_url = (config.embedding.base_url or _DEFAULT_BASE_URL).rstrip("/")
        self.batch_size = config.embedding.batch_size
        self.max_batch_tokens = config.embedding.max_batch_tokens
        self._requested_dimensions = config.embedding.dimensions
        self._dimension: int | None = None

        if self.batch_size < 1:
            raise EmbeddingError(f"batch_size must be >= 1, got {self.batch_size}")

        self._api_key: str | None = None
        if config.embedding.api_key_env:
            self._api_key = os.environ.get(config.embedding.api_key_env)
            if not self._api_key:
                logger.warning(
                    "API key env var %s is not set; requests may fail",
                    config.embedding.api_key_env,
                )

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings in provider-sized batches.

        Args:
            texts: Texts to embed.

        Returns:
            Embedding vectors in input order.

        Raises:
            EmbeddingError: If the API returns an error.
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        for batch in self.iter_batches(texts):
            vectors.extend(self._call_embeddings(batch))

        logger.info("Embedded %d texts via OpenAI-compatible API (%s)", len(vectors), self._model)
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

    def _call_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Call the /v1/embeddings endpoint.

        Raises:
            EmbeddingError: On connection or API errors.
        """
        url = f"{self._base_url}/embeddings"
        body: dict[str, object] = {"model": self._model, "input": texts}
        if self._requested_dimensions > 0:
            body["dimensions"] = self._requested_dimensions
        payload = json.dumps(body).encode("utf-8")

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = Request(url, data=payload, headers=headers)

        try:
            data = json.loads(_post(req, self._DEFAULT_TIMEOUT))
        except json.JSONDecodeError as e:
            raise EmbeddingError(f"Embedding API returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise EmbeddingError(f"Embedding API error (HTTP {e.code}): {e.reason}") from e
        except (ConnectionError, URLError) as e:
            raise EmbeddingError(
                f"Embedding API not reachable at {self._base_url}. Error: {e}"
            ) from e

        # OpenAI responses carry an "index" per item; order by it
        raw_items = data.get("data", [])
        if raw_items and all("index" in item for item in raw_items):
            raw_items = sorted(raw_items, key=lambda x: x["index"])

        try:
            embeddings: list[list[float]] = [item["embedding"] for item in raw_items]
        except (KeyError, TypeError) as e:
            raise EmbeddingError(
                f"Unexpected response format from {url}: missing 'embedding' field"
            ) from e

        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"API returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )

        if embeddings and self._dimension is None:
            self._dimension = len(embeddings[0])

        return embeddings
