"""Query-time retrieval: embed the question, over-fetch, rerank with MMR."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cmsrag.exceptions import InvalidInputError
from cmsrag.retrieve.mmr import rerank

if TYPE_CHECKING:
    from cmsrag.config import CmsragConfig
    from cmsrag.embed.base import BaseEmbedder
    from cmsrag.store.base import BaseStore
    from cmsrag.types import RetrievalResult

__all__ = ["CATEGORY_QUERIES", "MAX_QUERY_CHARS", "MIN_QUERY_CHARS", "Retriever"]

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS = 3
MAX_QUERY_CHARS = 1000

# Canned manual queries used when auditing a visit note one category at a time.
CATEGORY_QUERIES: dict[str, str] = {
    "homebound_status": "Medicare home health homebound status requirements criteria",
    "skilled_nursing_need": "Medicare skilled nursing services medical necessity requirements",
    "plan_of_care": "Medicare home health plan of care documentation requirements",
    "face_to_face": "Medicare home health face-to-face encounter requirements",
    "documentation": "Medicare home health visit documentation requirements",
}


class Retriever:
    """Answers questions with reranked passages from the vector store.

    Fetches ``top_k * fetch_multiplier`` candidates so MMR has room to trade
    raw similarity for diversity.
    """

    def __init__(self, embedder: BaseEmbedder, store: BaseStore, config: CmsragConfig) -> None:
        self.embedder = embedder
        self.store = store
        self.config = config

    def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        score_threshold: float | None = None,
    ) -> list[RetrievalResult]:
        """Retrieve up to ``top_k`` relevant, non-redundant passages.

        Args:
            query: Natural-language question.
            top_k: Result count; defaults to ``retrieval.top_k``.
            score_threshold: Minimum similarity; defaults to ``retrieval.score_threshold``.

        Raises:
            InvalidInputError: If the query is too short or too long.
            EmbeddingError: If the query cannot be embedded.
            StoreError: If the vector store query fails.
        """
        text = query.strip()
        if not MIN_QUERY_CHARS <= len(text) <= MAX_QUERY_CHARS:
            raise InvalidInputError(
                f"Query must be {MIN_QUERY_CHARS}-{MAX_QUERY_CHARS} characters, got {len(text)}"
            )

        settings = self.config.retrieval
        k = settings.top_k if top_k is None else top_k
        threshold = settings.score_threshold if score_threshold is None else score_threshold

        vector = self.embedder.embed(text)
        matches = self.store.query(vector, k=k * settings.fetch_multiplier)

        results = rerank(
            matches,
            top_k=k,
            score_threshold=threshold,
            mmr_lambda=settings.mmr_lambda,
        )
        logger.info(
            "Retrieved %d of %d candidates for query (%d chars)",
            len(results),
            len(matches),
            len(text),
        )
        return results

    def retrieve_for_category(
        self,
        category: str,
        top_k: int | None = None,
        score_threshold: float | None = None,
    ) -> list[RetrievalResult]:
        """Retrieve manual guidance for one compliance category.

        ``top_k`` defaults to ``retrieval.category_top_k``, narrower than free-text
        search.

        Raises:
            InvalidInputError: If the category is unknown.
        """
        query = CATEGORY_QUERIES.get(category)
        if query is None:
            raise InvalidInputError(
                f"Unknown category {category!r}. Available: {sorted(CATEGORY_QUERIES)}"
            )
        if top_k is None:
            top_k = self.config.retrieval.category_top_k
        return self.retrieve(query, top_k=top_k, score_threshold=score_threshold)
