"""Retrieval: MMR reranking and the query-time retriever."""

from cmsrag.retrieve.mmr import (
    apply_mmr,
    cosine_similarity,
    filter_by_score,
    rerank,
    to_result,
)
from cmsrag.retrieve.retriever import CATEGORY_QUERIES, Retriever

__all__ = [
    "CATEGORY_QUERIES",
    "Retriever",
    "apply_mmr",
    "cosine_similarity",
    "filter_by_score",
    "rerank",
    "to_result",
]
