"""Maximal Marginal Relevance reranking of vector store candidates.

Turns a raw nearest-neighbour list into a small context set that balances
similarity to the query against redundancy among the picks::

    MMR(d) = λ · score(d) − (1 − λ) · max(cos(d, s) for s in selected)

Pure functions over already-fetched candidates, with no I/O.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from cmsrag.exceptions import InvalidInputError
from cmsrag.types import MatchMetadata, RetrievalResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cmsrag.types import CandidateMatch

__all__ = [
    "DEFAULT_MMR_LAMBDA",
    "DEFAULT_SCORE_THRESHOLD",
    "DEFAULT_TOP_K",
    "apply_mmr",
    "cosine_similarity",
    "filter_by_score",
    "rerank",
    "to_result",
]

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_SCORE_THRESHOLD = 0.70

# Relevance weight λ; the remaining (1 − λ) penalises similarity to earlier picks.
DEFAULT_MMR_LAMBDA = 0.7

_EMPTY_METADATA = MatchMetadata()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        InvalidInputError: If the vectors differ in dimension.
    """
    if len(a) != len(b):
        raise InvalidInputError(
            f"Cannot compare vectors of different dimension ({len(a)} vs {len(b)})"
        )

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b, strict=True):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def filter_by_score(matches: Iterable[CandidateMatch], threshold: float) -> list[CandidateMatch]:
    """Keep matches scoring at least ``threshold``, preserving input order."""
    return [m for m in matches if m.score >= threshold]


def _max_similarity(candidate: CandidateMatch, selected: Sequence[CandidateMatch]) -> float:
    best = 0.0
    for picked in selected:
        if candidate.has_embedding and picked.has_embedding:
            best = max(best, cosine_similarity(candidate.embedding, picked.embedding))
    return best


def apply_mmr(
    matches: Sequence[CandidateMatch],
    top_k: int,
    mmr_lambda: float = DEFAULT_MMR_LAMBDA,
) -> list[CandidateMatch]:
    """Select up to ``top_k`` matches by Maximal Marginal Relevance.

    Only matches carrying an embedding take part. If none do, the first
    ``top_k`` matches are returned in their given order.

    The highest-scoring match seeds the selection. Each further round picks
    the remaining match with the best MMR score; on ties the earliest match
    in the remaining list wins. The remaining list keeps its order between
    rounds.

    Args:
        matches: Candidates that already passed the score threshold.
        top_k: Maximum number of matches to select.
        mmr_lambda: Relevance weight λ in [0, 1].

    Returns:
        Selected matches in selection order.

    Raises:
        InvalidInputError: If two candidate embeddings differ in dimension.
    """
    if top_k < 1 or not matches:
        return []

    remaining = [m for m in matches if m.has_embedding]
    if not remaining:
        logger.debug("No candidate embeddings, falling back to score order")
        return list(matches[:top_k])

    # sorted() is stable, so equal scores keep their incoming order
    remaining = sorted(remaining, key=lambda m: m.score, reverse=True)
    selected = [remaining.pop(0)]

    while len(selected) < top_k and remaining:
        best_score = -math.inf
        best_index = 0

        for i, candidate in enumerate(remaining):
            mmr_score = mmr_lambda * candidate.score - (1 - mmr_lambda) * _max_similarity(
                candidate, selected
            )
            if mmr_score > best_score:
                best_score = mmr_score
                best_index = i

        selected.append(remaining.pop(best_index))

    return selected


def to_result(match: CandidateMatch) -> RetrievalResult:
    """Map a candidate onto the result shape handed to response generation."""
    meta = match.metadata or _EMPTY_METADATA
    return RetrievalResult(
        text=meta.text,
        page_number=meta.page_number,
        section=meta.section,
        subsection=meta.subsection,
        score=match.score,
    )


def rerank(
    matches: Iterable[CandidateMatch],
    top_k: int = DEFAULT_TOP_K,
    score_threshold: float = DEFAULT_SCORE_THRESHOLD,
    mmr_lambda: float = DEFAULT_MMR_LAMBDA,
) -> list[RetrievalResult]:
    """Filter by score threshold, then MMR-select up to ``top_k`` results."""
    candidates = list(matches)
    filtered = filter_by_score(candidates, score_threshold)
    selected = apply_mmr(filtered, top_k, mmr_lambda)

    logger.debug(
        "Reranked %d candidates: %d above threshold %.2f, %d selected",
        len(candidates),
        len(filtered),
        score_threshold,
        len(selected),
    )
    return [to_result(m) for m in selected]
