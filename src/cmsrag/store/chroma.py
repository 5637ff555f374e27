"""ChromaDB vector store using PersistentClient.

Stores embedded chunks with metadata for similarity search.
Uses file-based persistence, no server required.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import chromadb

from cmsrag.exceptions import StoreError
from cmsrag.store.base import BaseStore
from cmsrag.tokens import count_tokens
from cmsrag.types import CandidateMatch, MatchMetadata

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from cmsrag.types import EmbeddedChunk

__all__ = ["ChromaStore"]

logger = logging.getLogger(__name__)


class ChromaStore(BaseStore):
    """Vector store backed by ChromaDB with file-based persistence.

    The collection uses cosine distance, so ``score = 1 - distance`` is the
    cosine similarity the reranker's threshold is expressed in.

    Chunk IDs (``page-<n>-chunk-<m>``) are the primary key, so a collection
    holds one manual; re-ingesting overwrites chunks with the same ID.

    Usage::

        store = ChromaStore(persist_path=project_root / ".rag" / "index")
        store.upsert(embedded_chunks, doc_id="cms_bp_chapter7_pdf")
        matches = store.query(query_vector, k=10)
    """

    def __init__(self, persist_path: Path, collection_name: str = "cms_manual") -> None:
        self._persist_path = persist_path
        self._collection_name = collection_name

        try:
            self._client = chromadb.PersistentClient(path=str(persist_path))
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as e:
            raise StoreError(f"Failed to initialize ChromaDB at {persist_path}: {e}") from e

        logger.info(
            "ChromaDB store initialized at %s (collection=%s)", persist_path, collection_name
        )

    def upsert(self, chunks: list[EmbeddedChunk], doc_id: str) -> int:
        """Insert or overwrite embedded chunks in ChromaDB.

        Raises:
            StoreError: If storage fails.
        """
        if not chunks:
            return 0

        ids = [c.chunk.chunk_id for c in chunks]
        embeddings = [list(c.embedding) for c in chunks]
        documents = [c.chunk.text for c in chunks]
        metadatas = [
            {
                "doc_id": doc_id,
                "page_number": c.chunk.page_number,
                "section": c.chunk.section,
                "subsection": c.chunk.subsection,
                "token_count": count_tokens(c.chunk.text),
            }
            for c in chunks
        ]

        try:
            existing = self._collection.get(ids=ids, include=["metadatas"])
            self._collection.upsert(
                ids=ids,
                embeddings=embeddings,  # type: ignore[arg-type]
                documents=documents,
                metadatas=metadatas,  # type: ignore[arg-type]
            )
        except Exception as e:
            raise StoreError(f"Failed to upsert {len(chunks)} chunks for {doc_id}: {e}") from e

        owners = {
            str(meta.get("doc_id", ""))
            for meta in existing.get("metadatas") or []
            if meta and meta.get("doc_id", "") != doc_id
        }
        if owners:
            logger.warning(
                "Chunk IDs for doc_id=%s overwrote chunks belonging to %s",
                doc_id,
                ", ".join(sorted(owners)),
            )

        logger.info("Upserted %d chunks for doc_id=%s", len(chunks), doc_id)
        return len(chunks)

    def query(self, vector: list[float], k: int = 10) -> list[CandidateMatch]:
        """Return up to ``k`` nearest chunks with scores, embeddings and metadata.

        Raises:
            StoreError: If the query fails.
        """
        total = self.count()
        if total == 0 or k < 1:
            return []

        # ChromaDB raises if n_results exceeds the collection size
        actual_k = min(k, total)

        try:
            results = self._collection.query(
                query_embeddings=[vector],  # type: ignore[arg-type]
                n_results=actual_k,
                include=["documents", "metadatas", "distances", "embeddings"],
            )
        except Exception as e:
            raise StoreError(f"Query failed: {e}") from e

        # results are batched per query embedding; there is exactly one
        raw_ids = results.get("ids")
        raw_docs = results.get("documents")
        raw_metas = results.get("metadatas")
        raw_dists = results.get("distances")
        raw_embs = results.get("embeddings")

        if not raw_ids or not raw_docs or not raw_metas or not raw_dists:
            return []

        ids = raw_ids[0]
        # embeddings come back as numpy arrays; avoid truth-testing them
        embeddings: Any = raw_embs[0] if raw_embs is not None and len(raw_embs) > 0 else None
        if embeddings is None:
            embeddings = [None] * len(ids)

        matches: list[CandidateMatch] = []
        for match_id, doc, meta, dist, emb in zip(
            ids, raw_docs[0], raw_metas[0], raw_dists[0], embeddings, strict=True
        ):
            matches.append(
                CandidateMatch(
                    match_id=match_id,
                    score=1.0 - float(dist),
                    embedding=tuple(float(v) for v in emb) if emb is not None else (),
                    metadata=self._meta_from_dict(doc, meta),
                )
            )

        return matches

    def delete(self, doc_id: str) -> int:
        """Delete all chunks for a document.

        Raises:
            StoreError: If deletion fails.
        """
        try:
            existing = self._collection.get(
                where={"doc_id": doc_id},
                include=[],
            )
            count = len(existing["ids"])

            if count == 0:
                return 0

            self._collection.delete(where={"doc_id": doc_id})
        except Exception as e:
            raise StoreError(f"Failed to delete chunks for {doc_id}: {e}") from e

        logger.info("Deleted %d chunks for doc_id=%s", count, doc_id)
        return count

    def count(self) -> int:
        """Return the total number of chunks in the collection."""
        try:
            return self._collection.count()
        except Exception as e:
            raise StoreError(f"Failed to count chunks: {e}") from e

    @staticmethod
    def _meta_from_dict(document: str | None, meta: Mapping[str, Any] | None) -> MatchMetadata:
        """Rebuild match metadata; absent fields fall back to empty / 0."""
        meta = meta or {}
        page = meta.get("page_number", 0)
        return MatchMetadata(
            text=document or "",
            page_number=int(page) if page is not None else 0,
            section=str(meta.get("section", "") or ""),
            subsection=str(meta.get("subsection", "") or ""),
        )
