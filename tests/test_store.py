"""Tests for cmsrag.store.chroma module: ChromaDB vector store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from cmsrag.exceptions import StoreError
from cmsrag.store import BaseStore, ChromaStore
from cmsrag.types import CandidateMatch, Chunk, EmbeddedChunk

if TYPE_CHECKING:
    from pathlib import Path


# --- Helpers ---


def _embedded(
    chunk_id: str = "page-1-chunk-1",
    text: str = "The patient must be confined to the home.",
    embedding: tuple[float, ...] = (1.0, 0.0, 0.0),
    page: int = 1,
    section: str = "10 - Conditions",
    subsection: str = "10.1 - Confined to the Home",
) -> EmbeddedChunk:
    chunk = Chunk(
        chunk_id=chunk_id,
        text=text,
        page_number=page,
        section=section,
        subsection=subsection,
    )
    return EmbeddedChunk(chunk=chunk, embedding=embedding)


def _make_store(tmp_path: Path, collection_name: str = "test") -> ChromaStore:
    return ChromaStore(persist_path=tmp_path / "chroma", collection_name=collection_name)


def _three_chunks() -> list[EmbeddedChunk]:
    return [
        _embedded("page-1-chunk-1", "Homebound criteria.", (1.0, 0.0, 0.0), page=1),
        _embedded("page-2-chunk-1", "Skilled nursing need.", (0.0, 1.0, 0.0), page=2),
        _embedded("page-3-chunk-1", "Plan of care rules.", (0.0, 0.0, 1.0), page=3),
    ]


# --- Init ---


class TestChromaStoreInit:
    def test_is_base_store(self, tmp_path: Path):
        assert isinstance(_make_store(tmp_path), BaseStore)

    def test_starts_empty(self, tmp_path: Path):
        assert _make_store(tmp_path).count() == 0

    def test_default_collection_name(self, tmp_path: Path):
        store = ChromaStore(persist_path=tmp_path / "chroma")
        assert store.count() == 0


# --- Upsert ---


class TestChromaStoreUpsert:
    def test_empty_returns_zero(self, tmp_path: Path):
        assert _make_store(tmp_path).upsert([], "doc1") == 0

    def test_stores_chunks(self, tmp_path: Path):
        store = _make_store(tmp_path)
        assert store.upsert(_three_chunks(), "bp102c07_pdf") == 3
        assert store.count() == 3

    def test_same_ids_overwrite(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert([_embedded(text="old text")], "doc1")
        store.upsert([_embedded(text="new text")], "doc1")
        assert store.count() == 1
        matches = store.query([1.0, 0.0, 0.0], k=1)
        assert matches[0].metadata is not None
        assert matches[0].metadata.text == "new text"

    def test_warns_when_ids_owned_by_other_doc(self, tmp_path: Path, caplog):
        store = _make_store(tmp_path)
        store.upsert([_embedded(text="chapter 7 text")], "bp102c07_pdf")
        with caplog.at_level(logging.WARNING, logger="cmsrag.store.chroma"):
            store.upsert([_embedded(text="chapter 8 text")], "bp102c08_pdf")
        assert "doc_id=bp102c08_pdf overwrote chunks belonging to bp102c07_pdf" in caplog.text
        assert store.count() == 1

    def test_no_warning_when_same_doc_reindexed(self, tmp_path: Path, caplog):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        with caplog.at_level(logging.WARNING, logger="cmsrag.store.chroma"):
            store.upsert(_three_chunks(), "doc1")
        assert "overwrote" not in caplog.text

    def test_dimension_mismatch_raises(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert([_embedded()], "doc1")
        with pytest.raises(StoreError, match="Failed to upsert"):
            store.upsert([_embedded("page-9-chunk-1", embedding=(1.0, 0.0))], "doc1")


# --- Query ---


class TestChromaStoreQuery:
    def test_returns_candidate_matches(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        matches = store.query([1.0, 0.0, 0.0], k=3)
        assert all(isinstance(m, CandidateMatch) for m in matches)
        assert matches[0].match_id == "page-1-chunk-1"

    def test_score_is_cosine_similarity(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        matches = store.query([1.0, 0.0, 0.0], k=3)
        assert matches[0].score == pytest.approx(1.0, abs=1e-4)
        assert matches[1].score == pytest.approx(0.0, abs=1e-4)

    def test_scores_descending(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        scores = [m.score for m in store.query([0.9, 0.3, 0.1], k=3)]
        assert scores == sorted(scores, reverse=True)

    def test_returns_embeddings(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        match = store.query([0.0, 1.0, 0.0], k=1)[0]
        assert match.has_embedding
        assert match.embedding == pytest.approx((0.0, 1.0, 0.0))

    def test_reconstructs_metadata(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        meta = store.query([0.0, 0.0, 1.0], k=1)[0].metadata
        assert meta is not None
        assert meta.text == "Plan of care rules."
        assert meta.page_number == 3
        assert meta.section == "10 - Conditions"
        assert meta.subsection == "10.1 - Confined to the Home"

    def test_respects_k(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        assert len(store.query([1.0, 0.0, 0.0], k=2)) == 2

    def test_k_larger_than_collection(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        assert len(store.query([1.0, 0.0, 0.0], k=50)) == 3

    def test_empty_collection(self, tmp_path: Path):
        assert _make_store(tmp_path).query([1.0, 0.0, 0.0], k=5) == []

    def test_k_zero(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks(), "doc1")
        assert store.query([1.0, 0.0, 0.0], k=0) == []

    def test_empty_section_labels(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert([_embedded(section="", subsection="")], "doc1")
        meta = store.query([1.0, 0.0, 0.0], k=1)[0].metadata
        assert meta is not None
        assert meta.section == ""
        assert meta.subsection == ""


# --- Delete ---


class TestChromaStoreDelete:
    def test_delete_by_doc_id(self, tmp_path: Path):
        store = _make_store(tmp_path)
        store.upsert(_three_chunks()[:2], "doc1")
        store.upsert(_three_chunks()[2:], "doc2")
        assert store.delete("doc1") == 2
        assert store.count() == 1

    def test_delete_nonexistent_returns_zero(self, tmp_path: Path):
        assert _make_store(tmp_path).delete("missing") == 0


# --- Persistence ---


class TestChromaStorePersistence:
    def test_data_persists_across_instances(self, tmp_path: Path):
        _make_store(tmp_path).upsert(_three_chunks(), "doc1")
        reopened = _make_store(tmp_path)
        assert reopened.count() == 3
        assert reopened.query([1.0, 0.0, 0.0], k=1)[0].match_id == "page-1-chunk-1"
