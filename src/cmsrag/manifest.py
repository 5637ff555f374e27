"""Manifest system for cmsrag.

Tracks ingested documents with SHA-256 content hashing for incremental updates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cmsrag.exceptions import ManifestError
from cmsrag.ingest.base import make_doc_id

if TYPE_CHECKING:
    from pathlib import Path

__all__ = [
    "DocumentEntry",
    "Manifest",
    "compute_hash",
    "load_manifest",
    "make_entry",
    "save_manifest",
]

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class DocumentEntry:
    """Immutable record of an ingested document."""

    id: str
    path: str
    doc_type: str
    hash: str
    added: str
    chunks: int = 0
    pages: int = 0


@dataclass
class Manifest:
    """Tracks all ingested documents in a project.

    Uses a dict internally for O(1) lookups by document ID.
    Serializes to/from a list in JSON for readability.
    """

    schema_version: str = "1"
    _documents: dict[str, DocumentEntry] = field(default_factory=dict)

    @property
    def documents(self) -> list[DocumentEntry]:
        """Return documents as a list (for iteration and serialization)."""
        return list(self._documents.values())

    def add_document(self, entry: DocumentEntry) -> None:
        """Add or replace a document entry."""
        self._documents[entry.id] = entry

    def remove_document(self, doc_id: str) -> bool:
        """Remove a document by ID. Returns True if found and removed."""
        return self._documents.pop(doc_id, None) is not None

    def get_document(self, doc_id: str) -> DocumentEntry | None:
        return self._documents.get(doc_id)

    def is_changed(self, doc_id: str, current_hash: str) -> bool:
        """Check if a document is new or its hash differs from the recorded one."""
        existing = self.get_document(doc_id)
        if existing is None:
            return True
        return existing.hash != current_hash


def compute_hash(path: Path) -> str:
    """Compute SHA-256 hash of a file's contents."""
    h = hashlib.sha256()
    try:
        with path.open("rb") as f:
            while True:
                block = f.read(HASH_CHUNK_SIZE)
                if not block:
                    break
                h.update(block)
    except OSError as e:
        raise ManifestError(f"Failed to hash file {path}: {e}") from e
    return f"sha256:{h.hexdigest()}"


def _entry_to_dict(entry: DocumentEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "path": entry.path,
        "type": entry.doc_type,
        "hash": entry.hash,
        "added": entry.added,
        "chunks": entry.chunks,
        "pages": entry.pages,
    }


def _entry_from_dict(data: dict[str, object]) -> DocumentEntry:
    required = ("id", "path", "hash", "added")
    missing = [k for k in required if k not in data]
    if missing:
        raise ManifestError(f"Document entry missing required fields: {missing}")
    return DocumentEntry(
        id=str(data["id"]),
        path=str(data["path"]),
        doc_type=str(data.get("type", "unknown")),
        hash=str(data["hash"]),
        added=str(data["added"]),
        chunks=int(str(data.get("chunks", 0))),
        pages=int(str(data.get("pages", 0))),
    )


def save_manifest(manifest: Manifest, path: Path) -> None:
    """Save manifest to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "schema_version": manifest.schema_version,
        "documents": [_entry_to_dict(d) for d in manifest.documents],
    }
    try:
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        logger.info("Saved manifest to %s", path)
    except OSError as e:
        logger.error("Failed to save manifest to %s: %s", path, e)
        raise ManifestError(f"Failed to save manifest to {path}: {e}") from e


def load_manifest(path: Path) -> Manifest:
    """Load manifest from a JSON file."""
    if not path.exists():
        raise ManifestError(f"Manifest file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to load manifest from %s: %s", path, e)
        raise ManifestError(f"Failed to load manifest from {path}: {e}") from e

    manifest = Manifest(schema_version=str(data.get("schema_version", "1")))
    for doc_data in data.get("documents", []):
        manifest.add_document(_entry_from_dict(doc_data))

    logger.info("Loaded manifest from %s (%d documents)", path, len(manifest.documents))
    return manifest


def make_entry(
    path: Path,
    doc_type: str,
    chunks: int = 0,
    pages: int = 0,
    file_hash: str = "",
) -> DocumentEntry:
    """Create a DocumentEntry for a file, hashing it unless a hash is given."""
    return DocumentEntry(
        id=make_doc_id(path),
        path=str(path),
        doc_type=doc_type,
        hash=file_hash or compute_hash(path),
        added=datetime.now(UTC).isoformat(),
        chunks=chunks,
        pages=pages,
    )
