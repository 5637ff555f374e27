"""Vector store: ChromaDB persistent storage."""

from cmsrag.store.base import BaseStore
from cmsrag.store.chroma import ChromaStore

__all__ = ["BaseStore", "ChromaStore"]
