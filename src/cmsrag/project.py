"""Project manager for cmsrag.

Handles project initialization, status reporting, and project root discovery.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from cmsrag.config import CmsragConfig, default_config, load_config, save_config
from cmsrag.exceptions import ProjectError
from cmsrag.manifest import Manifest, load_manifest, save_manifest

__all__ = [
    "CONFIG_FILE",
    "INDEX_DIR",
    "MANIFEST_FILE",
    "RAG_DIR",
    "ProjectManager",
    "ProjectStatus",
]

logger = logging.getLogger(__name__)

RAG_DIR = ".rag"
CONFIG_FILE = "config.toml"
MANIFEST_FILE = "manifest.json"
INDEX_DIR = "index"


@dataclass
class ProjectStatus:
    """Summary of the current project state."""

    initialized: bool
    root: Path
    document_count: int
    chunk_count: int
    page_count: int
    config: CmsragConfig | None


class ProjectManager:
    """Manages cmsrag project lifecycle."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or Path.cwd()

    @property
    def rag_dir(self) -> Path:
        return self.root / RAG_DIR

    @property
    def config_path(self) -> Path:
        return self.rag_dir / CONFIG_FILE

    @property
    def manifest_path(self) -> Path:
        return self.rag_dir / MANIFEST_FILE

    @property
    def index_path(self) -> Path:
        return self.rag_dir / INDEX_DIR

    @property
    def is_initialized(self) -> bool:
        return self.rag_dir.is_dir() and self.config_path.exists() and self.manifest_path.exists()

    def init(self, name: str = "", provider: str = "") -> Path:
        """Initialize a new cmsrag project.

        Creates .rag/ directory structure, default config, and empty manifest.
        Safe to call on an already-initialized project (idempotent).

        Returns the .rag/ directory path.
        """
        try:
            self.index_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProjectError(f"Cannot create {self.rag_dir}: {e}") from e

        if self.config_path.exists():
            config = load_config(self.config_path)
            logger.info("Existing config found at %s", self.config_path)
        else:
            config = default_config()

        if name:
            config.project.name = name
        elif not config.project.name:
            config.project.name = self.root.name
        if provider:
            config.embedding.provider = provider

        save_config(config, self.config_path)

        if not self.manifest_path.exists():
            save_manifest(Manifest(), self.manifest_path)

        logger.info("Initialized cmsrag project at %s", self.rag_dir)
        return self.rag_dir

    def status(self) -> ProjectStatus:
        """Get current project status."""
        if not self.is_initialized:
            return ProjectStatus(
                initialized=False,
                root=self.root,
                document_count=0,
                chunk_count=0,
                page_count=0,
                config=None,
            )

        config = load_config(self.config_path)
        manifest = load_manifest(self.manifest_path)

        return ProjectStatus(
            initialized=True,
            root=self.root,
            document_count=len(manifest.documents),
            chunk_count=sum(d.chunks for d in manifest.documents),
            page_count=sum(d.pages for d in manifest.documents),
            config=config,
        )

    @staticmethod
    def find_project_root(start: Path | None = None) -> Path | None:
        """Walk up from start directory to find a .rag/ directory.

        Returns the project root (parent of .rag/) or None if not found.
        """
        current = (start or Path.cwd()).resolve()
        while True:
            if (current / RAG_DIR).is_dir():
                return current
            parent = current.parent
            if parent == current:
                return None
            current = parent
