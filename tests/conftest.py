"""Shared fixtures for cmsrag tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fixtures.generate_pdf import generate_sample_pdf

from cmsrag.config import CmsragConfig, save_config
from cmsrag.manifest import Manifest, save_manifest
from cmsrag.project import CONFIG_FILE, INDEX_DIR, MANIFEST_FILE, RAG_DIR

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A temporary directory simulating a project root."""
    return tmp_path


@pytest.fixture
def initialized_project(tmp_path: Path) -> Path:
    """A temporary project with .rag/ already initialized."""
    rag = tmp_path / RAG_DIR
    (rag / INDEX_DIR).mkdir(parents=True)

    config = CmsragConfig()
    config.project.name = "test-project"
    save_config(config, rag / CONFIG_FILE)
    save_manifest(Manifest(), rag / MANIFEST_FILE)

    return tmp_path


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    """A small sample file for hash testing."""
    f = tmp_path / "sample.txt"
    f.write_text("Home health services are covered under Part A.", encoding="utf-8")
    return f


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    """A three-page manual chapter PDF generated with PyMuPDF."""
    return generate_sample_pdf(tmp_path / "bp102c07.pdf")
