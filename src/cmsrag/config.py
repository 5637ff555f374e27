"""Configuration system for cmsrag.

Manages project configuration via .rag/config.toml with typed dataclasses
and sensible defaults for all values.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

import tomli_w

if sys.version_info >= (3, 12):
    import tomllib
else:
    import tomli as tomllib

from cmsrag.exceptions import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

_T = TypeVar("_T")

__all__ = [
    "ChunkConfig",
    "CmsragConfig",
    "EmbeddingConfig",
    "ProjectConfig",
    "RetrievalConfig",
    "StoreConfig",
    "default_config",
    "load_config",
    "save_config",
]

logger = logging.getLogger(__name__)


@dataclass
class ProjectConfig:
    """[project] section."""

    name: str = ""
    description: str = ""


@dataclass
class ChunkConfig:
    """[chunk] section.

    ``target_chars`` is both the split target and the short-page threshold.
    """

    target_chars: int = 800
    overlap_chars: int = 200


@dataclass
class EmbeddingConfig:
    """[embedding] section."""

    provider: str = "openai"
    model: str = "text-embedding-3-small"
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str = ""
    batch_size: int = 100
    max_batch_tokens: int = 250_000
    dimensions: int = 0


@dataclass
class RetrievalConfig:
    """[retrieval] section."""

    top_k: int = 5
    score_threshold: float = 0.70
    mmr_lambda: float = 0.7
    fetch_multiplier: int = 2
    category_top_k: int = 3


@dataclass
class StoreConfig:
    """[store] section."""

    collection_name: str = "cms_manual"


@dataclass
class CmsragConfig:
    """Root configuration combining all sections."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    chunk: ChunkConfig = field(default_factory=ChunkConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


_SECTIONS: dict[str, type] = {
    "project": ProjectConfig,
    "chunk": ChunkConfig,
    "embedding": EmbeddingConfig,
    "retrieval": RetrievalConfig,
    "store": StoreConfig,
}


def default_config() -> CmsragConfig:
    """Return a config with all default values."""
    return CmsragConfig()


def _config_to_dict(config: CmsragConfig) -> dict[str, object]:
    """Convert CmsragConfig to a nested dict suitable for TOML serialization."""
    return {name: dict(vars(getattr(config, name))) for name in _SECTIONS}


def save_config(config: CmsragConfig, path: Path) -> None:
    """Save configuration to a TOML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = _config_to_dict(config)
    try:
        with path.open("wb") as f:
            tomli_w.dump(data, f)
        logger.info("Saved config to %s", path)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise ConfigError(f"Failed to save config to {path}: {e}") from e


def _load_section(cls: type[_T], data: dict[str, object]) -> _T:
    """Load a dataclass section from a dict, ignoring unknown keys."""
    known_fields = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    filtered = {k: v for k, v in data.items() if k in known_fields}
    return cls(**filtered)


def _validate(config: CmsragConfig) -> None:
    """Reject values the chunker and reranker cannot work with."""
    if config.chunk.target_chars < 1:
        raise ConfigError(f"chunk.target_chars must be >= 1, got {config.chunk.target_chars}")
    if not 0 <= config.chunk.overlap_chars < config.chunk.target_chars:
        raise ConfigError(
            "chunk.overlap_chars must be in [0, target_chars), "
            f"got {config.chunk.overlap_chars}"
        )
    if not 0.0 <= config.retrieval.mmr_lambda <= 1.0:
        raise ConfigError(
            f"retrieval.mmr_lambda must be in [0, 1], got {config.retrieval.mmr_lambda}"
        )
    if config.retrieval.fetch_multiplier < 1:
        raise ConfigError(
            f"retrieval.fetch_multiplier must be >= 1, got {config.retrieval.fetch_multiplier}"
        )
    if config.retrieval.category_top_k < 1:
        raise ConfigError(
            f"retrieval.category_top_k must be >= 1, got {config.retrieval.category_top_k}"
        )
    if config.embedding.dimensions < 0:
        raise ConfigError(f"embedding.dimensions must be >= 0, got {config.embedding.dimensions}")


def load_config(path: Path) -> CmsragConfig:
    """Load configuration from a TOML file.

    Missing sections or keys get default values.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_bytes()
        data = tomllib.loads(raw.decode("utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    config = CmsragConfig()
    for name, cls in _SECTIONS.items():
        if name in data:
            try:
                setattr(config, name, _load_section(cls, data[name]))
            except (TypeError, AttributeError) as e:
                raise ConfigError(f"Invalid [{name}] section in {path}: {e}") from e

    _validate(config)
    logger.info("Loaded config from %s", path)
    return config
