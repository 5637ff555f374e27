"""Custom exception hierarchy for cmsrag."""

__all__ = [
    "CmsragError",
    "ConfigError",
    "EmbeddingError",
    "InvalidInputError",
    "ManifestError",
    "ParseError",
    "PipelineError",
    "PluginError",
    "ProjectError",
    "StoreError",
]


class CmsragError(Exception):
    """Base exception for all cmsrag errors."""


class ConfigError(CmsragError):
    """Raised when configuration loading or validation fails."""


class ManifestError(CmsragError):
    """Raised when manifest operations fail."""


class ProjectError(CmsragError):
    """Raised when project initialization or discovery fails."""


class ParseError(CmsragError):
    """Raised when page extraction from a source document fails."""


class EmbeddingError(CmsragError):
    """Raised when embedding generation fails."""


class StoreError(CmsragError):
    """Raised when vector store operations fail."""


class InvalidInputError(CmsragError):
    """Raised when retrieval input is malformed (bad query, vector dimension mismatch)."""


class PipelineError(CmsragError):
    """Raised when pipeline orchestration fails."""


class PluginError(CmsragError):
    """Raised when plugin loading or registration fails."""
