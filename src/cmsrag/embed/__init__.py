"""Embedding providers: abstract provider interface and concrete providers."""

from cmsrag.embed.base import BaseEmbedder
from cmsrag.embed.chromadb_embed import ChromaDBEmbedder
from cmsrag.embed.ollama import OllamaEmbedder
from cmsrag.embed.openai_compat import OpenAICompatEmbedder
from cmsrag.registry import default_registry

__all__ = ["BaseEmbedder", "ChromaDBEmbedder", "OllamaEmbedder", "OpenAICompatEmbedder"]

# Register built-in embedding providers
default_registry.register("embedding", "openai", lambda cfg: OpenAICompatEmbedder(cfg))
default_registry.register("embedding", "ollama", lambda cfg: OllamaEmbedder(cfg))
default_registry.register("embedding", "chromadb", lambda cfg: ChromaDBEmbedder(cfg))
