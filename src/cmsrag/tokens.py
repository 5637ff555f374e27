"""Token counting shared by embedding batching and chunk statistics."""

from __future__ import annotations

import functools

import tiktoken

__all__ = ["count_tokens"]


@functools.lru_cache(maxsize=1)
def _get_encoding() -> tiktoken.Encoding:
    """Get the tiktoken encoding, lazily initialized and thread-safe."""
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens in text using cl100k_base encoding."""
    if not text:
        return 0
    return len(_get_encoding().encode(text))
