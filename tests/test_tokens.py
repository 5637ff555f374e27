"""Tests for cmsrag.tokens module."""

from __future__ import annotations

from cmsrag.tokens import count_tokens


class TestCountTokens:
    def test_empty_string(self):
        assert count_tokens("") == 0

    def test_simple_text(self):
        tokens = count_tokens("Homebound status requires a taxing effort.")
        assert tokens > 0
        assert isinstance(tokens, int)

    def test_longer_text_has_more_tokens(self):
        short = count_tokens("Home")
        long = count_tokens("Home health agencies must document the face-to-face encounter.")
        assert long > short
