"""Ingestion: page extraction from manual PDFs and text exports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cmsrag.exceptions import ParseError
from cmsrag.ingest.base import BaseParser, make_doc_id
from cmsrag.ingest.pdf import PdfParser
from cmsrag.ingest.text import TextParser

if TYPE_CHECKING:
    from pathlib import Path

__all__ = [
    "BaseParser",
    "PdfParser",
    "TextParser",
    "get_parser",
    "get_supported_extensions",
    "make_doc_id",
]

_PARSERS: tuple[type[BaseParser], ...] = (PdfParser, TextParser)


def get_supported_extensions() -> frozenset[str]:
    """Return every file extension some parser can handle."""
    extensions: set[str] = set()
    for cls in _PARSERS:
        extensions |= cls().supported_extensions()
    return frozenset(extensions)


def get_parser(path: Path) -> BaseParser:
    """Return a parser instance able to read the given file.

    Raises:
        ParseError: If no parser handles the file's extension.
    """
    for cls in _PARSERS:
        parser = cls()
        if parser.can_parse(path):
            return parser
    raise ParseError(
        f"Unsupported file format: {path.suffix or path.name!r} "
        f"(supported: {', '.join(sorted(get_supported_extensions()))})"
    )
