"""Plain text parser. Pages are split on form feed characters.

Text exports of the manual (``pdftotext`` output and similar) mark page
breaks with ``\\f``; a file without form feeds is a single page.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cmsrag.exceptions import ParseError
from cmsrag.ingest.base import BaseParser, check_file_size, make_doc_id
from cmsrag.types import PageContent, ParsedDocument

if TYPE_CHECKING:
    from pathlib import Path

    from cmsrag.config import CmsragConfig

__all__ = ["TextParser"]

logger = logging.getLogger(__name__)

MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50 MB

_PAGE_BREAK = "\f"


class TextParser(BaseParser):
    """Parser for plain text manual exports."""

    def parse(self, path: Path, config: CmsragConfig) -> ParsedDocument:
        """Read a text file and split it into pages.

        Raises:
            ParseError: If the file cannot be read.
        """
        if not path.exists():
            raise ParseError(f"Text file not found: {path}")

        if not path.is_file():
            raise ParseError(f"Not a file: {path}")

        check_file_size(path, MAX_FILE_SIZE)

        logger.info("Parsing text file: %s", path)

        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning("UTF-8 decode failed for %s, retrying with replacement", path.name)
            raw = path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise ParseError(f"Cannot read text file {path.name}: {e}") from e

        # Strip BOM if present
        if raw.startswith("\ufeff"):
            raw = raw[1:]

        raw = raw.replace("\r\n", "\n").replace("\r", "\n")
        parts = raw.split(_PAGE_BREAK)
        # a trailing form feed does not open another page
        if len(parts) > 1 and not parts[-1].strip():
            parts.pop()

        pages = tuple(
            PageContent(page_number=i, text=part.strip()) for i, part in enumerate(parts, 1)
        )

        logger.info("Parsed %s: %d pages", path.name, len(pages))

        return ParsedDocument(
            doc_id=make_doc_id(path),
            pages=pages,
            doc_type="text",
            title=_extract_title(raw, path),
            source_path=str(path),
        )

    def supported_extensions(self) -> frozenset[str]:
        """Return supported file extensions."""
        return frozenset({".txt", ".text"})


def _extract_title(raw: str, path: Path) -> str:
    """Extract title from the first non-empty line, or filename stem."""
    for line in raw.split("\n"):
        stripped = line.strip(" \t\f")
        if stripped:
            return stripped
    return path.stem
