"""Abstract base class for document parsers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from cmsrag.exceptions import ParseError

if TYPE_CHECKING:
    from pathlib import Path

    from cmsrag.config import CmsragConfig
    from cmsrag.types import ParsedDocument

__all__ = ["BaseParser", "check_file_size", "make_doc_id"]

logger = logging.getLogger(__name__)


class BaseParser(ABC):
    """Base class for all document parsers.

    Subclasses must implement ``parse`` and ``supported_extensions``.
    The ``can_parse`` helper checks file extension membership.
    """

    @abstractmethod
    def parse(self, path: Path, config: CmsragConfig) -> ParsedDocument:
        """Extract a document's pages in reading order.

        Args:
            path: Path to the document file.
            config: Project configuration.

        Returns:
            ParsedDocument with one PageContent per source page.

        Raises:
            ParseError: If the document cannot be read.
        """

    @abstractmethod
    def supported_extensions(self) -> frozenset[str]:
        """Return the set of lowercase file extensions this parser handles, e.g. ``{".pdf"}``."""

    def can_parse(self, path: Path) -> bool:
        """Check whether this parser can handle the given file."""
        return path.suffix.lower() in self.supported_extensions()


def make_doc_id(path: Path) -> str:
    """Generate a document ID from a file path.

    Includes the file extension so ``manual.pdf`` and ``manual.txt`` differ.
    """
    stem = path.stem.lower().replace(" ", "_").replace("-", "_")
    suffix = path.suffix.lstrip(".").lower()
    return f"{stem}_{suffix}" if suffix else stem


def check_file_size(path: Path, max_size: int) -> None:
    """Validate file size.

    Raises:
        ParseError: If the file exceeds the size limit.
    """
    file_size = path.stat().st_size
    if file_size > max_size:
        msg = f"{path.name} ({file_size} bytes) exceeds maximum size ({max_size} bytes)"
        raise ParseError(msg)
