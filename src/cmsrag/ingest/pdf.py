"""PDF parser. Extracts per-page text from manual PDFs with PyMuPDF.

Page numbers are the 1-based physical page index, which is what chunk IDs
and citations refer to.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pymupdf

from cmsrag.exceptions import ParseError
from cmsrag.ingest.base import BaseParser, check_file_size, make_doc_id
from cmsrag.types import PageContent, ParsedDocument

if TYPE_CHECKING:
    from pathlib import Path

    from cmsrag.config import CmsragConfig

__all__ = ["PdfParser"]

logger = logging.getLogger(__name__)


class PdfParser(BaseParser):
    """Parser for PDF documents (CMS manual chapters, transmittals)."""

    MAX_FILE_SIZE: int = 200 * 1024 * 1024  # 200 MB

    def parse(self, path: Path, config: CmsragConfig) -> ParsedDocument:
        """Extract the text of every page of a PDF.

        Pages without text (scans, blank separators) are kept as empty
        pages so numbering stays aligned with the physical document.

        Raises:
            ParseError: If the PDF cannot be opened or read.
        """
        if not path.exists():
            raise ParseError(f"PDF file not found: {path.name}")

        check_file_size(path, self.MAX_FILE_SIZE)

        logger.info("Parsing PDF file: %s", path)

        try:
            doc = pymupdf.open(str(path))
        except (RuntimeError, ValueError, OSError) as e:
            logger.debug("PDF open failure (%s): %s", type(e).__name__, e, exc_info=True)
            raise ParseError(f"Failed to open PDF file {path.name}: {e}") from e

        try:
            if doc.needs_pass:
                raise ParseError(f"PDF file {path.name} is encrypted")

            pages: list[PageContent] = []
            for index in range(len(doc)):
                try:
                    text = doc.load_page(index).get_text()
                except (RuntimeError, ValueError) as e:
                    raise ParseError(
                        f"Failed to extract page {index + 1} of {path.name}: {e}"
                    ) from e
                pages.append(PageContent(page_number=index + 1, text=text.strip()))

            pdf_meta = doc.metadata or {}
            title = pdf_meta.get("title", "") or path.stem
        finally:
            doc.close()

        empty = sum(1 for p in pages if not p.text.strip())
        if empty:
            logger.warning(
                "%s: %d of %d pages have no extractable text", path.name, empty, len(pages)
            )

        logger.info("Parsed %s: %d pages", path.name, len(pages))

        return ParsedDocument(
            doc_id=make_doc_id(path),
            pages=tuple(pages),
            doc_type="pdf",
            title=title,
            source_path=str(path),
        )

    def supported_extensions(self) -> frozenset[str]:
        """Return supported file extensions."""
        return frozenset({".pdf"})
