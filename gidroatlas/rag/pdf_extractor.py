"""
PDF Text Extractor
==================

Page-ordered plain text from PDF files with pypdf.
Each non-empty page is preceded by a "--- Страница N ---" marker line.
"""

import io
import logging
import os
from typing import BinaryIO, Union

from pypdf import PdfReader

logger = logging.getLogger(__name__)

PAGE_MARKER = "--- Страница {number} ---"


class PdfTextExtractor:
    """Extracts text from a PDF path or binary stream."""

    def extract_text(self, pdf: Union[str, os.PathLike, bytes, BinaryIO]) -> str:
        """
        Extract the text of every page.

        Args:
            pdf: File path, raw bytes or a binary stream

        Returns:
            Text with page markers (empty string when nothing was extracted)

        Raises:
            FileNotFoundError: If a path is given and does not exist
        """
        if isinstance(pdf, (str, os.PathLike)):
            if not os.path.exists(pdf):
                logger.error(f"PDF file not found: {pdf}")
                raise FileNotFoundError(f"PDF file not found: {pdf}")
            with open(pdf, "rb") as f:
                return self._extract(f)

        if isinstance(pdf, bytes):
            return self._extract(io.BytesIO(pdf))

        return self._extract(pdf)

    def _extract(self, stream: BinaryIO) -> str:
        reader = PdfReader(stream)
        logger.info(f"Processing PDF with {len(reader.pages)} pages")

        parts = []
        for number, page in enumerate(reader.pages, 1):
            try:
                page_text = (page.extract_text() or "").strip()
            except Exception as e:
                logger.warning(f"Failed to extract text from page {number}: {e}")
                continue

            if page_text:
                parts.append(PAGE_MARKER.format(number=number))
                parts.append(page_text)
                parts.append("")

        return "\n".join(parts)
