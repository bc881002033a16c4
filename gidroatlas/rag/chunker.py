"""
RAG Chunker
===========

Splits long text into overlapping, sentence-aware chunks for embedding.

Rules:
- Whitespace is normalized first (runs collapse to a single space)
- Chunk size and overlap are in characters
- A chunk prefers to end right after the last '.' or newline of its window
  (the window edge included), but only when that boundary is past the
  window midpoint
- Stable chunking (same input = same chunks)
"""

import logging
import re
from typing import List, Optional

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


class TextChunker:
    """
    Splits text into overlapping character windows.

    Each window is cut at a sentence boundary when one exists in the
    second half of the window, otherwise at the raw window edge.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
    ):
        self._validate(chunk_size, overlap)
        self.chunk_size = chunk_size
        self.overlap = overlap

    @staticmethod
    def _validate(chunk_size: int, overlap: int):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(f"overlap must be in [0, {chunk_size}), got {overlap}")

    def split(
        self,
        text: str,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
    ) -> List[str]:
        """
        Split text into chunks.

        Args:
            text: Arbitrary text (PDF extraction, pasted reference...)
            chunk_size: Window size in characters (default: instance setting)
            overlap: Characters shared by adjacent chunks (default: instance setting)

        Returns:
            Ordered list of non-empty chunk strings
        """
        chunk_size = self.chunk_size if chunk_size is None else chunk_size
        overlap = self.overlap if overlap is None else overlap
        self._validate(chunk_size, overlap)

        if not text:
            return []

        text = _WHITESPACE.sub(" ", text).strip()
        chunks = []

        position = 0
        while position < len(text):
            end = min(position + chunk_size, len(text))

            if end < len(text):
                # The window edge itself counts, so a chunk can be chunk_size + 1 long
                best_break = max(text.rfind(".", position, end + 1), text.rfind("\n", position, end + 1))
                if best_break > position + chunk_size // 2:
                    end = best_break + 1

            chunk = text[position:end].strip()
            if chunk:
                chunks.append(chunk)

            # Last window reached the end of the text
            if end >= len(text):
                break

            next_position = end - overlap
            # A short sentence-snapped window could otherwise move backwards
            position = next_position if next_position > position else end

        logger.debug(f"Split {len(text)} chars into {len(chunks)} chunks (size={chunk_size}, overlap={overlap})")
        return chunks
