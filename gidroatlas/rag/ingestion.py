"""
RAG Ingestion Pipeline
======================

Indexes both corpora into the vector store.

Flow (documents):
1. Extract / normalize text
2. Chunk into overlapping pieces
3. Prefix each chunk with its document name and embed it
4. Insert the chunks that embedded successfully

Flow (water objects):
1. Render one summary per registry record
2. Embed it
3. Replace the whole water object corpus

Items are processed one at a time. A failed item is logged and skipped;
the returned counts only include what was stored.
"""

import asyncio
import logging
import os
from typing import List, Optional

from ..ai import prompts
from ..config import IndexingConfig, OllamaConfig
from .chunker import TextChunker
from .embedder import OllamaEmbedder
from .models import (
    DocumentChunk,
    WaterObjectChunk,
    WATER_OBJECT_CONTENT_TYPE,
)
from .pdf_extractor import PdfTextExtractor
from .vector_store import PgVectorStore
from .water_objects import WaterObjectRepository

logger = logging.getLogger(__name__)


class DocumentIndexer:
    """
    Ingestion pipeline for the RAG knowledge base.

    Handles:
    - Water object summaries (full replace on every run)
    - PDF documents
    - Plain text references
    - Clearing the index by content type
    """

    def __init__(
        self,
        store: PgVectorStore,
        embedder: OllamaEmbedder,
        water_objects: WaterObjectRepository,
        chunker: Optional[TextChunker] = None,
        pdf_extractor: Optional[PdfTextExtractor] = None,
        config: Optional[IndexingConfig] = None,
        embedding_dimensions: Optional[int] = None,
    ):
        self.config = config or IndexingConfig()
        self.store = store
        self.embedder = embedder
        self.water_objects = water_objects
        self.chunker = chunker or TextChunker(self.config.chunk_size, self.config.chunk_overlap)
        self.pdf_extractor = pdf_extractor or PdfTextExtractor()
        self.embedding_dimensions = embedding_dimensions or OllamaConfig().embedding_dimensions

        self._water_objects_indexed = 0
        self._chunks_created = 0
        self._chunks_skipped = 0

    async def _embed(self, text: str) -> Optional[List[float]]:
        """Embed and enforce the store's fixed dimensionality."""
        embedding = await self.embedder.embed(text)
        if embedding is None:
            return None
        if len(embedding) != self.embedding_dimensions:
            logger.warning(
                f"Embedding has {len(embedding)} dimensions, expected {self.embedding_dimensions}"
            )
            return None
        return embedding

    # =========================================================================
    # WATER OBJECTS
    # =========================================================================

    async def index_all_water_objects(self) -> int:
        """
        Re-index every water object.

        All existing water object chunks are replaced, not merged.

        Returns:
            Number of water objects indexed
        """
        logger.info("Starting indexing of all water objects...")

        water_objects = await asyncio.to_thread(self.water_objects.list_all)
        chunks = []

        for obj in water_objects:
            try:
                content = prompts.build_water_object_summary(obj)
                embedding = await self._embed(content)
                if embedding is None:
                    logger.warning(f"Failed to embed water object: {obj.id} ({obj.name})")
                    self._chunks_skipped += 1
                    continue

                chunks.append(WaterObjectChunk(
                    water_object_id=obj.id,
                    chunk_index=0,
                    content_type=WATER_OBJECT_CONTENT_TYPE,
                    content=content,
                    embedding=embedding,
                ))
                logger.debug(f"Indexed water object: {obj.name}")

            except Exception as e:
                logger.warning(f"Failed to index water object {obj.id}: {e}")
                self._chunks_skipped += 1

        indexed = await asyncio.to_thread(self.store.replace_water_object_chunks, chunks)

        self._water_objects_indexed += indexed
        logger.info(f"Indexing complete. Indexed {indexed}/{len(water_objects)} water objects")
        return indexed

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    async def index_pdf(
        self,
        pdf_path: str,
        document_name: str,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        content_type: str = "pdf",
    ) -> int:
        """
        Extract, chunk and index a PDF file.

        Args:
            pdf_path: Path to the PDF
            document_name: Human name stored with every chunk
            chunk_size: Characters per chunk (default from config, 1000)
            chunk_overlap: Overlap between chunks (default from config, 200)
            content_type: Tag stored with the chunks

        Returns:
            Number of chunks indexed

        Raises:
            FileNotFoundError: If the PDF does not exist
        """
        logger.info(f"Starting PDF indexing: {document_name} from {pdf_path}")

        full_text = await asyncio.to_thread(self.pdf_extractor.extract_text, pdf_path)
        if not full_text or not full_text.strip():
            logger.warning(f"No text extracted from PDF: {pdf_path}")
            return 0

        logger.info(f"Extracted {len(full_text)} characters from PDF")

        chunks = self.chunker.split(full_text, chunk_size, chunk_overlap)
        logger.info(f"Split into {len(chunks)} chunks")

        return await self._index_document_chunks(
            chunks,
            document_name=document_name,
            file_name=os.path.basename(pdf_path),
            content_type=content_type,
        )

    async def index_text(
        self,
        content: str,
        document_name: str,
        content_type: str = "reference",
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ) -> int:
        """
        Chunk and index pasted text content.

        Returns:
            Number of chunks indexed (0 for blank content)
        """
        if not content or not content.strip():
            return 0

        chunks = self.chunker.split(content, chunk_size, chunk_overlap)
        return await self._index_document_chunks(
            chunks,
            document_name=document_name,
            file_name=None,
            content_type=content_type,
        )

    async def _index_document_chunks(
        self,
        chunks: List[str],
        document_name: str,
        file_name: Optional[str],
        content_type: str,
    ) -> int:
        records = []

        for i, chunk in enumerate(chunks):
            try:
                chunk_with_context = prompts.build_document_chunk(document_name, chunk)
                embedding = await self._embed(chunk_with_context)
                if embedding is None:
                    logger.warning(f"Failed to embed chunk {i} of {document_name}")
                    self._chunks_skipped += 1
                    continue

                records.append(DocumentChunk(
                    document_name=document_name,
                    file_name=file_name,
                    chunk_index=i,
                    content_type=content_type,
                    content=chunk_with_context,
                    embedding=embedding,
                ))

                if (i + 1) % 10 == 0:
                    logger.debug(f"Indexed {i + 1}/{len(chunks)} chunks")

            except Exception as e:
                logger.warning(f"Failed to index chunk {i} of {document_name}: {e}")
                self._chunks_skipped += 1

        indexed = await asyncio.to_thread(self.store.add_document_chunks, records)

        self._chunks_created += indexed
        logger.info(f"Indexed {indexed} chunks for document: {document_name}")
        return indexed

    # =========================================================================
    # CLEAR
    # =========================================================================

    async def clear_index(self, content_type: Optional[str] = None) -> int:
        """
        Delete indexed chunks.

        Args:
            content_type: None or "" clears both corpora, "main" clears the
                water object corpus only, any other value clears document
                chunks of that type only

        Returns:
            Number of chunks deleted
        """
        if not content_type:
            deleted = await asyncio.to_thread(self.store.delete_water_object_chunks)
            deleted += await asyncio.to_thread(self.store.delete_document_chunks)
            logger.info(f"Cleared all embeddings ({deleted} chunks)")
        elif content_type == WATER_OBJECT_CONTENT_TYPE:
            deleted = await asyncio.to_thread(self.store.delete_water_object_chunks)
            logger.info(f"Cleared water object embeddings ({deleted} chunks)")
        else:
            deleted = await asyncio.to_thread(self.store.delete_document_chunks, content_type)
            logger.info(f"Cleared {deleted} document embeddings of type {content_type}")

        return deleted

    @property
    def stats(self) -> dict:
        """Get ingestion statistics."""
        return {
            "water_objects_indexed": self._water_objects_indexed,
            "chunks_created": self._chunks_created,
            "chunks_skipped": self._chunks_skipped,
            "embedding_requests": self.embedder.total_requests,
            "embedding_failures": self.embedder.failed_requests,
        }
