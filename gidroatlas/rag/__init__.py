"""
GidroAtlas RAG Module
=====================

Retrieval-Augmented Generation over two corpora.

Corpora:
- Water objects: one generated summary per registry record
- Documents: chunked PDFs and pasted reference text

Architecture:
- pgvector for vector storage (cosine distance)
- Ollama nomic-embed-text for embeddings (768 dimensions)
- Merge both corpora by distance, relevance floor, deduplicated sources
"""

from .chunker import TextChunker
from .embedder import OllamaEmbedder
from .ingestion import DocumentIndexer
from .models import (
    ChatSource,
    DocumentChunk,
    RagSearchResult,
    ResourceType,
    SearchResultItem,
    WaterObject,
    WaterObjectChunk,
    WaterType,
)
from .pdf_extractor import PdfTextExtractor
from .retriever import RagRetriever
from .vector_store import PgVectorStore
from .water_objects import WaterObjectRepository

__all__ = [
    "TextChunker",
    "OllamaEmbedder",
    "DocumentIndexer",
    "RagRetriever",
    "PgVectorStore",
    "WaterObjectRepository",
    "PdfTextExtractor",
    "ChatSource",
    "DocumentChunk",
    "RagSearchResult",
    "ResourceType",
    "SearchResultItem",
    "WaterObject",
    "WaterObjectChunk",
    "WaterType",
]
