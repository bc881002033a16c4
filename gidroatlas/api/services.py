"""
GidroAtlas API Services
=======================

Builds the chat stack once from Settings and hands it to the routes
through FastAPI dependencies.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..ai.chat_service import ChatService
from ..ai.llm_client import OllamaLlmClient
from ..config import Settings, get_settings
from ..rag.chunker import TextChunker
from ..rag.embedder import OllamaEmbedder
from ..rag.ingestion import DocumentIndexer
from ..rag.retriever import RagRetriever
from ..rag.vector_store import PgVectorStore
from ..rag.water_objects import WaterObjectRepository

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Long-lived components shared by every request."""
    embedder: OllamaEmbedder
    llm: OllamaLlmClient
    indexer: DocumentIndexer
    retriever: RagRetriever
    chat_service: ChatService

    async def aclose(self):
        await self.embedder.aclose()
        await self.llm.aclose()


def build_services(settings: Optional[Settings] = None) -> ServiceContainer:
    settings = settings or get_settings()

    embedder = OllamaEmbedder(settings.ollama)
    llm = OllamaLlmClient(settings.ollama)
    store = PgVectorStore()

    indexer = DocumentIndexer(
        store=store,
        embedder=embedder,
        water_objects=WaterObjectRepository(),
        chunker=TextChunker(settings.indexing.chunk_size, settings.indexing.chunk_overlap),
        config=settings.indexing,
        embedding_dimensions=settings.ollama.embedding_dimensions,
    )
    retriever = RagRetriever(store, embedder, settings.rag)
    chat_service = ChatService(retriever, llm, indexer, embedder, settings.rag)

    logger.info(
        f"Chat services initialized (chat model: {settings.ollama.chat_model}, "
        f"embedding model: {settings.ollama.embedding_model})"
    )
    return ServiceContainer(
        embedder=embedder,
        llm=llm,
        indexer=indexer,
        retriever=retriever,
        chat_service=chat_service,
    )


_services: Optional[ServiceContainer] = None


def get_services() -> ServiceContainer:
    """Global container (lazy-loaded)."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


async def close_services():
    global _services
    if _services is not None:
        await _services.aclose()
        _services = None


def get_chat_service() -> ChatService:
    """FastAPI dependency."""
    return get_services().chat_service
