"""
GidroAtlas Chat Service
=======================

RAG chat orchestration:
    question -> retrieval -> relevance decision -> prompt -> generation -> response

Stateless across requests. ask() and get_status() always return a
well-formed object; backend failures become fallback text or flags.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import RagConfig
from ..logging_config import preview
from ..rag.embedder import OllamaEmbedder
from ..rag.ingestion import DocumentIndexer
from ..rag.models import ChatSource, RagSearchResult
from ..rag.retriever import RagRetriever
from . import prompts
from .llm_client import OllamaLlmClient

logger = logging.getLogger(__name__)


@dataclass
class ChatResponse:
    """Answer returned to the chat caller."""
    answer: str
    sources: List[ChatSource] = field(default_factory=list)
    processing_time_ms: int = 0
    used_rag: bool = False
    error: Optional[str] = None


@dataclass
class ChatStatus:
    """Availability of the chat backends."""
    is_available: bool = False
    embeddings_available: bool = False
    llm_available: bool = False
    indexed_objects_count: int = 0
    model_name: Optional[str] = None
    error: Optional[str] = None


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class ChatService:
    """
    Ties retrieval, relevance gating, prompting and generation together.

    Context is injected only when the retrieved sources are relevant on
    average (>= high_relevance, 0.6 by default), which is stricter than the
    retriever's own inclusion floor.
    """

    def __init__(
        self,
        retriever: RagRetriever,
        llm: OllamaLlmClient,
        indexer: DocumentIndexer,
        embedder: OllamaEmbedder,
        config: Optional[RagConfig] = None,
    ):
        self.retriever = retriever
        self.llm = llm
        self.indexer = indexer
        self.embedder = embedder
        self.config = config or RagConfig()

    def should_use_context(self, rag_result: RagSearchResult) -> bool:
        return (
            rag_result.has_relevant_context
            and rag_result.average_relevance >= self.config.high_relevance
        )

    async def ask(self, question: str) -> ChatResponse:
        """
        Answer a question, with retrieved context when it is relevant enough.

        Args:
            question: User question

        Returns:
            ChatResponse (never raises for retrieval or generation errors)
        """
        started = time.perf_counter()

        try:
            rag_result = await self.retriever.search(question, self.config.chat_top_k)
            used_rag = self.should_use_context(rag_result)

            logger.debug(
                f"RAG search completed. Found {len(rag_result.sources)} sources, "
                f"avg relevance: {rag_result.average_relevance:.3f}, using RAG: {used_rag}"
            )

            user_prompt = prompts.build_user_prompt(
                question,
                rag_result.context if used_rag else None,
            )
            answer = await self.llm.generate(prompts.WATER_EXPERT_SYSTEM_PROMPT, user_prompt)

            if not answer:
                logger.warning(f"LLM returned empty response for question: {preview(question, 100)}")
                return ChatResponse(
                    answer=prompts.GENERATION_FAILED_MESSAGE,
                    processing_time_ms=_elapsed_ms(started),
                    used_rag=False,
                )

            return ChatResponse(
                answer=answer,
                sources=rag_result.sources if used_rag else [],
                processing_time_ms=_elapsed_ms(started),
                used_rag=used_rag,
            )

        except Exception as e:
            logger.error(f"Error processing chat request: {preview(question, 100)}", exc_info=True)
            return ChatResponse(
                answer=prompts.PROCESSING_ERROR_MESSAGE,
                processing_time_ms=_elapsed_ms(started),
                used_rag=False,
                error=str(e),
            )

    async def get_status(self) -> ChatStatus:
        """Probe embeddings, LLM and index size concurrently."""
        status = ChatStatus(model_name=self.llm.model_name)

        try:
            embeddings_available, llm_available, indexed_count = await asyncio.gather(
                self.embedder.is_available(),
                self.llm.is_available(),
                self.retriever.count_indexed_sources(),
            )
            status.embeddings_available = embeddings_available
            status.llm_available = llm_available
            status.indexed_objects_count = indexed_count
            status.is_available = embeddings_available and llm_available

        except Exception as e:
            logger.error(f"Error checking chat service status: {e}", exc_info=True)
            status.error = str(e)
            status.is_available = False

        return status

    async def search(self, query: str, top_k: Optional[int] = None) -> RagSearchResult:
        return await self.retriever.search(query, top_k)

    async def count_indexed_sources(self) -> int:
        return await self.retriever.count_indexed_sources()

    async def index_all_water_objects(self) -> int:
        return await self.indexer.index_all_water_objects()

    async def index_pdf(
        self,
        pdf_path: str,
        document_name: str,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ) -> int:
        return await self.indexer.index_pdf(pdf_path, document_name, chunk_size, chunk_overlap)

    async def index_text(self, content: str, document_name: str, content_type: str = "reference") -> int:
        return await self.indexer.index_text(content, document_name, content_type)

    async def clear_index(self, content_type: Optional[str] = None) -> int:
        return await self.indexer.clear_index(content_type)
