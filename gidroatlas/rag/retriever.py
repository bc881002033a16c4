"""
RAG Retriever
=============

Semantic search across both corpora:
1. Embed the query
2. Nearest chunks from the water object corpus and from the document corpus
3. Merge by raw cosine distance, keep the global top_k
4. Drop anything under the relevance floor
5. Build the context string and a deduplicated source list

Merging by raw distance lets the closest items win regardless of corpus,
so one corpus can crowd out the other entirely.
"""

import asyncio
import logging
from typing import List, Optional

from ..config import RagConfig
from ..logging_config import preview
from .embedder import OllamaEmbedder
from .models import ChatSource, RagSearchResult, SearchResultItem
from .vector_store import PgVectorStore

logger = logging.getLogger(__name__)


def truncate_snippet(content: str, max_length: int) -> str:
    if len(content) > max_length:
        return content[:max_length] + "..."
    return content


class RagRetriever:
    """
    Retrieves relevant chunks from the RAG knowledge base.

    Never raises for backend problems: a failed query embedding or a store
    error yields an empty RagSearchResult.
    """

    def __init__(
        self,
        store: PgVectorStore,
        embedder: OllamaEmbedder,
        config: Optional[RagConfig] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.config = config or RagConfig()

    async def search(self, query: str, top_k: Optional[int] = None) -> RagSearchResult:
        """
        Search for relevant chunks.

        Args:
            query: Search query text
            top_k: Number of chunks to keep after merging (default from config)

        Returns:
            RagSearchResult with context and sources
        """
        top_k = top_k or self.config.search_top_k

        try:
            query_embedding = await self.embedder.embed(query)
            if query_embedding is None:
                logger.warning(f"Failed to generate embedding for query: {preview(query)}")
                return RagSearchResult()

            water_object_results = await asyncio.to_thread(
                self.store.search_water_objects, query_embedding, top_k
            )
            document_results = await asyncio.to_thread(
                self.store.search_documents, query_embedding, top_k
            )

        except Exception as e:
            logger.error(f"Error during RAG search for query: {preview(query)}: {e}", exc_info=True)
            return RagSearchResult()

        result = self.build_result(water_object_results + document_results, top_k)

        logger.debug(
            f"RAG search found {len(result.sources)} relevant sources for query "
            f"(water objects: {self._count_relevant(water_object_results)}, "
            f"documents: {self._count_relevant(document_results)})"
        )
        return result

    def build_result(self, items: List[SearchResultItem], top_k: int) -> RagSearchResult:
        """
        Rank merged hits and assemble the context bundle.

        The first (closest) hit of a source decides its relevance and snippet.
        """
        ranked = sorted(items, key=lambda r: r.distance)[:top_k]

        context_parts = []
        sources = []
        seen_ids = set()

        for item in ranked:
            relevance = round(1 - item.distance, 3)
            if relevance < self.config.min_relevance:
                continue

            context_parts.append(f"---\n{item.content}\n\n")

            if item.source_id in seen_ids:
                continue
            seen_ids.add(item.source_id)
            sources.append(ChatSource(
                id=item.source_id,
                name=item.source_name,
                region=item.source_region,
                relevance=relevance,
                content_snippet=truncate_snippet(item.content, self.config.max_snippet_length),
            ))

        return RagSearchResult(context="".join(context_parts), sources=sources)

    def _count_relevant(self, items: List[SearchResultItem]) -> int:
        return sum(1 for r in items if 1 - r.distance >= self.config.min_relevance)

    async def count_indexed_sources(self) -> int:
        """Distinct water objects + distinct documents in the index."""
        return await asyncio.to_thread(self.store.count_indexed_sources)
