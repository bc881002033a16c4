"""
Tests for retrieval: merge, relevance floor, deduplication, soft failure.
"""

from datetime import date
from uuid import uuid4

import pytest

from gidroatlas.rag.chunker import TextChunker
from gidroatlas.rag.ingestion import DocumentIndexer
from gidroatlas.rag.models import DocumentChunk, WaterObjectChunk
from gidroatlas.rag.retriever import RagRetriever, truncate_snippet

from conftest import FakeEmbedder, FakeVectorStore, FakeWaterObjectRepository, make_item, make_water_object


class TestBuildResult:

    def test_relevance_and_order(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        items = [make_item(0.4, source_name="B"), make_item(0.1, source_name="A")]

        result = retriever.build_result(items, top_k=10)

        assert [s.name for s in result.sources] == ["A", "B"]
        assert [s.relevance for s in result.sources] == [0.9, 0.6]

    def test_floor_excludes_low_relevance(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        items = [make_item(0.2), make_item(0.75), make_item(0.9)]

        result = retriever.build_result(items, top_k=10)

        assert len(result.sources) == 1
        assert result.sources[0].relevance == 0.8
        assert result.context.count("---\n") == 1

    def test_floor_is_inclusive(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        result = retriever.build_result([make_item(0.7)], top_k=10)
        assert [s.relevance for s in result.sources] == [0.3]

    def test_top_k_applied_before_floor(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        items = [make_item(d) for d in (0.1, 0.2, 0.3, 0.4)]

        result = retriever.build_result(items, top_k=2)

        assert len(result.sources) == 2

    def test_sources_deduplicated_first_wins(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        shared = uuid4()
        items = [
            make_item(0.3, source_id=shared, content="second chunk"),
            make_item(0.1, source_id=shared, content="first chunk"),
        ]

        result = retriever.build_result(items, top_k=10)

        assert len(result.sources) == 1
        assert result.sources[0].relevance == 0.9
        assert result.sources[0].content_snippet == "first chunk"
        # Both chunks still contribute context
        assert result.context == "---\nfirst chunk\n\n---\nsecond chunk\n\n"

    def test_snippet_truncated(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        result = retriever.build_result([make_item(0.1, content="я" * 600)], top_k=10)

        snippet = result.sources[0].content_snippet
        assert snippet == "я" * 500 + "..."

    def test_empty(self, rag_config):
        retriever = RagRetriever(FakeVectorStore(), FakeEmbedder(), rag_config)
        result = retriever.build_result([], top_k=10)

        assert result.context == ""
        assert result.sources == []
        assert result.average_relevance == 0.0
        assert result.has_relevant_context is False


class TestTruncateSnippet:

    def test_short_unchanged(self):
        assert truncate_snippet("abc", 5) == "abc"

    def test_exact_length_unchanged(self):
        assert truncate_snippet("abcde", 5) == "abcde"

    def test_long_cut(self):
        assert truncate_snippet("abcdef", 5) == "abcde..."


class TestSearch:

    def make_store(self):
        store = FakeVectorStore()
        lake_id = uuid4()
        store.names[lake_id] = ("Балхаш", "Карагандинская область")
        store.water_object_chunks = [WaterObjectChunk(
            water_object_id=lake_id,
            chunk_index=0,
            content="Название объекта: Балхаш",
            embedding=[1.0, 0.0, 0.0],
        )]
        return store, lake_id

    @pytest.mark.asyncio
    async def test_merges_both_corpora(self, rag_config):
        store, lake_id = self.make_store()
        store.document_chunks = [DocumentChunk(
            document_name="Водный кодекс",
            chunk_index=0,
            content_type="pdf",
            content="Document: Водный кодекс\n\nСтатья 1",
            embedding=[0.8, 0.6, 0.0],
        )]
        embedder = FakeEmbedder(vectors={"Балхаш": [1.0, 0.0, 0.0]})
        retriever = RagRetriever(store, embedder, rag_config)

        result = await retriever.search("Балхаш")

        assert [s.name for s in result.sources] == ["Балхаш", "Водный кодекс"]
        assert result.sources[0].id == lake_id
        assert result.sources[0].region == "Карагандинская область"
        assert result.sources[0].relevance == 1.0
        assert result.sources[1].relevance == 0.8

    @pytest.mark.asyncio
    async def test_unrelated_query_empty(self, rag_config):
        store, _ = self.make_store()
        embedder = FakeEmbedder(default=[0.0, 0.0, 1.0])

        result = await RagRetriever(store, embedder, rag_config).search("погода")

        assert result.sources == []
        assert result.context == ""

    @pytest.mark.asyncio
    async def test_embedding_failure_returns_empty(self, rag_config):
        store, _ = self.make_store()
        embedder = FakeEmbedder(failing=["вопрос"])

        result = await RagRetriever(store, embedder, rag_config).search("вопрос")

        assert result.sources == []

    @pytest.mark.asyncio
    async def test_store_failure_returns_empty(self, rag_config):
        store, _ = self.make_store()
        store.fail_search = True

        result = await RagRetriever(store, FakeEmbedder(), rag_config).search("Балхаш")

        assert result.sources == []
        assert result.context == ""

    @pytest.mark.asyncio
    async def test_count_indexed_sources(self, rag_config):
        store, _ = self.make_store()
        assert await RagRetriever(store, FakeEmbedder(), rag_config).count_indexed_sources() == 1


class TestIndexThenSearch:

    @pytest.mark.asyncio
    async def test_critical_water_object_found(self, rag_config):
        store = FakeVectorStore()
        embedder = FakeEmbedder(vectors={"Бартогай": [1.0, 0.0, 0.0]})
        reservoir = make_water_object(
            name="Бартогайское водохранилище",
            region="Алматинская область",
            technical_condition=1,
            passport_date=date(date.today().year - 10, 1, 1),
        )
        store.names[reservoir.id] = (reservoir.name, reservoir.region)
        indexer = DocumentIndexer(
            store=store,
            embedder=embedder,
            water_objects=FakeWaterObjectRepository([reservoir]),
            chunker=TextChunker(1000, 200),
            embedding_dimensions=3,
        )

        assert await indexer.index_all_water_objects() == 1
        assert "критическое" in store.water_object_chunks[0].content

        result = await RagRetriever(store, embedder, rag_config).search("Состояние Бартогайского водохранилища")

        assert len(result.sources) == 1
        source = result.sources[0]
        assert source.id == reservoir.id
        assert source.name == "Бартогайское водохранилище"
        assert source.region == "Алматинская область"
        assert source.relevance >= 0.3
