"""
Tests for the ingestion pipeline.
"""

from datetime import date

import pytest

from gidroatlas.rag.chunker import TextChunker
from gidroatlas.rag.ingestion import DocumentIndexer
from gidroatlas.rag.models import DocumentChunk

from conftest import FakeEmbedder, FakeVectorStore, FakeWaterObjectRepository, make_water_object


class FakePdfExtractor:
    def __init__(self, text=""):
        self.text = text
        self.paths = []

    def extract_text(self, pdf):
        self.paths.append(pdf)
        if isinstance(pdf, str) and pdf.endswith("missing.pdf"):
            raise FileNotFoundError(pdf)
        return self.text


def make_indexer(store=None, embedder=None, objects=(), pdf_text="", indexing_config=None):
    return DocumentIndexer(
        store=store or FakeVectorStore(),
        embedder=embedder or FakeEmbedder(),
        water_objects=FakeWaterObjectRepository(objects),
        chunker=TextChunker(chunk_size=100, overlap=20),
        pdf_extractor=FakePdfExtractor(pdf_text),
        config=indexing_config,
        embedding_dimensions=3,
    )


def make_document_chunk(name, content_type):
    return DocumentChunk(
        document_name=name,
        chunk_index=0,
        content_type=content_type,
        content=f"Document: {name}\n\nx",
        embedding=[1.0, 0.0, 0.0],
    )


# =============================================================================
# WATER OBJECTS
# =============================================================================

class TestIndexWaterObjects:

    @pytest.mark.asyncio
    async def test_indexes_every_object(self, store):
        objects = [make_water_object(name="Балхаш"), make_water_object(name="Зайсан")]
        indexer = make_indexer(store=store, objects=objects)

        count = await indexer.index_all_water_objects()

        assert count == 2
        assert {c.water_object_id for c in store.water_object_chunks} == {o.id for o in objects}
        assert all(c.chunk_index == 0 and c.content_type == "main" for c in store.water_object_chunks)
        assert store.water_object_chunks[0].content.startswith("Название объекта: Балхаш")

    @pytest.mark.asyncio
    async def test_failed_embedding_skipped(self, store):
        objects = [make_water_object(name="Балхаш"), make_water_object(name="Арал")]
        embedder = FakeEmbedder(failing=["Арал"])
        indexer = make_indexer(store=store, embedder=embedder, objects=objects)

        count = await indexer.index_all_water_objects()

        assert count == 1
        assert len(store.water_object_chunks) == 1
        assert indexer.stats["chunks_skipped"] == 1
        assert indexer.stats["embedding_failures"] == 1

    @pytest.mark.asyncio
    async def test_wrong_dimension_skipped(self, store):
        embedder = FakeEmbedder(vectors={"Балхаш": [1.0, 0.0]})
        indexer = make_indexer(store=store, embedder=embedder, objects=[make_water_object(name="Балхаш")])

        assert await indexer.index_all_water_objects() == 0

    @pytest.mark.asyncio
    async def test_reindex_replaces_corpus(self, store):
        first = make_water_object(name="Балхаш")
        second = make_water_object(name="Зайсан")

        await make_indexer(store=store, objects=[first]).index_all_water_objects()
        await make_indexer(store=store, objects=[second]).index_all_water_objects()

        assert [c.water_object_id for c in store.water_object_chunks] == [second.id]

    @pytest.mark.asyncio
    async def test_empty_registry(self, store):
        assert await make_indexer(store=store).index_all_water_objects() == 0


# =============================================================================
# DOCUMENTS
# =============================================================================

class TestIndexText:

    @pytest.mark.asyncio
    async def test_chunks_prefixed_with_document_name(self, store):
        embedder = FakeEmbedder()
        indexer = make_indexer(store=store, embedder=embedder)
        text = "Статья первая. " * 20

        count = await indexer.index_text(text, "Водный кодекс")

        assert count == len(store.document_chunks) > 1
        for i, chunk in enumerate(store.document_chunks):
            assert chunk.chunk_index == i
            assert chunk.content.startswith("Document: Водный кодекс\n\n")
            assert chunk.content_type == "reference"
            assert chunk.file_name is None
        assert all(call.startswith("Document: Водный кодекс") for call in embedder.calls)

    @pytest.mark.asyncio
    async def test_blank_content(self, store):
        embedder = FakeEmbedder()
        indexer = make_indexer(store=store, embedder=embedder)

        assert await indexer.index_text("   \n ", "Пусто") == 0
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_failed_chunk_skipped(self, store):
        embedder = FakeEmbedder(failing=["плохой"])
        indexer = make_indexer(store=store, embedder=embedder)

        count = await indexer.index_text("хороший текст.", "плохой документ")

        assert count == 0
        assert store.document_chunks == []

    @pytest.mark.asyncio
    async def test_custom_content_type(self, store):
        indexer = make_indexer(store=store)
        await indexer.index_text("Нормативы качества воды.", "ГОСТ", content_type="standard")

        assert store.document_chunks[0].content_type == "standard"


class TestIndexPdf:

    @pytest.mark.asyncio
    async def test_pdf_chunks_stored(self, store):
        text = "--- Страница 1 ---\nВодохранилища Казахстана.\n\n"
        indexer = make_indexer(store=store, pdf_text=text)

        count = await indexer.index_pdf("/data/pdfs/report.pdf", "Отчёт")

        assert count == 1
        chunk = store.document_chunks[0]
        assert chunk.content_type == "pdf"
        assert chunk.file_name == "report.pdf"
        assert chunk.document_name == "Отчёт"
        assert "Водохранилища Казахстана." in chunk.content

    @pytest.mark.asyncio
    async def test_empty_pdf(self, store):
        indexer = make_indexer(store=store, pdf_text="  ")
        assert await indexer.index_pdf("/data/empty.pdf", "Пусто") == 0

    @pytest.mark.asyncio
    async def test_missing_file_propagates(self, store):
        indexer = make_indexer(store=store)
        with pytest.raises(FileNotFoundError):
            await indexer.index_pdf("/data/missing.pdf", "Нет файла")


# =============================================================================
# CLEAR
# =============================================================================

class TestClearIndex:

    def make_populated_store(self):
        store = FakeVectorStore()
        store.water_object_chunks = [object(), object()]
        store.document_chunks = [
            make_document_chunk("A", "pdf"),
            make_document_chunk("B", "pdf"),
            make_document_chunk("C", "reference"),
        ]
        return store

    @pytest.mark.asyncio
    async def test_clear_all(self):
        store = self.make_populated_store()
        deleted = await make_indexer(store=store).clear_index(None)

        assert deleted == 5
        assert store.water_object_chunks == []
        assert store.document_chunks == []

    @pytest.mark.asyncio
    async def test_empty_string_clears_all(self):
        store = self.make_populated_store()
        assert await make_indexer(store=store).clear_index("") == 5

    @pytest.mark.asyncio
    async def test_clear_main_only(self):
        store = self.make_populated_store()
        deleted = await make_indexer(store=store).clear_index("main")

        assert deleted == 2
        assert store.water_object_chunks == []
        assert len(store.document_chunks) == 3

    @pytest.mark.asyncio
    async def test_clear_one_document_type(self):
        store = self.make_populated_store()
        deleted = await make_indexer(store=store).clear_index("pdf")

        assert deleted == 2
        assert len(store.water_object_chunks) == 2
        assert [c.document_name for c in store.document_chunks] == ["C"]
