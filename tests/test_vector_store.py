"""
Tests for the pgvector store and the water object repository.

psycopg2 connections are replaced by MagicMock; the tests check the SQL
issued and the mapping of returned rows.
"""

from contextlib import contextmanager
from datetime import date
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from gidroatlas.rag.models import DocumentChunk, ResourceType, WaterObjectChunk, WaterType
from gidroatlas.rag.vector_store import PgVectorStore, to_pgvector
from gidroatlas.rag.water_objects import WaterObjectRepository


def make_factory(rows=None, fetchone=None, rowcount=0):
    cursor = MagicMock()
    cursor.fetchall.return_value = rows or []
    cursor.fetchone.return_value = fetchone
    cursor.rowcount = rowcount

    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor

    @contextmanager
    def factory():
        yield conn

    return factory, cursor


def executed_sql(cursor) -> str:
    return " ".join(call.args[0] for call in cursor.execute.call_args_list)


class TestToPgvector:

    def test_format(self):
        assert to_pgvector([0.5, -1, 2.25]) == "[0.5,-1.0,2.25]"


class TestWrites:

    @patch("gidroatlas.rag.vector_store.execute_values")
    def test_replace_water_object_chunks(self, mock_execute_values):
        factory, cursor = make_factory(rowcount=7)
        chunk = WaterObjectChunk(water_object_id=uuid4(), chunk_index=0, content="text", embedding=[0.1, 0.2])

        count = PgVectorStore(factory).replace_water_object_chunks([chunk])

        assert count == 1
        assert "DELETE FROM water_object_embeddings" in executed_sql(cursor)
        sql, rows = mock_execute_values.call_args.args[1:3]
        assert "ON CONFLICT (water_object_id, chunk_index)" in sql
        assert rows[0][0] == str(chunk.water_object_id)
        assert rows[0][4] == "[0.1,0.2]"
        assert "::vector" in mock_execute_values.call_args.kwargs["template"]

    @patch("gidroatlas.rag.vector_store.execute_values")
    def test_replace_with_nothing_only_deletes(self, mock_execute_values):
        factory, cursor = make_factory()

        assert PgVectorStore(factory).replace_water_object_chunks([]) == 0
        assert "DELETE FROM water_object_embeddings" in executed_sql(cursor)
        mock_execute_values.assert_not_called()

    @patch("gidroatlas.rag.vector_store.execute_values")
    def test_add_document_chunks(self, mock_execute_values):
        factory, _ = make_factory()
        chunk = DocumentChunk(
            document_name="Кодекс", chunk_index=2, content_type="pdf",
            content="Document: Кодекс\n\nx", embedding=[1.0], file_name="k.pdf",
        )

        assert PgVectorStore(factory).add_document_chunks([chunk]) == 1
        rows = mock_execute_values.call_args.args[2]
        assert rows[0][:5] == (str(chunk.id), "Кодекс", "k.pdf", 2, "pdf")

    def test_add_nothing(self):
        factory, cursor = make_factory()
        assert PgVectorStore(factory).add_document_chunks([]) == 0
        cursor.execute.assert_not_called()

    def test_delete_documents_by_type(self):
        factory, cursor = make_factory(rowcount=4)

        assert PgVectorStore(factory).delete_document_chunks("pdf") == 4
        sql, params = cursor.execute.call_args.args
        assert "WHERE content_type = %s" in sql
        assert params == ("pdf",)

    def test_delete_all_documents(self):
        factory, cursor = make_factory(rowcount=9)

        assert PgVectorStore(factory).delete_document_chunks() == 9
        assert cursor.execute.call_args.args[0] == "DELETE FROM document_embeddings"


class TestReads:

    def test_search_water_objects(self):
        object_id = uuid4()
        factory, cursor = make_factory(rows=[{
            "source_id": str(object_id),
            "content": "Название объекта: Балхаш",
            "content_type": "main",
            "source_name": "Балхаш",
            "source_region": "Карагандинская область",
            "distance": 0.12,
        }])

        items = PgVectorStore(factory).search_water_objects([0.1, 0.2], limit=5)

        assert len(items) == 1
        assert items[0].source_id == object_id
        assert items[0].is_water_object is True
        assert items[0].distance == pytest.approx(0.12)
        sql, params = cursor.execute.call_args.args
        assert "<=>" in sql
        assert "LEFT JOIN water_objects" in sql
        assert params == {"query": "[0.1,0.2]", "limit": 5}

    def test_search_documents(self):
        doc_id = uuid4()
        factory, _ = make_factory(rows=[{
            "source_id": doc_id,
            "content": "Document: Кодекс\n\nx",
            "content_type": "pdf",
            "source_name": "Кодекс",
            "distance": 0.5,
        }])

        items = PgVectorStore(factory).search_documents([1.0], limit=3)

        assert items[0].source_id == doc_id
        assert items[0].source_region is None
        assert items[0].is_water_object is False

    def test_count_indexed_sources(self):
        factory, _ = make_factory(fetchone=(12,))
        assert PgVectorStore(factory).count_indexed_sources() == 12


class TestWaterObjectRepository:

    def test_rows_mapped(self):
        object_id = uuid4()
        factory, _ = make_factory(rows=[{
            "id": object_id,
            "name": "Капшагай",
            "region": "Алматинская область",
            "resource_type": "Водохранилище",
            "water_type": "Пресная",
            "fauna": True,
            "technical_condition": 2,
            "passport_date": date(2019, 5, 1),
            "latitude": 43.9,
            "longitude": 77.1,
        }])

        objects = WaterObjectRepository(factory).list_all()

        assert len(objects) == 1
        obj = objects[0]
        assert obj.id == object_id
        assert obj.resource_type is ResourceType.RESERVOIR
        assert obj.water_type is WaterType.FRESH
        assert obj.technical_condition == 2

    def test_bad_row_skipped(self):
        factory, _ = make_factory(rows=[{
            "id": uuid4(),
            "name": "???",
            "region": "",
            "resource_type": "Болото",
            "water_type": "Пресная",
            "fauna": False,
            "technical_condition": 3,
            "passport_date": date(2019, 5, 1),
            "latitude": 0,
            "longitude": 0,
        }])

        assert WaterObjectRepository(factory).list_all() == []
