"""
RAG Vector Store
================

pgvector persistence for both corpora.

Tables:
- water_object_embeddings: key (water_object_id, chunk_index)
- document_embeddings: key id (generated per chunk)

Nearest-neighbour queries order by cosine distance (`<=>`), lower = closer.
The API is synchronous (psycopg2); async services call it through
asyncio.to_thread.
"""

import logging
from typing import Callable, ContextManager, List, Optional, Sequence
from uuid import UUID

from psycopg2.extras import RealDictCursor, execute_values

from .models import (
    DocumentChunk,
    SearchResultItem,
    WaterObjectChunk,
)

logger = logging.getLogger(__name__)


def to_pgvector(embedding: Sequence[float]) -> str:
    """Render a vector in pgvector's text format: [0.1,0.2,...]."""
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"


class PgVectorStore:
    """
    Vector store over PostgreSQL + pgvector.

    Every public method opens one connection from `connection_factory`
    and runs in a single transaction.
    """

    def __init__(self, connection_factory: Optional[Callable[[], ContextManager]] = None):
        if connection_factory is None:
            from ..db import get_connection
            connection_factory = get_connection
        self._connect = connection_factory

    # =========================================================================
    # WRITES
    # =========================================================================

    def replace_water_object_chunks(self, chunks: List[WaterObjectChunk]) -> int:
        """
        Replace the whole water object corpus with `chunks`.

        Delete and insert share one transaction, so readers never see the
        corpus empty halfway through a re-index.
        """
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM water_object_embeddings")
                deleted = cur.rowcount
                if chunks:
                    execute_values(cur, """
                        INSERT INTO water_object_embeddings (
                            water_object_id, chunk_index, content_type,
                            content, embedding, created_at
                        ) VALUES %s
                        ON CONFLICT (water_object_id, chunk_index) DO UPDATE SET
                            content_type = EXCLUDED.content_type,
                            content = EXCLUDED.content,
                            embedding = EXCLUDED.embedding,
                            created_at = EXCLUDED.created_at
                    """, [
                        (
                            str(c.water_object_id),
                            c.chunk_index,
                            c.content_type,
                            c.content,
                            to_pgvector(c.embedding),
                            c.created_at,
                        )
                        for c in chunks
                    ], template="(%s, %s, %s, %s, %s::vector, %s)")

        logger.debug(f"Replaced water object corpus: {deleted} removed, {len(chunks)} inserted")
        return len(chunks)

    def add_document_chunks(self, chunks: List[DocumentChunk]) -> int:
        """Insert (or overwrite by id) standalone document chunks."""
        if not chunks:
            return 0

        with self._connect() as conn:
            with conn.cursor() as cur:
                execute_values(cur, """
                    INSERT INTO document_embeddings (
                        id, document_name, file_name, chunk_index,
                        content_type, content, embedding, created_at
                    ) VALUES %s
                    ON CONFLICT (id) DO UPDATE SET
                        content = EXCLUDED.content,
                        embedding = EXCLUDED.embedding,
                        created_at = EXCLUDED.created_at
                """, [
                    (
                        str(c.id),
                        c.document_name,
                        c.file_name,
                        c.chunk_index,
                        c.content_type,
                        c.content,
                        to_pgvector(c.embedding),
                        c.created_at,
                    )
                    for c in chunks
                ], template="(%s, %s, %s, %s, %s, %s, %s::vector, %s)")

        return len(chunks)

    def delete_water_object_chunks(self) -> int:
        """Remove every water object chunk."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM water_object_embeddings")
                return cur.rowcount

    def delete_document_chunks(self, content_type: Optional[str] = None) -> int:
        """Remove document chunks, all of them or only one content type."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                if content_type is None:
                    cur.execute("DELETE FROM document_embeddings")
                else:
                    cur.execute(
                        "DELETE FROM document_embeddings WHERE content_type = %s",
                        (content_type,),
                    )
                return cur.rowcount

    # =========================================================================
    # READS
    # =========================================================================

    def search_water_objects(self, embedding: Sequence[float], limit: int) -> List[SearchResultItem]:
        """Nearest water object chunks, resolved to the object's name and region."""
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT
                        e.water_object_id AS source_id,
                        e.content,
                        e.content_type,
                        COALESCE(w.name, 'Unknown') AS source_name,
                        w.region AS source_region,
                        e.embedding <=> %(query)s::vector AS distance
                    FROM water_object_embeddings e
                    LEFT JOIN water_objects w ON w.id = e.water_object_id
                    ORDER BY e.embedding <=> %(query)s::vector
                    LIMIT %(limit)s
                """, {"query": to_pgvector(embedding), "limit": limit})
                rows = cur.fetchall()

        return [
            SearchResultItem(
                source_id=UUID(str(row["source_id"])),
                content=row["content"],
                content_type=row["content_type"],
                source_name=row["source_name"],
                source_region=row["source_region"],
                distance=float(row["distance"]),
                is_water_object=True,
            )
            for row in rows
        ]

    def search_documents(self, embedding: Sequence[float], limit: int) -> List[SearchResultItem]:
        """Nearest standalone document chunks."""
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT
                        id AS source_id,
                        content,
                        content_type,
                        document_name AS source_name,
                        embedding <=> %(query)s::vector AS distance
                    FROM document_embeddings
                    ORDER BY embedding <=> %(query)s::vector
                    LIMIT %(limit)s
                """, {"query": to_pgvector(embedding), "limit": limit})
                rows = cur.fetchall()

        return [
            SearchResultItem(
                source_id=UUID(str(row["source_id"])),
                content=row["content"],
                content_type=row["content_type"],
                source_name=row["source_name"],
                distance=float(row["distance"]),
                is_water_object=False,
            )
            for row in rows
        ]

    def count_indexed_sources(self) -> int:
        """Distinct indexed water objects plus distinct document names."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    SELECT
                        (SELECT COUNT(DISTINCT water_object_id) FROM water_object_embeddings)
                      + (SELECT COUNT(DISTINCT document_name) FROM document_embeddings)
                """)
                row = cur.fetchone()
        return int(row[0] or 0)

    # =========================================================================
    # SCHEMA
    # =========================================================================

    def init_schema(self, migration_sql: str):
        """Run the pgvector migration (idempotent DDL)."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(migration_sql)
        logger.info("RAG schema initialized")
