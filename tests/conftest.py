"""
Shared test doubles.

In-memory replacements for the pgvector store, the water object registry,
the embedding backend and the LLM. They expose the same methods the real
classes do, so services can be wired exactly as in production.
"""

import math
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest

from gidroatlas.config import IndexingConfig, RagConfig
from gidroatlas.rag.models import (
    ResourceType,
    SearchResultItem,
    WaterObject,
    WaterType,
)


def cosine_distance(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 1.0
    return 1.0 - dot / norm


def make_water_object(**overrides) -> WaterObject:
    data = dict(
        id=uuid4(),
        name="Капшагайское водохранилище",
        region="Алматинская область",
        resource_type=ResourceType.RESERVOIR,
        water_type=WaterType.FRESH,
        has_fauna=True,
        technical_condition=3,
        passport_date=date(2020, 1, 1),
        latitude=43.9,
        longitude=77.1,
    )
    data.update(overrides)
    return WaterObject(**data)


def make_item(distance: float, source_id: Optional[UUID] = None, **overrides) -> SearchResultItem:
    data = dict(
        source_id=source_id or uuid4(),
        content=f"content at distance {distance}",
        content_type="main",
        source_name="Source",
        distance=distance,
    )
    data.update(overrides)
    return SearchResultItem(**data)


class FakeVectorStore:
    """pgvector stand-in with brute-force cosine search."""

    def __init__(self):
        self.water_object_chunks = []
        self.document_chunks = []
        self.names: Dict[UUID, tuple] = {}
        self.fail_search = False

    def replace_water_object_chunks(self, chunks):
        self.water_object_chunks = list(chunks)
        return len(chunks)

    def add_document_chunks(self, chunks):
        by_id = {c.id: c for c in self.document_chunks}
        for c in chunks:
            by_id[c.id] = c
        self.document_chunks = list(by_id.values())
        return len(chunks)

    def delete_water_object_chunks(self):
        deleted = len(self.water_object_chunks)
        self.water_object_chunks = []
        return deleted

    def delete_document_chunks(self, content_type=None):
        kept = [c for c in self.document_chunks
                if content_type is not None and c.content_type != content_type]
        deleted = len(self.document_chunks) - len(kept)
        self.document_chunks = kept
        return deleted

    def search_water_objects(self, embedding, limit):
        if self.fail_search:
            raise RuntimeError("database unavailable")
        items = []
        for c in self.water_object_chunks:
            name, region = self.names.get(c.water_object_id, ("Unknown", None))
            items.append(SearchResultItem(
                source_id=c.water_object_id,
                content=c.content,
                content_type=c.content_type,
                source_name=name,
                source_region=region,
                distance=cosine_distance(c.embedding, embedding),
                is_water_object=True,
            ))
        return sorted(items, key=lambda r: r.distance)[:limit]

    def search_documents(self, embedding, limit):
        if self.fail_search:
            raise RuntimeError("database unavailable")
        items = [
            SearchResultItem(
                source_id=c.id,
                content=c.content,
                content_type=c.content_type,
                source_name=c.document_name,
                distance=cosine_distance(c.embedding, embedding),
            )
            for c in self.document_chunks
        ]
        return sorted(items, key=lambda r: r.distance)[:limit]

    def count_indexed_sources(self):
        return (
            len({c.water_object_id for c in self.water_object_chunks})
            + len({c.document_name for c in self.document_chunks})
        )


class FakeWaterObjectRepository:
    def __init__(self, objects=None):
        self.objects = list(objects or [])

    def list_all(self):
        return list(self.objects)


class FakeEmbedder:
    """
    Deterministic embedder.

    Texts containing a registered keyword get that keyword's vector; texts
    listed in `failing` return None; anything else gets `default`.
    """

    def __init__(self, vectors=None, default=(0.0, 0.0, 1.0), failing=(), available=True):
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.failing = set(failing)
        self.available = available
        self.calls: List[str] = []
        self.failures = 0
        self.availability_checks = 0

    async def embed(self, text):
        self.calls.append(text)
        if any(marker in text for marker in self.failing):
            self.failures += 1
            return None
        for keyword, vector in self.vectors.items():
            if keyword in text:
                return list(vector)
        return list(self.default)

    async def is_available(self):
        self.availability_checks += 1
        if isinstance(self.available, Exception):
            raise self.available
        return self.available

    @property
    def total_requests(self):
        return len(self.calls)

    @property
    def failed_requests(self):
        return self.failures


class FakeLlm:
    def __init__(self, answer="Ответ", available=True, model_name="qwen3:4b"):
        self.answer = answer
        self.available = available
        self.model_name = model_name
        self.prompts = []

    async def generate(self, system_prompt, user_prompt):
        self.prompts.append((system_prompt, user_prompt))
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer

    async def is_available(self):
        if isinstance(self.available, Exception):
            raise self.available
        return self.available


@pytest.fixture
def rag_config():
    return RagConfig(
        search_top_k=10,
        chat_top_k=3,
        min_relevance=0.3,
        high_relevance=0.6,
        max_snippet_length=500,
    )


@pytest.fixture
def indexing_config():
    return IndexingConfig(
        chunk_size=1000,
        chunk_overlap=200,
        auto_index_on_startup=False,
        startup_delay_seconds=0,
        max_retries=3,
        retry_delay_seconds=0,
        pdf_folder="docs/pdfs",
    )


@pytest.fixture
def store():
    return FakeVectorStore()
