"""
RAG Data Models
===============

Dataclasses shared by the indexer, the vector store and the retriever.

Two corpora:
- Water objects: one "main" chunk per registry record (structured entity corpus)
- Documents: chunks of PDFs and pasted text (standalone document corpus)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4


WATER_OBJECT_CONTENT_TYPE = "main"


class ResourceType(str, Enum):
    """Kind of water resource."""
    LAKE = "lake"
    CANAL = "canal"
    RESERVOIR = "reservoir"

    @property
    def label(self) -> str:
        return RESOURCE_TYPE_LABELS[self]

    @classmethod
    def from_db(cls, value: str) -> "ResourceType":
        """Parse either the enum value or the stored display label."""
        return _parse_labelled(cls, value, RESOURCE_TYPE_LABELS)


class WaterType(str, Enum):
    """Water salinity."""
    FRESH = "fresh"
    NON_FRESH = "non_fresh"

    @property
    def label(self) -> str:
        return WATER_TYPE_LABELS[self]

    @classmethod
    def from_db(cls, value: str) -> "WaterType":
        """Parse either the enum value or the stored display label."""
        return _parse_labelled(cls, value, WATER_TYPE_LABELS)


# The registry stores these labels verbatim in water_objects
RESOURCE_TYPE_LABELS = {
    ResourceType.LAKE: "Озеро",
    ResourceType.CANAL: "Канал",
    ResourceType.RESERVOIR: "Водохранилище",
}

WATER_TYPE_LABELS = {
    WaterType.FRESH: "Пресная",
    WaterType.NON_FRESH: "Непресная",
}


def _parse_labelled(enum_cls, value, labels):
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip()
    for member, label in labels.items():
        if normalized.lower() in (member.value, member.name.lower(), label.lower()):
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


@dataclass
class WaterObject:
    """A registry record as read from the water_objects table."""
    id: UUID
    name: str
    region: str
    resource_type: ResourceType
    water_type: WaterType
    has_fauna: bool
    technical_condition: int  # 1 (critical) .. 5 (excellent)
    passport_date: date
    latitude: float
    longitude: float

    def __post_init__(self):
        if isinstance(self.resource_type, str) and not isinstance(self.resource_type, ResourceType):
            self.resource_type = ResourceType.from_db(self.resource_type)
        if isinstance(self.water_type, str) and not isinstance(self.water_type, WaterType):
            self.water_type = WaterType.from_db(self.water_type)
        if isinstance(self.passport_date, datetime):
            self.passport_date = self.passport_date.date()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WaterObjectChunk:
    """Embedded summary of a water object. Key: (water_object_id, chunk_index)."""
    water_object_id: UUID
    chunk_index: int
    content: str
    embedding: List[float]
    content_type: str = WATER_OBJECT_CONTENT_TYPE
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class DocumentChunk:
    """Embedded chunk of a standalone document (PDF, reference text...)."""
    document_name: str
    chunk_index: int
    content_type: str
    content: str  # Already prefixed with "Document: {name}"
    embedding: List[float]
    file_name: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class SearchResultItem:
    """A raw nearest-neighbour hit from either corpus."""
    source_id: UUID
    content: str
    content_type: str
    source_name: str
    distance: float  # Cosine distance, lower = closer
    source_region: Optional[str] = None
    is_water_object: bool = False


@dataclass
class ChatSource:
    """A deduplicated source shown alongside an answer."""
    id: UUID
    name: str
    relevance: float
    region: Optional[str] = None
    content_snippet: Optional[str] = None


@dataclass
class RagSearchResult:
    """Context bundle produced by the retriever."""
    context: str = ""
    sources: List[ChatSource] = field(default_factory=list)

    @property
    def has_relevant_context(self) -> bool:
        return len(self.sources) > 0

    @property
    def average_relevance(self) -> float:
        if not self.sources:
            return 0.0
        return sum(s.relevance for s in self.sources) / len(self.sources)
