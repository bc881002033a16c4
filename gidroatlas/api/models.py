"""
GidroAtlas API Models
=====================

Pydantic models for API request/response serialization.
Responses are built from the service dataclasses (from_attributes).
"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# CHAT
# ============================================================================

class ChatRequest(BaseModel):
    """User question."""
    message: str = Field(..., description="Question about water objects")


class ChatSourceModel(BaseModel):
    """Source attached to an answer or a search result."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    region: Optional[str] = None
    relevance: float
    content_snippet: Optional[str] = None


class ChatResponseModel(BaseModel):
    """Answer returned by POST /api/chat."""
    model_config = ConfigDict(from_attributes=True)

    answer: str
    sources: List[ChatSourceModel] = []
    processing_time_ms: int
    used_rag: bool
    error: Optional[str] = None


class ChatStatusModel(BaseModel):
    """Backend availability."""
    model_config = ConfigDict(from_attributes=True)

    is_available: bool
    embeddings_available: bool
    llm_available: bool
    indexed_objects_count: int
    model_name: Optional[str] = None
    error: Optional[str] = None


# ============================================================================
# SEARCH
# ============================================================================

class SearchRequest(BaseModel):
    query: str
    top_k: Optional[int] = Field(None, ge=1, le=100, description="Chunks kept after merging")


class SearchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    context: str
    sources: List[ChatSourceModel] = []


# ============================================================================
# INDEXING
# ============================================================================

class IndexTextRequest(BaseModel):
    content: str
    document_name: str
    content_type: Optional[str] = "reference"


class IndexWaterObjectsResponse(BaseModel):
    message: str
    indexed_count: int


class IndexPdfResponse(BaseModel):
    message: str
    document_name: str
    chunks_indexed: int
    original_file_name: str
    file_size_bytes: int


class IndexTextResponse(BaseModel):
    message: str
    document_name: str
    chunks_indexed: int


class ClearIndexResponse(BaseModel):
    message: str
    deleted_count: int


# ============================================================================
# HEALTH
# ============================================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    database_version: Optional[str] = None
    pgvector_available: Optional[bool] = None
