"""
GidroAtlas Chat API Routes
==========================

Endpoints for the RAG chat assistant and its knowledge base.

Endpoints:
    POST   /api/chat             - Ask a question
    GET    /api/chat/status      - Backend availability
    POST   /api/chat/index       - Re-index all water objects
    POST   /api/chat/index/pdf   - Upload and index a PDF
    POST   /api/chat/index/text  - Index pasted text
    DELETE /api/chat/index       - Clear the index (optionally by content type)
    POST   /api/chat/search      - Raw retrieval, no generation
"""

import logging
import os
import tempfile
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pypdf.errors import PdfReadError

from ..ai.chat_service import ChatService
from ..logging_config import preview
from ..rag.models import WATER_OBJECT_CONTENT_TYPE
from .models import (
    ChatRequest,
    ChatResponseModel,
    ChatStatusModel,
    ClearIndexResponse,
    IndexPdfResponse,
    IndexTextRequest,
    IndexTextResponse,
    IndexWaterObjectsResponse,
    SearchRequest,
    SearchResponse,
)
from .services import get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])

MAX_PDF_UPLOAD_BYTES = 50 * 1024 * 1024
UPLOAD_READ_BLOCK = 1024 * 1024


# =============================================================================
# CHAT
# =============================================================================

@router.post("", response_model=ChatResponseModel)
async def ask(request: ChatRequest, chat_service: ChatService = Depends(get_chat_service)):
    """
    Ask a question about water objects.

    Context from the knowledge base is used when it is relevant enough;
    otherwise the model answers from general knowledge.
    """
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Сообщение не может быть пустым")

    logger.info(f"Chat request: {preview(request.message, 100)}")

    response = await chat_service.ask(request.message)

    logger.info(
        f"Chat response generated in {response.processing_time_ms}ms, "
        f"used RAG: {response.used_rag}, sources: {len(response.sources)}",
        extra={"duration_ms": response.processing_time_ms, "used_rag": response.used_rag,
               "sources": len(response.sources)},
    )
    return ChatResponseModel.model_validate(response)


@router.get("/status", response_model=ChatStatusModel)
async def get_status(chat_service: ChatService = Depends(get_chat_service)):
    """Embedding/LLM availability and number of indexed sources."""
    status = await chat_service.get_status()
    return ChatStatusModel.model_validate(status)


# =============================================================================
# INDEXING
# =============================================================================

@router.post("/index", response_model=IndexWaterObjectsResponse)
async def index_water_objects(chat_service: ChatService = Depends(get_chat_service)):
    """Re-index every water object (replaces the water object corpus)."""
    logger.info("Water objects indexing triggered")

    count = await chat_service.index_all_water_objects()

    return IndexWaterObjectsResponse(
        message=f"Успешно проиндексировано {count} водных объектов",
        indexed_count=count,
    )


@router.post("/index/pdf", response_model=IndexPdfResponse)
async def index_pdf_document(
    file: Optional[UploadFile] = File(None),
    document_name: Optional[str] = Query(None, description="Name stored with the chunks"),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Upload and index a PDF document.

    The upload is streamed to a temporary file (at most
    MAX_PDF_UPLOAD_BYTES), indexed and removed.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="Файл не загружен")

    file_name = file.filename or ""
    if not file_name.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Поддерживаются только PDF файлы")

    name = document_name or os.path.splitext(os.path.basename(file_name))[0]

    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp:
        temp_path = tmp.name

    try:
        size = await _save_upload(file, temp_path)
        if size == 0:
            raise HTTPException(status_code=400, detail="Файл не загружен")

        logger.info(f"PDF indexing triggered: {file_name} ({size} bytes)")

        try:
            chunks_indexed = await chat_service.index_pdf(temp_path, name)
        except PdfReadError as e:
            logger.warning(f"Unreadable PDF upload {file_name}: {e}")
            raise HTTPException(status_code=400, detail="Не удалось прочитать PDF файл")
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)

    return IndexPdfResponse(
        message=f"PDF успешно проиндексирован: {chunks_indexed} фрагментов",
        document_name=name,
        chunks_indexed=chunks_indexed,
        original_file_name=file_name,
        file_size_bytes=size,
    )


async def _save_upload(file: UploadFile, path: str) -> int:
    """Copy the upload to `path` in blocks. Returns the byte count."""
    size = 0
    with open(path, "wb") as out:
        while True:
            block = await file.read(UPLOAD_READ_BLOCK)
            if not block:
                break
            size += len(block)
            if size > MAX_PDF_UPLOAD_BYTES:
                raise HTTPException(status_code=413, detail="Файл слишком большой (максимум 50 МБ)")
            out.write(block)
    return size


@router.post("/index/text", response_model=IndexTextResponse)
async def index_text_content(
    request: IndexTextRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """Chunk and index pasted text."""
    if not request.content or not request.content.strip():
        raise HTTPException(status_code=400, detail="Контент не может быть пустым")

    if not request.document_name or not request.document_name.strip():
        raise HTTPException(status_code=400, detail="Название документа обязательно")

    content_type = request.content_type or "reference"
    if content_type == WATER_OBJECT_CONTENT_TYPE:
        raise HTTPException(
            status_code=400,
            detail=f"Тип '{WATER_OBJECT_CONTENT_TYPE}' зарезервирован для водных объектов",
        )

    logger.info(
        f"Text indexing triggered: {request.document_name} ({len(request.content)} chars)",
        extra={"document": request.document_name, "content_type": content_type},
    )

    chunks_indexed = await chat_service.index_text(
        request.content,
        request.document_name,
        content_type,
    )

    return IndexTextResponse(
        message=f"Текст успешно проиндексирован: {chunks_indexed} фрагментов",
        document_name=request.document_name,
        chunks_indexed=chunks_indexed,
    )


@router.delete("/index", response_model=ClearIndexResponse)
async def clear_index(
    content_type: Optional[str] = Query(None, description="'main', 'pdf', 'reference'... empty clears all"),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Clear indexed chunks, all of them or one content type."""
    logger.info(f"Index clear triggered, type: {content_type or 'all'}")

    deleted = await chat_service.clear_index(content_type)

    return ClearIndexResponse(
        message=f"Индекс очищен (тип: {content_type or 'все'})",
        deleted_count=deleted,
    )


# =============================================================================
# SEARCH
# =============================================================================

@router.post("/search", response_model=SearchResponse)
async def search_knowledge(
    request: SearchRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """Semantic search over both corpora, without generation."""
    if not request.query or not request.query.strip():
        raise HTTPException(status_code=400, detail="Запрос не может быть пустым")

    result = await chat_service.search(request.query, request.top_k)
    return SearchResponse.model_validate(result)
