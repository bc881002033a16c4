"""
GidroAtlas FastAPI Application
==============================

REST API for the GidroAtlas chat assistant.

Endpoints:
    GET  /api/health  - Health check
    /api/chat/...     - Chat, indexing and search (see chat_routes)

Usage:
    uvicorn gidroatlas.api.main:app --reload --port 8000

    Or with CLI:
    python -m gidroatlas.api.main
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__, db
from ..config import get_settings
from ..logging_config import setup_logging_from_config
from ..orchestrator.indexing_supervisor import IndexingSupervisor
from .chat_routes import router as chat_router
from .models import HealthResponse
from .services import close_services, get_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    setup_logging_from_config(settings.logging)

    logger.info("Starting GidroAtlas API...")

    services = get_services()
    db.get_pool(settings.database)

    supervisor_task = None
    if settings.indexing.auto_index_on_startup:
        supervisor = IndexingSupervisor(
            services.chat_service,
            services.indexer,
            services.embedder,
            settings.indexing,
        )
        supervisor_task = asyncio.create_task(supervisor.run())
        logger.info("Indexing supervisor scheduled")

    yield

    # Cleanup
    if supervisor_task is not None and not supervisor_task.done():
        supervisor_task.cancel()
        try:
            await supervisor_task
        except asyncio.CancelledError:
            pass

    await close_services()
    db.close_pool()
    logger.info("Shutting down GidroAtlas API...")


# Create FastAPI app
app = FastAPI(
    title="GidroAtlas API",
    description="RAG assistant for Kazakhstan water objects",
    version=__version__,
    lifespan=lifespan,
)

# CORS: extra origins via CORS_ORIGINS (comma-separated)
_default_origins = [
    "http://localhost:3000",
    "http://localhost:5000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5000",
]
_extra_origins = os.getenv("CORS_ORIGINS", "")
if _extra_origins:
    _default_origins.extend([o.strip() for o in _extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=_default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)


# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Reports database connectivity and whether pgvector is installed.
    """
    db_health = await asyncio.to_thread(db.check_health)
    overall = "healthy" if db_health["status"] == "connected" else "degraded"

    return HealthResponse(
        status=overall,
        version=app.version,
        database=db_health["status"],
        database_version=db_health.get("version"),
        pgvector_available=db_health.get("pgvector_available"),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gidroatlas.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=False,
    )
