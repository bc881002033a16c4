"""
GidroAtlas Indexing Supervisor
==============================

Startup job that fills an empty index.

Steps:
    1. Wait for the app to settle (startup delay)
    2. Poll the embedding backend until it answers (bounded retries)
    3. Skip everything if the index already holds sources
    4. Index all water objects
    5. Index every PDF found under the documents folder

Usage:
    supervisor = IndexingSupervisor(chat_service, indexer, embedder, settings.indexing)
    task = asyncio.create_task(supervisor.run())
    ...
    task.cancel()
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from ..config import IndexingConfig

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def clean_document_name(file_stem: str) -> str:
    """
    Turn a PDF file stem into a readable document name.

    "65b8c42763354_vodnyi_kodeks" -> "Vodnyi kodeks"
    """
    name = file_stem

    # Leading upload id like "65b8c42763354_"
    if len(name) > 12 and all(c.isalnum() or c in "_-" for c in name):
        parts = re.split(r"[_-]", name, maxsplit=1)
        if len(parts) == 2 and parts[0].isalnum() and len(parts[0]) >= 10:
            name = parts[1]

    name = name.replace("_", " ").replace("-", " ")

    if name:
        name = name[0].upper() + name[1:]

    return name.strip()


class IndexingSupervisor:
    """
    Background auto-indexing, started by the API lifespan.

    Errors are logged and never escape run(); cancellation does.
    """

    def __init__(self, chat_service, indexer, embedder, config: Optional[IndexingConfig] = None):
        self.chat_service = chat_service
        self.indexer = indexer
        self.embedder = embedder
        self.config = config or IndexingConfig()

    async def run(self):
        await asyncio.sleep(self.config.startup_delay_seconds)
        logger.info("Indexing supervisor started. Waiting for Ollama to be ready...")

        if not await self.wait_for_embeddings():
            logger.warning(
                f"Ollama embedding service is not available after {self.config.max_retries} attempts. "
                "Indexing will not be performed automatically. "
                "Use POST /api/chat/index to trigger indexing manually."
            )
            return

        try:
            indexed_count = await self.chat_service.count_indexed_sources()
            if indexed_count > 0:
                logger.info(f"Found {indexed_count} already indexed sources. Skipping auto-indexing.")
                return

            await self.index_water_objects()
            await self.index_pdf_folder()

        except Exception:
            logger.error("Error during automatic indexing. Use POST /api/chat/index to retry.", exc_info=True)

    async def wait_for_embeddings(self) -> bool:
        for attempt in range(1, self.config.max_retries + 1):
            try:
                if await self.embedder.is_available():
                    logger.info("Ollama embedding service is ready")
                    return True
            except Exception as e:
                logger.debug(f"Ollama not ready yet, attempt {attempt}/{self.config.max_retries}: {e}")

            logger.info(f"Waiting for Ollama... attempt {attempt}/{self.config.max_retries}")
            await asyncio.sleep(self.config.retry_delay_seconds)

        return False

    async def index_water_objects(self) -> int:
        logger.info("Starting automatic indexing of water objects...")
        try:
            count = await self.chat_service.index_all_water_objects()
            logger.info(f"Indexed {count} water objects")
            return count
        except Exception:
            logger.error("Failed to index water objects", exc_info=True)
            return 0

    def candidate_folders(self) -> List[Path]:
        folder = Path(self.config.pdf_folder)
        if folder.is_absolute():
            return [folder]
        return [
            Path.cwd() / folder,
            PROJECT_ROOT / folder,
            PROJECT_ROOT.parent / folder,
        ]

    def find_pdf_folder(self) -> Optional[Path]:
        for path in self.candidate_folders():
            if path.is_dir():
                return path.resolve()
        return None

    async def index_pdf_folder(self) -> int:
        """Index every *.pdf under the documents folder, recursively. Returns total chunks."""
        folder = self.find_pdf_folder()
        if folder is None:
            tried = ", ".join(str(p) for p in self.candidate_folders())
            logger.warning(f"PDF documents folder not found. Tried paths: {tried}")
            return 0

        pdf_files = sorted(
            p for p in folder.rglob("*") if p.is_file() and p.suffix.lower() == ".pdf"
        )
        if not pdf_files:
            logger.info(f"No PDF files found in {folder}")
            return 0

        logger.info(f"Found {len(pdf_files)} PDF files to index in {folder}")

        total_chunks = 0
        success_count = 0
        for pdf_file in pdf_files:
            document_name = clean_document_name(pdf_file.stem)
            logger.info(f"Indexing PDF: {pdf_file.name} as '{document_name}'...")
            try:
                chunks = await self.indexer.index_pdf(
                    os.fspath(pdf_file),
                    document_name,
                    chunk_size=self.config.chunk_size,
                    chunk_overlap=self.config.chunk_overlap,
                )
            except Exception:
                logger.error(f"Failed to index PDF: {pdf_file.name}", exc_info=True)
                continue

            total_chunks += chunks
            success_count += 1
            logger.info(f"Indexed PDF '{document_name}': {chunks} chunks")

        logger.info(
            f"PDF indexing complete. Indexed {success_count}/{len(pdf_files)} files, "
            f"total {total_chunks} chunks"
        )
        return total_chunks
