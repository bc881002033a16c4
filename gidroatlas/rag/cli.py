"""
RAG CLI
=======

Command-line interface for RAG management.

Usage:
    python -m gidroatlas.rag.cli init                     # Create embedding tables
    python -m gidroatlas.rag.cli index                    # Re-index all water objects
    python -m gidroatlas.rag.cli index-pdf file.pdf       # Index a PDF
    python -m gidroatlas.rag.cli index-text notes.txt --name "Notes"
    python -m gidroatlas.rag.cli search "query"           # Test retrieval
    python -m gidroatlas.rag.cli ask "question"           # Full chat round-trip
    python -m gidroatlas.rag.cli status                   # Backend availability
    python -m gidroatlas.rag.cli clear --type pdf         # Clear the index
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from ..config import get_settings
from ..db import close_pool
from ..logging_config import setup_logging_from_config

logger = logging.getLogger(__name__)

MIGRATION_PATH = Path(__file__).resolve().parent.parent.parent / "database" / "migrations" / "001_rag_pgvector.sql"


def init_schema() -> bool:
    """Create the pgvector extension and both embedding tables."""
    from .vector_store import PgVectorStore

    if not MIGRATION_PATH.exists():
        logger.error(f"Migration file not found: {MIGRATION_PATH}")
        return False

    try:
        PgVectorStore().init_schema(MIGRATION_PATH.read_text(encoding="utf-8"))
        return True
    except Exception as e:
        logger.error(f"Failed to initialize schema: {e}")
        return False


async def _with_services(action):
    from ..api.services import build_services

    services = build_services(get_settings())
    try:
        return await action(services)
    finally:
        await services.aclose()


async def index_water_objects(services) -> bool:
    count = await services.chat_service.index_all_water_objects()
    print(f"Indexed {count} water objects")
    print(f"Stats: {services.indexer.stats}")
    return True


async def index_pdf(services, path: str, name: str) -> bool:
    name = name or Path(path).stem
    count = await services.chat_service.index_pdf(path, name)
    print(f"Indexed '{name}': {count} chunks")
    return count > 0


async def index_text(services, path: str, name: str, content_type: str) -> bool:
    content = Path(path).read_text(encoding="utf-8")
    count = await services.chat_service.index_text(content, name, content_type)
    print(f"Indexed '{name}' ({content_type}): {count} chunks")
    return count > 0


async def test_search(services, query: str, k: int) -> bool:
    result = await services.chat_service.search(query, k)

    print(f"\n{'='*60}")
    print(f"Query: {query}")
    print(f"Sources: {len(result.sources)} (avg relevance {result.average_relevance:.3f})")
    print('='*60)

    for i, source in enumerate(result.sources, 1):
        region = f" [{source.region}]" if source.region else ""
        print(f"\n[{i}] {source.name}{region}  relevance: {source.relevance:.3f}")
        print(f"    {(source.content_snippet or '')[:200]}")

    print(f"\n{'='*60}")
    print("CONTEXT FOR LLM:")
    print('='*60)
    print(result.context)
    return True


async def ask(services, question: str) -> bool:
    response = await services.chat_service.ask(question)

    print(f"\n{response.answer}\n")
    print(f"used RAG: {response.used_rag}, {response.processing_time_ms} ms")
    for source in response.sources:
        print(f"  - {source.name} ({source.relevance:.3f})")
    return response.error is None


async def show_status(services) -> bool:
    status = await services.chat_service.get_status()

    print(f"\n{'='*60}")
    print("CHAT STATUS")
    print('='*60)
    print(f"  Available:        {status.is_available}")
    print(f"  Embeddings:       {status.embeddings_available}")
    print(f"  LLM:              {status.llm_available} ({status.model_name})")
    print(f"  Indexed sources:  {status.indexed_objects_count}")
    if status.error:
        print(f"  Error:            {status.error}")
    return status.is_available


async def clear(services, content_type: str) -> bool:
    deleted = await services.chat_service.clear_index(content_type)
    print(f"Deleted {deleted} chunks (type: {content_type or 'all'})")
    return True


def main():
    parser = argparse.ArgumentParser(description="GidroAtlas RAG CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize database schema")
    subparsers.add_parser("index", help="Re-index all water objects")

    pdf_parser = subparsers.add_parser("index-pdf", help="Index a PDF file")
    pdf_parser.add_argument("path", help="PDF file")
    pdf_parser.add_argument("--name", default=None, help="Document name (default: file stem)")

    text_parser = subparsers.add_parser("index-text", help="Index a UTF-8 text file")
    text_parser.add_argument("path", help="Text file")
    text_parser.add_argument("--name", required=True, help="Document name")
    text_parser.add_argument("--type", default="reference", help="Content type")

    search_parser = subparsers.add_parser("search", help="Test search")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("-k", type=int, default=None, help="Number of chunks kept")

    ask_parser = subparsers.add_parser("ask", help="Ask a question")
    ask_parser.add_argument("question", help="Question")

    subparsers.add_parser("status", help="Show backend status")

    clear_parser = subparsers.add_parser("clear", help="Clear the index")
    clear_parser.add_argument("--type", default=None, help="'main', 'pdf', 'reference'... (default: all)")

    args = parser.parse_args()

    setup_logging_from_config(get_settings().logging)

    if args.command == "init":
        success = init_schema()
    elif args.command == "index":
        success = asyncio.run(_with_services(index_water_objects))
    elif args.command == "index-pdf":
        if not os.path.exists(args.path):
            logger.error(f"File not found: {args.path}")
            success = False
        else:
            success = asyncio.run(_with_services(lambda s: index_pdf(s, args.path, args.name)))
    elif args.command == "index-text":
        success = asyncio.run(_with_services(lambda s: index_text(s, args.path, args.name, args.type)))
    elif args.command == "search":
        success = asyncio.run(_with_services(lambda s: test_search(s, args.query, args.k)))
    elif args.command == "ask":
        success = asyncio.run(_with_services(lambda s: ask(s, args.question)))
    elif args.command == "status":
        success = asyncio.run(_with_services(show_status))
    elif args.command == "clear":
        success = asyncio.run(_with_services(lambda s: clear(s, args.type)))
    else:
        parser.print_help()
        return

    close_pool()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
