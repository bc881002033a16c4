"""
GidroAtlas
==========

RAG chat assistant for the Kazakhstan water object registry.

Subpackages:
    - rag: chunking, embeddings, pgvector store, indexing, retrieval
    - ai: prompts, LLM client, chat orchestration
    - orchestrator: background startup indexing
    - api: FastAPI transport
"""

__version__ = "0.1.0"
