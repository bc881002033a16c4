"""
GidroAtlas Orchestrator Module
==============================

Background jobs started with the API.

Components:
    - IndexingSupervisor: fills an empty index once Ollama is reachable
"""

from .indexing_supervisor import IndexingSupervisor, clean_document_name

__all__ = [
    "IndexingSupervisor",
    "clean_document_name",
]
