"""
GidroAtlas AI Module
====================

Prompt templates and the Ollama chat client.

ChatService lives in gidroatlas.ai.chat_service and is imported from
there directly (it depends on the rag package, which itself uses prompts).
"""

from .llm_client import OllamaLlmClient, clean_llm_response

__all__ = [
    "OllamaLlmClient",
    "clean_llm_response",
]
