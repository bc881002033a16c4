"""
GidroAtlas LLM Client
=====================

Chat generation through an Ollama-served model (qwen3:4b by default).

Every answer goes through clean_llm_response() before it leaves this
module: reasoning models sometimes emit their "thinking" inline.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import OllamaConfig
from ..rag.embedder import model_is_listed

logger = logging.getLogger(__name__)


# Reasoning blocks, removed in this order
_THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_THINK_TAG = re.compile(r"</?think>", re.IGNORECASE)
_THINKING_BRACKET = re.compile(r"\[thinking\][\s\S]*?\[/thinking\]", re.IGNORECASE)
_THINKING_BOLD = re.compile(r"\*\*Thinking\*\*:?[\s\S]*?(?=\n\n|\Z)", re.IGNORECASE)

_LEADING_WHITESPACE = re.compile(r"^\s+")
_MULTIPLE_NEWLINES = re.compile(r"\n{3,}")


def clean_llm_response(response: Optional[str]) -> Optional[str]:
    """
    Strip reasoning segments and tidy whitespace.

    Removes <think>...</think> blocks, stray think tags,
    [thinking]...[/thinking] blocks and **Thinking** paragraphs, then
    drops leading whitespace and collapses 3+ newlines to 2.
    Idempotent; text outside those markers is left alone.
    """
    if not response:
        return response

    cleaned = _THINK_BLOCK.sub("", response)
    cleaned = _THINK_TAG.sub("", cleaned)
    cleaned = _THINKING_BRACKET.sub("", cleaned)
    cleaned = _THINKING_BOLD.sub("", cleaned)

    cleaned = _LEADING_WHITESPACE.sub("", cleaned)
    cleaned = _MULTIPLE_NEWLINES.sub("\n\n", cleaned)

    return cleaned.strip()


@dataclass
class GenerationOptions:
    """Sampling options sent with every chat request."""
    temperature: float
    num_predict: int
    num_ctx: int

    def to_dict(self) -> dict:
        return {
            "temperature": self.temperature,
            "num_predict": self.num_predict,
            "num_ctx": self.num_ctx,
        }


class OllamaLlmClient:
    """
    Client for the Ollama /api/chat endpoint.

    Non-streaming, thinking mode disabled. Failures return None; there is
    no retry.
    """

    def __init__(
        self,
        config: Optional[OllamaConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or OllamaConfig()
        self.options = GenerationOptions(
            temperature=self.config.temperature,
            num_predict=self.config.max_tokens,
            num_ctx=self.config.num_ctx,
        )

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
        )

    @property
    def model_name(self) -> str:
        return self.config.chat_model

    async def generate(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """
        Generate an answer for a system + user prompt pair.

        Returns:
            Cleaned answer text, or None if the backend failed
        """
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "think": False,
            "options": self.options.to_dict(),
        }

        try:
            response = await self._client.post("/api/chat", json=payload)
            if response.status_code != 200:
                logger.warning(f"LLM request failed. Status: {response.status_code}")
                return None

            message = response.json().get("message") or {}
            content = message.get("content")
            if content is not None and not isinstance(content, str):
                logger.warning(f"LLM returned non-text content: {type(content).__name__}")
                return None
            return clean_llm_response(content)

        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.error(f"Error generating LLM response: {e}")
            return None

    async def is_available(self) -> bool:
        """Check that the chat model is pulled on the Ollama server."""
        return await model_is_listed(self._client, self.model_name, "LLM")

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
