"""
RAG Embedder
============

Generates embeddings with an Ollama-served model (nomic-embed-text).
768 dimensions.

Failures never raise: a text that could not be embedded yields None and
callers skip it.
"""

import logging
from typing import List, Optional

import httpx

from ..config import OllamaConfig
from ..logging_config import preview

logger = logging.getLogger(__name__)


class OllamaEmbedder:
    """
    Embedding client for the Ollama /api/embeddings endpoint.

    Requests are sequential; there is no retry. A failed call is final for
    that text and the caller decides what to do with the gap.
    """

    def __init__(
        self,
        config: Optional[OllamaConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or OllamaConfig()
        self.model = self.config.embedding_model

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
        )

        self._total_requests = 0
        self._failed_requests = 0

    async def embed(self, text: str) -> Optional[List[float]]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None if the backend failed
        """
        self._total_requests += 1
        try:
            response = await self._client.post(
                "/api/embeddings",
                json={"model": self.model, "prompt": text},
            )
            if response.status_code != 200:
                logger.warning(f"Failed to generate embedding. Status: {response.status_code}")
                self._failed_requests += 1
                return None

            embedding = response.json().get("embedding")
            if not embedding:
                logger.warning(f"Embedding response without vector for text: {preview(text)}")
                self._failed_requests += 1
                return None

            return [float(x) for x in embedding]

        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Error generating embedding for text: {preview(text)}: {e}")
            self._failed_requests += 1
            return None

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts, one request at a time.

        Failed texts are dropped, so the result can be shorter than the
        input and positions do not line up with it.
        """
        results = []
        for text in texts:
            embedding = await self.embed(text)
            if embedding is not None:
                results.append(embedding)

        if len(results) < len(texts):
            logger.debug(f"Embedded {len(results)}/{len(texts)} texts")
        return results

    async def is_available(self) -> bool:
        """Check that the embedding model is pulled on the Ollama server."""
        return await model_is_listed(self._client, self.model, "embedding")

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    @property
    def total_requests(self) -> int:
        return self._total_requests

    @property
    def failed_requests(self) -> int:
        return self._failed_requests


async def model_is_listed(client: httpx.AsyncClient, model: str, kind: str) -> bool:
    """
    Ask Ollama for its local models (/api/tags) and look for `model`.

    A reachable server without the model counts as unavailable.
    """
    try:
        response = await client.get("/api/tags")
        if response.status_code != 200:
            return False

        models = response.json().get("models") or []
        wanted = model.lower()
        return any(
            wanted in (m.get("name") or m.get("model") or "").lower()
            for m in models
        )
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning(f"Ollama {kind} service is not available: {e}")
        return False
