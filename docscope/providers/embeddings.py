"""Embedding service: text -> fixed-length vector.

Security: API keys come from settings (environment) only.
Provides a deterministic offline implementation when no key is configured.
"""

import hashlib
import logging
import math
import re
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from docscope.config import Settings
from docscope.errors import EmbeddingError
from docscope.providers.policy import CallPolicy

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class EmbeddingService(Protocol):
    """Protocol for embedding providers."""

    async def embed(self, text: str) -> list[float]:
        """Embed one text.

        Raises:
            EmbeddingError: On provider or transport failure
        """
        ...


class HashingEmbeddingService:
    """Deterministic bag-of-words embedding (no API key required).

    Each lower-cased token is hashed into one of `dimensions` buckets and the
    resulting count vector is L2-normalized. Texts sharing vocabulary get high
    cosine similarity, which is enough for offline mode and tests.
    """

    def __init__(self, dimensions: int = 256) -> None:
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        """Generate deterministic embedding."""
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dimensions
            vector[bucket] += 1.0

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]


class OpenAIEmbeddingService:
    """OpenAI-backed embedding service."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        policy: CallPolicy | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize OpenAI embeddings.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Embedding model name
            policy: Call policy (delay / timeout / retries)
            client: Pre-built client (for testing)
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self._policy = policy or CallPolicy()

    async def embed(self, text: str) -> list[float]:
        """Embed text with the OpenAI embeddings endpoint."""
        return await self._policy.execute(
            "embedding", lambda: self._embed_once(text), error_cls=EmbeddingError
        )

    async def _embed_once(self, text: str) -> list[float]:
        try:
            response = await self.client.embeddings.create(model=self.model, input=text)
        except OpenAIError as e:
            raise EmbeddingError(f"OpenAI embedding request failed: {e}") from e

        if not response.data:
            raise EmbeddingError("OpenAI returned no embedding")
        return list(response.data[0].embedding)


def get_embedding_service(settings: Settings, policy: CallPolicy | None = None) -> EmbeddingService:
    """Factory function to get the embedding service based on config.

    Returns:
        OpenAIEmbeddingService if an API key is configured, HashingEmbeddingService otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI embeddings")
        return OpenAIEmbeddingService(
            api_key=api_key.get_secret_value(),
            model=settings.openai_embedding_model,
            policy=policy,
        )

    logger.warning("No OpenAI API key configured, using deterministic hashing embeddings")
    return HashingEmbeddingService()
