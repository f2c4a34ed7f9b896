"""Embedding generation through the Ollama embeddings API."""

import math
from numbers import Real
from typing import Any, List, Optional, Sequence

import aiohttp
from loguru import logger

from smart_search.services.errors import EmbeddingError
from smart_search.settings import settings


class EmbeddingGateway:
    """
    Client turning text into embedding vectors.

    Every call opens its own session with its own timeout, so a request
    that times out is cancelled together with its connection.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialize the gateway.

        :param endpoint: Base URL of the embedding server
        :param model: Embedding model name
        :param dimensions: Expected vector length
        :param timeout: Request timeout in milliseconds
        """
        self.endpoint = (endpoint or settings.ollama_endpoint).rstrip("/")
        self.model = model or settings.ollama_embed_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self.timeout = timeout or settings.embedding_timeout

        if not self.endpoint or not self.model:
            raise ValueError("Embedding endpoint and model are required")

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for a single text.

        :param text: Text to embed, surrounding whitespace is ignored
        :return: Embedding vector
        :raises EmbeddingError: If the provider fails or returns a bad payload
        """
        payload = {"model": self.model, "prompt": text.strip()}
        client_timeout = aiohttp.ClientTimeout(total=self.timeout / 1000)

        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.post(
                    f"{self.endpoint}/api/embeddings", json=payload
                ) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise EmbeddingError(
                            f"Embedding request failed ({response.status}): {error_text}"
                        )
                    data = await response.json(content_type=None)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Embedding request to {self.endpoint} failed: {e!r}")
            raise EmbeddingError("Failed to generate embedding via Ollama") from e

        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(embedding, list) or not all(
            _is_number(value) for value in embedding
        ):
            raise EmbeddingError("Invalid embedding payload from Ollama")

        return [float(value) for value in embedding]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed texts one after another.

        A failed item yields an empty list in its position, the rest of the
        batch still runs.

        :param texts: Texts to embed
        :return: Embeddings in input order
        """
        embeddings: List[List[float]] = []
        for index, text in enumerate(texts):
            try:
                embeddings.append(await self.embed(text))
            except EmbeddingError as e:
                logger.warning(f"Embedding of batch item {index} failed: {e}")
                embeddings.append([])
        return embeddings

    def is_valid_embedding(self, vector: Any) -> bool:
        """Tell whether a vector has the expected length and only finite numbers."""
        return (
            isinstance(vector, (list, tuple))
            and len(vector) == self.dimensions
            and all(_is_number(value) and math.isfinite(value) for value in vector)
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)
