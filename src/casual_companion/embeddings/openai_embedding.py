"""OpenAI embedding adapter for casual-companion."""

import logging
import os
from typing import List, Optional

logger = logging.getLogger(__name__)

_KNOWN_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedding:
    """
    Embedding adapter using OpenAI's embedding API.

    Works with any OpenAI-compatible embeddings endpoint through ``base_url``.

    Example:
        >>> embedder = OpenAIEmbedding(model="text-embedding-3-small", dimensions=384)
        >>> vector = await embedder.embed("My sister's birthday is in May")
        >>> len(vector)
        384
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: float = 30.0,
        max_retries: int = 2,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            model: OpenAI model name (default: text-embedding-3-small)
            api_key: API key (None = use OPENAI_API_KEY env var)
            base_url: Custom OpenAI-compatible endpoint
            dimensions: Output dimension (text-embedding-3-* models only)
            timeout: Request timeout in seconds
            max_retries: Retry attempts made by the client for failed requests
        """
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise ImportError(
                "openai is required for OpenAIEmbedding. "
                "Install with: pip install casual-companion[embeddings-openai]"
            ) from e

        self._model = model
        self._dimensions = dimensions
        self._client = AsyncOpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

        if dimensions is not None:
            self._dimension = dimensions
        else:
            # Unknown models report 0 until the first vector comes back
            self._dimension = _KNOWN_DIMENSIONS.get(model, 0)
            if not self._dimension:
                logger.warning(f"Unknown embedding model {model}, dimension set on first call")

        logger.info(f"OpenAI embedder initialized: {model} ({self._dimension} dimensions)")

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model

    async def _create(self, payload):
        kwargs = {"model": self._model, "input": payload}
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions

        response = await self._client.embeddings.create(**kwargs)
        vectors = [item.embedding for item in response.data]
        if vectors and not self._dimension:
            self._dimension = len(vectors[0])
        return vectors

    async def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            ValueError: If text is empty
            openai.OpenAIError: If the API request fails
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        vectors = await self._create(text)
        return vectors[0]

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        if any(not text or not text.strip() for text in texts):
            raise ValueError("Cannot embed empty texts in batch")

        return await self._create(texts)
