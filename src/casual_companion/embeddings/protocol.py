"""
Text embedding protocol for casual-companion.

The memory graph embeds memory contents and queries through one uniform
call; cosine similarity is computed locally.
"""

from typing import List, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    Implementations must:

    1. Return deterministic vectors for the same input
    2. Expose their output dimension (the Qdrant node store needs it)
    3. Raise on failure instead of returning an empty vector

    Example:
        >>> embedder = MiniLMEmbedding()
        >>> vector = await embedder.embed("I have an exam tomorrow")
        >>> len(vector) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """
        Vector dimension produced by this embedder.

        Returns:
            Number of elements in each embedding vector
        """
        ...

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        ...

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text (memory content or retrieval query).

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            ValueError: If text is empty
        """
        ...

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Embed several texts in one call.

        Args:
            texts: Texts to embed

        Returns:
            List of embedding vectors (same order as input)
        """
        ...
