"""sentence-transformers embedding adapter for casual-companion."""

import asyncio
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


class MiniLMEmbedding:
    """
    Local embedding adapter built on sentence-transformers.

    Defaults to ``all-MiniLM-L6-v2`` (384 dimensions), a small model that runs
    comfortably on CPU. Any sentence-transformers model name can be passed.
    Encoding runs in a worker thread so it does not block the event loop.

    Example:
        >>> embedder = MiniLMEmbedding(device="cpu")
        >>> vector = await embedder.embed("I love sunny days")
        >>> len(vector)
        384
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        device: Optional[str] = None,
        normalize_embeddings: bool = True,
        cache_folder: Optional[str] = None,
    ):
        """
        Load the model.

        Args:
            model_name: HuggingFace model identifier
            device: "cuda", "cpu", or None for auto
            normalize_embeddings: L2 normalize vectors
            cache_folder: Directory for model cache (None = default ~/.cache)
        """
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ImportError(
                "sentence-transformers is required for MiniLMEmbedding. "
                "Install with: pip install casual-companion[embeddings-transformers]"
            ) from e

        self._model_name = model_name
        self._normalize = normalize_embeddings

        logger.info(f"Loading embedding model: {model_name}")
        self._model = SentenceTransformer(model_name, device=device, cache_folder=cache_folder)
        self._dimension = self._model.get_sentence_embedding_dimension()
        logger.info(f"Model loaded: {model_name} ({self._dimension} dimensions)")

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _encode(self, payload):
        return self._model.encode(
            payload,
            normalize_embeddings=self._normalize,
            show_progress_bar=False,
        )

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        embedding = await asyncio.to_thread(self._encode, text)
        return embedding.tolist()

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        if any(not text or not text.strip() for text in texts):
            raise ValueError("Cannot embed empty texts in batch")

        embeddings = await asyncio.to_thread(self._encode, texts)
        return [embedding.tolist() for embedding in embeddings]
