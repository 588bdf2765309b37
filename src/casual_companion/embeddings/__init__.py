"""
Text embedding abstractions for casual-companion.

Adapters:
- OpenAIEmbedding: OpenAI (or compatible) embeddings API
- MiniLMEmbedding: local sentence-transformers model
"""

from casual_companion.embeddings.protocol import TextEmbedding
from casual_companion.embeddings.similarity import cosine_similarity

__all__ = [
    "TextEmbedding",
    "cosine_similarity",
]

# Optional adapters (import only if dependencies available)
try:
    from casual_companion.embeddings.minilm_embedding import MiniLMEmbedding  # noqa: F401

    __all__.append("MiniLMEmbedding")
except ImportError:
    pass

try:
    from casual_companion.embeddings.openai_embedding import OpenAIEmbedding  # noqa: F401

    __all__.append("OpenAIEmbedding")
except ImportError:
    pass
