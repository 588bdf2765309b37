"""
Storage protocols and backends for casual-companion.

Memory nodes, conversations and per-user state each sit behind a protocol;
the core depends only on the protocols.
"""

from casual_companion.storage.protocols import ConversationStore, MemoryNodeStore, UserStateStore
from casual_companion.storage.conversations.memory import InMemoryConversationStore
from casual_companion.storage.nodes.json_file import JsonFileNodeStore
from casual_companion.storage.nodes.memory import InMemoryNodeStore
from casual_companion.storage.user_state.memory import InMemoryUserStateStore

__all__ = [
    "ConversationStore",
    "MemoryNodeStore",
    "UserStateStore",
    "InMemoryConversationStore",
    "InMemoryNodeStore",
    "InMemoryUserStateStore",
    "JsonFileNodeStore",
]

# Optional backends (import only if dependencies available)
try:
    from casual_companion.storage.nodes.qdrant import QdrantNodeStore  # noqa: F401

    __all__.append("QdrantNodeStore")
except ImportError:
    pass

try:
    from casual_companion.storage.conversations.sqlalchemy import (  # noqa: F401
        SQLAlchemyConversationStore,
    )

    __all__.append("SQLAlchemyConversationStore")
except ImportError:
    pass

try:
    from casual_companion.storage.user_state.redis import RedisUserStateStore  # noqa: F401

    __all__.append("RedisUserStateStore")
except ImportError:
    pass
