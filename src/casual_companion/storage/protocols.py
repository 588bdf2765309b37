"""
Storage protocol definitions for casual-companion.

The core never talks to a database directly. Memory nodes, conversations and
per-user state each go through one of these narrow protocols, which can be
backed by a flat JSON file, a vector database, SQL, Redis or plain dicts.
All methods are synchronous; the async services call them directly.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from casual_companion.models import Conversation, ConversationMessage, MemoryNode
from casual_companion.user_state import UserState


class MemoryNodeStore(Protocol):
    """
    Protocol for memory node persistence.

    Every read is scoped to one user; implementations must never return a
    node owned by another user.
    """

    def upsert(self, node: MemoryNode) -> None:
        """
        Insert or replace a node by id.

        Args:
            node: The node to persist (embedding included)
        """
        ...

    def get(self, user_id: str, node_id: str) -> Optional[MemoryNode]:
        """
        Fetch one node.

        Returns:
            The node if it exists and belongs to ``user_id``, None otherwise
        """
        ...

    def delete(self, user_id: str, node_id: str) -> bool:
        """
        Permanently remove a node.

        Returns:
            True if a node was removed
        """
        ...

    def touch(self, user_id: str, node_ids: List[str], accessed_at: datetime) -> int:
        """
        Set ``last_accessed_at`` on several nodes.

        Returns:
            Number of nodes updated
        """
        ...

    def find_similar(
        self,
        user_id: str,
        embedding: List[float],
        threshold: float,
        limit: int = 10,
    ) -> List[Tuple[MemoryNode, float]]:
        """
        Similarity search within one user's nodes.

        Args:
            user_id: Owner to search
            embedding: Query vector
            threshold: Minimum cosine similarity (inclusive)
            limit: Maximum number of results

        Returns:
            (node, similarity) pairs, most similar first
        """
        ...

    def list_user_nodes(self, user_id: str) -> List[MemoryNode]:
        """All nodes owned by ``user_id``, in no particular order."""
        ...

    def list_user_ids(self) -> List[str]:
        """Every user that owns at least one node."""
        ...

    def clear_user_nodes(self, user_id: str) -> int:
        """
        Remove every node of a user.

        Returns:
            Number of nodes deleted
        """
        ...


class ConversationStore(Protocol):
    """
    Protocol for conversation transcripts and rolling summaries.
    """

    def create_conversation(self, user_id: str) -> Conversation:
        """Start a new conversation for ``user_id``."""
        ...

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        ...

    def add_message(self, conversation_id: str, message: ConversationMessage) -> int:
        """
        Append a message.

        Returns:
            Total number of messages in the conversation afterwards
        """
        ...

    def get_recent_messages(
        self, conversation_id: str, limit: int = 20
    ) -> List[ConversationMessage]:
        """
        Most recent messages of a conversation.

        Returns:
            Up to ``limit`` messages, oldest first
        """
        ...

    def get_message_count(self, conversation_id: str) -> int:
        ...

    def update_summary(self, conversation_id: str, summary: str) -> bool:
        """
        Replace the rolling summary.

        Returns:
            True if the conversation exists
        """
        ...


class UserStateStore(Protocol):
    """
    Protocol for per-user orchestration state (phrase bank, topic stack,
    style profile, affect, backchannel cooldown).
    """

    def load(self, user_id: str) -> Optional[UserState]:
        """Stored state for ``user_id``, or None for a new user."""
        ...

    def save(self, state: UserState) -> None:
        ...

    def delete(self, user_id: str) -> bool:
        ...
