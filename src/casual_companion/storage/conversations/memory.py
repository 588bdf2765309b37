"""
In-memory conversation storage for tests and single-instance deployments.
"""

import logging
from typing import Dict, List, Optional

from casual_companion.models import Conversation, ConversationMessage

logger = logging.getLogger(__name__)


class InMemoryConversationStore:
    """In-memory implementation of the ConversationStore protocol."""

    def __init__(self):
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[ConversationMessage]] = {}

        logger.info("InMemoryConversationStore initialized")

    def create_conversation(self, user_id: str) -> Conversation:
        conversation = Conversation(user_id=user_id)
        self._conversations[conversation.id] = conversation
        self._messages[conversation.id] = []
        logger.debug(f"Created conversation {conversation.id} for user {user_id}")
        return conversation.model_copy()

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        conversation = self._conversations.get(conversation_id)
        return conversation.model_copy() if conversation else None

    def add_message(self, conversation_id: str, message: ConversationMessage) -> int:
        if conversation_id not in self._conversations:
            raise KeyError(f"Unknown conversation {conversation_id}")

        messages = self._messages[conversation_id]
        messages.append(message)
        if message.role == "user":
            self._conversations[conversation_id].last_user_at = message.timestamp
        return len(messages)

    def get_recent_messages(
        self, conversation_id: str, limit: int = 20
    ) -> List[ConversationMessage]:
        messages = self._messages.get(conversation_id, [])
        return list(messages[-limit:]) if limit > 0 else []

    def get_message_count(self, conversation_id: str) -> int:
        return len(self._messages.get(conversation_id, []))

    def update_summary(self, conversation_id: str, summary: str) -> bool:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return False
        conversation.summary = summary
        return True
