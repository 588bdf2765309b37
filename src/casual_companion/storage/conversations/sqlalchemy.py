"""
SQLAlchemy-based conversation storage.

Works with any SQLAlchemy-compatible database (PostgreSQL, SQLite, MySQL).
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base

from casual_companion.models import Conversation, ConversationMessage

logger = logging.getLogger(__name__)

Base = declarative_base()


class ConversationDB(Base):
    """SQLAlchemy model for a conversation."""

    __tablename__ = "conversations"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    summary = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    last_user_at = Column(DateTime, nullable=True)

    def to_conversation(self) -> Conversation:
        return Conversation(
            id=self.id,
            user_id=self.user_id,
            summary=self.summary or "",
            created_at=self.created_at,
            last_user_at=self.last_user_at,
        )


class MessageDB(Base):
    """SQLAlchemy model for one conversation message."""

    __tablename__ = "messages"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (Index("idx_messages_conversation_seq", "conversation_id", "seq"),)

    def to_message(self) -> ConversationMessage:
        return ConversationMessage(
            id=self.id, role=self.role, content=self.content, timestamp=self.timestamp
        )


class SQLAlchemyConversationStore:
    """
    SQLAlchemy-based conversation storage.

    Example:
        from sqlalchemy import create_engine
        engine = create_engine("sqlite:///companion.db")
        store = SQLAlchemyConversationStore(engine)
        store.create_tables()
    """

    def __init__(self, engine: Engine):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine for database connection
        """
        self.engine = engine
        logger.info(f"SQLAlchemyConversationStore initialized (engine={engine.url})")

    @contextmanager
    def _session(self):
        session = Session(self.engine)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self):
        Base.metadata.create_all(self.engine)
        logger.info("Conversation tables created")

    def drop_tables(self):
        Base.metadata.drop_all(self.engine)
        logger.warning("Conversation tables dropped")

    def create_conversation(self, user_id: str) -> Conversation:
        conversation = Conversation(user_id=user_id)
        with self._session() as session:
            session.add(
                ConversationDB(
                    id=conversation.id,
                    user_id=user_id,
                    summary="",
                    created_at=conversation.created_at,
                )
            )
        logger.debug(f"Created conversation {conversation.id} for user {user_id}")
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._session() as session:
            row = session.get(ConversationDB, conversation_id)
            return row.to_conversation() if row else None

    def add_message(self, conversation_id: str, message: ConversationMessage) -> int:
        with self._session() as session:
            conversation = session.get(ConversationDB, conversation_id)
            if conversation is None:
                raise KeyError(f"Unknown conversation {conversation_id}")

            session.add(
                MessageDB(
                    id=message.id,
                    conversation_id=conversation_id,
                    role=message.role,
                    content=message.content,
                    timestamp=message.timestamp,
                )
            )
            if message.role == "user":
                conversation.last_user_at = message.timestamp
            session.flush()

            return session.scalar(
                select(func.count())
                .select_from(MessageDB)
                .where(MessageDB.conversation_id == conversation_id)
            )

    def get_recent_messages(
        self, conversation_id: str, limit: int = 20
    ) -> List[ConversationMessage]:
        with self._session() as session:
            rows = session.scalars(
                select(MessageDB)
                .where(MessageDB.conversation_id == conversation_id)
                .order_by(MessageDB.seq.desc())
                .limit(limit)
            ).all()
            return [row.to_message() for row in reversed(rows)]

    def get_message_count(self, conversation_id: str) -> int:
        with self._session() as session:
            return session.scalar(
                select(func.count())
                .select_from(MessageDB)
                .where(MessageDB.conversation_id == conversation_id)
            )

    def update_summary(self, conversation_id: str, summary: str) -> bool:
        with self._session() as session:
            row = session.get(ConversationDB, conversation_id)
            if row is None:
                return False
            row.summary = summary
            return True
