"""
Wiring of a ResponseOrchestrator from a CompanionConfig.

Optional backends are imported only when the config selects them, so the
core install works without qdrant-client, sqlalchemy or redis.
"""

import logging
from typing import Optional

from casual_companion.config import CompanionConfig
from casual_companion.embeddings.protocol import TextEmbedding
from casual_companion.memory.graph import MemoryGraph
from casual_companion.persona import DEFAULT_PERSONA, Persona
from casual_companion.pipeline.orchestrator import ResponseOrchestrator
from casual_companion.providers.gateway import ProviderGateway, build_gateway_from_env
from casual_companion.storage.conversations.memory import InMemoryConversationStore
from casual_companion.storage.nodes.json_file import JsonFileNodeStore
from casual_companion.storage.nodes.memory import InMemoryNodeStore
from casual_companion.storage.protocols import ConversationStore, MemoryNodeStore, UserStateStore
from casual_companion.storage.user_state.memory import InMemoryUserStateStore

logger = logging.getLogger(__name__)


def create_node_store(config: CompanionConfig, embedding: TextEmbedding) -> MemoryNodeStore:
    if config.memory_backend == "qdrant":
        from casual_companion.storage.nodes.qdrant import QdrantNodeStore

        return QdrantNodeStore(
            vector_dimension=embedding.dimension,
            host=config.qdrant_host,
            port=config.qdrant_port,
            collection_name=config.qdrant_collection,
        )
    if config.memory_backend == "file":
        return JsonFileNodeStore(config.memory_file_path)
    return InMemoryNodeStore()


def create_conversation_store(config: CompanionConfig) -> ConversationStore:
    if config.conversation_backend == "sqlalchemy":
        from sqlalchemy import create_engine

        from casual_companion.storage.conversations.sqlalchemy import (
            SQLAlchemyConversationStore,
        )

        store = SQLAlchemyConversationStore(create_engine(config.database_url))
        store.create_tables()
        return store
    return InMemoryConversationStore()


def create_user_state_store(config: CompanionConfig) -> UserStateStore:
    if config.user_state_backend == "redis":
        from casual_companion.storage.user_state.redis import RedisUserStateStore

        return RedisUserStateStore(host=config.redis_host, port=config.redis_port)
    return InMemoryUserStateStore()


def create_orchestrator(
    embedding: TextEmbedding,
    config: Optional[CompanionConfig] = None,
    gateway: Optional[ProviderGateway] = None,
    persona: Persona = DEFAULT_PERSONA,
) -> ResponseOrchestrator:
    """
    Build an orchestrator with the backends selected by ``config``.

    Args:
        embedding: Embedding service for the memory graph
        config: Tunables and backend selection (default: from environment)
        gateway: Provider gateway (default: built from environment API keys)
        persona: Companion persona

    Returns:
        Ready-to-use ResponseOrchestrator
    """
    config = config or CompanionConfig.from_env()
    gateway = gateway or build_gateway_from_env()

    memory = MemoryGraph(create_node_store(config, embedding), embedding, config)
    orchestrator = ResponseOrchestrator(
        gateway=gateway,
        memory=memory,
        conversations=create_conversation_store(config),
        user_states=create_user_state_store(config),
        persona=persona,
        config=config,
    )
    logger.info(
        f"Orchestrator ready (providers={[p.name for p in gateway.get_providers()]})"
    )
    return orchestrator
