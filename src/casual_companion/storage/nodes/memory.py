"""
In-memory memory node storage.

Suitable for testing and single-process development. Data is lost on restart;
use JsonFileNodeStore or QdrantNodeStore to keep it.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from casual_companion.embeddings.similarity import cosine_similarity
from casual_companion.models import MemoryNode

logger = logging.getLogger(__name__)


class InMemoryNodeStore:
    """
    In-memory implementation of the MemoryNodeStore protocol.

    Nodes are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(self):
        self._nodes: Dict[str, MemoryNode] = {}  # id -> node

        logger.info(f"{type(self).__name__} initialized")

    def _changed(self) -> None:
        """Hook called after every mutation."""

    def upsert(self, node: MemoryNode) -> None:
        self._nodes[node.id] = node.model_copy(deep=True)
        self._changed()
        logger.debug(f"Upserted memory {node.id}: '{node.content[:50]}'")

    def get(self, user_id: str, node_id: str) -> Optional[MemoryNode]:
        node = self._nodes.get(node_id)
        if node is None or node.user_id != user_id:
            return None
        return node.model_copy(deep=True)

    def delete(self, user_id: str, node_id: str) -> bool:
        node = self._nodes.get(node_id)
        if node is None or node.user_id != user_id:
            return False
        del self._nodes[node_id]
        self._changed()
        return True

    def touch(self, user_id: str, node_ids: List[str], accessed_at: datetime) -> int:
        count = 0
        for node_id in node_ids:
            node = self._nodes.get(node_id)
            if node is not None and node.user_id == user_id:
                node.last_accessed_at = accessed_at
                count += 1
        if count:
            self._changed()
        return count

    def find_similar(
        self,
        user_id: str,
        embedding: List[float],
        threshold: float,
        limit: int = 10,
    ) -> List[Tuple[MemoryNode, float]]:
        results = []
        for node in self._nodes.values():
            if node.user_id != user_id:
                continue
            score = cosine_similarity(embedding, node.embedding)
            if score >= threshold:
                results.append((node.model_copy(deep=True), score))

        results.sort(key=lambda pair: pair[1], reverse=True)
        return results[:limit]

    def list_user_nodes(self, user_id: str) -> List[MemoryNode]:
        return [
            node.model_copy(deep=True) for node in self._nodes.values() if node.user_id == user_id
        ]

    def list_user_ids(self) -> List[str]:
        return sorted({node.user_id for node in self._nodes.values()})

    def clear_user_nodes(self, user_id: str) -> int:
        doomed = [node_id for node_id, node in self._nodes.items() if node.user_id == user_id]
        for node_id in doomed:
            del self._nodes[node_id]
        if doomed:
            self._changed()

        logger.info(f"Cleared {len(doomed)} memories for user_id={user_id}")
        return len(doomed)
