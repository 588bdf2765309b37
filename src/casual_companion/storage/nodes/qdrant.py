import logging
from datetime import datetime
from typing import List, Optional, Tuple

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointStruct,
    VectorParams,
)

from casual_companion.models import MemoryNode

logger = logging.getLogger(__name__)

SCROLL_PAGE = 256


def _user_filter(user_id: str) -> Filter:
    return Filter(must=[FieldCondition(key="user_id", match=MatchValue(value=user_id))])


class QdrantNodeStore:
    """
    MemoryNodeStore backed by a Qdrant collection.

    Each node is one point: the id is the node id, the vector is the node
    embedding and the payload is the rest of the node. Every query filters on
    the ``user_id`` payload field.
    """

    def __init__(
        self,
        vector_dimension: int,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "companion_memories",
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize Qdrant node store.

        Args:
            vector_dimension: Embedding size (must match the embedder)
            host: Qdrant host (default: localhost)
            port: Qdrant port (default: 6333)
            collection_name: Collection name
            client: Pre-built client (e.g. ``QdrantClient(":memory:")``)
        """
        self.client = client or QdrantClient(host=host, port=port)
        self.collection_name = collection_name
        self.vector_dimension = vector_dimension
        self._init_collection()

        logger.info(
            f"QdrantNodeStore initialized (collection={collection_name}, "
            f"dimension={vector_dimension})"
        )

    def _init_collection(self):
        if not self.client.collection_exists(self.collection_name):
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.vector_dimension, distance=Distance.COSINE),
            )

    @staticmethod
    def _to_node(point) -> MemoryNode:
        payload = dict(point.payload or {})
        payload["id"] = str(point.id)
        payload["embedding"] = list(point.vector or [])
        return MemoryNode.model_validate(payload)

    def _scroll(self, scroll_filter: Optional[Filter], with_vectors: bool = True):
        offset = None
        while True:
            points, offset = self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=scroll_filter,
                limit=SCROLL_PAGE,
                offset=offset,
                with_payload=True,
                with_vectors=with_vectors,
            )
            yield from points
            if offset is None:
                break

    def upsert(self, node: MemoryNode) -> None:
        payload = node.model_dump(mode="json", exclude={"id", "embedding"})
        self.client.upsert(
            collection_name=self.collection_name,
            points=[PointStruct(id=node.id, vector=node.embedding, payload=payload)],
        )
        logger.debug(f"Upserted memory {node.id}: '{node.content[:50]}'")

    def get(self, user_id: str, node_id: str) -> Optional[MemoryNode]:
        points = self.client.retrieve(
            collection_name=self.collection_name,
            ids=[node_id],
            with_vectors=True,
            with_payload=True,
        )
        if not points:
            return None
        node = self._to_node(points[0])
        return node if node.user_id == user_id else None

    def delete(self, user_id: str, node_id: str) -> bool:
        if self.get(user_id, node_id) is None:
            return False
        self.client.delete(collection_name=self.collection_name, points_selector=[node_id])
        return True

    def touch(self, user_id: str, node_ids: List[str], accessed_at: datetime) -> int:
        if not node_ids:
            return 0
        self.client.set_payload(
            collection_name=self.collection_name,
            payload={"last_accessed_at": accessed_at.isoformat()},
            points=node_ids,
        )
        return len(node_ids)

    def find_similar(
        self,
        user_id: str,
        embedding: List[float],
        threshold: float,
        limit: int = 10,
    ) -> List[Tuple[MemoryNode, float]]:
        response = self.client.query_points(
            collection_name=self.collection_name,
            query=embedding,
            query_filter=_user_filter(user_id),
            score_threshold=threshold,
            limit=limit,
            with_vectors=True,
            with_payload=True,
        )

        results = []
        for hit in response.points:
            node = self._to_node(hit)
            results.append((node, hit.score))
            logger.debug(f"Similar memory: score={hit.score:.3f}, content='{node.content[:50]}'")
        return results

    def list_user_nodes(self, user_id: str) -> List[MemoryNode]:
        return [self._to_node(point) for point in self._scroll(_user_filter(user_id))]

    def list_user_ids(self) -> List[str]:
        user_ids = set()
        for point in self._scroll(None, with_vectors=False):
            user_id = (point.payload or {}).get("user_id")
            if user_id:
                user_ids.add(user_id)
        return sorted(user_ids)

    def clear_user_nodes(self, user_id: str) -> int:
        point_ids = [point.id for point in self._scroll(_user_filter(user_id), with_vectors=False)]
        if point_ids:
            self.client.delete(collection_name=self.collection_name, points_selector=point_ids)
            logger.info(f"Cleared {len(point_ids)} memories for user_id={user_id}")
        else:
            logger.info(f"No memories found for user_id={user_id}")
        return len(point_ids)
