"""
Per-user memory graph.

Memories are written through an importance gate, deduplicated by embedding
similarity, linked to semantically related memories, ranked for recall by
similarity, recency and importance, and aged out by a maintenance job.
"""

import asyncio
import logging
import math
from collections import defaultdict, deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from pydantic import BaseModel, Field

from casual_companion.config import CompanionConfig
from casual_companion.embeddings.protocol import TextEmbedding
from casual_companion.embeddings.similarity import cosine_similarity
from casual_companion.exceptions import EmbeddingError
from casual_companion.memory.importance import calculate_importance, passes_write_gate
from casual_companion.models import MEMORY_TYPES, MemoryNode, ScoredMemory
from casual_companion.storage.protocols import MemoryNodeStore

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

COSINE_WEIGHT = 0.6
RECENCY_WEIGHT = 0.25
IMPORTANCE_WEIGHT = 0.15


def days_between(earlier: datetime, later: datetime) -> float:
    return max(0.0, (later - earlier).total_seconds() / SECONDS_PER_DAY)


class MemoryStats(BaseModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    avg_importance: float = 0.0


class MaintenanceReport(BaseModel):
    """Outcome of one decay + rehearsal pass over every user."""

    decayed: Dict[str, int] = Field(default_factory=dict)
    rehearsal: Dict[str, List[MemoryNode]] = Field(default_factory=dict)


class _PendingCandidate(BaseModel):
    type: str
    content: str
    embedding: List[float]


class MemoryGraph:
    """
    Memory store for the companion.

    The node store is the source of truth; this class owns the write policy,
    the ranking formula and the maintenance rules. Writes for the same user
    are serialized with a per-user lock.
    """

    def __init__(
        self,
        store: MemoryNodeStore,
        embedding: TextEmbedding,
        config: Optional[CompanionConfig] = None,
    ):
        self.store = store
        self.embedding = embedding
        self.config = config or CompanionConfig()
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._pending: Dict[str, Deque[_PendingCandidate]] = defaultdict(
            lambda: deque(maxlen=self.config.pending_candidates)
        )

        logger.info(f"MemoryGraph initialized (embedding={embedding.model_name})")

    async def _embed(self, text: str) -> List[float]:
        try:
            return await self.embedding.embed(text)
        except Exception as e:
            raise EmbeddingError(f"Embedding failed: {e}") from e

    def _take_pending(
        self, user_id: str, embedding: List[float]
    ) -> Optional[_PendingCandidate]:
        pending = self._pending[user_id]
        for candidate in pending:
            if cosine_similarity(embedding, candidate.embedding) >= self.config.duplicate_threshold:
                pending.remove(candidate)
                return candidate
        return None

    async def add_memory(
        self,
        user_id: str,
        memory_type: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[MemoryNode]:
        """
        Write a memory through the write gate.

        A near-duplicate (cosine >= duplicate_threshold) of an existing node
        bumps that node's repetitions and importance instead of creating a new
        node. A new node is stored only if its importance passes the threshold
        or it is the second occurrence of a previously rejected candidate.

        Args:
            user_id: Owner of the memory
            memory_type: One of fact, preference, plan, promise, inside_joke, sentiment
            content: Memory text
            metadata: Free-form metadata stored with the node
            now: Clock override

        Returns:
            The stored or updated node, or None when the memory was rejected
            or could not be embedded
        """
        if memory_type not in MEMORY_TYPES:
            logger.warning(f"Ignoring memory with unknown type '{memory_type}'")
            return None
        if not content or not content.strip():
            return None

        now = now or datetime.now()
        try:
            embedding = await self._embed(content)
        except EmbeddingError as e:
            logger.warning(f"Memory write dropped for user {user_id}: {e}")
            return None

        async with self._locks[user_id]:
            similar = self.store.find_similar(
                user_id, embedding, threshold=self.config.duplicate_threshold, limit=1
            )
            if similar:
                existing, score = similar[0]
                existing.repetitions += 1
                existing.last_accessed_at = now
                existing.importance = max(
                    existing.importance,
                    calculate_importance(existing.type, existing.content, existing.repetitions),
                )
                self.store.upsert(existing)
                logger.info(
                    f"Memory updated (repetition {existing.repetitions}, "
                    f"similarity {score:.2f}): {content[:50]}"
                )
                return existing

            repetitions = 1
            if self._take_pending(user_id, embedding) is not None:
                repetitions = 2

            importance = calculate_importance(memory_type, content, repetitions)
            if not passes_write_gate(importance, repetitions, self.config.importance_threshold):
                self._pending[user_id].append(
                    _PendingCandidate(type=memory_type, content=content, embedding=embedding)
                )
                logger.debug(f"Memory rejected (importance {importance:.2f}): {content[:50]}")
                return None

            node = MemoryNode(
                user_id=user_id,
                type=memory_type,
                content=content,
                embedding=embedding,
                importance=importance,
                repetitions=repetitions,
                created_at=now,
                last_accessed_at=now,
                metadata=metadata or {},
            )
            self._link_related(node)
            self.store.upsert(node)

            logger.info(f"Memory stored (importance {importance:.2f}): {content[:50]}")
            return node

    def _link_related(self, node: MemoryNode) -> None:
        """Add symmetric semantic edges to every node above the link threshold."""
        related = self.store.find_similar(
            node.user_id, node.embedding, threshold=self.config.link_threshold, limit=1000
        )
        for other, score in related:
            if other.id == node.id or score <= self.config.link_threshold:
                continue
            node.add_edge(other.id, "semantic")
            if other.add_edge(node.id, "semantic"):
                self.store.upsert(other)
            logger.debug(f"Linked {node.id} <-> {other.id} (similarity {score:.2f})")

    async def retrieve(
        self,
        user_id: str,
        query: str,
        k: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[ScoredMemory]:
        """
        Rank a user's memories against ``query``.

        score = 0.6 * cosine + 0.25 * exp(-days_since_created / tau) + 0.15 * importance

        Every scanned node has its ``last_accessed_at`` refreshed, not only
        the returned ones. An embedding failure yields an empty list.
        """
        k = k or self.config.memory_top_k
        now = now or datetime.now()

        try:
            query_embedding = await self._embed(query)
        except EmbeddingError as e:
            logger.warning(f"Memory retrieval skipped for user {user_id}: {e}")
            return []

        nodes = self.store.list_user_nodes(user_id)
        if not nodes:
            return []

        scored = []
        for node in nodes:
            cosine = cosine_similarity(query_embedding, node.embedding)
            recency = math.exp(-days_between(node.created_at, now) / self.config.recency_tau_days)
            score = (
                COSINE_WEIGHT * cosine
                + RECENCY_WEIGHT * recency
                + IMPORTANCE_WEIGHT * node.importance
            )
            node.last_accessed_at = now
            scored.append(
                ScoredMemory(
                    node=node,
                    score=score,
                    cosine=cosine,
                    recency=recency,
                    importance=node.importance,
                )
            )

        self.store.touch(user_id, [node.id for node in nodes], now)

        scored.sort(key=lambda item: item.score, reverse=True)
        for item in scored[:k]:
            logger.debug(
                f"Recalled {item.node.id}: score={item.score:.3f} "
                f"(cos={item.cosine:.3f}, rec={item.recency:.3f}, imp={item.importance:.2f})"
            )
        return scored[:k]

    async def decay(
        self, user_id: str, tau: Optional[float] = None, now: Optional[datetime] = None
    ) -> int:
        """
        Permanently remove stale, unimportant memories.

        A node goes when it has not been accessed for more than ``2 * tau``
        days and its importance is below 0.7.

        Returns:
            Number of nodes removed
        """
        tau = tau if tau is not None else self.config.decay_tau_days
        now = now or datetime.now()

        removed = 0
        async with self._locks[user_id]:
            for node in self.store.list_user_nodes(user_id):
                idle = days_between(node.last_accessed_at, now)
                if idle > 2 * tau and node.importance < self.config.decay_max_importance:
                    if self.store.delete(user_id, node.id):
                        removed += 1
                        logger.info(f"Decayed memory: {node.content[:50]}")
        return removed

    async def rehearse(
        self, user_id: str, count: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[MemoryNode]:
        """Important memories idle for over a week, most important first."""
        count = count if count is not None else self.config.rehearsal_count
        now = now or datetime.now()

        candidates = [
            node
            for node in self.store.list_user_nodes(user_id)
            if days_between(node.last_accessed_at, now) > self.config.rehearsal_idle_days
            and node.importance > self.config.rehearsal_min_importance
        ]
        candidates.sort(key=lambda node: node.importance, reverse=True)
        return candidates[:count]

    async def get_by_type(self, user_id: str, memory_type: str, limit: int = 10) -> List[MemoryNode]:
        nodes = [node for node in self.store.list_user_nodes(user_id) if node.type == memory_type]
        nodes.sort(key=lambda node: node.importance, reverse=True)
        return nodes[:limit]

    async def get_all(self, user_id: str) -> List[MemoryNode]:
        nodes = self.store.list_user_nodes(user_id)
        nodes.sort(key=lambda node: node.last_accessed_at, reverse=True)
        return nodes

    async def stats(self, user_id: str) -> MemoryStats:
        nodes = self.store.list_user_nodes(user_id)
        if not nodes:
            return MemoryStats()

        by_type: Dict[str, int] = {}
        for node in nodes:
            by_type[node.type] = by_type.get(node.type, 0) + 1
        return MemoryStats(
            total=len(nodes),
            by_type=by_type,
            avg_importance=sum(node.importance for node in nodes) / len(nodes),
        )

    async def export(self, user_id: str) -> List[Dict[str, Any]]:
        """Backup records for a user (no embeddings, no edges)."""
        return [
            node.model_dump(
                mode="json",
                include={
                    "id",
                    "type",
                    "content",
                    "importance",
                    "repetitions",
                    "created_at",
                    "last_accessed_at",
                    "metadata",
                },
            )
            for node in self.store.list_user_nodes(user_id)
        ]

    async def import_memories(self, user_id: str, records: List[Dict[str, Any]]) -> int:
        """
        Restore exported records, re-embedding their content.

        Records are stored as-is (no write gate). Records that fail to embed
        or validate are skipped.

        Returns:
            Number of records imported
        """
        imported = 0
        async with self._locks[user_id]:
            for record in records:
                try:
                    embedding = await self._embed(record["content"])
                    node = MemoryNode.model_validate(
                        {**record, "user_id": user_id, "embedding": embedding, "edges": []}
                    )
                except (EmbeddingError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping memory record during import: {e}")
                    continue
                self.store.upsert(node)
                imported += 1

        logger.info(f"Imported {imported} memories for {user_id}")
        return imported

    async def run_maintenance(self, now: Optional[datetime] = None) -> MaintenanceReport:
        """
        Decay and rehearsal over every user.

        The host application calls this on its own schedule (e.g. nightly).
        """
        now = now or datetime.now()
        report = MaintenanceReport()
        for user_id in self.store.list_user_ids():
            report.decayed[user_id] = await self.decay(user_id, now=now)
            rehearsal = await self.rehearse(user_id, now=now)
            if rehearsal:
                report.rehearsal[user_id] = rehearsal

        logger.info(
            f"Maintenance done: {sum(report.decayed.values())} decayed, "
            f"{len(report.rehearsal)} users with rehearsal candidates"
        )
        return report
