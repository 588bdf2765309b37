"""Tests for the per-user memory graph."""

import math
from datetime import datetime, timedelta

import pytest

from casual_companion.config import CompanionConfig
from casual_companion.memory.graph import MemoryGraph
from casual_companion.models import MemoryNode
from casual_companion.storage.nodes.memory import InMemoryNodeStore

NOW = datetime(2024, 6, 1, 12, 0, 0)
DIM = 64


def vec(*values):
    return list(values) + [0.0] * (DIM - len(values))


def make_node(user_id="alice", content="memory", embedding=None, importance=0.8, **kwargs):
    return MemoryNode(
        user_id=user_id,
        type=kwargs.pop("type", "fact"),
        content=content,
        embedding=embedding or vec(1.0),
        importance=importance,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_promise_is_stored(memory_graph):
    node = await memory_graph.add_memory("alice", "promise", "I promise I'll call you tomorrow")

    assert node is not None
    assert node.importance == 1.0
    assert node.repetitions == 1
    assert node.embedding


@pytest.mark.asyncio
async def test_sentiment_at_threshold_is_stored(memory_graph):
    """A sentiment with no boosts scores exactly 0.6, which passes the gate."""
    node = await memory_graph.add_memory("alice", "sentiment", "I feel okay about it")

    assert node is not None
    assert node.importance == pytest.approx(0.6)


@pytest.mark.asyncio
async def test_unknown_type_and_empty_content_are_ignored(memory_graph, node_store):
    assert await memory_graph.add_memory("alice", "gossip", "Bob likes cheese") is None
    assert await memory_graph.add_memory("alice", "fact", "   ") is None
    assert node_store.list_user_nodes("alice") == []


@pytest.mark.asyncio
async def test_rejected_candidate_passes_on_second_mention(embedding, node_store):
    graph = MemoryGraph(node_store, embedding, CompanionConfig(importance_threshold=0.7))

    first = await graph.add_memory("alice", "sentiment", "I feel meh today")
    second = await graph.add_memory("alice", "sentiment", "I feel meh today")

    assert first is None
    assert second is not None
    assert second.repetitions == 2
    assert second.importance == pytest.approx(0.75)


@pytest.mark.asyncio
async def test_pending_candidates_are_per_user(embedding, node_store):
    graph = MemoryGraph(node_store, embedding, CompanionConfig(importance_threshold=0.7))

    await graph.add_memory("alice", "sentiment", "I feel meh today")

    assert await graph.add_memory("bob", "sentiment", "I feel meh today") is None


@pytest.mark.asyncio
async def test_duplicate_bumps_repetitions_on_same_node(memory_graph, node_store):
    first = await memory_graph.add_memory("alice", "preference", "I love hiking in the mountains")
    second = await memory_graph.add_memory("alice", "preference", "I love hiking in the mountains")

    assert second.id == first.id
    assert second.repetitions == 2
    assert second.importance >= first.importance
    assert len(node_store.list_user_nodes("alice")) == 1


@pytest.mark.asyncio
async def test_duplicate_never_lowers_importance(embedding, node_store):
    graph = MemoryGraph(node_store, embedding)
    node_store.upsert(
        make_node(content="I play chess", embedding=await embedding.embed("I play chess"), importance=0.99)
    )

    updated = await graph.add_memory("alice", "fact", "I play chess")

    assert updated.repetitions == 2
    assert updated.importance == 0.99


@pytest.mark.asyncio
async def test_related_memories_are_linked_both_ways(make_embedding, node_store):
    embedding = make_embedding(
        vectors={
            "I love hiking": vec(1.0, 0.0),
            "I went hiking in the Alps": vec(0.8, 0.6),
            "My cat is called Miso": vec(0.0, 0.0, 1.0),
        }
    )
    graph = MemoryGraph(node_store, embedding)

    hiking = await graph.add_memory("alice", "preference", "I love hiking")
    alps = await graph.add_memory("alice", "fact", "I went hiking in the Alps")
    cat = await graph.add_memory("alice", "fact", "My cat is called Miso")

    stored_hiking = node_store.get("alice", hiking.id)
    stored_alps = node_store.get("alice", alps.id)
    assert [edge.target_id for edge in stored_alps.edges] == [hiking.id]
    assert [edge.target_id for edge in stored_hiking.edges] == [alps.id]
    assert stored_alps.edges[0].type == "semantic"
    assert node_store.get("alice", cat.id).edges == []


@pytest.mark.asyncio
async def test_retrieval_ranks_by_combined_score(make_embedding, node_store):
    query = "what should I do this weekend"
    graph = MemoryGraph(node_store, make_embedding(vectors={query: vec(1.0, 0.0)}))

    # 0.6*1.0 + 0.25*exp(-30/14) + 0.15*0.6 ~= 0.719
    old_exact = make_node(
        content="old exact", embedding=vec(1.0, 0.0), importance=0.6,
        created_at=NOW - timedelta(days=30),
    )
    # 0.6*0.6 + 0.25*1.0 + 0.15*0.9 = 0.745
    fresh_close = make_node(
        content="fresh close", embedding=vec(0.6, 0.8), importance=0.9, created_at=NOW
    )
    # 0.0 + 0.25 + 0.15 = 0.4
    fresh_unrelated = make_node(
        content="fresh unrelated", embedding=vec(0.0, 1.0), importance=1.0, created_at=NOW
    )
    for node in (old_exact, fresh_close, fresh_unrelated):
        node_store.upsert(node)

    results = await graph.retrieve("alice", query, k=3, now=NOW)

    assert [item.node.content for item in results] == ["fresh close", "old exact", "fresh unrelated"]
    assert results[0].score == pytest.approx(0.6 * 0.6 + 0.25 + 0.15 * 0.9)
    assert results[1].recency == pytest.approx(math.exp(-30 / 14))
    assert results[2].cosine == pytest.approx(0.0)


@pytest.mark.asyncio
async def test_retrieval_respects_k_and_touches_every_node(memory_graph, node_store):
    for i in range(4):
        node_store.upsert(make_node(content=f"memory {i}", last_accessed_at=NOW - timedelta(days=20)))

    results = await memory_graph.retrieve("alice", "memory", k=2, now=NOW)

    assert len(results) == 2
    assert all(node.last_accessed_at == NOW for node in node_store.list_user_nodes("alice"))


@pytest.mark.asyncio
async def test_retrieval_is_isolated_per_user(memory_graph, node_store):
    node_store.upsert(make_node(user_id="bob", content="Bob's secret"))

    assert await memory_graph.retrieve("alice", "secret", now=NOW) == []


@pytest.mark.asyncio
async def test_embedding_failure_is_absorbed(make_embedding, node_store):
    graph = MemoryGraph(node_store, make_embedding(fail=True))
    node_store.upsert(make_node(content="I have a dog"))

    assert await graph.add_memory("alice", "fact", "I have a cat") is None
    assert await graph.retrieve("alice", "pets") == []
    assert len(node_store.list_user_nodes("alice")) == 1


@pytest.mark.asyncio
async def test_decay_removes_stale_unimportant_nodes(memory_graph, node_store):
    stale = make_node(content="stale", importance=0.5, last_accessed_at=NOW - timedelta(days=61))
    stale_important = make_node(
        content="stale important", importance=0.8, last_accessed_at=NOW - timedelta(days=90)
    )
    recent = make_node(content="recent", importance=0.5, last_accessed_at=NOW - timedelta(days=10))
    for node in (stale, stale_important, recent):
        node_store.upsert(node)

    removed = await memory_graph.decay("alice", now=NOW)

    assert removed == 1
    remaining = {node.content for node in node_store.list_user_nodes("alice")}
    assert remaining == {"stale important", "recent"}


@pytest.mark.asyncio
async def test_rehearse_picks_idle_important_nodes(memory_graph, node_store):
    idle = NOW - timedelta(days=8)
    node_store.upsert(make_node(content="birthday", importance=0.95, last_accessed_at=idle))
    node_store.upsert(make_node(content="exam", importance=0.9, last_accessed_at=idle))
    node_store.upsert(make_node(content="meh", importance=0.7, last_accessed_at=idle))
    node_store.upsert(make_node(content="fresh", importance=0.99, last_accessed_at=NOW))

    rehearsal = await memory_graph.rehearse("alice", now=NOW)

    assert [node.content for node in rehearsal] == ["birthday", "exam"]


@pytest.mark.asyncio
async def test_rehearse_limits_count(memory_graph, node_store):
    for i in range(5):
        node_store.upsert(
            make_node(content=f"m{i}", importance=0.8 + i * 0.01, last_accessed_at=NOW - timedelta(days=9))
        )

    assert len(await memory_graph.rehearse("alice", now=NOW)) == 3


@pytest.mark.asyncio
async def test_get_by_type_all_and_stats(memory_graph, node_store):
    node_store.upsert(make_node(content="a", type="fact", importance=0.8, last_accessed_at=NOW))
    node_store.upsert(
        make_node(content="b", type="plan", importance=0.9, last_accessed_at=NOW - timedelta(days=1))
    )
    node_store.upsert(
        make_node(content="c", type="fact", importance=0.6, last_accessed_at=NOW - timedelta(days=2))
    )

    facts = await memory_graph.get_by_type("alice", "fact")
    everything = await memory_graph.get_all("alice")
    stats = await memory_graph.stats("alice")

    assert [node.content for node in facts] == ["a", "c"]
    assert [node.content for node in everything] == ["a", "b", "c"]
    assert stats.total == 3
    assert stats.by_type == {"fact": 2, "plan": 1}
    assert stats.avg_importance == pytest.approx((0.8 + 0.9 + 0.6) / 3)


@pytest.mark.asyncio
async def test_stats_for_unknown_user(memory_graph):
    stats = await memory_graph.stats("nobody")
    assert stats.total == 0
    assert stats.by_type == {}


@pytest.mark.asyncio
async def test_export_and_import(memory_graph, embedding):
    await memory_graph.add_memory("alice", "promise", "I promise I'll call you tomorrow")
    await memory_graph.add_memory("alice", "fact", "My sister's birthday is in May")

    records = await memory_graph.export("alice")
    assert len(records) == 2
    assert "embedding" not in records[0]

    target_store = InMemoryNodeStore()
    target = MemoryGraph(target_store, embedding)
    imported = await target.import_memories("bob", records + [{"type": "fact"}])

    assert imported == 2
    nodes = target_store.list_user_nodes("bob")
    assert {node.content for node in nodes} == {r["content"] for r in records}
    assert all(node.embedding for node in nodes)


@pytest.mark.asyncio
async def test_run_maintenance_covers_every_user(memory_graph, node_store):
    old = NOW - timedelta(days=70)
    node_store.upsert(make_node(user_id="alice", content="stale", importance=0.5, last_accessed_at=old))
    node_store.upsert(make_node(user_id="bob", content="anniversary", importance=0.9, last_accessed_at=old))

    report = await memory_graph.run_maintenance(now=NOW)

    assert report.decayed == {"alice": 1, "bob": 0}
    assert [node.content for node in report.rehearsal["bob"]] == ["anniversary"]
    assert "alice" not in report.rehearsal
