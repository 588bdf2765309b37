"""Unit tests for QdrantNodeStore against Qdrant's in-process local mode."""

from datetime import datetime

import pytest

from casual_companion.models import MemoryNode


@pytest.fixture
def store():
    qdrant_client = pytest.importorskip("qdrant_client")
    from casual_companion.storage.nodes.qdrant import QdrantNodeStore

    return QdrantNodeStore(
        vector_dimension=3,
        collection_name="test_nodes",
        client=qdrant_client.QdrantClient(":memory:"),
    )


def make_node(user_id: str, content: str, embedding) -> MemoryNode:
    return MemoryNode(
        user_id=user_id, type="preference", content=content, embedding=embedding, importance=0.75
    )


def test_upsert_and_get(store):
    node = make_node("alice", "Loves jazz", [1.0, 0.0, 0.0])
    store.upsert(node)

    loaded = store.get("alice", node.id)

    assert loaded.content == "Loves jazz"
    assert loaded.importance == 0.75
    assert loaded.embedding == pytest.approx([1.0, 0.0, 0.0])
    assert store.get("bob", node.id) is None


def test_find_similar_is_per_user(store):
    store.upsert(make_node("alice", "Loves jazz", [1.0, 0.0, 0.0]))
    store.upsert(make_node("alice", "Hates mornings", [0.0, 1.0, 0.0]))
    store.upsert(make_node("bob", "Loves jazz too", [1.0, 0.0, 0.0]))

    results = store.find_similar("alice", [0.95, 0.05, 0.0], threshold=0.9)

    assert [node.content for node, _ in results] == ["Loves jazz"]
    assert results[0][1] > 0.9


def test_touch_updates_payload(store):
    node = make_node("alice", "Loves jazz", [1.0, 0.0, 0.0])
    store.upsert(node)
    when = datetime(2024, 6, 1, 12, 0)

    assert store.touch("alice", [node.id], when) == 1
    assert store.get("alice", node.id).last_accessed_at == when


def test_delete_list_and_clear(store):
    jazz = make_node("alice", "Loves jazz", [1.0, 0.0, 0.0])
    store.upsert(jazz)
    store.upsert(make_node("alice", "Hates mornings", [0.0, 1.0, 0.0]))
    store.upsert(make_node("bob", "Plays chess", [0.0, 0.0, 1.0]))

    assert not store.delete("bob", jazz.id)
    assert store.delete("alice", jazz.id)
    assert store.list_user_ids() == ["alice", "bob"]
    assert store.clear_user_nodes("alice") == 1
    assert store.list_user_nodes("alice") == []
