"""Integration tests for the Qdrant memory node store and the memory graph on top of it."""

from uuid import uuid4

import pytest

from casual_companion.memory.graph import MemoryGraph


@pytest.fixture
def qdrant_store(skip_if_no_qdrant, embedding):
    pytest.importorskip("qdrant_client")
    from casual_companion.storage.nodes.qdrant import QdrantNodeStore

    store = QdrantNodeStore(
        vector_dimension=embedding.dimension,
        collection_name=f"test_nodes_{uuid4().hex[:8]}",
    )
    yield store
    store.client.delete_collection(store.collection_name)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_memory_graph_write_and_recall(qdrant_store, embedding, config):
    graph = MemoryGraph(qdrant_store, embedding, config)

    node = await graph.add_memory("test_user", "fact", "Works as a nurse at the city hospital")
    assert node is not None

    results = await graph.retrieve("test_user", "Works as a nurse")

    assert results[0].node.id == node.id
    assert results[0].node.content == "Works as a nurse at the city hospital"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_duplicate_write_reinforces(qdrant_store, embedding, config):
    graph = MemoryGraph(qdrant_store, embedding, config)

    first = await graph.add_memory("test_user", "preference", "Loves strong black coffee")
    second = await graph.add_memory("test_user", "preference", "Loves strong black coffee")

    assert second.id == first.id
    assert second.repetitions == 2
    assert len(qdrant_store.list_user_nodes("test_user")) == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_users_are_isolated(qdrant_store, embedding, config):
    graph = MemoryGraph(qdrant_store, embedding, config)

    await graph.add_memory("alice", "fact", "Has two cats named Miso and Tofu")
    await graph.add_memory("bob", "fact", "Has two cats named Miso and Tofu")

    assert len(await graph.retrieve("alice", "cats")) == 1
    assert qdrant_store.list_user_ids() == ["alice", "bob"]
    assert qdrant_store.clear_user_nodes("alice") == 1
    assert await graph.retrieve("alice", "cats") == []
