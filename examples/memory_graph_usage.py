"""
Example: Using the memory graph directly

Shows the write gate, deduplication by repetition, ranked recall and the
maintenance pass, with a JSON file store and local embeddings. No LLM needed.
"""

import asyncio
from datetime import datetime, timedelta

from casual_companion.embeddings.minilm_embedding import MiniLMEmbedding
from casual_companion.memory import MemoryGraph
from casual_companion.storage.nodes.json_file import JsonFileNodeStore


async def main():
    graph = MemoryGraph(JsonFileNodeStore("data/demo_memories.json"), MiniLMEmbedding())
    user_id = "demo-user"

    print("=" * 80)
    print("Write gate")
    print("=" * 80)
    for memory_type, content in [
        ("promise", "I promise I'll call you tomorrow"),
        ("fact", "My sister's birthday is on May 3rd"),
        ("sentiment", "I feel a bit meh today"),
        ("preference", "I love hiking in the mountains"),
    ]:
        node = await graph.add_memory(user_id, memory_type, content)
        status = f"stored (importance {node.importance:.2f})" if node else "rejected"
        print(f"{memory_type:>10}: {content} -> {status}")

    print("\nRepeating a memory bumps it instead of creating a new node:")
    node = await graph.add_memory(user_id, "preference", "I love hiking in the mountains")
    print(f"  repetitions={node.repetitions}, importance={node.importance:.2f}")

    print("\n" + "=" * 80)
    print("Recall")
    print("=" * 80)
    for item in await graph.retrieve(user_id, "what should we do this weekend?", k=3):
        print(
            f"  {item.score:.3f}  {item.node.content} "
            f"(cos={item.cosine:.2f}, recency={item.recency:.2f}, importance={item.importance:.2f})"
        )

    print("\n" + "=" * 80)
    print("Maintenance, 90 days from now")
    print("=" * 80)
    report = await graph.run_maintenance(now=datetime.now() + timedelta(days=90))
    print(f"  decayed: {report.decayed}")
    for node in report.rehearsal.get(user_id, []):
        print(f"  worth bringing up: {node.content}")

    stats = await graph.stats(user_id)
    print(f"\n{stats.total} memories left, by type {stats.by_type}")


if __name__ == "__main__":
    asyncio.run(main())
