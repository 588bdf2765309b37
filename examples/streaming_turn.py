"""
Example: Streaming a reply

A transport adapter (SSE, WebSocket) consumes the same TurnStream shown here:
one control event with the conversation id and mood, a token event per word,
then an end event. Learning keeps running after the stream ends; wait() returns
once it is done.
"""

import asyncio

from dotenv import load_dotenv

from casual_companion.embeddings.minilm_embedding import MiniLMEmbedding
from casual_companion.factory import create_orchestrator


async def main():
    orchestrator = create_orchestrator(MiniLMEmbedding())

    turn = await orchestrator.stream("demo-user", "hey! guess what, I finally got the job")
    async for event in turn:
        if event.type == "control":
            print(f"[control] conversation={event.conversation_id} mood={event.affect.mood}")
            print("Kira: ", end="", flush=True)
        elif event.type == "token":
            print(event.token, end="", flush=True)
        else:
            print("\n[end]")

    result = await turn.wait()
    print(f"Memories written: {result.memories_written}")


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
