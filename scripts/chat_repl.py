#!/usr/bin/env python3
"""
Companion Chat REPL

Talks to the companion from a terminal, with the same orchestrator a server
would use. Providers are registered from API keys in the environment (or a
.env file) and backends are selected with COMPANION_* variables.

Usage:
    # In-memory stores, local MiniLM embeddings
    python scripts/chat_repl.py

    # OpenAI embeddings, streamed replies, debug logs
    python scripts/chat_repl.py --embedding openai --stream --log-level DEBUG

Commands inside the REPL:
    /memories   list stored memories for the current user
    /stats      memory statistics
    /providers  provider health
    /new        start a new conversation
    /quit       exit
"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv

load_dotenv()

from casual_companion.config import CompanionConfig
from casual_companion.exceptions import InputRejectedError
from casual_companion.factory import create_orchestrator
from casual_companion.persona import DEFAULT_PERSONA, load_persona

logger = logging.getLogger("companion-repl")


def build_embedding(name: str, dimensions: int):
    if name == "openai":
        from casual_companion.embeddings.openai_embedding import OpenAIEmbedding

        return OpenAIEmbedding(dimensions=dimensions)

    from casual_companion.embeddings.minilm_embedding import MiniLMEmbedding

    return MiniLMEmbedding()


async def show_memories(orchestrator, user_id: str):
    nodes = await orchestrator.memory.get_all(user_id)
    if not nodes:
        print("  (no memories yet)")
    for node in nodes:
        print(f"  [{node.type}] {node.content} (importance {node.importance:.2f}, x{node.repetitions})")


async def run(args):
    persona = load_persona(args.persona) if args.persona else DEFAULT_PERSONA
    config = CompanionConfig.from_env()
    orchestrator = create_orchestrator(
        build_embedding(args.embedding, args.dimensions), config=config, persona=persona
    )

    conversation_id = None
    print(f"Chatting with {persona.name} as '{args.user}'. /quit to exit.\n")

    while True:
        try:
            text = await asyncio.to_thread(input, "you> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        command = text.strip().lower()
        if command in ("/quit", "/exit"):
            break
        if command == "/new":
            conversation_id = None
            print("  (new conversation)")
            continue
        if command == "/memories":
            await show_memories(orchestrator, args.user)
            continue
        if command == "/stats":
            stats = await orchestrator.memory.stats(args.user)
            print(f"  {stats.total} memories, by type {stats.by_type}, "
                  f"avg importance {stats.avg_importance:.2f}")
            continue
        if command == "/providers":
            for info in orchestrator.gateway.get_providers():
                print(f"  {info.name}: enabled={info.enabled} priority={info.priority} "
                      f"requests={info.stats.requests} errors={info.stats.errors}")
            continue

        try:
            if args.stream:
                turn = await orchestrator.stream(args.user, text, conversation_id)
                print(f"{persona.name.lower()}> ", end="", flush=True)
                async for event in turn:
                    if event.type == "control":
                        conversation_id = event.conversation_id
                    elif event.type == "token":
                        print(event.token, end="", flush=True)
                print()
                result = await turn.wait()
            else:
                result = await orchestrator.respond(args.user, text, conversation_id)
                conversation_id = result.conversation_id
                print(f"{persona.name.lower()}> {result.text}")
        except InputRejectedError as e:
            print(f"  (rejected: {e.reason})")
            continue

        grade = result.rating.grade if result.rating else "-"
        logger.info(
            f"act={result.dialog_act.act} emotion={result.emotion.label} "
            f"mood={result.affect.mood} grade={grade} re_edits={result.re_edits} "
            f"total={result.timings.get('total', 0):.0f}ms"
        )


def main():
    parser = argparse.ArgumentParser(
        description="Chat with the companion from a terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default: in-memory stores, MiniLM embeddings
  python scripts/chat_repl.py

  # Persist memories to a JSON file
  COMPANION_MEMORY_BACKEND=file python scripts/chat_repl.py

  # Custom persona
  python scripts/chat_repl.py --persona personas/kira.json
        """,
    )
    parser.add_argument("--user", type=str, default="local-user", help="User id (default: local-user)")
    parser.add_argument(
        "--embedding",
        type=str,
        choices=["minilm", "openai"],
        default="minilm",
        help="Embedding backend (default: minilm)",
    )
    parser.add_argument(
        "--dimensions",
        type=int,
        default=384,
        help="Embedding dimensions for OpenAI embeddings (default: 384)",
    )
    parser.add_argument("--persona", type=str, default=None, help="Path to a persona JSON file")
    parser.add_argument("--stream", action="store_true", help="Stream replies word by word")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level)
    logger.setLevel(logging.INFO)

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
