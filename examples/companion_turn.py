"""
Example: One companion turn, end to end

Builds an orchestrator from environment API keys (GROQ_API_KEY, OPENAI_API_KEY,
OLLAMA_ENDPOINT, ...) and runs two turns for the same user, printing the plan,
the quality rating and the phase timings of each.
"""

import asyncio
import logging

from dotenv import load_dotenv

from casual_companion.config import CompanionConfig
from casual_companion.embeddings.minilm_embedding import MiniLMEmbedding
from casual_companion.factory import create_orchestrator


async def main():
    config = CompanionConfig(token_delay_min=0.0, token_delay_max=0.0)
    orchestrator = create_orchestrator(MiniLMEmbedding(), config=config)

    conversation_id = None
    for text in [
        "I'm so stressed about my exam tomorrow",
        "It's organic chemistry, I always mix up the reactions",
    ]:
        result = await orchestrator.respond("demo-user", text, conversation_id)
        conversation_id = result.conversation_id

        print("=" * 80)
        print(f"User: {text}")
        print(f"Kira: {result.text}")
        print("-" * 80)
        print(f"Dialog act: {result.dialog_act.act} ({result.dialog_act.source})")
        print(f"Emotion:    {result.emotion.label} ({result.emotion.score:.2f})")
        print(f"Plan:       {result.plan.intent}, beats={result.plan.beats}")
        if result.rating:
            print(f"Rating:     {result.rating.grade} ({result.rating.overall:.2f})")
        print(f"Re-edits:   {result.re_edits}")
        print(f"Timings:    {', '.join(f'{k}={v:.0f}ms' for k, v in result.timings.items())}")

    memories = await orchestrator.memory.get_all("demo-user")
    print(f"\nStored {len(memories)} memories:")
    for node in memories:
        print(f"  [{node.type}] {node.content} (importance {node.importance:.2f})")


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
