"""
Example: Provider gateway failover

Registers two backends by hand, disables the first one, and shows which
backend answered plus the attempt log. The gateway is what every pipeline
phase calls; build_gateway_from_env() does the registration from API keys.
"""

import asyncio
import os

from casual_llm import Provider, SystemMessage, UserMessage
from dotenv import load_dotenv

from casual_companion.exceptions import AllProvidersFailedError
from casual_companion.providers import PROVIDER_PRESETS, CasualLLMBackend, ProviderGateway


async def main():
    gateway = ProviderGateway()

    groq = PROVIDER_PRESETS["groq"]
    gateway.register(
        "groq",
        CasualLLMBackend("groq", base_url=groq.base_url, api_key=os.getenv(groq.api_key_env)),
        priority=groq.priority,
        models=groq.models,
    )
    gateway.register(
        "ollama",
        CasualLLMBackend("ollama", provider=Provider.OLLAMA, base_url="http://localhost:11434"),
        priority=10,
        models={"fast": "llama3.1", "quality": "llama3.1"},
    )

    messages = [
        SystemMessage(content="You are a friendly assistant. Answer in one sentence."),
        UserMessage(content="What's a good name for a goldfish?"),
    ]

    try:
        result = await gateway.chat(messages, model_class="fast")
        print(f"{result.provider_name} ({result.model}): {result.text}")
        for attempt in result.attempts:
            print(f"  {attempt.provider}: {'ok' if attempt.ok else attempt.error}")
    except AllProvidersFailedError as e:
        print(f"Every provider failed: {e}")

    print("\nProvider health:")
    for info in gateway.get_providers():
        print(f"  {info.name}: requests={info.stats.requests}, errors={info.stats.errors}")


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
