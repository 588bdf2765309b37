import logging
from typing import List, Union

from casual_llm import SystemMessage, UserMessage
from pydantic import BaseModel, Field, RootModel

from casual_companion.exceptions import CompanionError
from casual_companion.memory.prompts import (
    MEMORY_EXTRACTION_PROMPT,
    MEMORY_EXTRACTION_SYSTEM_PROMPT,
)
from casual_companion.models import MEMORY_TYPES, MemoryCandidate
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.utils.json_output import extract_json

logger = logging.getLogger(__name__)


class _RawMemory(BaseModel):
    type: str = "fact"
    content: str = ""


class _Extraction(BaseModel):
    memories: List[_RawMemory] = Field(default_factory=list)


class _BareList(RootModel[List[_RawMemory]]):
    pass


class LLMMemoryExtracter:
    """Extracts memory candidates from one message with the fast model."""

    def __init__(self, gateway: ProviderGateway, prompt: str = MEMORY_EXTRACTION_PROMPT):
        self.gateway = gateway
        self.prompt = prompt

    @staticmethod
    def _parse(text: str) -> List[_RawMemory]:
        data: Union[dict, list] = extract_json(text)
        if isinstance(data, list):
            return _BareList.model_validate(data).root
        return _Extraction.model_validate(data).memories

    async def extract(self, text: str, source: str = "user") -> List[MemoryCandidate]:
        """
        Ask the model for memory candidates in ``text``.

        Args:
            text: Message to mine
            source: Who wrote it ("user" or "assistant")

        Returns:
            Candidates with known types; empty on any failure
        """
        if not text or not text.strip():
            return []

        messages = [
            SystemMessage(content=MEMORY_EXTRACTION_SYSTEM_PROMPT),
            UserMessage(content=self.prompt.format(source=source, text=text)),
        ]

        try:
            result = await self.gateway.chat(
                messages,
                model_class="fast",
                temperature=0.1,
                max_tokens=300,
                response_format="json",
            )
            raw_memories = self._parse(result.text)
        except (CompanionError, ValueError) as e:
            logger.warning(f"Memory extraction failed: {e}")
            return []

        candidates: List[MemoryCandidate] = []
        for raw in raw_memories:
            if raw.type not in MEMORY_TYPES or not raw.content.strip():
                logger.debug(f"Dropping extracted memory of type '{raw.type}'")
                continue
            candidates.append(
                MemoryCandidate(
                    type=raw.type, content=raw.content.strip(), metadata={"source": source}
                )
            )

        logger.info(f"Extracted {len(candidates)} {source} memories")
        return candidates
