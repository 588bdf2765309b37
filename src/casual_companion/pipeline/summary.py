"""
Rolling conversation summary and the recall context built from it.

Every ``interval`` stored messages the fast model condenses the recent
messages into bullet points. Commitments are pulled out of the summary with a
regex and listed separately so the drafting prompt sees what is still open.
"""

import logging
import re
from typing import List, Optional, Sequence

from casual_llm import SystemMessage, UserMessage

from casual_companion.exceptions import CompanionError
from casual_companion.models import ConversationMessage, MemoryNode
from casual_companion.pipeline.prompts import (
    SUMMARIZER_SYSTEM_PROMPT,
    SUMMARY_PROMPT,
    SUMMARY_UPDATE_PROMPT,
)
from casual_companion.providers.gateway import ProviderGateway

logger = logging.getLogger(__name__)

SUMMARY_INTERVAL = 15
MAX_SUMMARY_TOKENS = 300
SUMMARY_WINDOW = 20

COMMITMENT_RE = re.compile(
    r"(?:promised|said i'll|will|going to|planning to)\s+([^.\n]+)", re.IGNORECASE
)


def should_update_summary(turn_count: int, interval: int = SUMMARY_INTERVAL) -> bool:
    """Refresh once every ``interval`` completed turns (user + assistant pairs)."""
    return turn_count > 0 and turn_count % interval == 0


def extract_commitments(summary: str) -> List[str]:
    """Open commitments mentioned in a summary, in order of appearance."""
    if not summary:
        return []
    return [match.group(1).strip() for match in COMMITMENT_RE.finditer(summary)]


def build_context(
    summary: str,
    memories: Sequence[MemoryNode],
    commitments: Sequence[str] = (),
    rehearsal: Sequence[MemoryNode] = (),
) -> str:
    """
    Compact recall context for the planning and drafting prompts.

    Args:
        summary: Rolling conversation summary
        memories: Memories recalled for this turn, best first
        commitments: Pending commitments from the summary
        rehearsal: Important memories worth bringing up again

    Returns:
        Context text; empty when there is nothing to say
    """
    parts = []

    if summary:
        parts.append("RECENT CONTEXT:\n" + summary)

    if memories:
        lines = [
            f"- {node.content} ({node.type}{', important' if node.importance > 0.8 else ''})"
            for node in memories
        ]
        parts.append("\nRELEVANT MEMORIES:\n" + "\n".join(lines))

    if commitments:
        parts.append("\nPENDING COMMITMENTS:\n" + "\n".join(f"- {c}" for c in commitments))

    if rehearsal:
        parts.append(
            "\nWORTH BRINGING UP:\n" + "\n".join(f"- {node.content}" for node in rehearsal)
        )

    return "\n".join(parts)


class ConversationSummarizer:
    def __init__(
        self, gateway: ProviderGateway, companion_name: str = "Kira", window: int = SUMMARY_WINDOW
    ):
        self.gateway = gateway
        self.companion_name = companion_name
        self.window = window

    def _transcript(self, messages: Sequence[ConversationMessage]) -> str:
        return "\n".join(
            f"{'User' if m.role == 'user' else self.companion_name}: {m.content}"
            for m in messages[-self.window :]
        )

    async def summarize(
        self, messages: Sequence[ConversationMessage], previous: Optional[str] = None
    ) -> str:
        """
        Summarize recent messages, folding in the previous summary.

        Returns the previous summary (or "") when the model is unavailable.
        """
        if not messages:
            return previous or ""

        conversation = self._transcript(messages)
        if previous:
            prompt = SUMMARY_UPDATE_PROMPT.format(previous=previous, conversation=conversation)
        else:
            prompt = SUMMARY_PROMPT.format(conversation=conversation)

        messages_in = [
            SystemMessage(content=SUMMARIZER_SYSTEM_PROMPT),
            UserMessage(content=prompt),
        ]
        try:
            result = await self.gateway.chat(
                messages_in,
                model_class="fast",
                temperature=0.3,
                max_tokens=MAX_SUMMARY_TOKENS,
            )
        except CompanionError as e:
            logger.warning(f"Summary generation failed: {e}")
            return previous or ""

        summary = result.text.strip()
        logger.info(f"Updated conversation summary ({len(summary.split())} words)")
        return summary
