"""
Turn streaming.

A turn is delivered as an ordered sequence of events: one ``control`` event
carrying the conversation id and affect, then one ``token`` event per word,
then a terminal ``end`` event. The orchestrator produces events into a
TurnStream; the transport adapter (SSE, WebSocket, callback) consumes it.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Literal, Optional

from pydantic import BaseModel

from casual_companion.models import AffectState

if TYPE_CHECKING:
    from casual_companion.pipeline.orchestrator import TurnResult

logger = logging.getLogger(__name__)

EventType = Literal["control", "token", "end"]


class TurnEvent(BaseModel):
    type: EventType
    conversation_id: Optional[str] = None
    affect: Optional[AffectState] = None
    dialog_act: Optional[str] = None
    token: Optional[str] = None
    fallback: bool = False


def split_tokens(text: str):
    """Word-sized chunks; each keeps the space that follows it except the last."""
    words = text.split(" ")
    for i, word in enumerate(words):
        yield word + (" " if i < len(words) - 1 else "")


class TurnStream:
    """
    Async iterator over the events of one turn.

    The producer side calls ``put``/``finish``; consumers iterate with
    ``async for``. ``close()`` marks the consumer as gone: the producer stops
    emitting tokens but the turn still runs to completion (learning
    included), which ``wait()`` exposes.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[TurnEvent]" = asyncio.Queue()
        self._disconnected = asyncio.Event()
        self._ended = False
        self._exhausted = False
        self.task: Optional["asyncio.Task[TurnResult]"] = None

    @property
    def disconnected(self) -> bool:
        return self._disconnected.is_set()

    async def put(self, event: TurnEvent) -> bool:
        """Queue an event; returns False once the consumer has gone."""
        if self.disconnected:
            return False
        await self._queue.put(event)
        return True

    async def finish(self, conversation_id: Optional[str], fallback: bool = False) -> None:
        if not self._ended:
            self._ended = True
            await self._queue.put(
                TurnEvent(type="end", conversation_id=conversation_id, fallback=fallback)
            )

    def close(self) -> None:
        if not self.disconnected:
            logger.info("Turn stream consumer disconnected")
            self._disconnected.set()

    async def wait(self) -> "TurnResult":
        """Result of the whole turn, once learning has finished."""
        if self.task is None:
            raise RuntimeError("TurnStream has no producer task")
        return await self.task

    def __aiter__(self) -> "TurnStream":
        return self

    async def __anext__(self) -> TurnEvent:
        if self.disconnected or self._exhausted:
            raise StopAsyncIteration

        if self._queue.empty() and self.task is not None:
            getter = asyncio.ensure_future(self._queue.get())
            done, _ = await asyncio.wait(
                {getter, self.task}, return_when=asyncio.FIRST_COMPLETED
            )
            if getter in done:
                event = getter.result()
            else:
                getter.cancel()
                if self._queue.empty():
                    # Producer ended without an end event; surface its exception if any
                    self._exhausted = True
                    self.task.result()
                    raise StopAsyncIteration
                event = self._queue.get_nowait()
        else:
            event = await self._queue.get()

        if event.type == "end":
            self._exhausted = True
        return event
