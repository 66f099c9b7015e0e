"""
Outcome values a stream pushes to its subscribers.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Union

from ..core.types import RunEvent, OutputChunk
from ..exceptions import ParseError, TransportError


@dataclass(frozen=True)
class Opened:
    """The server accepted the stream request."""
    url: str


@dataclass(frozen=True)
class EventReceived:
    """A run event not delivered before."""
    event: RunEvent


@dataclass(frozen=True)
class ChunkReceived:
    """An output chunk, in arrival order."""
    chunk: OutputChunk


@dataclass(frozen=True)
class ParseFailed:
    """A message could not be decoded; the stream keeps going."""
    error: ParseError


@dataclass(frozen=True)
class Reconnecting:
    """A reconnect attempt is about to be made."""
    attempt: int
    delay_ms: float


@dataclass(frozen=True)
class Closed:
    """
    The stream was disconnected. Always the last outcome.

    ``error`` is set when a non-reconnecting stream stopped because its
    transport ended or failed.
    """
    error: Optional[TransportError] = None


StreamOutcome = Union[Opened, EventReceived, ChunkReceived, ParseFailed, Reconnecting, Closed]


class OutcomeSubscription:
    """
    One subscriber's queue of outcomes, iterated with ``async for``.

    The queue is registered on creation so nothing emitted afterwards is
    missed. It is unregistered after ``Closed`` is returned, on ``aclose()``,
    or when the subscription is garbage collected, including when it was
    never iterated.
    """

    def __init__(self, subscribers: List[asyncio.Queue]):
        self._subscribers = subscribers
        self._queue: asyncio.Queue = asyncio.Queue()
        self._finished = False
        subscribers.append(self._queue)

    @property
    def active(self) -> bool:
        return not self._finished

    def __aiter__(self) -> "OutcomeSubscription":
        return self

    async def __anext__(self) -> StreamOutcome:
        if self._finished:
            raise StopAsyncIteration

        outcome = await self._queue.get()
        if isinstance(outcome, Closed):
            self._unsubscribe()
        return outcome

    async def aclose(self) -> None:
        self._unsubscribe()

    def __del__(self):
        self._unsubscribe()

    def _unsubscribe(self) -> None:
        self._finished = True
        if self._queue in self._subscribers:
            self._subscribers.remove(self._queue)
