"""
Resilient server-sent event streams for runs.
"""

from .backoff import BackoffPolicy
from .connection import StreamConnection
from .base import ResumableStream
from .events import RunEventStream
from .output import RunOutputStream
from .outcomes import (
    Opened,
    EventReceived,
    ChunkReceived,
    ParseFailed,
    Reconnecting,
    Closed,
    OutcomeSubscription,
    StreamOutcome,
)

__all__ = [
    "BackoffPolicy",
    "StreamConnection",
    "ResumableStream",
    "RunEventStream",
    "RunOutputStream",
    "Opened",
    "EventReceived",
    "ChunkReceived",
    "ParseFailed",
    "Reconnecting",
    "Closed",
    "OutcomeSubscription",
    "StreamOutcome",
]
