"""
loopstream - Resilient event and output streams for loop daemon runs.
"""

__version__ = "0.1.0"

from .core.types import RunEvent, OutputChunk, ConnectionState
from .exceptions import StreamError, ParseError, TransportError, StreamEnded, SinkError
from .streaming import (
    BackoffPolicy,
    StreamConnection,
    ResumableStream,
    RunEventStream,
    RunOutputStream,
    Opened,
    EventReceived,
    ChunkReceived,
    ParseFailed,
    Reconnecting,
    Closed,
    StreamOutcome,
)
from .client import LoopStreamClient
from .config import get_config, reload_config, setup_logging, StreamClientConfig

__all__ = [
    "RunEvent",
    "OutputChunk",
    "ConnectionState",
    "StreamError",
    "ParseError",
    "TransportError",
    "StreamEnded",
    "SinkError",
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
    "StreamOutcome",
    "LoopStreamClient",
    "get_config",
    "reload_config",
    "setup_logging",
    "StreamClientConfig",
]
