"""
Client facade that builds streams from configuration.
"""

import logging
from typing import AsyncIterator, Callable, List, Optional

import httpx

from .config import StreamClientConfig, get_config
from .core.types import OutputChunk, RunEvent
from .exceptions import StreamEnded
from .streaming import (
    BackoffPolicy,
    ChunkReceived,
    Closed,
    ResumableStream,
    RunEventStream,
    RunOutputStream,
)


logger = logging.getLogger(__name__)


class LoopStreamClient:
    """
    Creates event and output streams against one daemon.

    Streams share a single ``httpx.AsyncClient`` (created lazily unless one
    is passed in) and each gets its own ``BackoffPolicy`` built from config.
    ``aclose()`` disconnects every stream created here and closes the HTTP
    client if this object created it.
    """

    def __init__(
        self,
        config: Optional[StreamClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config()
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._streams: List[ResumableStream] = []

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(None, connect=self.config.connect_timeout)
            )
        return self._http_client

    def events(
        self,
        run_id: str,
        on_event: Optional[Callable[[RunEvent], None]] = None,
        **kwargs
    ) -> RunEventStream:
        """Build (but do not connect) an event stream for ``run_id``."""
        stream = RunEventStream(run_id, on_event=on_event, **self._stream_options(kwargs))
        self._streams.append(stream)
        return stream

    def output(
        self,
        run_id: str,
        on_output: Optional[Callable[[OutputChunk], None]] = None,
        **kwargs
    ) -> RunOutputStream:
        """Build (but do not connect) an output stream for ``run_id``."""
        stream = RunOutputStream(run_id, on_output=on_output, **self._stream_options(kwargs))
        self._streams.append(stream)
        return stream

    async def tail(
        self,
        run_id: str,
        follow: bool = True,
        offset: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """
        Yield a run's output text as it arrives.

        With ``follow=False`` the generator finishes when the server ends the
        stream and raises ``TransportError`` if the request was refused or
        failed (e.g. HTTP 404 for an unknown run). Otherwise it reconnects
        from the last offset until the caller stops iterating.
        """
        stream = self.output(run_id, reconnect=follow)
        outcomes = stream.outcomes()
        stream.connect(offset)
        try:
            async for outcome in outcomes:
                if isinstance(outcome, ChunkReceived):
                    yield outcome.chunk.content
                elif isinstance(outcome, Closed) and outcome.error is not None:
                    if not isinstance(outcome.error, StreamEnded):
                        raise outcome.error
        finally:
            await outcomes.aclose()
            await stream.aclose()
            self._forget(stream)

    async def aclose(self) -> None:
        if self._streams:
            logger.info(f"Closing {len(self._streams)} stream(s) for {self.config.base_url}")
        for stream in list(self._streams):
            await stream.aclose()
        self._streams.clear()

        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _stream_options(self, overrides: dict) -> dict:
        options = {
            "base_url": self.config.base_url,
            "token": self.config.token,
            "backoff": BackoffPolicy.from_config(self.config),
            "http_client": self.http_client,
            "connect_timeout": self.config.connect_timeout,
        }
        options.update(overrides)
        return options

    def _forget(self, stream: ResumableStream) -> None:
        if stream in self._streams:
            self._streams.remove(stream)
