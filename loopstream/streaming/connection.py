"""
A single long-lived text/event-stream request.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

import httpx
from httpx_sse import ServerSentEvent, aconnect_sse

from ..exceptions import StreamEnded, TransportError


logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0


def build_headers(token: Optional[str] = None) -> Dict[str, str]:
    """Request headers for a stream, with optional bearer auth."""
    headers = {
        "Accept": "text/event-stream",
        "Cache-Control": "no-cache",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class StreamConnection:
    """
    Owns at most one streaming HTTP request to one URL.

    Translates transport activity into three callbacks:
    ``on_open()`` once the server answers with a 2xx status,
    ``on_message(sse)`` for every dispatched ``ServerSentEvent``, and
    ``on_error(error)`` when the request fails or the server ends the stream.
    The transport is closed and discarded before ``on_error`` runs, so a
    callback that reconnects never overlaps the failed request.

    Messages have no meaning at this layer; every failure takes the same path.
    """

    def __init__(
        self,
        on_open: Callable[[], None],
        on_message: Callable[[ServerSentEvent], None],
        on_error: Callable[[TransportError], None],
        http_client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._http_client = http_client
        self._headers = headers if headers is not None else build_headers()
        # Streams stay open indefinitely; only the connect phase is bounded
        self._timeout = httpx.Timeout(None, connect=connect_timeout)
        self._task: Optional[asyncio.Task] = None
        self.url: Optional[str] = None

    @property
    def active(self) -> bool:
        """True while a request is in flight or streaming."""
        return self._task is not None

    def connect(self, url: str) -> bool:
        """
        Start streaming from ``url`` on the running event loop.

        Returns False without doing anything if a request is already active.
        """
        if self._task is not None:
            logger.debug(f"Connection to {self.url} already active, ignoring connect({url})")
            return False

        loop = asyncio.get_running_loop()
        self.url = url
        self._task = loop.create_task(self._run(url))
        return True

    def disconnect(self) -> None:
        """Cancel the active request, if any. Safe to call repeatedly."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        """Disconnect and wait until the request has been torn down."""
        task = self._task
        self.disconnect()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _run(self, url: str) -> None:
        try:
            if self._http_client is not None:
                await self._stream(self._http_client, url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    await self._stream(client, url)
            error = StreamEnded("stream ended by server")
        except TransportError as e:
            error = e
        except httpx.HTTPError as e:
            error = TransportError(f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected failure while streaming {url}")
            error = TransportError(f"{type(e).__name__}: {e}")

        if self._task is not asyncio.current_task():
            # Superseded by disconnect(); nobody is waiting for this error
            return
        self._task = None
        self._on_error(error)

    async def _stream(self, client: httpx.AsyncClient, url: str) -> None:
        async with aconnect_sse(
            client, "GET", url, headers=dict(self._headers), timeout=self._timeout
        ) as event_source:
            response = event_source.response
            if not response.is_success:
                raise TransportError(
                    f"stream request to {url} failed with HTTP {response.status_code}",
                    status_code=response.status_code,
                )

            logger.info(f"Stream opened: {url}")
            self._on_open()

            async for sse in event_source.aiter_sse():
                self._on_message(sse)
