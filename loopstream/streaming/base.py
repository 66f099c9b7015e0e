"""
Reconnect state machine shared by the event and output streams.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional
from urllib.parse import quote, urlencode

import httpx
from httpx_sse import ServerSentEvent

from ..core.types import ConnectionState
from ..exceptions import ParseError, SinkError, StreamError, TransportError
from .backoff import BackoffPolicy
from .connection import DEFAULT_CONNECT_TIMEOUT, StreamConnection, build_headers
from .outcomes import (
    Closed,
    OutcomeSubscription,
    Opened,
    ParseFailed,
    Reconnecting,
    StreamOutcome,
)


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:7700"


class ResumableStream(ABC):
    """
    A server-pushed stream for one run that survives transport failures.

    State machine::

        IDLE --connect()--> CONNECTING --opened--> OPEN
        CONNECTING/OPEN --transport error--> RECONNECTING --timer--> CONNECTING
        any --disconnect()--> CLOSED --connect()--> CONNECTING

    On a transport error the stream waits ``backoff.current_ms`` and
    reconnects with its own resume cursor. At most one reconnect timer and
    one request exist at any time. Retries continue until ``disconnect()``.

    Results reach the consumer two ways: constructor sinks invoked on the
    event loop, and ``outcomes()``, an async iterator of tagged values.
    Exceptions raised by sinks are logged and forwarded to ``on_error``
    wrapped in ``SinkError``; they never stop the stream.
    """

    #: Path segment under /runs/{id}/
    resource: str = ""
    #: Query parameter carrying the resume cursor
    cursor_param: str = ""

    def __init__(
        self,
        run_id: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        on_error: Optional[Callable[[StreamError], None]] = None,
        on_reconnect: Optional[Callable[[], None]] = None,
        token: Optional[str] = None,
        backoff: Optional[BackoffPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        reconnect: bool = True,
    ):
        if not run_id:
            raise ValueError("run_id must be a non-empty string")

        self.run_id = run_id
        self.base_url = base_url.rstrip("/")
        self.backoff = backoff or BackoffPolicy()
        self.reconnect = reconnect
        self._on_error = on_error
        self._on_reconnect = on_reconnect

        self._state = ConnectionState.IDLE
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._pending_delay_ms = 0.0
        self._resume_floor = 0
        self._subscribers: List[asyncio.Queue] = []

        self._connection = StreamConnection(
            on_open=self._handle_open,
            on_message=self._handle_message,
            on_error=self._handle_transport_error,
            http_client=http_client,
            headers=build_headers(token),
            connect_timeout=connect_timeout,
        )

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def reconnecting(self) -> bool:
        return self._state is ConnectionState.RECONNECTING

    @property
    def reconnect_pending(self) -> bool:
        """True while a reconnect timer is scheduled."""
        return self._reconnect_handle is not None

    @property
    @abstractmethod
    def resume_cursor(self) -> int:
        """Cursor sent back to the server when reconnecting."""

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------

    def build_url(self, cursor: Optional[int] = None) -> str:
        """URL for this stream; the cursor is included only when positive."""
        url = f"{self.base_url}/runs/{quote(self.run_id, safe='')}/{self.resource}"
        if cursor is not None and cursor > 0:
            url += "?" + urlencode({self.cursor_param: int(cursor)})
        return url

    def connect(self, cursor: Optional[int] = None) -> None:
        """
        Open the stream, resuming from ``cursor`` when given.

        A no-op while a request is already active. Calling it during the
        reconnect wait cancels the timer and connects immediately.
        Must be called from a running event loop.
        """
        if self._connection.active:
            logger.debug(f"{self.describe()} already connected, ignoring connect()")
            return

        self._cancel_reconnect()
        # Reconnects never resume from before the cursor the caller asked for
        self._resume_floor = int(cursor) if cursor is not None and cursor > 0 else 0

        self._state = ConnectionState.CONNECTING
        self._connection.connect(self.build_url(cursor))

    def disconnect(self) -> None:
        """Stop streaming and cancel any pending reconnect. Never raises."""
        self._close()

    def _close(self, error: Optional[TransportError] = None) -> None:
        self._cancel_reconnect()
        self._connection.disconnect()
        if self._state is ConnectionState.CLOSED:
            return

        self._state = ConnectionState.CLOSED
        logger.info(f"{self.describe()} disconnected")
        self._emit(Closed(error=error))

    async def aclose(self) -> None:
        """Disconnect and wait for the request to be torn down."""
        self.disconnect()
        await self._connection.aclose()

    async def __aenter__(self):
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def outcomes(self) -> OutcomeSubscription:
        """
        Subscribe to this stream's outcomes.

        The subscription starts immediately, so nothing emitted after this
        call is missed. Iteration ends after the ``Closed`` outcome. A
        subscription that is closed or dropped stops buffering, even if it
        was never iterated.
        """
        return OutcomeSubscription(self._subscribers)

    def __aiter__(self) -> OutcomeSubscription:
        return self.outcomes()

    def describe(self) -> str:
        return f"{type(self).__name__}(run_id={self.run_id!r})"

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    @abstractmethod
    def _process(self, message: ServerSentEvent) -> None:
        """Decode and deliver one message."""

    def _handle_message(self, message: ServerSentEvent) -> None:
        if self._state is ConnectionState.CLOSED:
            return
        self._process(message)

    def _handle_open(self) -> None:
        self._state = ConnectionState.OPEN
        self.backoff.reset()
        self._emit(Opened(url=self._connection.url or ""))

    def _handle_transport_error(self, error: TransportError) -> None:
        if self._state is ConnectionState.CLOSED:
            return

        if not self.reconnect:
            logger.info(f"{self.describe()} ended: {error}")
            self._close(error)
            return

        self._state = ConnectionState.RECONNECTING
        self._schedule_reconnect(error)

    def _report_parse_error(self, error: ParseError) -> None:
        logger.warning(f"{self.describe()}: {error}")
        self._emit(ParseFailed(error=error))
        self._report_error(error)

    def _deliver(self, sink_name: str, sink: Optional[Callable], value) -> None:
        if sink is None:
            return
        try:
            sink(value)
        except Exception as e:
            logger.exception(f"{self.describe()}: {sink_name} callback raised")
            self._report_error(SinkError(sink_name, e))

    def _report_error(self, error: StreamError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception(f"{self.describe()}: on_error callback raised")

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------

    def _schedule_reconnect(self, error: TransportError) -> None:
        if self._reconnect_handle is not None:
            return

        delay_ms = self.backoff.current_ms
        self._pending_delay_ms = delay_ms
        logger.warning(
            f"{self.describe()} lost connection ({error}); "
            f"reconnecting in {delay_ms:.0f}ms (attempt {self.backoff.attempt + 1})"
        )
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay_ms / 1000.0, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        attempt = self.backoff.attempt + 1

        self._emit(Reconnecting(attempt=attempt, delay_ms=self._pending_delay_ms))
        if self._on_reconnect is not None:
            try:
                self._on_reconnect()
            except Exception as e:
                logger.exception(f"{self.describe()}: on_reconnect callback raised")
                self._report_error(SinkError("on_reconnect", e))

        # A sink may have disconnected the stream
        if self._state is not ConnectionState.RECONNECTING:
            return

        self.connect(max(self.resume_cursor, self._resume_floor))
        self.backoff.advance()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # ------------------------------------------------------------------
    # Outcome channel
    # ------------------------------------------------------------------

    def _emit(self, outcome: StreamOutcome) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(outcome)

