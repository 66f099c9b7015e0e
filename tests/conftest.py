"""
Pytest configuration and shared fixtures for loopstream tests.
"""

import asyncio
import json
import os
import sys
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest
from httpx_sse import ServerSentEvent

# Add the project root to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loopstream.exceptions import TransportError
from loopstream.streaming import BackoffPolicy


class FakeConnection:
    """
    Stand-in for StreamConnection that lets a test drive the callbacks.

    Mirrors the real single-transport rule: connect() is refused while a
    request is active.
    """

    def __init__(self, stream):
        self.stream = stream
        self.active = False
        self.url: Optional[str] = None
        self.urls: List[str] = []
        self.disconnect_calls = 0

    def connect(self, url: str) -> bool:
        if self.active:
            return False
        self.active = True
        self.url = url
        self.urls.append(url)
        return True

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.active = False

    async def aclose(self) -> None:
        self.disconnect()

    # Test drivers
    def open(self) -> None:
        self.stream._handle_open()

    def send(self, payload: Union[Dict[str, Any], str], event: str = "message") -> None:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        self.stream._handle_message(ServerSentEvent(event=event, data=data))

    def fail(self, message: str = "connection reset") -> None:
        self.active = False
        self.stream._handle_transport_error(TransportError(message))


@pytest.fixture
def fake_connection():
    """Replace a stream's transport with a FakeConnection."""
    def attach(stream) -> FakeConnection:
        connection = FakeConnection(stream)
        stream._connection = connection
        return connection
    return attach


@pytest.fixture
def fast_backoff():
    """Backoff short enough for reconnects to happen within a test."""
    return BackoffPolicy(initial_ms=5, multiplier=2, max_ms=20)


def _make_event(event_id: str, timestamp: int, run_id: str = "run-1", **extra) -> Dict[str, Any]:
    event = {
        "id": event_id,
        "run_id": run_id,
        "event_type": extra.pop("event_type", "STEP_STARTED"),
        "timestamp": timestamp,
        "payload": extra.pop("payload", {}),
    }
    event.update(extra)
    return event


def _make_chunk(offset: int, content: str, step_id: str = "step-1") -> Dict[str, Any]:
    return {"step_id": step_id, "offset": offset, "content": content}


def _sse_frames(*payloads: Dict[str, Any], event: Optional[str] = None) -> bytes:
    """Encode payloads the way the daemon writes them."""
    body = ""
    for payload in payloads:
        if event:
            body += f"event: {event}\n"
        body += f"data: {json.dumps(payload)}\n\n"
    return body.encode("utf-8")


class FakeDaemon:
    """
    httpx.MockTransport handler that serves one canned body per request.

    After the scripted responses run out the last one repeats, so a stream
    that keeps reconnecting keeps getting a well-formed (usually empty) reply.
    """

    def __init__(self, responses: List[Union[bytes, httpx.Response]]):
        self.responses = responses
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=response,
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_daemon():
    """Factory for FakeDaemon instances."""
    return FakeDaemon


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate() is true or fail the test."""
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def make_event():
    """Build a run event payload as the daemon serializes it."""
    return _make_event


@pytest.fixture
def make_chunk():
    """Build an output chunk payload."""
    return _make_chunk


@pytest.fixture
def sse_frames():
    """Encode payloads as text/event-stream frames."""
    return _sse_frames


@pytest.fixture
def wait_until():
    return _wait_until
