"""
Run event stream (GET /runs/{id}/events), deduplicated by event id.
"""

import logging
from typing import Callable, Optional, Set

from httpx_sse import ServerSentEvent
from pydantic import ValidationError

from ..core.types import RunEvent
from ..exceptions import ParseError
from .base import ResumableStream
from .outcomes import EventReceived


logger = logging.getLogger(__name__)


class RunEventStream(ResumableStream):
    """
    Structured events for one run, resumable by timestamp.

    The server replays events from the ``after`` timestamp on reconnect, so
    the first few messages of a new connection usually repeat ones already
    seen. Those are dropped by id. The set of seen ids lives as long as the
    stream object and is never pruned; a run's event count is bounded, but a
    stream kept alive across an unbounded number of events grows with it.
    """

    resource = "events"
    cursor_param = "after"

    def __init__(
        self,
        run_id: str,
        on_event: Optional[Callable[[RunEvent], None]] = None,
        **kwargs
    ):
        super().__init__(run_id, **kwargs)
        self._on_event = on_event
        self._seen_event_ids: Set[str] = set()
        self._last_event_timestamp = 0

    @property
    def last_event_timestamp(self) -> int:
        """Largest event timestamp delivered so far, 0 before the first event."""
        return self._last_event_timestamp

    @property
    def seen_event_count(self) -> int:
        return len(self._seen_event_ids)

    @property
    def resume_cursor(self) -> int:
        return self._last_event_timestamp

    def _process(self, message: ServerSentEvent) -> None:
        try:
            event = RunEvent.model_validate_json(message.data)
        except ValidationError as e:
            self._report_parse_error(ParseError.from_validation_error("event", e, message.data))
            return

        if event.id in self._seen_event_ids:
            logger.debug(f"{self.describe()}: dropping duplicate event {event.id}")
            return

        self._seen_event_ids.add(event.id)
        if event.timestamp > self._last_event_timestamp:
            self._last_event_timestamp = event.timestamp

        self._emit(EventReceived(event=event))
        self._deliver("on_event", self._on_event, event)

