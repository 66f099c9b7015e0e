"""
Run output stream (GET /runs/{id}/output), resumable by byte offset.
"""

import logging
from typing import Callable, Optional

from httpx_sse import ServerSentEvent
from pydantic import ValidationError

from ..core.types import OutputChunk
from ..exceptions import ParseError
from .base import ResumableStream
from .outcomes import ChunkReceived


logger = logging.getLogger(__name__)

OUTPUT_EVENT_NAME = "output"
# Frames sent without an event: field
DEFAULT_EVENT_NAME = "message"


class RunOutputStream(ResumableStream):
    """
    Raw step output for one run.

    Chunks are delivered in arrival order without deduplication; a byte
    range replayed after a reconnect reaches the consumer again. The resume
    cursor only ever moves forward.
    """

    resource = "output"
    cursor_param = "offset"

    def __init__(
        self,
        run_id: str,
        on_output: Optional[Callable[[OutputChunk], None]] = None,
        **kwargs
    ):
        super().__init__(run_id, **kwargs)
        self._on_output = on_output
        self._last_offset = 0

    @property
    def last_offset(self) -> int:
        """Highest ``offset + byte length`` seen so far."""
        return self._last_offset

    @property
    def resume_cursor(self) -> int:
        return self._last_offset

    def _process(self, message: ServerSentEvent) -> None:
        if message.event not in (OUTPUT_EVENT_NAME, DEFAULT_EVENT_NAME):
            logger.debug(f"{self.describe()}: ignoring {message.event!r} message")
            return

        try:
            chunk = OutputChunk.model_validate_json(message.data)
        except ValidationError as e:
            self._report_parse_error(ParseError.from_validation_error("output chunk", e, message.data))
            return

        end_offset = chunk.end_offset
        if end_offset > self._last_offset:
            self._last_offset = end_offset

        self._emit(ChunkReceived(chunk=chunk))
        self._deliver("on_output", self._on_output, chunk)
