"""
Error types reported by the stream client.
"""

from typing import Optional

from pydantic import ValidationError


class StreamError(Exception):
    """Base class for stream client errors."""


class ParseError(StreamError):
    """A message body could not be decoded into the expected shape."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw

    @classmethod
    def from_validation_error(cls, what: str, error: ValidationError, raw: str) -> "ParseError":
        """Summarize the first pydantic error, e.g. ``timestamp: Field required``."""
        details = error.errors()
        if not details:
            return cls(f"Failed to parse {what}: {error}", raw=raw)

        first = details[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        reason = f"{location}: {first['msg']}" if location else first["msg"]
        return cls(f"Failed to parse {what}: {reason}", raw=raw)


class TransportError(StreamError):
    """The underlying HTTP stream failed, was refused, or ended."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SinkError(StreamError):
    """A consumer callback raised while handling a delivered value."""

    def __init__(self, sink: str, original: BaseException):
        super().__init__(f"{sink} callback failed: {original}")
        self.sink = sink
        self.original = original


class StreamEnded(TransportError):
    """The server closed a successful stream normally."""
