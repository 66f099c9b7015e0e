"""
Core data types shared by the stream implementations.
"""

from .types import RunEvent, OutputChunk, ConnectionState

__all__ = [
    "RunEvent",
    "OutputChunk",
    "ConnectionState",
]
