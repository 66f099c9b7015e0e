# Library imports
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from enum import Enum


class ConnectionState(str, Enum):
    """Lifecycle of a stream as seen by its consumer."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class RunEvent(BaseModel):
    """A structured event from a run's audit log."""
    id: str = Field(..., min_length=1, description="Globally unique event identity")
    run_id: str = Field(..., description="Run that owns the event")
    step_id: Optional[str] = Field(default=None, description="Step the event belongs to, if any")
    event_type: str = Field(..., description="Free-form type tag, e.g. STEP_STARTED")
    timestamp: int = Field(..., description="Server-assigned milliseconds since epoch")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Opaque event payload")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "evt_01",
                "run_id": "run_42",
                "step_id": "step_3",
                "event_type": "STEP_STARTED",
                "timestamp": 1735689600000,
                "payload": {"phase": "implementation"}
            }
        }
    )


class OutputChunk(BaseModel):
    """A slice of a step's raw output, addressed by byte offset."""
    step_id: str = Field(..., description="Step whose output file this chunk comes from")
    offset: int = Field(..., ge=0, description="Byte offset of the first byte of content")
    content: str = Field(..., description="Output text")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "step_id": "step_3",
                "offset": 0,
                "content": "Compiling loop-core v0.1.0\n"
            }
        }
    )

    @property
    def end_offset(self) -> int:
        """Byte offset just past this chunk."""
        return self.offset + len(self.content.encode("utf-8"))
