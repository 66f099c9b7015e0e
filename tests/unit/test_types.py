"""
Unit tests for the wire models.
"""

import pytest
from pydantic import ValidationError

from loopstream.core.types import ConnectionState, OutputChunk, RunEvent


class TestRunEvent:
    """Test event decoding."""

    def test_full_event(self):
        event = RunEvent.model_validate_json(
            '{"id": "e1", "run_id": "r1", "step_id": "s1", "event_type": "STEP_FINISHED",'
            ' "timestamp": 1735689600000, "payload": {"exit_code": 0}}'
        )
        assert event.step_id == "s1"
        assert event.timestamp == 1735689600000
        assert event.payload["exit_code"] == 0

    def test_optional_fields(self):
        event = RunEvent.model_validate({"id": "e1", "run_id": "r1", "event_type": "RUN_CREATED", "timestamp": 1})
        assert event.step_id is None
        assert event.payload == {}

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            RunEvent.model_validate({"id": "", "run_id": "r1", "event_type": "X", "timestamp": 1})


class TestOutputChunk:
    """Test chunk decoding and offsets."""

    def test_end_offset(self):
        assert OutputChunk(step_id="s", offset=3, content="def").end_offset == 6

    def test_end_offset_counts_bytes(self):
        assert OutputChunk(step_id="s", offset=0, content="é").end_offset == 2

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            OutputChunk(step_id="s", offset=-1, content="")


def test_connection_state_values():
    assert [s.value for s in ConnectionState] == ["idle", "connecting", "open", "reconnecting", "closed"]
