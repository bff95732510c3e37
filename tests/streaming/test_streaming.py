"""
Tests for promptaction streaming models.

Tests:
- Event types
- AgentEvent serialization round trip
- Event helpers
"""

import json

from promptaction.models import ExecutionResult, ToolCallRecord, ToolCallResult
from promptaction.streaming import AgentEvent, EventType, error_event, thinking_event


class TestEventType:
    """Tests for EventType enum"""

    def test_values(self):
        assert EventType.EXECUTION_START == "execution_start"
        assert EventType.MESSAGE_CHUNK == "message_chunk"
        assert EventType.TOOL_RESULT == "tool_result"


class TestAgentEvent:
    """Tests for AgentEvent"""

    def test_to_dict(self):
        event = AgentEvent(type=EventType.MESSAGE_CHUNK, data={"chunk": "Hi"}, sequence=3)
        data = event.to_dict()
        assert data["type"] == "message_chunk"
        assert data["data"] == {"chunk": "Hi"}
        assert data["sequence"] == 3
        assert isinstance(data["timestamp"], str)

    def test_nested_results_are_serialized(self):
        record = ToolCallRecord("searchTags", {}, ToolCallResult.ok([]))
        result = ExecutionResult(success=True, response="Done", tool_calls_made=[record])
        event = AgentEvent(type=EventType.EXECUTION_END, data={"result": result, "records": [record]})

        data = json.loads(json.dumps(event.to_dict()))

        assert data["data"]["result"]["toolCallsMade"][0]["tool"] == "searchTags"
        assert data["data"]["records"][0]["result"] == {"success": True, "data": []}

    def test_from_dict(self):
        event = AgentEvent(type=EventType.THINKING, data={"message": "x"}, sequence=2)
        restored = AgentEvent.from_dict(event.to_dict())
        assert restored.type == EventType.THINKING
        assert restored.data == {"message": "x"}
        assert restored.sequence == 2
        assert restored.timestamp == event.timestamp


class TestHelpers:

    def test_thinking_event(self):
        event = thinking_event("Planning next step", iteration=2)
        assert event.type == EventType.THINKING
        assert event.data == {"message": "Planning next step", "iteration": 2}

    def test_error_event(self):
        assert error_event("Empty response").data == {"error": "Empty response"}
        assert error_event("boom", message="Try again").data == {"error": "boom", "message": "Try again"}
