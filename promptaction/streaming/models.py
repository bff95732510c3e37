"""
promptaction Streaming Models - Data structures for streaming events

This module defines:
- Event types emitted while a command executes
- The AgentEvent envelope and its JSON-ready serialization
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class EventType(str, Enum):
    """Types of events that can be streamed"""
    # Execution events
    EXECUTION_START = "execution_start"
    EXECUTION_END = "execution_end"

    # Progress events
    THINKING = "thinking"

    # Message events
    MESSAGE_CHUNK = "message_chunk"
    MESSAGE_END = "message_end"

    # Tool events
    TOOL_CALL_START = "tool_call_start"
    TOOL_RESULT = "tool_result"

    # Error events
    ERROR = "error"


@dataclass
class AgentEvent:
    """
    Event structure for streaming.

    All events have:
    - type: The type of event
    - data: Event-specific data. EXECUTION_END carries the ExecutionResult
      under ``data["result"]``.
    - timestamp: When the event occurred
    - sequence: Sequence number for ordering within one execution
    """
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    sequence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "type": self.type.value,
            "data": {key: _serialize(value) for key, value in self.data.items()},
            "timestamp": self.timestamp.isoformat(),
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentEvent":
        """Create event from dictionary"""
        return cls(
            type=EventType(data["type"]),
            data=data.get("data", {}),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence=data.get("sequence", 0),
        )


def _serialize(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    return value


def thinking_event(message: str, **extra: Any) -> AgentEvent:
    return AgentEvent(type=EventType.THINKING, data={"message": message, **extra})


def error_event(error: str, message: Optional[str] = None) -> AgentEvent:
    data = {"error": error}
    if message:
        data["message"] = message
    return AgentEvent(type=EventType.ERROR, data=data)
