"""
promptaction Streaming - events yielded by CommandExecutor.stream()
"""

from .models import AgentEvent, EventType, error_event, thinking_event

__all__ = [
    "AgentEvent",
    "EventType",
    "error_event",
    "thinking_event",
]
