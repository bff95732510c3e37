"""
Structured audit logging for executor decisions.

Produces JSON log entries via Python's standard logging module under
the ``promptaction.audit`` logger name. Each entry includes a timestamp,
event_type, the workspace id, and event-specific fields.

Usage::

    audit = AuditLogger()
    audit.log_classification(
        command="list my tasks",
        tool_groups=["core"],
        confidence=0.95,
        reasoning="Read-only task search - only core search tools needed",
        workspace_id="ws_1",
    )
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_audit_logger = logging.getLogger("promptaction.audit")


class AuditLogger:
    """Structured audit logger for key executor decisions."""

    def _emit(self, event_type: str, fields: Dict[str, Any]) -> None:
        if not _audit_logger.isEnabledFor(logging.INFO):
            return
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
        }
        entry.update(fields)
        _audit_logger.info(json.dumps(entry, default=str))

    def log_classification(
        self,
        command: str,
        tool_groups: List[str],
        confidence: float,
        reasoning: str,
        workspace_id: str = "",
    ) -> None:
        """Log the intent classification of a command."""
        self._emit("classification", {
            "workspace_id": workspace_id,
            "command": command[:200],
            "tool_groups": tool_groups,
            "confidence": confidence,
            "reasoning": reasoning,
        })

    def log_tool_selection(
        self,
        tool_names: List[str],
        reason: str,
        workspace_id: str = "",
    ) -> None:
        """Log the tool set offered to the model (initial or escalated)."""
        self._emit("tool_selection", {
            "workspace_id": workspace_id,
            "tool_count": len(tool_names),
            "tools": tool_names,
            "reason": reason,
        })

    def log_tool_execution(
        self,
        tool_name: str,
        args_summary: Dict[str, Any],
        success: bool,
        duration_ms: int,
        error: Optional[str] = None,
        workspace_id: str = "",
    ) -> None:
        """Log a tool execution result."""
        fields: Dict[str, Any] = {
            "workspace_id": workspace_id,
            "tool_name": tool_name,
            "args_summary": args_summary,
            "success": success,
            "duration_ms": duration_ms,
        }
        if error is not None:
            fields["error"] = error
        self._emit("tool_execution", fields)

    def log_loop_round(
        self,
        iteration: int,
        tool_calls: List[str],
        final_answer: bool,
        workspace_id: str = "",
    ) -> None:
        """Log a conversation-loop round summary."""
        self._emit("loop_round", {
            "workspace_id": workspace_id,
            "iteration": iteration,
            "tool_calls": tool_calls,
            "tool_calls_count": len(tool_calls),
            "final_answer": final_answer,
        })

    def log_termination(
        self,
        reason: str,
        success: bool,
        iterations: int,
        tool_calls_count: int,
        duration_ms: int,
        error: Optional[str] = None,
        workspace_id: str = "",
    ) -> None:
        """Log why and how an execution ended."""
        fields: Dict[str, Any] = {
            "workspace_id": workspace_id,
            "reason": reason,
            "success": success,
            "iterations": iterations,
            "tool_calls_count": tool_calls_count,
            "duration_ms": duration_ms,
        }
        if error is not None:
            fields["error"] = error
        self._emit("termination", fields)
