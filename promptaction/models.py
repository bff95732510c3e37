"""
promptaction Models - Core data structures for command execution

This module defines:
- ExecutionContext: caller-supplied, immutable per-command context
- ToolCallResult: normalized result returned by the external tool executor
- ToolCallRecord: one entry of the execution audit trail
- ExecutionResult: terminal value of one command execution
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ExecutionContext:
    """
    Immutable context for one command execution.

    The ``current_*`` / ``context_*`` ids describe what the user is looking at
    and are used to auto-fill tool arguments the model leaves out.
    """
    workspace_id: str
    user_id: str
    workspace_name: Optional[str] = None
    user_name: Optional[str] = None
    current_project_id: Optional[str] = None
    current_tab_id: Optional[str] = None
    context_table_id: Optional[str] = None
    context_block_id: Optional[str] = None
    current_date: str = field(default_factory=lambda: date.today().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workspaceId": self.workspace_id,
            "userId": self.user_id,
            "workspaceName": self.workspace_name,
            "userName": self.user_name,
            "currentProjectId": self.current_project_id,
            "currentTabId": self.current_tab_id,
            "contextTableId": self.context_table_id,
            "contextBlockId": self.context_block_id,
        }


@dataclass
class ToolCallResult:
    """
    Result of one tool invocation.

    Attributes:
        success: Whether the tool succeeded
        data: Tool-specific payload (opaque to the orchestrator)
        error: Error message, always non-empty when success is False
        hint: Optional human-readable note from the tool
        warnings: Optional non-fatal warnings
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    hint: Optional[str] = None
    warnings: Optional[List[str]] = None

    def __post_init__(self):
        if not self.success and not self.error:
            self.error = "Tool failed"

    @classmethod
    def ok(cls, data: Any = None, hint: Optional[str] = None) -> "ToolCallResult":
        return cls(success=True, data=data, hint=hint)

    @classmethod
    def fail(cls, error: str, hint: Optional[str] = None) -> "ToolCallResult":
        return cls(success=False, error=error, hint=hint)

    @classmethod
    def from_value(cls, value: Any) -> "ToolCallResult":
        """Coerce whatever an executor returned into a ToolCallResult."""
        if isinstance(value, ToolCallResult):
            return value
        if isinstance(value, dict) and "success" in value:
            return cls(
                success=bool(value.get("success")),
                data=value.get("data"),
                error=value.get("error"),
                hint=value.get("hint"),
                warnings=value.get("warnings"),
            )
        return cls(success=True, data=value)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        if self.hint is not None:
            result["hint"] = self.hint
        if self.warnings:
            result["warnings"] = self.warnings
        return result


@dataclass
class ToolCallRecord:
    """One attempted tool invocation, recorded in call order."""
    tool: str
    arguments: Dict[str, Any]
    result: ToolCallResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "arguments": self.arguments,
            "result": self.result.to_dict(),
        }


@dataclass
class ExecutionResult:
    """
    Terminal value of one command execution.

    ``tool_calls_made`` is accumulated across rounds and is returned even when
    the execution fails, so callers can audit partial progress.
    """
    success: bool
    response: str
    tool_calls_made: List[ToolCallRecord] = field(default_factory=list)
    error: Optional[str] = None

    iterations: int = 0
    duration_ms: int = 0
    token_usage: Dict[str, int] = field(default_factory=dict)
    fast_path: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "response": self.response,
            "toolCallsMade": [r.to_dict() for r in self.tool_calls_made],
            "iterations": self.iterations,
            "durationMs": self.duration_ms,
            "fastPath": self.fast_path,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.token_usage:
            data["tokenUsage"] = self.token_usage
        return data
