"""
promptaction Orchestrator Module

Turns one natural-language command into tool calls:
- Intent classification into tool groups (regex tables, no model call)
- Deterministic fast path for simple commands
- Tool selection with narrowing rules and a schema cache
- Bounded model <-> tool conversation loop with repeat, error and batch guards
- Result compaction and capability escalation

Quick Start:
    from promptaction.orchestrator import CommandExecutor
    from promptaction.models import ExecutionContext

    executor = CommandExecutor(tool_executor=my_tools)
    result = await executor.execute("list my tasks", ExecutionContext("ws_1", "u_1"))

    async for event in executor.stream("mark all bugs as done", context):
        print(event.type, event.data)
"""

from .audit_logger import AuditLogger
from .compactor import ResultCompactor
from .fast_path import (
    FastPathMatcher,
    is_multi_step_command,
    normalize_command,
    parse_column_list,
    parse_table_shorthand,
)
from .intent_classifier import (
    IntentClassification,
    classify,
    coerce_groups,
    groups_from_text,
)
from .loop_policy import LoopPolicy
from .loop_state import LoopState, call_signature
from .orchestrator import CommandExecutor
from .tool_selector import SchemaCache, ToolSelector

__all__ = [
    "CommandExecutor",
    "IntentClassification",
    "classify",
    "coerce_groups",
    "groups_from_text",
    "FastPathMatcher",
    "normalize_command",
    "is_multi_step_command",
    "parse_column_list",
    "parse_table_shorthand",
    "ToolSelector",
    "SchemaCache",
    "ResultCompactor",
    "LoopPolicy",
    "LoopState",
    "call_signature",
    "AuditLogger",
]
