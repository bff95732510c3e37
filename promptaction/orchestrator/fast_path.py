"""
Deterministic fast path - executes simple commands without calling the model.

Two stages, tried in order:
1. "Table with columns" shorthand: create the table, then add all fields in
   one bulk call.
2. Single-action patterns (create task/project/table by name, list tasks or
   projects), each bound to one tool and a response template.

``FastPathMatcher.try_execute`` returns ``None`` for "no match", which is
distinct from a fast-path failure (an ``ExecutionResult`` with
``success=False``). Multi-step phrasing is rejected before any matching.
"""

import logging
import re
import time
from dataclasses import dataclass
from re import Match, Pattern
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models import ExecutionContext, ExecutionResult, ToolCallRecord, ToolCallResult
from ..protocols import ToolExecutorProtocol
from .dispatch import run_tool

logger = logging.getLogger(__name__)

_POLITENESS = re.compile(r"\s+(?:pls|please|thanks|thank you|thanks!|thanks\.|thanks)$", re.IGNORECASE)
_TRAILING_PERIOD = re.compile(r"[.]$")

_MULTI_STEP_CONNECTORS = re.compile(r"\b(?:then|also|after that|next)\b", re.IGNORECASE)
_AND_VERB = re.compile(
    r"\b(?:and)\s+(?:assign|add|set|tag|move|delete|remove|update|rename|change|populate|fill|"
    r"insert|attach|link|copy|duplicate|archive|complete|close|open|share|export|import)\b",
    re.IGNORECASE,
)

_TABLE_INDICATOR = re.compile(r"\btable\b", re.IGNORECASE)
_COLUMNS_INDICATOR = re.compile(r"\b(?:columns?|fields?|cols?)\b", re.IGNORECASE)

# Title in group 1, column list in group 2. Tried in order.
TABLE_SHORTHAND_PATTERNS: Tuple[Pattern, ...] = (
    # table called X with A, B
    re.compile(
        r"table\s+(?:called|named|titled|for|to\s+track)\s+[\"']?(.+?)[\"']?\s*"
        r"(?:\s+(?:with|w\/|columns?|fields?|cols?|including)|[:\-→>])\s+(.+)$",
        re.IGNORECASE,
    ),
    # X table: A, B
    re.compile(
        r"^(?:.*?\b)?[\"']?(.+?)[\"']?\s+table\s*"
        r"(?:\.?\s+(?:with|w\/|columns?|fields?|cols?|including|are|is)|[:\-→>])\s+(.+)$",
        re.IGNORECASE,
    ),
    # table X with A, B
    re.compile(
        r"table\s+[\"']?(.+?)[\"']?\s*"
        r"(?:\s+(?:with|w\/|columns?|fields?|cols?|including|are|is)|[:\-→>])\s+(.+)$",
        re.IGNORECASE,
    ),
    # X: columns A, B
    re.compile(
        r"^[\"']?(.+?)[\"']?\s*[:]\s+(?:columns?|fields?|cols?)\s+(.+)$",
        re.IGNORECASE,
    ),
)

# "X with A, B and C". Only for direct parsing; far too loose for the matcher.
BARE_SHORTHAND_PATTERN = re.compile(
    r"^[\"']?(.+?)[\"']?\s+(?:with|w/|including)\s+(.+)$",
    re.IGNORECASE,
)

_TITLE_PREFIX = re.compile(
    r"^(?:create|make|make me|build|new|need|i need|set up|can u|can you|i want|pls|please|"
    r"set up a new|a|an|the|my|me|me a|called|named|for|titled|to track|spreadsheet-like)\s+",
    re.IGNORECASE,
)
_TITLE_SUFFIX = re.compile(r"\s+(?:w|w\/|with|columns?|fields?|cols?|including|table)$", re.IGNORECASE)
_TITLE_TRAILING = re.compile(r"[-\s]+$")
_EDGE_QUOTES = re.compile(r"^[\"']|[\"']$")
_ARTICLE_ONLY = re.compile(r"^(?:a|an|the|my|me)$", re.IGNORECASE)

_COLUMN_KEYWORD = re.compile(r"^(?:columns?|fields?|cols?)\s*:?\s+", re.IGNORECASE)
_SIMPLE_WORDS = re.compile(r"^[a-z0-9_ ]+$", re.IGNORECASE)


def normalize_command(command: str) -> str:
    """Trim, then drop trailing politeness words and one trailing period."""
    normalized = _POLITENESS.sub("", command.strip(), count=1)
    return _TRAILING_PERIOD.sub("", normalized, count=1)


def is_multi_step_command(command: str) -> bool:
    return bool(_MULTI_STEP_CONNECTORS.search(command) or _AND_VERB.search(command))


def parse_column_list(raw: str) -> List[str]:
    """
    Parse a column list from natural language.

    Handles "A, B, and C", "A, B, C", "A and B", "A / B / C", "A; B; C" and a
    space-separated list of simple words ("name region population").
    """
    raw = _COLUMN_KEYWORD.sub("", raw.strip(), count=1)
    parts = [p.strip() for p in re.split(r"[,;/]+", raw) if p.strip()]

    if len(parts) == 1 and " " in parts[0] and not re.search(r"\band\b", parts[0], re.IGNORECASE):
        if _SIMPLE_WORDS.match(parts[0]):
            parts = parts[0].split()

    columns = []
    for part in parts:
        # Oxford comma leaves "and " at the start of the last segment
        stripped = re.sub(r"^and\s+", "", part, flags=re.IGNORECASE)
        for name in re.split(r"\s+and\s+", stripped, flags=re.IGNORECASE):
            name = _EDGE_QUOTES.sub("", name.strip())
            if name:
                columns.append(name)
    return columns


def _clean_title(title: str) -> str:
    # Filler stacks up ("make me an Inventory"), so strip until stable
    title = title.strip()
    stripped = _TITLE_PREFIX.sub("", title, count=1)
    while stripped != title:
        title = stripped
        stripped = _TITLE_PREFIX.sub("", title, count=1)
    title = _TITLE_SUFFIX.sub("", title, count=1)
    title = _TITLE_TRAILING.sub("", title)
    title = _EDGE_QUOTES.sub("", title)
    return title.strip()


def parse_table_shorthand(text: str, allow_bare: bool = True) -> Optional[Tuple[str, List[str]]]:
    """
    Extract ``(title, columns)`` from a table shorthand, or ``None``.

    Example:
        parse_table_shorthand("create a table called Budget with columns Item and Cost")
        # ("Budget", ["Item", "Cost"])
    """
    patterns = TABLE_SHORTHAND_PATTERNS + ((BARE_SHORTHAND_PATTERN,) if allow_bare else ())
    match: Optional[Match] = None
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            break
    if match is None:
        return None

    title = _clean_title(match.group(1))
    if len(title) <= 1 or _ARTICLE_ONLY.match(title):
        return None
    columns = parse_column_list(match.group(2))
    if not columns:
        return None
    return title, columns


def _extract_table_id(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    table = data.get("table")
    if isinstance(table, dict) and table.get("id"):
        return table["id"]
    return data.get("id")


# ---------------------------------------------------------------------------
# Single-action patterns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SimpleCommandPattern:
    """One regex bound to one tool and a response template."""

    name: str
    pattern: Pattern
    tool: str
    extract_args: Callable[[Match, ExecutionContext], Dict[str, Any]]
    respond: Callable[[ToolCallResult, Dict[str, Any]], str]


def _named(entity: str) -> Pattern:
    return re.compile(
        rf"^create\s+(?:a\s+)?(?:new\s+)?{entity}\s+(?:called|named|titled)\s+[\"']?(.+?)[\"']?\s*$",
        re.IGNORECASE,
    )


def _created(label: str, key: str) -> Callable[[ToolCallResult, Dict[str, Any]], str]:
    def respond(result: ToolCallResult, args: Dict[str, Any]) -> str:
        if result.success:
            return f'Created {label} "{args[key]}".'
        return f"Failed to create {label}: {result.error}"
    return respond


def _as_list(data: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get(key) or data.get("results") or data.get("items")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _respond_tasks(result: ToolCallResult, args: Dict[str, Any]) -> str:
    if not result.success:
        return f"Failed to search tasks: {result.error}"
    tasks = _as_list(result.data, "tasks")
    if not tasks:
        return "No tasks found."
    lines = "\n".join(f"• {t.get('title')} ({t.get('status') or 'todo'})" for t in tasks[:10])
    return f"Found {len(tasks)} task(s):\n{lines}"


def _respond_projects(result: ToolCallResult, args: Dict[str, Any]) -> str:
    if not result.success:
        return f"Failed to search projects: {result.error}"
    projects = _as_list(result.data, "projects")
    if not projects:
        return "No projects found."
    lines = "\n".join(f"• {p.get('name')}" for p in projects[:10])
    return f"Found {len(projects)} project(s):\n{lines}"


SIMPLE_PATTERNS: Tuple[SimpleCommandPattern, ...] = (
    SimpleCommandPattern(
        name="create_table",
        pattern=_named("table"),
        tool="createTable",
        extract_args=lambda m, ctx: {
            "title": m.group(1).strip(),
            "workspaceId": ctx.workspace_id,
            "projectId": ctx.current_project_id,
            "tabId": ctx.current_tab_id,
        },
        respond=_created("table", "title"),
    ),
    SimpleCommandPattern(
        name="create_task",
        pattern=_named("task"),
        tool="createTaskItem",
        extract_args=lambda m, ctx: {
            "title": m.group(1).strip(),
            "workspaceId": ctx.workspace_id,
            "projectId": ctx.current_project_id,
        },
        respond=_created("task", "title"),
    ),
    SimpleCommandPattern(
        name="create_project",
        pattern=_named("project"),
        tool="createProject",
        extract_args=lambda m, ctx: {
            "name": m.group(1).strip(),
            "workspaceId": ctx.workspace_id,
        },
        respond=_created("project", "name"),
    ),
    SimpleCommandPattern(
        name="list_tasks",
        pattern=re.compile(r"^(?:show|list|get)\s+(?:my\s+)?tasks?\s*$", re.IGNORECASE),
        tool="searchTasks",
        extract_args=lambda m, ctx: {"workspaceId": ctx.workspace_id, "limit": 20},
        respond=_respond_tasks,
    ),
    SimpleCommandPattern(
        name="list_projects",
        pattern=re.compile(r"^(?:show|list|get)\s+(?:my\s+)?projects?\s*$", re.IGNORECASE),
        tool="searchProjects",
        extract_args=lambda m, ctx: {"workspaceId": ctx.workspace_id, "limit": 20},
        respond=_respond_projects,
    ),
)


class FastPathMatcher:
    """
    Runs recognized simple commands directly against the tool executor.

    Example:
        matcher = FastPathMatcher(tool_executor)
        result = await matcher.try_execute("list my tasks", context)
        if result is None:
            ...  # fall through to the conversation loop
    """

    def __init__(
        self,
        tool_executor: ToolExecutorProtocol,
        patterns: Tuple[SimpleCommandPattern, ...] = SIMPLE_PATTERNS,
    ):
        self.tool_executor = tool_executor
        self.patterns = patterns

    async def try_execute(self, command: str, context: ExecutionContext) -> Optional[ExecutionResult]:
        start = time.monotonic()
        normalized = normalize_command(command)

        if is_multi_step_command(normalized):
            logger.debug(f"[FastPath] skip multi-step: {normalized[:80]}")
            return None

        result = None
        if _TABLE_INDICATOR.search(normalized) or _COLUMNS_INDICATOR.search(normalized):
            parsed = parse_table_shorthand(normalized, allow_bare=False)
            if parsed is not None:
                result = await self._create_table_with_columns(parsed[0], parsed[1], context)

        if result is None:
            result = await self._run_simple_pattern(normalized, context)

        if result is not None:
            result.fast_path = True
            result.duration_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                f"[FastPath] handled in {result.duration_ms}ms, "
                f"success={result.success}, tools={[r.tool for r in result.tool_calls_made]}"
            )
        return result

    async def _create_table_with_columns(
        self, title: str, columns: List[str], context: ExecutionContext
    ) -> ExecutionResult:
        logger.info(f"[FastPath] table shorthand: title={title!r} columns={columns}")
        table_args = {
            "title": title,
            "workspaceId": context.workspace_id,
            "projectId": context.current_project_id,
            "tabId": context.current_tab_id,
        }
        table_result = await run_tool(self.tool_executor, "createTable", table_args, context)
        records = [ToolCallRecord("createTable", table_args, table_result)]

        if not table_result.success:
            return ExecutionResult(
                success=False,
                response=f"Failed to create table: {table_result.error}",
                tool_calls_made=records,
                error=table_result.error,
            )

        table_id = _extract_table_id(table_result.data)
        if not table_id:
            return ExecutionResult(
                success=False,
                response="Failed to create table: no tableId returned.",
                tool_calls_made=records,
                error="no tableId returned",
            )

        fields_args = {
            "tableId": table_id,
            "fields": [{"name": name, "type": "text"} for name in columns],
        }
        fields_result = await run_tool(self.tool_executor, "bulkCreateFields", fields_args, context)
        records.append(ToolCallRecord("bulkCreateFields", fields_args, fields_result))

        if fields_result.success:
            response = f'Created table "{title}" with columns: {", ".join(columns)}.'
        else:
            response = f'Created table "{title}" but failed to add columns: {fields_result.error}'
        return ExecutionResult(
            success=fields_result.success,
            response=response,
            tool_calls_made=records,
            error=None if fields_result.success else fields_result.error,
        )

    async def _run_simple_pattern(self, normalized: str, context: ExecutionContext) -> Optional[ExecutionResult]:
        for simple in self.patterns:
            match = simple.pattern.search(normalized)
            if not match:
                continue
            args = simple.extract_args(match, context)
            logger.debug(f"[FastPath] pattern={simple.name} tool={simple.tool}")
            result = await run_tool(self.tool_executor, simple.tool, args, context)
            return ExecutionResult(
                success=result.success,
                response=simple.respond(result, args),
                tool_calls_made=[ToolCallRecord(simple.tool, args, result)],
                error=result.error,
            )
        return None
