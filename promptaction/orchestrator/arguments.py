"""Argument pre-processing for model-issued tool calls.

Fills ids the model may leave out: the ids of what the user is looking at
(from ``ExecutionContext``) and task ids harvested from the most recent
``searchTasks`` round. Explicit arguments always win.
"""

import logging
from typing import Any, Dict, List

from ..models import ExecutionContext
from ..tools.catalog import ToolCatalog

logger = logging.getLogger(__name__)

# argument -> ExecutionContext attribute; targets, filled for every tool
TARGET_ARGUMENTS = (
    ("tableId", "context_table_id"),
    ("blockId", "context_block_id"),
)

# scope arguments act as filters on searches, so only write tools get them
SCOPE_ARGUMENTS = (
    ("tabId", "current_tab_id"),
    ("projectId", "current_project_id"),
)

# Derived-creation tools that accept ids from a prior task search
HARVESTED_ID_TOOLS = (
    "createTaskBoardFromTasks",
    "duplicateTasksToBlock",
    "bulkMoveTaskItems",
)


def _missing(arguments: Dict[str, Any], key: str) -> bool:
    value = arguments.get(key)
    return value is None or value == "" or value == []


def prepare_arguments(
    name: str,
    arguments: Dict[str, Any],
    context: ExecutionContext,
    catalog: ToolCatalog,
    harvested_task_ids: List[str],
) -> Dict[str, Any]:
    """Return a copy of *arguments* with omitted context ids filled in."""
    prepared = dict(arguments)
    filled = []

    candidates = list(TARGET_ARGUMENTS)
    if not catalog.is_read_only(name):
        candidates.extend(SCOPE_ARGUMENTS)

    for key, attribute in candidates:
        value = getattr(context, attribute)
        if value and catalog.accepts(name, key) and _missing(prepared, key):
            prepared[key] = value
            filled.append(key)

    if (
        name in HARVESTED_ID_TOOLS
        and harvested_task_ids
        and catalog.accepts(name, "taskIds")
        and _missing(prepared, "taskIds")
    ):
        prepared["taskIds"] = list(harvested_task_ids)
        filled.append("taskIds")

    if filled:
        logger.debug(f"[Loop] {name}: filled {', '.join(filled)}")
    return prepared
