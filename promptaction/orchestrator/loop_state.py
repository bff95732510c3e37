"""Per-execution trackers for the conversation loop.

One ``LoopState`` lives for exactly one command execution. It is only ever
updated after a round's tool calls have joined, in original call order.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..models import ToolCallResult
from ..tools.catalog import is_search_like

logger = logging.getLogger(__name__)

# Tools whose successful call marks task ids as handled
BATCH_UPDATE_TOOLS = (
    "updateTaskItem",
    "bulkUpdateTaskItems",
    "bulkSetTaskAssignees",
    "setTaskAssignees",
    "setTaskTags",
    "bulkMoveTaskItems",
)

TASK_SEARCH_TOOL = "searchTasks"


def call_signature(name: str, arguments: Dict[str, Any]) -> str:
    """Stable identity of a tool call: name plus key-sorted JSON arguments."""
    return f"{name}:{json.dumps(arguments, sort_keys=True, default=str)}"


def extract_ids(data: Any) -> List[str]:
    """Ids of the records in a search result, in result order."""
    if isinstance(data, dict):
        for key in ("tasks", "items", "results", "data"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
    if not isinstance(data, list):
        return []
    ids = []
    for item in data:
        if isinstance(item, dict) and item.get("id") is not None:
            ids.append(str(item["id"]))
    return ids


def _task_ids_in(arguments: Dict[str, Any]) -> Set[str]:
    ids: Set[str] = set()
    for key in ("taskId", "id"):
        if arguments.get(key):
            ids.add(str(arguments[key]))
    for key in ("taskIds", "ids"):
        value = arguments.get(key)
        if isinstance(value, list):
            ids.update(str(v) for v in value if v)
    updates = arguments.get("updates")
    if isinstance(updates, list):
        for update in updates:
            if isinstance(update, dict):
                ids.update(_task_ids_in(update))
    return ids


@dataclass
class LoopState:
    """Mutable trackers of one execution."""

    workspace_id: str = ""
    repeat_threshold: int = 2
    max_consecutive_errors: int = 3

    iterations: int = 0
    last_signature: Optional[str] = None
    repeat_count: int = 0
    consecutive_errors: Dict[str, int] = field(default_factory=dict)

    # Most recent searchTasks ids, used to fill omitted taskIds
    harvested_task_ids: List[str] = field(default_factory=list)
    # Most recent multi-result searchTasks ids and the ones updated since
    batch_ids: List[str] = field(default_factory=list)
    updated_ids: Set[str] = field(default_factory=set)
    batch_nudges: int = 0
    # Set when the command asks for updates: the batch is open from the search on
    expects_batch_update: bool = False

    escalated: bool = False
    has_tool_results: bool = False
    token_usage: Dict[str, int] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Repeat guard
    # ------------------------------------------------------------------

    def record_signature(self, name: str, arguments: Dict[str, Any]) -> bool:
        """Track the call; True when a non-search call hit the repeat threshold."""
        signature = call_signature(name, arguments)
        if signature == self.last_signature:
            self.repeat_count += 1
        else:
            self.last_signature = signature
            self.repeat_count = 1
        return not is_search_like(name) and self.repeat_count >= self.repeat_threshold

    # ------------------------------------------------------------------
    # Consecutive-error guard
    # ------------------------------------------------------------------

    def record_outcome(self, name: str, result: ToolCallResult) -> bool:
        """Track per-tool failures; True when *name* failed too often in a row."""
        if result.success:
            self.consecutive_errors[name] = 0
            return False
        count = self.consecutive_errors.get(name, 0) + 1
        self.consecutive_errors[name] = count
        return count >= self.max_consecutive_errors

    # ------------------------------------------------------------------
    # Search -> update batches
    # ------------------------------------------------------------------

    def record_batch_progress(self, name: str, arguments: Dict[str, Any], result: ToolCallResult) -> None:
        if not result.success:
            return
        if name == TASK_SEARCH_TOOL:
            ids = extract_ids(result.data)
            self.harvested_task_ids = ids
            if len(ids) > 1:
                self.batch_ids = ids
                self.updated_ids = set()
                logger.debug(f"[Loop] tracking batch of {len(ids)} task ids")
        elif name in BATCH_UPDATE_TOOLS and self.batch_ids:
            self.updated_ids.update(_task_ids_in(arguments))

    def remaining_batch_ids(self) -> List[str]:
        """Searched ids not updated yet; empty when no batch is open."""
        if not self.batch_ids:
            return []
        if not self.updated_ids and not self.expects_batch_update:
            return []
        return [i for i in self.batch_ids if i not in self.updated_ids]

    def add_usage(self, usage: Any) -> None:
        if usage is None:
            return
        for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
            self.token_usage[key] = self.token_usage.get(key, 0) + int(getattr(usage, key, 0) or 0)
