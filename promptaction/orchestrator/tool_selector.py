"""
Tool capability selector - picks the tool schemas sent to the model.

Rules, applied in sequence:

1. **Core** -- the always-on search/resolve set plus the escalation tool.
2. **Groups** -- every non-core group of the classification.
3. **Narrow-to-intent** -- a confidently table-only command drops the
   entity-specific searches, re-adding one only when its keyword is still in
   the command text.
4. **Single-action** -- one group and one create/update/delete action keeps
   only the write tools registered for that pair; read tools stay.

The escalation tool survives every rule. Formatted schemas are cached by the
sorted tool-name signature in a ``SchemaCache`` owned by the executor.

Usage::

    selector = ToolSelector(default_catalog(), ExecutorConfig(), SchemaCache())
    schemas = selector.select(classify(command), command)
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import ExecutorConfig
from ..tools.catalog import ESCALATION_TOOL, ToolCatalog
from .intent_classifier import IntentClassification

logger = logging.getLogger(__name__)

NARROW_CONFIDENCE = 0.85

SINGLE_ACTIONS = ("create", "update", "delete")

# Core tools a table-only command keeps unconditionally
TABLE_INTENT_CORE = (
    ESCALATION_TOOL,
    "resolveEntityByName",
    "searchTables",
    "searchTableRows",
    "getTableSchema",
)

# keyword in command -> core search tool re-added under narrow-to-intent
KEYWORD_SEARCH_TOOLS = {
    "task": "searchTasks",
    "project": "searchProjects",
    "tab": "searchTabs",
    "page": "searchTabs",
    "member": "searchWorkspaceMembers",
    "assignee": "searchWorkspaceMembers",
    "client": "searchClients",
    "doc": "searchDocs",
    "file": "searchFiles",
    "timeline": "searchTimelineEvents",
    "block": "searchBlocks",
    "tag": "searchTags",
}


@dataclass
class SchemaCacheEntry:
    schemas: List[Dict[str, Any]]
    approx_size: int  # chars of the JSON payload


class SchemaCache:
    """
    Formatted tool schemas keyed by sorted tool-name signature.

    Entries are write-once per key and never evicted; the key space is bounded
    by the number of distinct tool-group combinations.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, ...], SchemaCacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def signature(names: Iterable[str]) -> Tuple[str, ...]:
        return tuple(sorted(set(names)))

    def get_or_build(
        self,
        names: List[str],
        build: Callable[[List[str]], List[Dict[str, Any]]],
    ) -> SchemaCacheEntry:
        key = self.signature(names)
        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            return entry

        self.misses += 1
        schemas = build(names)
        entry = SchemaCacheEntry(schemas=schemas, approx_size=len(json.dumps(schemas)))
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


class ToolSelector:
    """Maps an intent classification to the tool schemas for one request."""

    def __init__(
        self,
        catalog: ToolCatalog,
        config: Optional[ExecutorConfig] = None,
        cache: Optional[SchemaCache] = None,
    ):
        self.catalog = catalog
        self.config = config or ExecutorConfig()
        self.cache = cache if cache is not None else SchemaCache()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, classification: IntentClassification, command: str) -> List[Dict[str, Any]]:
        """Ordered, deduplicated OpenAI-format schemas for this command."""
        names = self.select_names(classification, command)
        entry = self.cache.get_or_build(names, self._format)
        logger.debug(
            f"[Tools] {len(entry.schemas)} schemas (~{entry.approx_size} chars), "
            f"cache hits={self.cache.hits} misses={self.cache.misses}"
        )
        return entry.schemas

    def select_names(self, classification: IntentClassification, command: str) -> List[str]:
        groups = classification.extra_groups
        core = list(self.catalog.core_names)

        if self._is_table_only(classification) and self.config.trim_core_tools:
            core = self._narrow_core(core, command)

        selected: Dict[str, None] = dict.fromkeys(core)
        for group in groups:
            for tool in self.catalog.group_tools(group):
                selected.setdefault(tool.name)

        action = self._single_action(classification)
        if action is not None:
            selected = dict.fromkeys(self._narrow_to_action(list(selected), groups[0], action))

        # Escalation must always be reachable
        if ESCALATION_TOOL in self.catalog and ESCALATION_TOOL not in selected:
            selected[ESCALATION_TOOL] = None

        names = list(selected)
        logger.info(
            f"[Tools] groups={list(classification.tool_groups)} -> {len(names)} tools"
            + (f" (single-action: {action})" if action else "")
        )
        return names

    def expand(self, classification: IntentClassification, groups: Iterable[str]) -> IntentClassification:
        """Merge *groups* into the classification for the escalation handshake."""
        groups = [g for g in groups if g not in classification.tool_groups]
        if not groups:
            return classification
        return classification.merged_with(
            groups,
            reasoning=f"{classification.reasoning} | Escalated: {', '.join(groups)}",
        )

    # ------------------------------------------------------------------
    # Narrowing rules
    # ------------------------------------------------------------------

    @staticmethod
    def _is_table_only(classification: IntentClassification) -> bool:
        return classification.extra_groups == ("table",) and classification.confidence >= NARROW_CONFIDENCE

    def _narrow_core(self, core: List[str], command: str) -> List[str]:
        text = command.lower()
        keep = set(TABLE_INTENT_CORE)
        for keyword, tool_name in KEYWORD_SEARCH_TOOLS.items():
            if re.search(rf"\b{keyword}s?\b", text):
                keep.add(tool_name)
        narrowed = [name for name in core if name in keep]
        logger.debug(f"[Tools] narrow-to-intent: core {len(core)} -> {len(narrowed)}")
        return narrowed

    @staticmethod
    def _single_action(classification: IntentClassification) -> Optional[str]:
        if len(classification.extra_groups) != 1 or len(classification.actions) != 1:
            return None
        action = classification.actions[0]
        if action not in SINGLE_ACTIONS or classification.confidence < NARROW_CONFIDENCE:
            return None
        return action

    def _narrow_to_action(self, names: List[str], group: str, action: str) -> List[str]:
        allowed = self.catalog.action_tools(action, group)
        if not allowed:
            return names
        group_names = {t.name for t in self.catalog.group_tools(group)}
        return [
            name for name in names
            if name not in group_names or name in allowed or self.catalog.is_read_only(name)
        ]

    def _format(self, names: List[str]) -> List[Dict[str, Any]]:
        schemas = []
        for name in names:
            tool = self.catalog.get(name)
            if tool is not None:
                schemas.append(tool.to_openai_schema())
        return schemas
