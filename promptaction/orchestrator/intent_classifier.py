"""Intent Classifier - decides which tool groups a command needs.

A pure, regex-table classifier that runs before any model call:
1. Special patterns (compound phrasings) short-circuit with high confidence
2. Otherwise entities and actions are detected independently
3. Read-only commands get the core group only
4. Write commands add the groups of the detected entities

This is a best-effort heuristic. Downstream stages tolerate under- and
over-classification through the capability-escalation handshake.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from re import Pattern
from typing import Iterable, List, Optional, Tuple

from ..tools.catalog import TOOL_GROUPS, ToolCatalog, default_catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentClassification:
    """Result of intent classification. Immutable; merge instead of mutating."""

    tool_groups: Tuple[str, ...]  # "core" first
    confidence: float
    entities: Tuple[str, ...] = ()
    actions: Tuple[str, ...] = ()
    reasoning: str = ""

    @property
    def extra_groups(self) -> Tuple[str, ...]:
        """Groups beyond core."""
        return tuple(g for g in self.tool_groups if g != "core")

    @property
    def has_write_action(self) -> bool:
        return any(a in WRITE_ACTIONS for a in self.actions)

    def merged_with(self, groups: Iterable[str], reasoning: Optional[str] = None) -> "IntentClassification":
        """Return a new classification with *groups* added (order kept)."""
        merged = list(self.tool_groups)
        for group in groups:
            if group in TOOL_GROUPS and group not in merged:
                merged.append(group)
        return replace(
            self,
            tool_groups=tuple(merged),
            reasoning=reasoning or self.reasoning,
        )


@dataclass(frozen=True)
class SpecialPattern:
    """Compound phrasing that overrides standard detection."""

    pattern: Pattern
    tool_groups: Tuple[str, ...]
    actions: Tuple[str, ...]
    reasoning: str


# ---------------------------------------------------------------------------
# Pattern tables
# ---------------------------------------------------------------------------

def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# What things are being referenced? Order is the order entities are reported.
ENTITY_PATTERNS = {
    "task": _compile(
        r"\btask(?:s|item)?\b",
        r"\bto-?do(?:s)?\b",
        r"\bassign(?:ee|ment)?\b",
        r"\btag(?:s)?\b",
        r"\bsubtask(?:s)?\b",
    ),
    "project": _compile(
        r"\bproject(?:s)?\b",
        r"\bclient(?:s)?\b",
    ),
    "workspace": _compile(
        r"\bworkspace(?:s)?\b",
    ),
    "table": _compile(
        r"\btable(?:s)?\b",
        r"\brow(?:s)?\b",
        r"\bfield(?:s)?\b",
        r"\bcolumn(?:s)?\b",
        r"\bcell(?:s)?\b",
        r"\bspreadsheet(?:s)?\b",
        r"\bdata\s+table",
    ),
    "timeline": _compile(
        r"\btimeline(?:s)?\b",
        r"\bevent(?:s)?\b",
        r"\bmilestone(?:s)?\b",
        r"\bgantt",
        r"\bdependenc(?:y|ies)",
    ),
    "block": _compile(
        r"\bblock(?:s)?\b",
        r"\bsection(?:s)?\b",
        r"\btext block",
        r"\bimage block",
        r"\bchart(?:s)?\b",
        r"\bgraph(?:s)?\b",
        r"\bplot(?:s|ting)?\b",
        r"\bvisuali[sz]e\b",
    ),
    "tab": _compile(
        r"\btab(?:s)?\b",
        r"\bpage(?:s)?\b",
    ),
    "doc": _compile(
        r"\bdoc(?:s|ument)?(?:s)?\b",
        r"\bnote(?:s)?\b",
    ),
    "file": _compile(
        r"\bfile(?:s)?\b",
        r"\battachment(?:s)?\b",
        r"\bupload(?:s|ed|ing)?\b",
    ),
    "client": _compile(
        r"\bclient(?:s)?\b",
        r"\bcompany(?:ies)?\b",
        r"\bcustomer(?:s)?\b",
    ),
    "shopify": _compile(
        r"\bshopify\b",
        r"\bproduct(?:s)?\b",
        r"\bstore(?:s)?\b",
        r"\bshop\b",
        r"\binventory\b",
        r"\bvariant(?:s)?\b",
        r"\bsku(?:s)?\b",
        r"\bvendor(?:s)?\b",
        r"\bsales?\b",
        r"\border(?:s)?\b",
    ),
}

# What operations are being requested?
ACTION_PATTERNS = {
    # Read-only
    "search": _compile(
        r"\bsearch(?:ing)?\b",
        r"\bfind(?:ing)?\b",
        r"\blook(?:ing)?\s+(?:for|up)\b",
        r"\bget(?:ting)?\b",
        r"\bshow(?:ing)?\b",
        r"\blist(?:ing)?\b",
        r"\bdisplay(?:ing)?\b",
        r"\bview(?:ing)?\b",
    ),
    # Writes
    "create": _compile(
        r"\bcreate(?:ing)?\b",
        r"\badd(?:ing)?\b",
        r"\bnew\b",
        r"\bmake(?:ing)?\b",
        r"\binsert(?:ing)?\b",
        r"\bgenerate(?:ing)?\b",
        r"\bpopulate(?:ing)?\b",
        r"\bbuild(?:ing)?\b",
    ),
    "update": _compile(
        r"\bupdate(?:ing)?\b",
        r"\bedit(?:ing)?\b",
        r"\bmodif(?:y|ying)\b",
        r"\bchange(?:ing)?\b",
        r"\brename(?:ing)?\b",
        r"\bset(?:ting)?\b",
        r"\balter(?:ing)?\b",
        r"\bmark(?:ing)?\b",
        r"\bmove(?:ing)?\b",
        r"\breassign(?:ing)?\b",
    ),
    "delete": _compile(
        r"\bdelete(?:ing)?\b",
        r"\bremove(?:ing)?\b",
        r"\bclear(?:ing)?\b",
        r"\barchive(?:ing)?\b",
    ),
    "organize": _compile(
        r"\borganiz(?:e|ing)\b",
        r"\bgroup(?:ing)?\b",
        r"\bsort(?:ing)?\b",
        r"\bfilter(?:ing)?\b",
        r"\bcategoriz(?:e|ing)\b",
    ),
}

WRITE_ACTIONS = ("create", "update", "delete", "organize")

# First match wins. Compound patterns must precede the plain search pattern.
SPECIAL_PATTERNS: Tuple[SpecialPattern, ...] = (
    SpecialPattern(
        pattern=re.compile(r"(?:search|find).*tasks?.*(?:and|then).*(?:create|organize).*table", re.IGNORECASE),
        tool_groups=("core", "table"),
        actions=("search", "create"),
        reasoning="Search tasks and organize into table - needs table creation tools",
    ),
    SpecialPattern(
        pattern=re.compile(r"organize\s+(?:all\s+)?.*?(?:by|into)", re.IGNORECASE),
        tool_groups=("core", "table"),
        actions=("organize",),
        reasoning="Organizing data - needs table tools for structured organization",
    ),
    SpecialPattern(
        pattern=re.compile(r"create\s+(?:a\s+)?table\s+(?:with|of|for|containing)", re.IGNORECASE),
        tool_groups=("core", "table"),
        actions=("create",),
        reasoning="Creating a table with data - needs table creation and population tools",
    ),
    SpecialPattern(
        pattern=re.compile(r"^(?:search|find|show|list|get|display)\s+(?:all\s+)?tasks?\b", re.IGNORECASE),
        tool_groups=("core",),
        actions=("search",),
        reasoning="Read-only task search - only core search tools needed",
    ),
    SpecialPattern(
        pattern=re.compile(r"(?:update|edit|modify|change)\s+(?:all\s+)?tasks?\b", re.IGNORECASE),
        tool_groups=("core", "task"),
        actions=("update",),
        reasoning="Modifying tasks - needs task update tools",
    ),
)

# Create/modify phrasing that counts as a write even without an action verb
CREATE_OR_MODIFY_INDICATORS = _compile(
    r"with.*(?:columns?|fields?|rows?)",
    r"(?:add|set|mark|assign).*(?:to|as)\b",
    r"populate(?:d)?\s+with",
    r"(?:\d+|many|multiple|several)\s+(?:tasks?|rows?|items?)",
)

_CONTEXTUAL_PROJECT = re.compile(r"\b(?:in|on|for)\s+the\s+project\b", re.IGNORECASE)

ENTITY_TO_GROUP = {
    "task": "task",
    "project": "project",
    "table": "table",
    "timeline": "timeline",
    "block": "block",
    "tab": "tab",
    "doc": "doc",
    "file": "file",
    "client": "client",
    "workspace": "workspace",
    "shopify": "shopify",
    "product": "shopify",
}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def detect_entities(text: str) -> List[str]:
    return [
        entity for entity, patterns in ENTITY_PATTERNS.items()
        if any(p.search(text) for p in patterns)
    ]


def detect_actions(text: str) -> List[str]:
    return [
        action for action, patterns in ACTION_PATTERNS.items()
        if any(p.search(text) for p in patterns)
    ]


def has_create_or_modify_intent(text: str) -> bool:
    """Write intent phrased without an explicit action verb."""
    return any(p.search(text) for p in CREATE_OR_MODIFY_INDICATORS)


def calculate_confidence(entities: List[str], actions: List[str]) -> float:
    confidence = 0.5
    if entities:
        confidence += 0.2
    if len(entities) > 1:
        confidence += 0.1
    if actions:
        confidence += 0.2
    return round(min(confidence, 1.0), 2)


def _build_reasoning(entities: List[str], actions: List[str], groups: List[str]) -> str:
    parts = []
    if entities:
        parts.append(f"Entities: {', '.join(entities)}")
    if actions:
        parts.append(f"Actions: {', '.join(actions)}")
    if len(groups) == 1:
        parts.append("Core search tools only")
    else:
        parts.append(f"Tool groups: {', '.join(g for g in groups if g != 'core')}")
    return " | ".join(parts)


def classify(command: str) -> IntentClassification:
    """Classify a command into the tool groups it needs. Pure function."""
    for special in SPECIAL_PATTERNS:
        if special.pattern.search(command):
            logger.debug(f"[Intent] special match: {special.reasoning}")
            return IntentClassification(
                tool_groups=special.tool_groups,
                confidence=0.95,
                entities=(),
                actions=special.actions,
                reasoning=special.reasoning,
            )

    text = command.lower()
    entities = detect_entities(text)
    actions = detect_actions(text)
    create_or_modify = has_create_or_modify_intent(text)

    is_read_only = bool(actions) and all(a == "search" for a in actions)
    if is_read_only and not create_or_modify:
        # Commerce reads live in the shopify group, not in core
        return IntentClassification(
            tool_groups=("core", "shopify") if "shopify" in entities else ("core",),
            confidence=0.85,
            entities=tuple(entities),
            actions=tuple(actions),
            reasoning="Read-only query - core search tools sufficient",
        )

    groups = ["core"]
    has_write = any(a in WRITE_ACTIONS for a in actions)

    if has_write or create_or_modify:
        for entity in entities:
            # "in the project" is context, not a target
            if entity == "project" and _CONTEXTUAL_PROJECT.search(text):
                continue
            group = ENTITY_TO_GROUP.get(entity)
            if group and group not in groups:
                groups.append(group)

    # Commerce tools include their own reads, so the group is always needed
    if "shopify" in entities and "shopify" not in groups:
        groups.append("shopify")

    # Writes without a recognizable entity: infer from wording
    if len(groups) == 1 and has_write:
        if "assign" in text:
            groups.append("task")
        if "data" in text or "rows" in text or "fields" in text:
            groups.append("table")

    classification = IntentClassification(
        tool_groups=tuple(groups),
        confidence=calculate_confidence(entities, actions),
        entities=tuple(entities),
        actions=tuple(actions),
        reasoning=_build_reasoning(entities, actions, groups),
    )
    logger.debug(f"[Intent] {classification.reasoning} (confidence={classification.confidence})")
    return classification


def groups_from_text(text: str, catalog: Optional[ToolCatalog] = None) -> Tuple[str, ...]:
    """
    Map free text (e.g. a model saying it lacks a tool) to tool groups.

    Recognizes literal group names, tool names, and entity keywords.
    Never returns "core".
    """
    catalog = catalog or default_catalog()
    found: List[str] = []

    def _add(group: Optional[str]) -> None:
        if group and group != "core" and group in TOOL_GROUPS and group not in found:
            found.append(group)

    for name in catalog.names:
        if re.search(rf"\b{re.escape(name)}\b", text):
            tool = catalog.get(name)
            if tool is not None:
                _add(tool.category)

    lowered = text.lower()
    for group in TOOL_GROUPS:
        if re.search(rf"\b{group}\s+(?:tools?|group)\b", lowered):
            _add(group)

    for entity in detect_entities(lowered):
        _add(ENTITY_TO_GROUP.get(entity))

    return tuple(found)


def coerce_groups(value: object) -> Tuple[str, ...]:
    """Validate a ``toolGroups`` argument from the escalation tool."""
    if isinstance(value, str):
        value = [v.strip() for v in value.split(",")]
    if not isinstance(value, (list, tuple)):
        return ()
    groups: List[str] = []
    for item in value:
        group = str(item).strip().lower()
        if group in TOOL_GROUPS and group != "core" and group not in groups:
            groups.append(group)
    return tuple(groups)
