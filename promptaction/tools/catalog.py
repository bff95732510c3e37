"""
Tool catalog - static tool definitions and their grouping.

Tool definitions are configuration data (``catalog.yaml``); this module loads
them and answers the membership questions the selector and the loop ask:
which tools are core, which belong to a group, which are read-only, and which
write tools are registered for an (action, group) pair.
"""

import logging
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_CATALOG_PATH = pathlib.Path(__file__).resolve().parent / "catalog.yaml"

ESCALATION_TOOL = "requestToolGroups"

# Name prefixes of tools that never change state
SEARCH_PREFIXES = ("search", "get", "resolve", "list")

READ_ONLY_CATEGORIES = ("search", "control")

TOOL_GROUPS = (
    "core",
    "task",
    "project",
    "table",
    "timeline",
    "block",
    "tab",
    "doc",
    "file",
    "client",
    "property",
    "comment",
    "workspace",
    "shopify",
)


def is_search_like(name: str) -> bool:
    """True for tools whose name marks them as lookups."""
    return name.startswith(SEARCH_PREFIXES)


@dataclass
class ToolDefinition:
    """A tool the model may call.

    Attributes:
        name: Tool function name (used in LLM tool_calls).
        description: What this tool does (shown to the LLM).
        category: Group the tool belongs to ("search", "control", "task", ...).
        parameters: JSON Schema properties for the tool arguments.
        required: Names of required arguments.
    """

    name: str
    description: str
    category: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)

    @property
    def is_read_only(self) -> bool:
        return self.category in READ_ONLY_CATEGORIES or is_search_like(self.name)

    def accepts(self, argument: str) -> bool:
        return argument in self.parameters

    def to_openai_schema(self) -> Dict[str, Any]:
        """Convert to OpenAI function-calling tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": self.parameters,
                    "required": list(self.required),
                },
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolDefinition":
        return cls(
            name=data["name"],
            description=" ".join(str(data.get("description", "")).split()),
            category=data["category"],
            parameters=dict(data.get("parameters") or {}),
            required=list(data.get("required") or []),
        )


class ToolCatalog:
    """
    Immutable collection of tool definitions.

    Example:
        catalog = ToolCatalog.load()
        catalog.group_tools("table")
        catalog.action_tools("create", "table")  # ("createTable", "bulkCreateFields", ...)
    """

    def __init__(
        self,
        tools: Iterable[ToolDefinition],
        core_tools: Iterable[str],
        action_tools: Optional[Dict[str, Dict[str, List[str]]]] = None,
    ):
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool definition: {tool.name}")
            self._tools[tool.name] = tool

        self._core: Tuple[str, ...] = tuple(n for n in core_tools if n in self._tools)
        missing = [n for n in core_tools if n not in self._tools]
        if missing:
            logger.warning(f"[Tools] Core tools not in catalog: {missing}")

        self._action_tools: Dict[Tuple[str, str], Tuple[str, ...]] = {}
        for action, by_group in (action_tools or {}).items():
            for group, names in (by_group or {}).items():
                self._action_tools[(action, group)] = tuple(n for n in names if n in self._tools)

    @classmethod
    def load(cls, path: Optional[pathlib.Path] = None) -> "ToolCatalog":
        """Load a catalog from YAML (defaults to the bundled catalog.yaml)."""
        path = pathlib.Path(path) if path else _CATALOG_PATH
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        tools = [ToolDefinition.from_dict(t) for t in data.get("tools", [])]
        catalog = cls(tools, data.get("core_tools", []), data.get("action_tools"))
        logger.debug(f"[Tools] Loaded {len(catalog)} tools from {path.name}")
        return catalog

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    @property
    def core_names(self) -> Tuple[str, ...]:
        return self._core

    def core_tools(self) -> List[ToolDefinition]:
        return [self._tools[n] for n in self._core]

    def group_tools(self, group: str) -> List[ToolDefinition]:
        """Tools of one group. ``core`` returns the core set."""
        if group == "core":
            return self.core_tools()
        return [t for t in self._tools.values() if t.category == group]

    def action_tools(self, action: str, group: str) -> Tuple[str, ...]:
        """Write tools registered for (action, group); empty when none."""
        return self._action_tools.get((action, group), ())

    def is_read_only(self, name: str) -> bool:
        tool = self._tools.get(name)
        if tool is None:
            return is_search_like(name)
        return tool.is_read_only

    def accepts(self, name: str, argument: str) -> bool:
        tool = self._tools.get(name)
        return tool is not None and tool.accepts(argument)


_default_catalog: Optional[ToolCatalog] = None


def default_catalog() -> ToolCatalog:
    """The bundled catalog, loaded once. Definitions are static."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = ToolCatalog.load()
    return _default_catalog
