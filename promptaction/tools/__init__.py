"""
promptaction tools - the static tool catalog the model can call into.

The tools themselves run outside this package, behind ToolExecutorProtocol.
"""

from .catalog import (
    ESCALATION_TOOL,
    TOOL_GROUPS,
    ToolCatalog,
    ToolDefinition,
    default_catalog,
    is_search_like,
)

__all__ = [
    "ESCALATION_TOOL",
    "TOOL_GROUPS",
    "ToolCatalog",
    "ToolDefinition",
    "default_catalog",
    "is_search_like",
]
