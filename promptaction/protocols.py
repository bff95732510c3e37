"""
promptaction Protocols - Abstract interfaces for dependency injection

These protocols define the contracts that external implementations must fulfill.
The orchestrator never knows how a tool is implemented or which LLM backend
answers; it only talks to these two seams.
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Union, runtime_checkable

from .models import ExecutionContext, ToolCallResult


@runtime_checkable
class ToolExecutorProtocol(Protocol):
    """
    Abstract interface for the external tool catalog.

    Example:
        class SupabaseTools:
            async def execute_tool(self, name, arguments, context):
                if name == "searchTasks":
                    rows = await self.db.search_tasks(context.workspace_id, **arguments)
                    return ToolCallResult.ok(rows)
                return ToolCallResult.fail(f"Unknown tool: {name}")
    """

    async def execute_tool(
        self,
        name: str,
        arguments: Dict[str, Any],
        context: ExecutionContext,
    ) -> Union[ToolCallResult, Dict[str, Any]]:
        """
        Execute one tool call.

        Args:
            name: Tool name as exposed to the model
            arguments: Parsed (possibly empty) argument dict
            context: The execution context of the current command

        Returns:
            ToolCallResult, or a dict with the same keys
        """
        ...


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Abstract interface for LLM clients

    Implement this protocol to integrate any tool-calling chat provider.
    """

    provider: str

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Return an LLMResponse for one non-streaming request."""
        ...

    def stream_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Any]:
        """Yield StreamChunk objects for one streaming request."""
        ...
