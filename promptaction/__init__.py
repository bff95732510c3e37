"""
promptaction - prompt-to-action command executor

Turns a natural-language instruction ("mark all overdue bugs as done",
"create a table called Budget with columns Item and Cost") into a bounded
sequence of tool calls against an external workspace store, using a
tool-calling LLM as the planner.

Quick Start:
    from promptaction import CommandExecutor, ExecutionContext, ToolCallResult

    class MyTools:
        async def execute_tool(self, name, arguments, context):
            if name == "searchTasks":
                return ToolCallResult.ok({"tasks": await db.search_tasks(**arguments)})
            return ToolCallResult.fail(f"Unknown tool: {name}")

    executor = CommandExecutor(tool_executor=MyTools())
    result = await executor.execute("list my tasks", ExecutionContext("ws_1", "u_1"))
    print(result.response)

Streaming:
    async for event in executor.stream("add a task called Ship it", context):
        print(event.type, event.data)

Provider selection reads OPENAI_API_KEY / DEEPSEEK_API_KEY (OpenAI wins when
both are set). Executor tuning lives in ExecutorConfig, loadable from YAML
and PROMPTACTION_* environment variables.
"""

__version__ = "0.1.0"

from .config import ExecutorConfig, LLMSettings
from .exceptions import ConfigurationError, EmptyResponseError, PromptActionError, ProviderError
from .llm import DeepseekClient, LLMResponse, OpenAIClient, create_llm_client
from .models import ExecutionContext, ExecutionResult, ToolCallRecord, ToolCallResult
from .orchestrator import CommandExecutor, IntentClassification, LoopPolicy, classify
from .protocols import LLMClientProtocol, ToolExecutorProtocol
from .streaming import AgentEvent, EventType
from .tools import ToolCatalog, ToolDefinition, default_catalog

__all__ = [
    "__version__",
    # Executor
    "CommandExecutor",
    "ExecutorConfig",
    "LLMSettings",
    "LoopPolicy",
    "IntentClassification",
    "classify",
    # Models
    "ExecutionContext",
    "ExecutionResult",
    "ToolCallRecord",
    "ToolCallResult",
    # Protocols
    "ToolExecutorProtocol",
    "LLMClientProtocol",
    # LLM
    "OpenAIClient",
    "DeepseekClient",
    "LLMResponse",
    "create_llm_client",
    # Tools
    "ToolCatalog",
    "ToolDefinition",
    "default_catalog",
    # Streaming
    "AgentEvent",
    "EventType",
    # Exceptions
    "PromptActionError",
    "ConfigurationError",
    "ProviderError",
    "EmptyResponseError",
]
