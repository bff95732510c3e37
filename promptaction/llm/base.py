"""
promptaction LLM Client Base - Base class and common types for LLM clients

This module provides:
- BaseLLMClient: Abstract base class for all provider clients
- LLMConfig: Configuration dataclass
- LLMResponse: Standardized response format
- StreamChunk: Streaming chunk format
- ToolCallAccumulator: Reconstructs streamed tool-call fragments
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from ..tools.catalog import ToolDefinition

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    """Reason why the LLM stopped generating"""
    END_TURN = "end_turn"           # Natural completion
    MAX_TOKENS = "max_tokens"       # Hit token limit
    TOOL_USE = "tool_use"           # Model wants to use a tool
    ERROR = "error"                 # Error occurred


@dataclass
class LLMConfig:
    """
    Configuration for LLM clients.

    Attributes:
        api_key: API key for the provider
        model: Model name (e.g., "gpt-4o-mini", "deepseek-chat")
        base_url: Optional base URL override for API
        temperature: Sampling temperature, kept low for determinism
        max_tokens: Default maximum tokens in response
        timeout: Request timeout in seconds (the only timeout in the system)
        max_retries: Transport-level retries
    """
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    temperature: float = 0.1
    max_tokens: int = 4096
    timeout: int = 60
    max_retries: int = 2
    default_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class ToolCall:
    """
    A tool call from the LLM.

    ``arguments`` is the raw JSON text produced by the model. It is untrusted:
    use ``parse_arguments()`` which never raises.
    """
    id: str
    name: str
    arguments: str = ""

    def parse_arguments(self) -> Dict[str, Any]:
        """Parse the argument text, degrading to ``{}`` on anything invalid."""
        if not self.arguments:
            return {}
        try:
            parsed = json.loads(self.arguments)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"[LLM] Invalid JSON arguments for {self.name}: {self.arguments[:120]!r}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def to_message_dict(self) -> Dict[str, Any]:
        """OpenAI wire shape, as echoed back inside the assistant message."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments or "{}"},
        }


@dataclass
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """
    Standardized LLM response format.

    All provider clients return this format for consistency.
    """
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[Usage] = None
    model: Optional[str] = None

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls"""
        return self.tool_calls is not None and len(self.tool_calls) > 0

    def to_assistant_message(self) -> Dict[str, Any]:
        """Convert to the assistant message appended to the conversation."""
        msg: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [tc.to_message_dict() for tc in self.tool_calls]
        return msg


@dataclass
class StreamChunk:
    """
    A chunk from streaming response.

    Text deltas arrive in ``content``. Tool calls are only ever set on the
    final chunk of a round, once every fragment has been accumulated.
    """
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None
    is_final: bool = False
    stop_reason: Optional[StopReason] = None
    usage: Optional[Usage] = None


@dataclass
class ToolCallFragment:
    """Accumulated state of one streamed tool call, keyed by its index."""
    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""


class ToolCallAccumulator:
    """
    Reconstructs tool calls from incremental stream deltas.

    Providers stream a tool call as several fragments sharing an ``index``;
    the id usually arrives once, while name and argument text arrive in
    pieces that must be concatenated. Nothing is released until ``finish()``,
    because partial JSON arguments cannot be parsed.

    Example:
        acc = ToolCallAccumulator()
        acc.add(0, call_id="call_1", name="search", arguments='{"q"')
        acc.add(0, arguments=': "x"}')
        acc.finish()  # [ToolCall(id="call_1", name="search", arguments='{"q": "x"}')]
    """

    def __init__(self) -> None:
        self._fragments: Dict[int, ToolCallFragment] = {}

    def __len__(self) -> int:
        return len(self._fragments)

    def add(
        self,
        index: int,
        call_id: Optional[str] = None,
        name: Optional[str] = None,
        arguments: Optional[str] = None,
    ) -> None:
        fragment = self._fragments.get(index)
        if fragment is None:
            fragment = ToolCallFragment(index=index)
            self._fragments[index] = fragment
        if call_id:
            fragment.id = call_id
        if name:
            fragment.name += name
        if arguments:
            fragment.arguments += arguments

    def add_delta(self, delta: Dict[str, Any]) -> None:
        """Add one OpenAI-shaped ``tool_calls[]`` delta dict."""
        function = delta.get("function") or {}
        self.add(
            index=int(delta.get("index", 0) or 0),
            call_id=delta.get("id"),
            name=function.get("name"),
            arguments=function.get("arguments"),
        )

    def finish(self) -> List[ToolCall]:
        """Return the completed calls in index order and reset."""
        calls = []
        for index in sorted(self._fragments):
            fragment = self._fragments[index]
            if not fragment.name:
                logger.warning(f"[LLM] Dropping streamed tool call #{index} without a name")
                continue
            calls.append(ToolCall(
                id=fragment.id or f"call_{index}",
                name=fragment.name,
                arguments=fragment.arguments,
            ))
        self._fragments = {}
        return calls


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    All provider-specific clients inherit from this class and implement
    ``_call_api`` / ``_stream_api``. Implements LLMClientProtocol.
    """

    # Provider name (override in subclasses)
    provider: str = "unknown"

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        if config is None:
            config = LLMConfig(**kwargs)
        else:
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)

        self.config = config
        self._client = None  # Lazy-initialized transport

    @abstractmethod
    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """Make the actual API call (provider-specific)."""

    @abstractmethod
    def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """Make streaming API call (provider-specific)."""

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Union[Dict[str, Any], ToolDefinition]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            tools: Optional list of tools (dict or ToolDefinition)
            config: Optional per-call overrides (max_tokens, temperature, ...)

        Returns:
            LLMResponse with content, tool_calls, usage
        """
        merged_kwargs = {**kwargs, **(config or {})}
        return await self._call_api(messages, self._tool_schemas(tools), **merged_kwargs)

    async def stream_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Union[Dict[str, Any], ToolDefinition]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """
        Send a streaming chat completion request.

        Yields:
            StreamChunk objects with content deltas; the last one has
            ``is_final=True`` and carries the reconstructed tool calls.
        """
        merged_kwargs = {**kwargs, **(config or {})}
        async for chunk in self._stream_api(messages, self._tool_schemas(tools), **merged_kwargs):
            yield chunk

    def _tool_schemas(
        self, tools: Optional[List[Union[Dict[str, Any], ToolDefinition]]]
    ) -> Optional[List[Dict[str, Any]]]:
        if not tools:
            return None
        return [
            tool.to_openai_schema() if isinstance(tool, ToolDefinition) else tool
            for tool in tools
        ]

    def _request_params(self, **kwargs) -> Dict[str, Any]:
        """Sampling params shared by every provider request."""
        return {
            "model": kwargs.get("model") or self.config.model,
            "temperature": kwargs.get("temperature", self.config.temperature),
            "max_tokens": kwargs.get("max_tokens") or self.config.max_tokens,
        }

    @staticmethod
    def _parse_stop_reason(finish_reason: Optional[str]) -> StopReason:
        """Parse an OpenAI-style finish_reason to StopReason"""
        if finish_reason is None:
            return StopReason.END_TURN
        mapping = {
            "stop": StopReason.END_TURN,
            "length": StopReason.MAX_TOKENS,
            "tool_calls": StopReason.TOOL_USE,
            "function_call": StopReason.TOOL_USE,
            "content_filter": StopReason.END_TURN,
        }
        return mapping.get(finish_reason, StopReason.END_TURN)

    async def close(self) -> None:
        """Close the client and release resources"""
        if self._client is not None:
            close = getattr(self._client, "aclose", None) or getattr(self._client, "close", None)
            if close is not None:
                await close()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
