"""Shared fakes: a scripted LLM client and a recording tool executor."""

import json
from typing import Any, Dict, List, Optional

import pytest

from promptaction.config import ExecutorConfig
from promptaction.llm.base import LLMResponse, StreamChunk, ToolCall, Usage
from promptaction.models import ExecutionContext, ToolCallResult
from promptaction.orchestrator import CommandExecutor


# =============================================================================
# Mock Classes
# =============================================================================

class ScriptedLLMClient:
    """Returns queued responses in order; queued exceptions are raised."""

    provider = "fake"

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def chat_completion(self, messages, tools=None, config=None):
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "tools": tools,
            "config": dict(config or {}),
        })
        if not self.responses:
            raise AssertionError("unexpected LLM call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def stream_completion(self, messages, tools=None, config=None):
        response = await self.chat_completion(messages, tools, config)
        text = response.content or ""
        for i in range(0, len(text), 4):
            yield StreamChunk(content=text[i:i + 4])
        yield StreamChunk(tool_calls=response.tool_calls, is_final=True, usage=response.usage)

    async def close(self):
        self.closed = True

    def tool_names(self, call_index: int) -> List[str]:
        return [s["function"]["name"] for s in self.calls[call_index]["tools"] or []]


class RecordingToolExecutor:
    """
    Records every call. ``handlers`` maps tool name to a fixed return value,
    an exception to raise, or a callable taking the arguments.
    """

    def __init__(self, handlers: Optional[Dict[str, Any]] = None):
        self.handlers = dict(handlers or {})
        self.calls: List[tuple] = []

    async def execute_tool(self, name, arguments, context):
        self.calls.append((name, dict(arguments)))
        handler = self.handlers.get(name)
        if handler is None:
            return ToolCallResult.ok({"ok": True})
        value = handler(arguments) if callable(handler) else handler
        if isinstance(value, Exception):
            raise value
        return value

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


def tool_call(name: str, arguments: Any = None, call_id: Optional[str] = None) -> ToolCall:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
    return ToolCall(id=call_id or f"call_{name}", name=name, arguments=raw)


def calls_response(*calls: ToolCall, content: Optional[str] = None) -> LLMResponse:
    return LLMResponse(
        content=content,
        tool_calls=list(calls),
        usage=Usage(prompt_tokens=100, completion_tokens=10, total_tokens=110),
    )


def text_response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content,
        usage=Usage(prompt_tokens=120, completion_tokens=20, total_tokens=140),
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def context():
    return ExecutionContext(workspace_id="ws_1", user_id="u_1", current_date="2026-01-15")


@pytest.fixture
def tools():
    return RecordingToolExecutor()


@pytest.fixture
def make_executor(tools):
    """Build (executor, llm) with a scripted client and config overrides."""

    def _make(responses=None, **overrides):
        llm = ScriptedLLMClient(responses)
        executor = CommandExecutor(
            tool_executor=tools,
            llm_client=llm,
            config=ExecutorConfig(**overrides),
            environ={},
        )
        return executor, llm

    return _make


@pytest.fixture
def fakes():
    """Response builders for tests that script the model."""

    class _Fakes:
        call = staticmethod(tool_call)
        calls = staticmethod(calls_response)
        text = staticmethod(text_response)

    return _Fakes
