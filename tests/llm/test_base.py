"""Tests for promptaction.llm.base: shared types and BaseLLMClient logic"""

import pytest

from promptaction.llm.base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StopReason,
    StreamChunk,
    ToolCall,
    ToolCallAccumulator,
)
from promptaction.tools.catalog import default_catalog


# ── Concrete subclass for testing (abstract methods stubbed) ──


class StubLLMClient(BaseLLMClient):
    provider = "stub"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.seen = []

    async def _call_api(self, messages, tools=None, **kwargs):
        self.seen.append({"tools": tools, "kwargs": kwargs})
        return LLMResponse(content="stub")

    async def _stream_api(self, messages, tools=None, **kwargs):
        self.seen.append({"tools": tools, "kwargs": kwargs})
        yield StreamChunk(content="st")
        yield StreamChunk(content="ub", is_final=True)


@pytest.fixture
def client():
    return StubLLMClient(model="gpt-4o-mini")


# =========================================================================
# ToolCallAccumulator
# =========================================================================


class TestToolCallAccumulator:

    def test_fragments_are_concatenated(self):
        acc = ToolCallAccumulator()
        acc.add(0, call_id="call_1", name="search", arguments='{"q"')
        acc.add(0, arguments=': "x"}')
        calls = acc.finish()
        assert calls == [ToolCall(id="call_1", name="search", arguments='{"q": "x"}')]
        assert calls[0].parse_arguments() == {"q": "x"}

    def test_interleaved_indexes_sorted(self):
        acc = ToolCallAccumulator()
        acc.add(1, call_id="b", name="createRow", arguments="{}")
        acc.add(0, call_id="a", name="createTable", arguments='{"title":')
        acc.add(0, arguments='"T"}')
        calls = acc.finish()
        assert [c.name for c in calls] == ["createTable", "createRow"]
        assert calls[0].parse_arguments() == {"title": "T"}

    def test_openai_shaped_deltas(self):
        acc = ToolCallAccumulator()
        acc.add_delta({"index": 0, "id": "c1", "function": {"name": "searchTasks", "arguments": ""}})
        acc.add_delta({"index": 0, "function": {"arguments": '{"status":"done"}'}})
        assert acc.finish()[0].parse_arguments() == {"status": "done"}

    def test_nameless_fragment_dropped(self):
        acc = ToolCallAccumulator()
        acc.add(0, arguments="{}")
        assert acc.finish() == []

    def test_missing_id_is_synthesized(self):
        acc = ToolCallAccumulator()
        acc.add(2, name="searchTags")
        assert acc.finish()[0].id == "call_2"

    def test_finish_resets(self):
        acc = ToolCallAccumulator()
        acc.add(0, name="searchTags")
        acc.finish()
        assert len(acc) == 0
        assert acc.finish() == []


# =========================================================================
# ToolCall / LLMResponse
# =========================================================================


class TestToolCall:

    @pytest.mark.parametrize("raw", ['{"title": "Al', "not json", "[1, 2]", "null"])
    def test_invalid_arguments_degrade_to_empty(self, raw):
        assert ToolCall(id="c", name="createTaskItem", arguments=raw).parse_arguments() == {}

    def test_empty_arguments(self):
        assert ToolCall(id="c", name="searchTags").parse_arguments() == {}

    def test_message_dict(self):
        message = ToolCall(id="c1", name="searchTags").to_message_dict()
        assert message == {"id": "c1", "type": "function", "function": {"name": "searchTags", "arguments": "{}"}}


class TestLLMResponse:

    def test_assistant_message_with_tools(self):
        response = LLMResponse(tool_calls=[ToolCall(id="c1", name="searchTags", arguments="{}")])
        message = response.to_assistant_message()
        assert message["role"] == "assistant"
        assert message["content"] is None
        assert message["tool_calls"][0]["id"] == "c1"
        assert response.has_tool_calls

    def test_assistant_message_text_only(self):
        message = LLMResponse(content="hi").to_assistant_message()
        assert message == {"role": "assistant", "content": "hi"}


# =========================================================================
# BaseLLMClient
# =========================================================================


class TestBaseLLMClient:

    def test_kwargs_build_config(self, client):
        assert client.config.model == "gpt-4o-mini"
        assert client.config.temperature == 0.1

    def test_kwargs_override_config(self):
        client = StubLLMClient(LLMConfig(model="a"), model="b")
        assert client.config.model == "b"

    @pytest.mark.asyncio
    async def test_tool_definitions_are_formatted(self, client):
        tool = default_catalog().get("searchTags")
        await client.chat_completion([], tools=[tool, {"type": "function", "function": {"name": "raw"}}])
        tools = client.seen[0]["tools"]
        assert tools[0]["function"]["name"] == "searchTags"
        assert tools[1]["function"]["name"] == "raw"

    @pytest.mark.asyncio
    async def test_per_call_config_is_merged(self, client):
        await client.chat_completion([], config={"max_tokens": 1024})
        assert client.seen[0]["kwargs"]["max_tokens"] == 1024
        assert client.seen[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_stream_passthrough(self, client):
        chunks = [c async for c in client.stream_completion([])]
        assert "".join(c.content for c in chunks) == "stub"
        assert chunks[-1].is_final

    def test_request_params(self, client):
        params = client._request_params(max_tokens=512)
        assert params == {"model": "gpt-4o-mini", "temperature": 0.1, "max_tokens": 512}

    @pytest.mark.parametrize("finish_reason,expected", [
        ("stop", StopReason.END_TURN),
        ("length", StopReason.MAX_TOKENS),
        ("tool_calls", StopReason.TOOL_USE),
        (None, StopReason.END_TURN),
        ("unknown", StopReason.END_TURN),
    ])
    def test_parse_stop_reason(self, finish_reason, expected):
        assert BaseLLMClient._parse_stop_reason(finish_reason) == expected
