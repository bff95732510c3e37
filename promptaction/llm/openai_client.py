"""
promptaction OpenAI Client - OpenAI-shaped provider adapter

Supports:
- GPT-4o, GPT-4o-mini and other tool-calling chat models
- Any OpenAI-compatible API via base_url
"""

import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ..exceptions import EmptyResponseError, ProviderError
from .base import (
    BaseLLMClient, LLMConfig, LLMResponse, StreamChunk,
    ToolCall, ToolCallAccumulator, Usage,
)

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client.

    Example:
        client = OpenAIClient(api_key="sk-xxx")
        response = await client.chat_completion(
            messages=[{"role": "user", "content": "list my tasks"}],
            tools=schemas,
            config={"max_tokens": 1024},
        )

        async for chunk in client.stream_completion(messages, tools=schemas):
            print(chunk.content, end="")
    """

    provider = "openai"

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        """
        Initialize OpenAI client.

        Args:
            config: LLMConfig instance
            api_key: OpenAI API key (or set OPENAI_API_KEY env var)
            model: Model name (or set OPENAI_MODEL, default gpt-4o-mini)
            **kwargs: Additional config options
        """
        if config is None:
            kwargs.setdefault("api_key", os.environ.get("OPENAI_API_KEY"))
            kwargs.setdefault("model", os.environ.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL)
        super().__init__(config, **kwargs)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the OpenAI client"""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
                default_headers=self.config.default_headers or None,
            )
        return self._client

    def _build_params(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]],
        **kwargs
    ) -> Dict[str, Any]:
        params = {"messages": messages, **self._request_params(**kwargs)}
        if tools:
            params["tools"] = tools
            params["tool_choice"] = kwargs.get("tool_choice", "auto")
            params["parallel_tool_calls"] = kwargs.get("parallel_tool_calls", True)
        return params

    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """Make OpenAI API call"""
        client = self._get_client()
        params = self._build_params(messages, tools, **kwargs)

        try:
            response = await client.chat.completions.create(**params)
        except openai.APIStatusError as e:
            raise ProviderError(f"OpenAI API error: {e.message}", status_code=e.status_code, provider=self.provider) from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI API error: {e}", provider=self.provider) from e

        if not response.choices:
            raise EmptyResponseError("OpenAI returned no choices", provider=self.provider)

        choice = response.choices[0]
        message = choice.message

        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "")
                for tc in message.tool_calls
            ]

        usage = None
        if response.usage:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            stop_reason=self._parse_stop_reason(choice.finish_reason),
            usage=usage,
            model=response.model,
        )

    async def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """Make streaming OpenAI API call"""
        client = self._get_client()
        params = self._build_params(messages, tools, **kwargs)
        params["stream"] = True
        params["stream_options"] = {"include_usage": True}

        try:
            stream = await client.chat.completions.create(**params)
        except openai.APIStatusError as e:
            raise ProviderError(f"OpenAI API error: {e.message}", status_code=e.status_code, provider=self.provider) from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI API error: {e}", provider=self.provider) from e

        accumulator = ToolCallAccumulator()
        finish_reason = None
        usage = None

        async for chunk in stream:
            if chunk.usage:
                usage = Usage(
                    prompt_tokens=chunk.usage.prompt_tokens,
                    completion_tokens=chunk.usage.completion_tokens,
                    total_tokens=chunk.usage.total_tokens,
                )
            if not chunk.choices:
                continue

            choice = chunk.choices[0]
            delta = choice.delta

            for tc_delta in delta.tool_calls or []:
                accumulator.add(
                    index=tc_delta.index,
                    call_id=tc_delta.id,
                    name=tc_delta.function.name if tc_delta.function else None,
                    arguments=tc_delta.function.arguments if tc_delta.function else None,
                )

            if choice.finish_reason is not None:
                finish_reason = choice.finish_reason

            if delta.content:
                yield StreamChunk(content=delta.content)

        tool_calls = accumulator.finish()
        yield StreamChunk(
            tool_calls=tool_calls or None,
            is_final=True,
            stop_reason=self._parse_stop_reason(finish_reason),
            usage=usage,
        )
