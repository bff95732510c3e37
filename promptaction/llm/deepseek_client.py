"""
promptaction Deepseek Client - Deepseek-shaped provider adapter over raw HTTP

Deepseek speaks the OpenAI chat-completions wire format, so requests and
responses are built and parsed by hand with httpx (including SSE streaming).
"""

import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..exceptions import EmptyResponseError, ProviderError
from .base import (
    BaseLLMClient, LLMConfig, LLMResponse, StreamChunk,
    ToolCall, ToolCallAccumulator, Usage,
)

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"
DEEPSEEK_MODEL = "deepseek-chat"


class DeepseekClient(BaseLLMClient):
    """
    Deepseek API client.

    Example:
        client = DeepseekClient(api_key="sk-xxx")
        response = await client.chat_completion(messages, tools=schemas)

    Pass ``transport=httpx.MockTransport(handler)`` to run without network.
    """

    provider = "deepseek"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        if config is None:
            kwargs.setdefault("api_key", os.environ.get("DEEPSEEK_API_KEY"))
            kwargs.setdefault("model", DEEPSEEK_MODEL)
            kwargs.setdefault("base_url", DEEPSEEK_BASE_URL)
        super().__init__(config, **kwargs)
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url or DEEPSEEK_BASE_URL,
                timeout=httpx.Timeout(self.config.timeout, connect=10.0),
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                    **self.config.default_headers,
                },
                transport=self._transport,
            )
        return self._client

    def _build_body(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]],
        stream: bool = False,
        **kwargs
    ) -> Dict[str, Any]:
        body = {"messages": messages, **self._request_params(**kwargs)}
        if tools:
            body["tools"] = tools
            body["tool_choice"] = kwargs.get("tool_choice", "auto")
            body["parallel_tool_calls"] = kwargs.get("parallel_tool_calls", True)
        if stream:
            body["stream"] = True
        return body

    def _raise_for_status(self, response: httpx.Response, body_text: str) -> None:
        if response.is_success:
            return
        logger.error(f"[LLM] Deepseek API error: {response.status_code} {body_text[:500]}")
        raise ProviderError(
            f"Deepseek API error: {response.status_code}",
            status_code=response.status_code,
            provider=self.provider,
        )

    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """Make Deepseek API call"""
        client = self._get_client()
        body = self._build_body(messages, tools, **kwargs)

        try:
            response = await client.post("/chat/completions", json=body)
        except httpx.HTTPError as e:
            raise ProviderError(f"Deepseek request failed: {e}", provider=self.provider) from e
        self._raise_for_status(response, response.text)

        result = response.json()
        choices = result.get("choices") or []
        if not choices:
            raise EmptyResponseError("Deepseek returned no choices", provider=self.provider)

        choice = choices[0]
        message = choice.get("message") or {}

        tool_calls = None
        if message.get("tool_calls"):
            tool_calls = []
            for tc in message["tool_calls"]:
                func = tc.get("function") or {}
                arguments = func.get("arguments", "")
                if not isinstance(arguments, str):
                    arguments = json.dumps(arguments)
                tool_calls.append(ToolCall(
                    id=tc.get("id") or func.get("name", ""),
                    name=func.get("name", ""),
                    arguments=arguments,
                ))

        return LLMResponse(
            content=message.get("content"),
            tool_calls=tool_calls,
            stop_reason=self._parse_stop_reason(choice.get("finish_reason")),
            usage=_parse_usage(result.get("usage")),
            model=result.get("model", body["model"]),
        )

    async def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """Make streaming Deepseek API call (server-sent events)"""
        client = self._get_client()
        body = self._build_body(messages, tools, stream=True, **kwargs)

        accumulator = ToolCallAccumulator()
        finish_reason = None
        usage = None

        try:
            async with client.stream("POST", "/chat/completions", json=body) as response:
                if not response.is_success:
                    error_text = (await response.aread()).decode("utf-8", errors="replace")
                    self._raise_for_status(response, error_text)

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    payload = line[len("data:"):].strip()
                    if payload == "[DONE]":
                        break

                    try:
                        chunk_data = json.loads(payload)
                    except json.JSONDecodeError:
                        logger.debug(f"[LLM] Skipping malformed SSE payload: {payload[:120]!r}")
                        continue

                    if chunk_data.get("usage"):
                        usage = _parse_usage(chunk_data["usage"])

                    for choice in chunk_data.get("choices") or []:
                        delta = choice.get("delta") or {}
                        for tc_delta in delta.get("tool_calls") or []:
                            accumulator.add_delta(tc_delta)
                        if choice.get("finish_reason"):
                            finish_reason = choice["finish_reason"]
                        if delta.get("content"):
                            yield StreamChunk(content=delta["content"])
        except httpx.HTTPError as e:
            raise ProviderError(f"Deepseek stream failed: {e}", provider=self.provider) from e

        tool_calls = accumulator.finish()
        yield StreamChunk(
            tool_calls=tool_calls or None,
            is_final=True,
            stop_reason=self._parse_stop_reason(finish_reason),
            usage=usage,
        )


def _parse_usage(data: Optional[Dict[str, Any]]) -> Optional[Usage]:
    if not data:
        return None
    return Usage(
        prompt_tokens=data.get("prompt_tokens", 0),
        completion_tokens=data.get("completion_tokens", 0),
        total_tokens=data.get("total_tokens", 0),
    )
