"""
promptaction LLM clients

Two provider adapters normalized to one request/response shape:
- OpenAIClient (openai SDK)
- DeepseekClient (raw httpx, OpenAI-compatible wire format)

Usage:
    from promptaction.llm import create_llm_client

    client = create_llm_client()
    response = await client.chat_completion(messages=[...], tools=schemas)

    async for chunk in client.stream_completion(messages=[...]):
        print(chunk.content)
"""

from .base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StopReason,
    StreamChunk,
    ToolCall,
    ToolCallAccumulator,
    Usage,
)
from .deepseek_client import DeepseekClient
from .factory import MISSING_KEY_MESSAGE, create_llm_client
from .openai_client import OpenAIClient

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "StopReason",
    "StreamChunk",
    "ToolCall",
    "ToolCallAccumulator",
    "Usage",
    "OpenAIClient",
    "DeepseekClient",
    "create_llm_client",
    "MISSING_KEY_MESSAGE",
]
