"""
Provider selection.

``create_llm_client`` picks the provider from explicit settings first, then
from whichever credential is available. OpenAI wins when both are set.
"""

import logging
import os
from typing import Mapping, Optional

from ..config import LLMSettings
from ..exceptions import ConfigurationError
from .base import BaseLLMClient, LLMConfig
from .deepseek_client import DEEPSEEK_BASE_URL, DEEPSEEK_MODEL, DeepseekClient
from .openai_client import DEFAULT_OPENAI_MODEL, OpenAIClient

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "AI service is not configured. Please set OPENAI_API_KEY or DEEPSEEK_API_KEY."

PROVIDERS = ("openai", "deepseek")


def create_llm_client(
    settings: Optional[LLMSettings] = None,
    environ: Optional[Mapping[str, str]] = None,
    temperature: float = 0.1,
) -> BaseLLMClient:
    """
    Build the LLM client for the configured (or first available) provider.

    Raises:
        ConfigurationError: no credential for any provider, or an unknown
            provider name.
    """
    settings = settings or LLMSettings()
    environ = os.environ if environ is None else environ

    provider = (settings.provider or "").lower() or None
    if provider is not None and provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown LLM provider '{settings.provider}'")

    openai_key = settings.api_key if provider == "openai" else None
    openai_key = openai_key or environ.get("OPENAI_API_KEY")
    deepseek_key = settings.api_key if provider == "deepseek" else None
    deepseek_key = deepseek_key or environ.get("DEEPSEEK_API_KEY")

    if provider is None:
        if openai_key:
            provider = "openai"
        elif deepseek_key:
            provider = "deepseek"
        else:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

    if provider == "openai":
        if not openai_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)
        config = LLMConfig(
            api_key=openai_key,
            model=settings.model or environ.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
            base_url=settings.base_url,
            temperature=temperature,
            timeout=settings.timeout,
        )
        logger.info(f"[LLM] Using OpenAI provider, model={config.model}")
        return OpenAIClient(config)

    if not deepseek_key:
        raise ConfigurationError(MISSING_KEY_MESSAGE)
    config = LLMConfig(
        api_key=deepseek_key,
        model=settings.model or DEEPSEEK_MODEL,
        base_url=settings.base_url or DEEPSEEK_BASE_URL,
        temperature=temperature,
        timeout=settings.timeout,
    )
    logger.info(f"[LLM] Using Deepseek provider, model={config.model}")
    return DeepseekClient(config)
