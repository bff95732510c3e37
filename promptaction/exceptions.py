"""
promptaction exceptions

Configuration and provider failures are raised by the LLM layer and turned
into structured ``ExecutionResult`` failures by the command executor.
Tool failures never raise; they travel as ``ToolCallResult(success=False)``.
"""

from typing import Optional


class PromptActionError(Exception):
    """Base class for all promptaction errors."""


class ConfigurationError(PromptActionError):
    """Raised when the executor cannot run (e.g. no provider credential)."""


class ProviderError(PromptActionError):
    """Raised when the LLM provider returns a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None, provider: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class EmptyResponseError(ProviderError):
    """Raised when the provider answers with an empty choice list."""
