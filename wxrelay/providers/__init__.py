"""Completion provider abstraction module."""

from wxrelay.providers.base import LLMProvider, LLMResponse, ToolCallRequest
from wxrelay.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "ToolCallRequest", "LiteLLMProvider"]
