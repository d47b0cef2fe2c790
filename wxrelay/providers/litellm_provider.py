"""LiteLLM provider implementation for OpenAI-compatible completion services."""

from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from wxrelay.providers.base import LLMProvider, LLMResponse, ToolCallRequest, encode_arguments


class LiteLLMProvider(LLMProvider):
    """
    Completion provider using LiteLLM.

    Works against the hosted OpenAI API or any OpenAI-compatible endpoint
    configured through ``api_base``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o-mini",
        extra_headers: dict[str, str] | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}

        litellm.suppress_debug_info = True
        # Drop parameters some OpenAI-compatible servers reject
        litellm.drop_params = True

    def _resolve_model(self, model: str) -> str:
        """Route bare model names on a custom endpoint through the OpenAI adapter."""
        if self.api_base and "/" not in model:
            return f"openai/{model}"
        return model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request via LiteLLM.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            tools: Optional list of tool definitions in OpenAI format.
            model: Model identifier (e.g., 'gpt-4o-mini').
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with content and/or tool calls. Failed calls are
            returned with ``finish_reason="error"``.
        """
        model = self._resolve_model(model or self.default_model)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.api_base:
            kwargs["api_base"] = self.api_base

        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            logger.error(f"Completion request to {model} failed: {e}")
            return LLMResponse(
                content=f"Error calling LLM: {str(e)}",
                finish_reason="error",
            )

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]
        message = choice.message

        tool_calls = []
        if getattr(message, "tool_calls", None):
            for index, tc in enumerate(message.tool_calls):
                tool_calls.append(ToolCallRequest(
                    id=tc.id or f"call_{index}",
                    name=tc.function.name or "",
                    arguments=encode_arguments(tc.function.arguments),
                ))

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
