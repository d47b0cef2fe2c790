"""Base completion provider interface."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import json_repair


@dataclass
class ToolCallRequest:
    """A tool call request from the LLM.

    ``arguments`` is kept as the JSON text the model produced; it is only
    decoded when the call is dispatched, so malformed arguments surface as a
    tool failure for that turn.
    """
    id: str
    name: str
    arguments: str = "{}"

    def parse_arguments(self) -> dict[str, Any]:
        """Decode the JSON arguments into a dict.

        Raises:
            ValueError: If the arguments do not decode to a JSON object.
        """
        text = (self.arguments or "").strip()
        if not text:
            return {}
        args = json_repair.loads(text)
        if not isinstance(args, dict):
            raise ValueError(f"Tool arguments for {self.name} are not a JSON object: {text[:200]}")
        return args

    def to_wire(self) -> dict[str, Any]:
        """Serialize in the OpenAI tool_calls format."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class LLMResponse:
    """Response from a completion provider."""
    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        """Check if the provider reported a failed call."""
        return self.finish_reason == "error"

    def assistant_message(self, tool_calls: list[ToolCallRequest] | None = None) -> dict[str, Any]:
        """Rebuild the assistant message that requested the given tool calls."""
        calls = self.tool_calls if tool_calls is None else tool_calls
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if calls:
            message["tool_calls"] = [tc.to_wire() for tc in calls]
        return message


def encode_arguments(args: Any) -> str:
    """Normalize tool call arguments to JSON text."""
    if args is None:
        return "{}"
    if isinstance(args, str):
        return args
    return json.dumps(args, ensure_ascii=False)


class LLMProvider(ABC):
    """
    Abstract base class for completion providers.

    Implementations should handle the specifics of each provider's API
    while maintaining a consistent interface.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            tools: Optional list of tool definitions.
            model: Model identifier (provider-specific).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with content and/or tool calls.
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        pass
