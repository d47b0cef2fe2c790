"""Base class for agent tools."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolContext:
    """Per-turn context handed to a tool alongside the model's arguments."""
    conversation_id: str


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of a tool advertised to the model."""
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_schema(self) -> dict[str, Any]:
        """Convert to the OpenAI function tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class Tool(ABC):
    """
    Abstract base class for tools the model can call.

    Subclasses declare ``name``, ``description`` and a JSON schema for
    ``parameters`` and implement :meth:`execute`. Results must be JSON
    serializable.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def execute(self, context: ToolContext, **kwargs: Any) -> Any:
        """
        Run the tool.

        Args:
            context: The conversation the call belongs to.
            **kwargs: Arguments decoded from the model's tool call.
        """
        pass

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(self.name, self.description, self.parameters)
