"""Conversation message model."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal

Role = Literal["system", "user", "assistant", "tool"]

# The completion API only accepts ASCII identifiers in the "name" field
_WIRE_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass(frozen=True)
class ChatMessage:
    """A single message in a conversation log."""

    role: Role
    content: str
    author_name: str | None = None
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str, author_name: str | None = None) -> ChatMessage:
        return cls(role="user", content=content, author_name=author_name or None)

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> ChatMessage:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_llm(self) -> dict[str, Any]:
        """Convert to the completion wire format."""
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.author_name and _WIRE_NAME.match(self.author_name):
            msg["name"] = self.author_name
        if self.tool_call_id:
            msg["tool_call_id"] = self.tool_call_id
        return msg

    def to_dict(self) -> dict[str, Any]:
        """Serialize for persistence."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.author_name:
            data["author_name"] = self.author_name
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        return cls(
            role=data.get("role", "user"),
            content=str(data.get("content") or ""),
            author_name=data.get("author_name"),
            tool_call_id=data.get("tool_call_id"),
        )
