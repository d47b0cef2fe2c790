"""Message shapes exchanged between the transport and the agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Attachment:
    """A file sent in a chat. At least one of path, data or url is set."""

    name: str
    path: str | None = None
    data: bytes | str | None = None  # raw bytes, or base64 text from the bridge
    url: str | None = None
    mime_type: str | None = None


@dataclass
class MessageEvent:
    """A raw message event as delivered by the transport."""

    sender_id: str
    sender_name: str
    text: str
    room_id: str | None = None
    room_topic: str | None = None
    mentions_self: bool = False
    is_self: bool = False
    attachment: Attachment | None = None
    message_id: str | None = None

    @property
    def is_group(self) -> bool:
        return self.room_id is not None


@dataclass
class InboundMessage:
    """A message accepted for processing, keyed by its conversation."""

    conversation_id: str
    sender_id: str
    sender_name: str
    content: str
    room_id: str | None = None
    attachment: Attachment | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def reply(self, content: str) -> OutboundMessage:
        """Build the reply addressed to the originating room or peer."""
        return OutboundMessage(
            conversation_id=self.conversation_id,
            content=content,
            room_id=self.room_id,
            recipient_id=self.sender_id,
        )


@dataclass
class OutboundMessage:
    """A text reply to send through the transport."""

    conversation_id: str
    content: str
    room_id: str | None = None
    recipient_id: str | None = None

    @property
    def target(self) -> str:
        """Room id for group replies, peer id for direct replies."""
        return self.room_id or self.recipient_id or self.conversation_id
