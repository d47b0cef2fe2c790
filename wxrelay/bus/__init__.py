"""Message types shared by channels, the broker and the agent."""

from wxrelay.bus.events import Attachment, InboundMessage, MessageEvent, OutboundMessage

__all__ = ["Attachment", "MessageEvent", "InboundMessage", "OutboundMessage"]
