"""Base transport interface for the chat platform."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from loguru import logger

from wxrelay.bus.events import InboundMessage, MessageEvent, OutboundMessage

EventHandler = Callable[..., Awaitable[None]]

# WeChat puts a U+2005 (four-per-em space) after mentions; \s covers it.
_MENTION_SEPARATOR = r"\s?"


class BaseTransport(ABC):
    """
    Abstract base class for the messaging transport.

    A transport connects to the chat platform, emits ``scan``, ``login``,
    ``logout``, ``message`` and ``disconnect`` events to registered handlers,
    and sends text replies.
    """

    name: str = "base"

    def __init__(self, config: Any = None):
        """
        Initialize the transport.

        Args:
            config: Transport-specific configuration.
        """
        self.config = config
        self.bot_name: str | None = None
        self._running = False
        self._handlers: dict[str, list[EventHandler]] = {}

    @abstractmethod
    async def start(self) -> None:
        """
        Connect to the platform and begin listening for events.

        Raises on connection failure so the session manager can retry.
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect and clean up resources."""
        pass

    @abstractmethod
    async def send(self, msg: OutboundMessage) -> None:
        """
        Send a text reply through this transport.

        Args:
            msg: The message to send.
        """
        pass

    def on(self, event: str, handler: EventHandler) -> None:
        """Register an async handler for a transport event."""
        self._handlers.setdefault(event, []).append(handler)

    async def _emit(self, event: str, *args: Any) -> None:
        for handler in self._handlers.get(event, []):
            try:
                await handler(*args)
            except Exception as e:
                logger.error(f"[{self.name}] Handler for '{event}' failed: {e}")

    def strip_mentions(self, text: str) -> str:
        """Remove ``@<bot name>`` tokens and one following whitespace."""
        if not self.bot_name:
            return text.strip()
        pattern = "@" + re.escape(self.bot_name) + _MENTION_SEPARATOR
        return re.sub(pattern, "", text).strip()

    def normalize(self, event: MessageEvent) -> InboundMessage | None:
        """
        Turn a raw message event into an inbound message.

        Returns None for the bot's own messages and for group messages
        that do not mention the bot.
        """
        if event.is_self:
            return None

        if event.is_group:
            if not event.mentions_self:
                logger.debug(f"[{self.name}] Ignoring unmentioned message in {event.room_id}")
                return None
            return InboundMessage(
                conversation_id=event.room_id,
                sender_id=event.sender_id,
                sender_name=event.sender_name,
                content=self.strip_mentions(event.text),
                room_id=event.room_id,
                metadata={"room_topic": event.room_topic, "message_id": event.message_id},
            )

        return InboundMessage(
            conversation_id=event.sender_id,
            sender_id=event.sender_id,
            sender_name=event.sender_name,
            content=event.text.strip(),
            attachment=event.attachment,
            metadata={"message_id": event.message_id},
        )

    @property
    def is_running(self) -> bool:
        """Check if the transport is running."""
        return self._running
