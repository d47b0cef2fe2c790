"""Agent loop: turns accepted inbound messages into replies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from wxrelay.agent.orchestrator import ConversationOrchestrator
from wxrelay.bus.events import InboundMessage
from wxrelay.services.file_reader import FileReaderService

if TYPE_CHECKING:
    from wxrelay.channels.base import BaseTransport


class AgentLoop:
    """
    Entry point the brokers call for every inbound message.

    Direct-chat attachments go to the file reader, everything else goes
    through the conversation orchestrator. Exactly one reply is sent back
    through the transport per message.
    """

    def __init__(
        self,
        orchestrator: ConversationOrchestrator,
        file_reader: FileReaderService,
        transport: BaseTransport,
    ):
        self.orchestrator = orchestrator
        self.file_reader = file_reader
        self.transport = transport

    async def process_inbound(self, msg: InboundMessage) -> None:
        """Process one message and send its reply."""
        if msg.attachment is not None and msg.room_id is None:
            reply = await self.file_reader.handle_file(msg.attachment)
        else:
            reply = await self.orchestrator.process_message(
                msg.content, msg.conversation_id, msg.sender_name
            )

        try:
            await self.transport.send(msg.reply(reply))
        except Exception as e:
            logger.error(f"Failed to send reply to {msg.conversation_id}: {e}")
