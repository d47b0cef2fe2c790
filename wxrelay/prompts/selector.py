"""System prompt selection and runtime switching."""

from __future__ import annotations

import re

from loguru import logger

from wxrelay.history.models import ChatMessage
from wxrelay.history.store import HistoryStore


class PromptSelector:
    """
    Resolve the active system prompt of a conversation.

    A message of the form ``<command> <template> [content]`` (for example
    ``/prompt translator``) switches the conversation to another template.
    Only known template names count as a switch; anything else is treated as
    ordinary content.
    """

    def __init__(
        self,
        history: HistoryStore,
        templates: dict[str, str],
        default: str = "default",
        command: str = "/prompt",
    ):
        if default not in templates:
            raise ValueError(f"Default prompt '{default}' is not a known template")
        self.history = history
        self._templates = dict(templates)
        self.default = default
        self.command = command
        self._pattern = re.compile(
            rf"^\s*{re.escape(command)}\s+(?P<name>\S+)(?:\s+(?P<rest>.*))?$",
            re.DOTALL,
        )

    def _match(self, raw_text: str) -> re.Match | None:
        match = self._pattern.match(raw_text or "")
        if match and match.group("name") in self._templates:
            return match
        return None

    def is_switch_command(self, raw_text: str) -> bool:
        """True when the text names a known prompt template to switch to."""
        return self._match(raw_text) is not None

    def extract_content(self, raw_text: str) -> str:
        """Strip the switch command, returning what the user actually asked."""
        match = self._match(raw_text)
        if match is None:
            return (raw_text or "").strip()
        return (match.group("rest") or "").strip()

    def active_prompt(self, conversation_id: str) -> str:
        """Name of the template currently selected for a conversation."""
        name = self.history.get_prompt(conversation_id)
        if name not in self._templates:
            return self.default
        return name

    def resolve_system_prompt(self, conversation_id: str, raw_text: str) -> ChatMessage:
        """
        Get the system message for this turn.

        Switch commands update the conversation's prompt selection before the
        prompt is resolved.
        """
        match = self._match(raw_text)
        if match is not None:
            name = match.group("name")
            if name != self.history.get_prompt(conversation_id):
                logger.info(f"Conversation {conversation_id} switched system prompt to '{name}'")
            self.history.set_prompt(conversation_id, name)

        return ChatMessage.system(self._templates[self.active_prompt(conversation_id)])
