"""Chat history summary tool."""

from typing import Any

from wxrelay.agent.tools.base import Tool, ToolContext
from wxrelay.history.store import HistoryStore


class SummarizeChatTool(Tool):
    """
    Summarize a conversation's stored history.

    The model cannot know conversation ids, so ``chatId`` is only honored
    when it names a stored conversation; otherwise the current one is used.
    """

    def __init__(self, history: HistoryStore):
        self._history = history

    @property
    def name(self) -> str:
        return "summarize_chat"

    @property
    def description(self) -> str:
        return "Summarize the chat history when requested"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "chatId": {
                    "type": "string",
                    "description": "The ID of the chat to summarize (defaults to the current chat)"
                }
            },
            "required": []
        }

    async def execute(self, context: ToolContext, chatId: str | None = None, **kwargs: Any) -> str:
        target = chatId if self._history.has_conversation(chatId) else context.conversation_id
        return await self._history.summarize(target)
