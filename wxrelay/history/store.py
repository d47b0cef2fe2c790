"""Per-conversation history store."""

from __future__ import annotations

import asyncio
import json
import os
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from wxrelay.history.models import ChatMessage, Role

if TYPE_CHECKING:
    from wxrelay.providers.base import LLMProvider

EMPTY_SUMMARY = "当前会话暂无聊天记录，无法总结。"

SUMMARY_INSTRUCTION = (
    "请用中文简要总结下面这段群聊/私聊记录，列出主要话题、结论和待办事项。"
    "每条消息的格式为“发言人: 内容”。"
)

PERSIST_VERSION = 1


class HistoryStore:
    """
    Bounded message logs keyed by conversation id.

    Each conversation keeps at most ``max_length`` messages; the oldest
    entries are evicted first. The store also owns the per-conversation
    system prompt selection.

    Mutating calls are synchronous and never await, so they cannot
    interleave on the event loop. Callers that need an append followed by a
    read to be atomic for one conversation hold :meth:`lock`.
    """

    def __init__(
        self,
        max_length: int = 20,
        path: Path | None = None,
        provider: LLMProvider | None = None,
        model: str | None = None,
    ):
        if max_length < 1:
            raise ValueError("max_length must be at least 1")
        self.max_length = max_length
        self.path = path
        self.provider = provider
        self.model = model
        self._logs: dict[str, deque[ChatMessage]] = {}
        self._prompts: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _log_for(self, conversation_id: str) -> deque[ChatMessage]:
        log = self._logs.get(conversation_id)
        if log is None:
            log = deque(maxlen=self.max_length)
            self._logs[conversation_id] = log
        return log

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """Get the lock that serializes history access for one conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def append(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        author_name: str | None = None,
        tool_call_id: str | None = None,
    ) -> None:
        """Append a message, evicting the oldest entries beyond the bound."""
        try:
            message = ChatMessage(
                role=role,
                content="" if content is None else str(content),
                author_name=author_name or None,
                tool_call_id=tool_call_id,
            )
            self._log_for(conversation_id).append(message)
        except Exception as e:
            logger.error(f"Failed to append history for {conversation_id}: {e}")

    def get_context(self, conversation_id: str) -> list[ChatMessage]:
        """Get the conversation log in insertion order (no system prompt)."""
        return list(self._logs.get(conversation_id, ()))

    def has_conversation(self, conversation_id: str | None) -> bool:
        return bool(conversation_id) and conversation_id in self._logs

    def conversations(self) -> dict[str, int]:
        """Map of conversation id to stored message count."""
        return {cid: len(log) for cid, log in self._logs.items()}

    def clear(self, conversation_id: str | None = None) -> None:
        """Clear one conversation, or every conversation when no id is given."""
        if conversation_id is None:
            self._logs.clear()
            self._prompts.clear()
            return
        self._logs.pop(conversation_id, None)
        self._prompts.pop(conversation_id, None)

    # Prompt selection state

    def get_prompt(self, conversation_id: str) -> str | None:
        return self._prompts.get(conversation_id)

    def set_prompt(self, conversation_id: str, name: str) -> None:
        self._prompts[conversation_id] = name

    async def summarize(self, conversation_id: str) -> str:
        """
        Summarize a conversation through the completion service.

        Returns:
            The summary text, or ``EMPTY_SUMMARY`` when there is no history.

        Raises:
            RuntimeError: If no provider is configured or the call fails.
        """
        log = self.get_context(conversation_id)
        transcript = [
            f"{m.author_name or m.role}: {m.content}"
            for m in log
            if m.role in ("user", "assistant") and m.content
        ]
        if not transcript:
            return EMPTY_SUMMARY

        if self.provider is None:
            raise RuntimeError("No completion provider configured for summaries")

        response = await self.provider.chat(
            messages=[
                {"role": "system", "content": SUMMARY_INSTRUCTION},
                {"role": "user", "content": "\n".join(transcript)},
            ],
            model=self.model,
        )
        if response.is_error:
            raise RuntimeError(response.content or "summary request failed")
        return response.content or ""

    # Persistence

    def persist(self) -> bool:
        """Write all conversations to the backing file. Never raises."""
        if self.path is None:
            return False

        data = {
            "version": PERSIST_VERSION,
            "conversations": {
                cid: {
                    "prompt": self._prompts.get(cid),
                    "messages": [m.to_dict() for m in log],
                }
                for cid, log in self._logs.items()
            },
        }
        # Conversations that only switched prompts have no log yet
        for cid, prompt in self._prompts.items():
            data["conversations"].setdefault(cid, {"prompt": prompt, "messages": []})

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception as e:
            logger.warning(f"Failed to persist chat history to {self.path}: {e}")
            return False

        logger.info(f"Persisted {len(data['conversations'])} conversations to {self.path}")
        return True

    def restore(self) -> bool:
        """Load conversations from the backing file. Never raises."""
        if self.path is None or not self.path.exists():
            return False

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            conversations = data.get("conversations", {})
            logs: dict[str, deque[ChatMessage]] = {}
            prompts: dict[str, str] = {}
            for cid, entry in conversations.items():
                messages = [ChatMessage.from_dict(m) for m in entry.get("messages", [])]
                if messages:
                    logs[cid] = deque(messages, maxlen=self.max_length)
                if entry.get("prompt"):
                    prompts[cid] = entry["prompt"]
        except Exception as e:
            logger.warning(f"Failed to restore chat history from {self.path}: {e}")
            return False

        self._logs.update(logs)
        self._prompts.update(prompts)
        logger.info(f"Restored {len(logs)} conversations from {self.path}")
        return True
