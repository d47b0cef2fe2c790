"""Conversation history module."""

from wxrelay.history.models import ChatMessage
from wxrelay.history.store import HistoryStore

__all__ = ["ChatMessage", "HistoryStore"]
