"""Per-conversation message brokers."""

from wxrelay.broker.conversation_broker import BrokerManager, ConversationBroker, QueuedMessage

__all__ = ["ConversationBroker", "BrokerManager", "QueuedMessage"]
