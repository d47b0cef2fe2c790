"""Agent core: orchestrator, loop and tools."""

from wxrelay.agent.loop import AgentLoop
from wxrelay.agent.orchestrator import ConversationOrchestrator, TurnResult, TurnState
from wxrelay.agent.outcome import Failed, FailureKind, Ok

__all__ = [
    "AgentLoop",
    "ConversationOrchestrator",
    "TurnResult",
    "TurnState",
    "Ok",
    "Failed",
    "FailureKind",
]
