"""Bot session lifecycle."""

from wxrelay.session.lifecycle import SessionLifecycleManager, SessionStartError, SessionState

__all__ = ["SessionLifecycleManager", "SessionStartError", "SessionState"]
