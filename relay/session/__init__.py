"""Per-user chat sessions against the model backend."""

from relay.session.coordinator import (
    ChatSession,
    RetryPolicy,
    SessionCoordinator,
    SessionRegistry,
    SessionState,
)

__all__ = ["ChatSession", "RetryPolicy", "SessionCoordinator", "SessionRegistry", "SessionState"]
