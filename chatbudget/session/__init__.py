"""Session history, domain types and persistence."""

from chatbudget.session.manager import Session, SessionManager
from chatbudget.session.models import (
    Message,
    MessageSummary,
    OptimizationStrategy,
    OptimizedContext,
    Role,
    TokenMetrics,
)

__all__ = [
    "Message",
    "MessageSummary",
    "OptimizationStrategy",
    "OptimizedContext",
    "Role",
    "Session",
    "SessionManager",
    "TokenMetrics",
]
