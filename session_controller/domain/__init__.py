"""Domain entities for the session controller."""
from .user import UNLIMITED, DailyLimits, DailyUsage, LimitKind, Role, User, UserStatus
from .session import ActivitySignal, AuthEvent, Session, SessionState

__all__ = [
    "UNLIMITED",
    "DailyLimits",
    "DailyUsage",
    "LimitKind",
    "Role",
    "User",
    "UserStatus",
    "ActivitySignal",
    "AuthEvent",
    "Session",
    "SessionState",
]
