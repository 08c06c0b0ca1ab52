"""User domain entity and quota counters"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

UNLIMITED = -1


class Role(str, Enum):
    """Application roles, most privileged first."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    ANALYST = "analyst"
    VIEWER = "viewer"
    GUEST = "guest"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class LimitKind(str, Enum):
    """Daily quota kinds; values match the store column names."""
    AI_ANALYSIS = "ai_analysis"
    CHAT_MESSAGES = "chat_messages"
    EXPORTS = "exports"


@dataclass
class DailyLimits:
    """Per-day quota ceilings. UNLIMITED (-1) means no limit."""
    ai_analysis: int = UNLIMITED
    chat_messages: int = UNLIMITED
    exports: int = UNLIMITED

    def get(self, kind: LimitKind) -> int:
        return getattr(self, LimitKind(kind).value)

    def is_unlimited(self, kind: LimitKind) -> bool:
        return self.get(kind) == UNLIMITED


@dataclass
class DailyUsage:
    """Counters for the current UTC calendar day."""
    ai_analysis: int = 0
    chat_messages: int = 0
    exports: int = 0

    def get(self, kind: LimitKind) -> int:
        return getattr(self, LimitKind(kind).value)

    def increment(self, kind: LimitKind) -> int:
        column = LimitKind(kind).value
        value = getattr(self, column) + 1
        setattr(self, column, value)
        return value


@dataclass
class User:
    """Application identity assembled from profile, role, limits and usage records"""
    user_id: str
    email: str
    full_name: str
    role: Role
    status: UserStatus
    preferences: Dict[str, Any] = field(default_factory=dict)
    daily_limits: DailyLimits = field(default_factory=DailyLimits)
    usage_today: DailyUsage = field(default_factory=DailyUsage)
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_privileged(self) -> bool:
        return self.role in (Role.SUPER_ADMIN, Role.ADMIN)

    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
