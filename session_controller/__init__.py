"""Client-side session and authorization controller."""
from session_controller.domain import (
    ActivitySignal,
    AuthEvent,
    DailyLimits,
    DailyUsage,
    LimitKind,
    Role,
    Session,
    SessionState,
    User,
    UserStatus,
)
from session_controller.exceptions import (
    CredentialsRejectedError,
    IdentityBackendError,
    ProfileNotFoundError,
    SessionControllerError,
    StoreError,
)
from session_controller.services import SessionController, check_access

__version__ = "1.0.0"

__all__ = [
    "ActivitySignal",
    "AuthEvent",
    "DailyLimits",
    "DailyUsage",
    "LimitKind",
    "Role",
    "Session",
    "SessionState",
    "User",
    "UserStatus",
    "CredentialsRejectedError",
    "IdentityBackendError",
    "ProfileNotFoundError",
    "SessionControllerError",
    "StoreError",
    "SessionController",
    "check_access",
]
