"""Session controller services."""
from .access_guard import AccessDecision, AccessReason, check_access
from .inactivity_monitor import InactivityMonitor
from .notifier import LoggingNotifier
from .permission_evaluator import (
    PERMISSIONS,
    PermissionEvaluator,
    describe_permission,
    permissions_for_role,
)
from .profile_resolver import ProfileResolver
from .session_controller import SessionController
from .usage_limiter import DEFAULT_ROLE_LIMITS, UsageLimiter, default_limits_for_role

__all__ = [
    "AccessDecision",
    "AccessReason",
    "check_access",
    "InactivityMonitor",
    "LoggingNotifier",
    "PERMISSIONS",
    "PermissionEvaluator",
    "describe_permission",
    "permissions_for_role",
    "ProfileResolver",
    "SessionController",
    "DEFAULT_ROLE_LIMITS",
    "UsageLimiter",
    "default_limits_for_role",
]
