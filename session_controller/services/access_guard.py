"""Route/action access decisions derived from the controller's identity."""
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Union

from session_controller.domain.user import Role, UserStatus

if TYPE_CHECKING:
    from .session_controller import SessionController


class AccessReason(str, Enum):
    ALLOWED = "allowed"
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"
    MISSING_PERMISSION = "missing_permission"
    MISSING_ROLE = "missing_role"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason
    details: Dict[str, Any] = field(default_factory=dict)


def check_access(
    controller: "SessionController",
    required_permission: Optional[str] = None,
    required_role: Optional[Union[Role, str, Iterable[Union[Role, str]]]] = None,
) -> AccessDecision:
    """
    Decide whether the current identity may enter a guarded area.

    Checks run in order: loading, signed in, account status, permission, role.
    """
    if controller.loading:
        return AccessDecision(False, AccessReason.LOADING)

    user = controller.user
    if user is None:
        return AccessDecision(False, AccessReason.UNAUTHENTICATED)

    if user.status == UserStatus.SUSPENDED:
        return AccessDecision(False, AccessReason.SUSPENDED)
    if user.status == UserStatus.INACTIVE:
        return AccessDecision(False, AccessReason.INACTIVE)

    if required_permission and not controller.has_permission(required_permission):
        return AccessDecision(
            False,
            AccessReason.MISSING_PERMISSION,
            controller.permission_evaluator.explain_denial(user, required_permission),
        )

    if required_role:
        if isinstance(required_role, (str, Role)):
            required_role = [required_role]
        roles = {Role(r) for r in required_role}
        if user.role not in roles:
            return AccessDecision(
                False,
                AccessReason.MISSING_ROLE,
                {
                    "required_roles": sorted(r.value for r in roles),
                    "current_role": user.role.value,
                },
            )

    return AccessDecision(True, AccessReason.ALLOWED)
