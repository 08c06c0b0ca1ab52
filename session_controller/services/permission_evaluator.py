"""
Permission evaluation over the static role table.

The table below is part of the external contract: roles listed for a
permission are the only roles granted it. Unknown permissions are denied.
"""
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional

from session_controller.domain.user import Role, User
from session_controller.interfaces.repositories import IOwnershipRepository

logger = logging.getLogger(__name__)

_ALL_BUT_GUEST = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.ANALYST, Role.VIEWER})
_ADMINS = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
_ANALYSTS = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.ANALYST})
_SUPER_ADMIN = frozenset({Role.SUPER_ADMIN})

PERMISSIONS: Mapping[str, FrozenSet[Role]] = MappingProxyType({
    "VIEW_POSTS": _ALL_BUT_GUEST | {Role.GUEST},
    "EDIT_POSTS": _ADMINS,
    "DELETE_POSTS": _ADMINS,
    "EDIT_OWN_POSTS": _ANALYSTS,
    "REQUEST_AI_ANALYSIS": _ANALYSTS,
    "VIEW_ALERTS": _ALL_BUT_GUEST,
    "CREATE_ALERTS": _ANALYSTS,
    "EDIT_ALL_ALERTS": _ADMINS,
    "EDIT_OWN_ALERTS": _ANALYSTS,
    "MANAGE_USERS": _SUPER_ADMIN,
    "INVITE_USERS": _ADMINS,
    "MANAGE_SETTINGS": _SUPER_ADMIN,
    "MANAGE_API_KEYS": _SUPER_ADMIN,
    "VIEW_API_USAGE": _ADMINS,
    "EXPORT_DATA": _ALL_BUT_GUEST,
    "USE_CHAT": _ALL_BUT_GUEST,
})

PERMISSION_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    "VIEW_POSTS": "view posts",
    "EDIT_POSTS": "edit posts",
    "DELETE_POSTS": "delete posts",
    "EDIT_OWN_POSTS": "edit your own posts",
    "REQUEST_AI_ANALYSIS": "request AI analysis",
    "VIEW_ALERTS": "view alerts",
    "CREATE_ALERTS": "create alerts",
    "EDIT_ALL_ALERTS": "edit all alerts",
    "EDIT_OWN_ALERTS": "edit your own alerts",
    "MANAGE_USERS": "manage users",
    "INVITE_USERS": "invite users",
    "MANAGE_SETTINGS": "manage settings",
    "MANAGE_API_KEYS": "manage API keys",
    "VIEW_API_USAGE": "view API usage",
    "EXPORT_DATA": "export data",
    "USE_CHAT": "use chat",
})

# Actions containing this marker are scoped to resources the user owns
OWNERSHIP_MARKER = "OWN"


def permissions_for_role(role: Role) -> List[str]:
    """List the permissions granted to a role, in table order."""
    return [name for name, roles in PERMISSIONS.items() if role in roles]


def describe_permission(permission: str) -> str:
    """Human-readable name of a permission (falls back to the raw name)."""
    return PERMISSION_DESCRIPTIONS.get(permission, permission)


class PermissionEvaluator:
    """Evaluates permissions and ownership-scoped actions for a user.

    Every ambiguous or failed evaluation is a denial (fail closed).
    """

    def __init__(
        self,
        ownership_repository: IOwnershipRepository,
        permissions: Optional[Mapping[str, FrozenSet[Role]]] = None
    ):
        self.ownership_repository = ownership_repository
        self.permissions: Mapping[str, FrozenSet[Role]] = permissions or PERMISSIONS

    def has_permission(self, user: Optional[User], permission: str) -> bool:
        if user is None:
            return False
        allowed = self.permissions.get(permission)
        if not allowed:
            return False
        return user.role in allowed

    async def can_perform(
        self,
        user: Optional[User],
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None
    ) -> bool:
        """
        Check an action, verifying ownership for OWN-scoped actions.

        Ownership is looked up only when both resource fields are given and the
        role already holds the permission. Lookup errors count as "not owned".
        """
        if user is None:
            return False

        if OWNERSHIP_MARKER not in action or not resource_type or not resource_id:
            return self.has_permission(user, action)

        if not self.has_permission(user, action):
            return False

        try:
            owned = await self.ownership_repository.is_owner(user.user_id, resource_type, resource_id)
        except Exception as e:
            logger.warning(
                f"Ownership lookup failed for {user.user_id} on {resource_type}/{resource_id}: {e}"
            )
            return False

        return bool(owned)

    def explain_denial(self, user: Optional[User], permission: str) -> Dict[str, Optional[str]]:
        """Context for telling a user why an action is unavailable."""
        return {
            "permission": permission,
            "description": describe_permission(permission),
            "current_role": user.role.value if user else None,
        }
