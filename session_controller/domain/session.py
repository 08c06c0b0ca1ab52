"""Session reference and lifecycle enums"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from session_controller.utils.jwt import read_claims


class AuthEvent(str, Enum):
    """Tags published on the identity backend's live event stream."""
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class ActivitySignal(str, Enum):
    """User-activity signals that reset the inactivity clock."""
    POINTER_DOWN = "pointerdown"
    KEY_DOWN = "keydown"
    SCROLL = "scroll"
    TOUCH_START = "touchstart"


@dataclass
class Session:
    """
    Opaque reference to an identity backend session.

    Only the principal id is interpreted; tokens are carried, never validated.
    """
    user_id: str
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    email: Optional[str] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_tokens(
        cls,
        access_token: str,
        refresh_token: Optional[str] = None,
        token_type: str = "bearer",
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> "Session":
        """Build a session, filling principal and expiry from the access token claims."""
        claims = read_claims(access_token)
        expires_at = None
        if "exp" in claims:
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)

        principal = user_id or claims.get("user_id") or claims.get("sub")
        if not principal:
            raise ValueError("Session has no principal id")

        return cls(
            user_id=str(principal),
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=token_type,
            email=email or claims.get("email"),
            expires_at=expires_at,
            metadata={"role": claims.get("role")} if claims.get("role") else {},
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
