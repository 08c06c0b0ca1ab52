"""Identity backend interface"""
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from session_controller.domain.session import AuthEvent, Session

AuthEventListener = Callable[[AuthEvent, Optional[Session]], Awaitable[None]]


class IIdentityBackend(ABC):
    """Interface for the external identity provider (credentials, tokens, auth events)"""

    @abstractmethod
    async def get_current_session(self) -> Optional[Session]:
        """Get the live session, or None when signed out"""
        pass

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Verify credentials and open a session.

        Raises:
            CredentialsRejectedError: If the credentials are refused
            IdentityBackendError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Close the current session"""
        pass

    @abstractmethod
    def subscribe(self, listener: AuthEventListener) -> Callable[[], None]:
        """Subscribe to the live auth event stream.

        Returns:
            Callable that removes the subscription
        """
        pass
