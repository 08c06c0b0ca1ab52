"""HTTP identity backend backed by the password auth service."""
import asyncio
import logging
from contextlib import suppress
from typing import Callable, List, Optional, Set

import httpx
from pydantic import ValidationError

from session_controller.domain.session import AuthEvent, Session
from session_controller.exceptions import CredentialsRejectedError, IdentityBackendError
from session_controller.interfaces.identity_backend import AuthEventListener, IIdentityBackend
from session_controller.providers.models import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)


class HttpIdentityBackend(IIdentityBackend):
    """
    Identity backend client for the auth service.

    Holds the latest session in memory only and publishes auth events to
    subscribers:
    - INITIAL_SESSION on subscribe
    - SIGNED_IN after a successful login
    - SIGNED_OUT on sign-out or when the held session expires

    Events are delivered as separate tasks, so publishers never wait on
    subscribers.
    """

    def __init__(
        self,
        base_url: str = "http://auth-service:8002",
        provider: str = "password",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the identity backend client.

        Args:
            base_url: Auth service base URL
            provider: Auth provider name sent with each login
            timeout: HTTP timeout in seconds
            http_client: Preconfigured client (tests inject a MockTransport)
        """
        self.base_url = base_url
        self.provider = provider
        self.http_client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._session: Optional[Session] = None
        self._listeners: List[AuthEventListener] = []
        self._deliveries: Set[asyncio.Task] = set()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close HTTP client."""
        await self.http_client.aclose()

    async def get_current_session(self) -> Optional[Session]:
        if self._session is not None and self._session.is_expired():
            logger.info(f"Session for {self._session.user_id} expired")
            self._session = None
            self._publish(AuthEvent.SIGNED_OUT, None)
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        request = LoginRequest(provider=self.provider, identifier=email, credentials=password)

        try:
            response = await self.http_client.post("/login", json=request.model_dump())
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable: {e}")
            raise IdentityBackendError(f"Auth service unreachable: {e}") from e

        if response.status_code in (400, 401, 403):
            logger.info(f"Login refused for {email}: HTTP {response.status_code}")
            raise CredentialsRejectedError(self._error_detail(response))

        try:
            response.raise_for_status()
            payload = LoginResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise IdentityBackendError(
                f"Auth service error: {e.response.status_code} - {self._error_detail(e.response)}"
            ) from e
        except (ValueError, ValidationError) as e:
            raise IdentityBackendError(f"Malformed login response: {e}") from e

        session = Session.from_tokens(
            payload.access_token,
            refresh_token=payload.refresh_token,
            token_type=payload.token_type,
            user_id=payload.user.user_id,
            email=payload.user.email,
        )
        self._session = session
        self._publish(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        # The auth service issues stateless tokens; dropping them ends the session
        self._session = None
        self._publish(AuthEvent.SIGNED_OUT, None)

    def subscribe(self, listener: AuthEventListener) -> Callable[[], None]:
        self._listeners.append(listener)
        self._deliver_later(listener, AuthEvent.INITIAL_SESSION, self._session)

        def unsubscribe() -> None:
            with suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def drain_events(self) -> None:
        """Wait until every published event has been delivered."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    def _publish(self, event: AuthEvent, session: Optional[Session]) -> None:
        logger.debug(f"Publishing {event.value} to {len(self._listeners)} subscriber(s)")
        for listener in list(self._listeners):
            self._deliver_later(listener, event, session)

    def _deliver_later(
        self,
        listener: AuthEventListener,
        event: AuthEvent,
        session: Optional[Session]
    ) -> None:
        task = asyncio.ensure_future(self._deliver(listener, event, session))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(
        self,
        listener: AuthEventListener,
        event: AuthEvent,
        session: Optional[Session]
    ) -> None:
        try:
            await listener(event, session)
        except Exception as e:
            logger.error(f"Auth event subscriber failed on {event.value}: {e}", exc_info=True)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            return str(response.json().get("detail", response.text))
        except (ValueError, AttributeError):
            return response.text
