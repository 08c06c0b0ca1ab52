"""Pytest configuration and shared fixtures for session controller tests."""
from datetime import datetime, timezone
from typing import Callable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from session_controller.domain.session import AuthEvent, Session
from session_controller.domain.user import DailyLimits, DailyUsage, Role, User, UserStatus
from session_controller.interfaces.identity_backend import AuthEventListener, IIdentityBackend


class FakeIdentityBackend(IIdentityBackend):
    """In-memory identity backend; tests push events with ``emit``."""

    def __init__(self, session: Optional[Session] = None):
        self.session = session
        self.listeners: List[AuthEventListener] = []
        self.sign_in_error: Optional[Exception] = None
        self.sign_out_error: Optional[Exception] = None
        self.session_error: Optional[Exception] = None
        self.sign_out_calls = 0

    async def get_current_session(self) -> Optional[Session]:
        if self.session_error:
            raise self.session_error
        return self.session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        if self.sign_in_error:
            raise self.sign_in_error
        self.session = Session(user_id="user_analyst", access_token="token", email=email)
        return self.session

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.sign_out_error:
            raise self.sign_out_error
        self.session = None

    def subscribe(self, listener: AuthEventListener) -> Callable[[], None]:
        self.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    async def emit(self, event: AuthEvent, session: Optional[Session] = None) -> None:
        for listener in list(self.listeners):
            await listener(event, session)


def make_user(
    role: Role = Role.ANALYST,
    status: UserStatus = UserStatus.ACTIVE,
    limits: Optional[DailyLimits] = None,
    usage: Optional[DailyUsage] = None,
    user_id: Optional[str] = None,
) -> User:
    return User(
        user_id=user_id or f"user_{role.value}",
        email=f"{role.value}@example.com",
        full_name=f"{role.value.title()} User",
        role=role,
        status=status,
        daily_limits=limits or DailyLimits(),
        usage_today=usage or DailyUsage(),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_user():
    """Fixture for an active analyst."""
    return make_user(Role.ANALYST)


@pytest.fixture
def sample_admin_user():
    """Fixture for an active admin."""
    return make_user(Role.ADMIN)


@pytest.fixture
def sample_guest_user():
    """Fixture for an active guest."""
    return make_user(Role.GUEST)


@pytest.fixture
def sample_session():
    return Session(user_id="user_analyst", access_token="token", email="analyst@example.com")


@pytest.fixture
def profile_row():
    """Fixture for a profile row as returned by the store."""
    return {
        "user_id": "user_analyst",
        "email": "analyst@example.com",
        "full_name": "Analyst User",
        "status": "active",
        "preferences": {"theme": "dark"},
        "last_login": "2024-05-01T08:00:00Z",
        "created_at": "2024-01-01T00:00:00+00:00",
    }


@pytest.fixture
def mock_profile_repository():
    """Mock profile repository for testing."""
    return AsyncMock()


@pytest.fixture
def mock_usage_repository():
    """Mock usage repository for testing."""
    return AsyncMock()


@pytest.fixture
def mock_ownership_repository():
    """Mock ownership repository for testing."""
    return AsyncMock()


@pytest.fixture
def mock_notifier():
    """Notifier calls are synchronous."""
    return MagicMock()


@pytest.fixture
def identity_backend():
    return FakeIdentityBackend()
