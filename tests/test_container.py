"""Tests for settings, logging setup and container wiring."""
import logging
from unittest.mock import AsyncMock

import pytest

from session_controller.config import Settings
from session_controller.container import Container, shutdown_session, start_session
from session_controller.domain.session import SessionState
from session_controller.logging_client import setup_logger
from session_controller.services.inactivity_monitor import InactivityMonitor
from session_controller.services.session_controller import SessionController
from tests.conftest import FakeIdentityBackend


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("INACTIVITY_TIMEOUT_SECONDS", "120")
    monkeypatch.setenv("ROLE_DEFAULT_LIMITS_ENABLED", "true")

    config = Settings()

    assert config.INACTIVITY_TIMEOUT_SECONDS == 120
    assert config.ROLE_DEFAULT_LIMITS_ENABLED is True
    assert config.WARNING_BEFORE_LOGOUT_SECONDS == 300
    assert config.PROFILE_MAX_ATTEMPTS == 3


def test_setup_logger_quiets_noisy_loggers():
    config = Settings(LOG_LEVEL="DEBUG", NOISY_LOGGERS="botocore, httpx")

    logger = setup_logger("session-controller-test", config)

    assert logger.level == logging.DEBUG
    assert logging.getLogger("botocore").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("session_controller").handlers == logger.handlers


def test_container_wiring():
    container = Container()
    container.settings.override(Settings(INIT_TIMEOUT_SECONDS=3, PROFILE_MAX_ATTEMPTS=5))

    controller = container.session_controller()
    monitor = container.inactivity_monitor()

    assert isinstance(controller, SessionController)
    assert isinstance(monitor, InactivityMonitor)
    assert controller is container.session_controller()
    assert controller.init_timeout_seconds == 3
    assert controller.profile_resolver is container.profile_resolver()
    assert container.profile_resolver().max_attempts == 5


@pytest.mark.asyncio
async def test_start_and_shutdown_session():
    container = Container()
    container.settings.override(Settings(USER_REFRESH_INTERVAL_SECONDS=0))
    backend = FakeIdentityBackend()
    container.identity_backend.override(backend)
    container.profile_repository.override(AsyncMock())
    container.usage_repository.override(AsyncMock())

    controller = await start_session(container)

    assert controller.state == SessionState.UNAUTHENTICATED
    assert len(backend.listeners) == 1

    await shutdown_session(container)

    assert backend.listeners == []
