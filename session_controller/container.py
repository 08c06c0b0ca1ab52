"""
Dependency Injection Container

Wires the identity backend, data store repositories and session services
together. Every collaborator is a Singleton so the application holds exactly
one controller, one resolver and one monitor.
"""
import logging

from dependency_injector import containers, providers

from session_controller.config import settings as default_settings
from session_controller.logging_client import setup_logger
from session_controller.providers.http_identity_backend import HttpIdentityBackend
from session_controller.repositories.base import DynamoDBClient
from session_controller.repositories.ownership_repository import DynamoDBOwnershipRepository
from session_controller.repositories.profile_repository import DynamoDBProfileRepository
from session_controller.repositories.usage_repository import DynamoDBUsageRepository
from session_controller.services.inactivity_monitor import InactivityMonitor
from session_controller.services.notifier import LoggingNotifier
from session_controller.services.permission_evaluator import PermissionEvaluator
from session_controller.services.profile_resolver import ProfileResolver
from session_controller.services.session_controller import SessionController
from session_controller.services.usage_limiter import UsageLimiter

logger = logging.getLogger(__name__)


class Container(containers.DeclarativeContainer):
    """
    Session controller dependency injection container.

    Usage:
        container = Container()
        controller = await start_session(container)

        # Override for testing
        container.identity_backend.override(FakeIdentityBackend())
        container.settings.override(Settings(INIT_TIMEOUT_SECONDS=1))
    """

    settings = providers.Object(default_settings)

    # ========== Clients ==========

    dynamodb_client = providers.Singleton(
        DynamoDBClient,
        config=settings
    )

    identity_backend = providers.Singleton(
        HttpIdentityBackend,
        base_url=settings.provided.AUTH_SERVICE_URL,
        provider=settings.provided.AUTH_PROVIDER,
        timeout=settings.provided.HTTP_TIMEOUT_SECONDS
    )

    notifier = providers.Singleton(
        LoggingNotifier
    )

    # ========== Repositories ==========

    profile_repository = providers.Singleton(
        DynamoDBProfileRepository,
        client=dynamodb_client,
        config=settings
    )

    usage_repository = providers.Singleton(
        DynamoDBUsageRepository,
        client=dynamodb_client,
        config=settings
    )

    ownership_repository = providers.Singleton(
        DynamoDBOwnershipRepository,
        client=dynamodb_client,
        config=settings
    )

    # ========== Services ==========

    profile_resolver = providers.Singleton(
        ProfileResolver,
        profile_repository=profile_repository,
        usage_repository=usage_repository,
        notifier=notifier,
        max_attempts=settings.provided.PROFILE_MAX_ATTEMPTS,
        retry_delay_seconds=settings.provided.PROFILE_RETRY_DELAY_SECONDS,
        query_timeout_seconds=settings.provided.QUERY_TIMEOUT_SECONDS,
        role_default_limits=settings.provided.ROLE_DEFAULT_LIMITS_ENABLED
    )

    permission_evaluator = providers.Singleton(
        PermissionEvaluator,
        ownership_repository=ownership_repository
    )

    usage_limiter = providers.Singleton(
        UsageLimiter,
        usage_repository=usage_repository,
        notifier=notifier,
        warning_threshold=settings.provided.USAGE_WARNING_THRESHOLD,
        deduplicate_warnings=settings.provided.DEDUPLICATE_USAGE_WARNINGS
    )

    session_controller = providers.Singleton(
        SessionController,
        identity_backend=identity_backend,
        profile_resolver=profile_resolver,
        permission_evaluator=permission_evaluator,
        usage_limiter=usage_limiter,
        profile_repository=profile_repository,
        notifier=notifier,
        init_timeout_seconds=settings.provided.INIT_TIMEOUT_SECONDS,
        refresh_interval_seconds=settings.provided.USER_REFRESH_INTERVAL_SECONDS
    )

    inactivity_monitor = providers.Singleton(
        InactivityMonitor,
        controller=session_controller,
        notifier=notifier,
        inactivity_timeout_seconds=settings.provided.INACTIVITY_TIMEOUT_SECONDS,
        warning_before_logout_seconds=settings.provided.WARNING_BEFORE_LOGOUT_SECONDS,
        check_interval_seconds=settings.provided.INACTIVITY_CHECK_INTERVAL_SECONDS
    )


async def start_session(container: Container) -> SessionController:
    """
    Configure logging, attach the inactivity monitor and initialize the controller.

    Returns:
        SessionController: Initialized controller (authenticated or not)
    """
    config = container.settings()
    setup_logger(config.SERVICE_NAME, config)

    controller = container.session_controller()
    container.inactivity_monitor().attach()
    await controller.start()

    logger.info(f"{config.SERVICE_NAME} v{config.SERVICE_VERSION} ready")
    return controller


async def shutdown_session(container: Container) -> None:
    """Stop background work and release the HTTP client."""
    await container.inactivity_monitor().close()
    await container.session_controller().close()
    await container.profile_resolver().drain()

    backend = container.identity_backend()
    if isinstance(backend, HttpIdentityBackend):
        await backend.close()

    logger.info("Session controller shut down")
