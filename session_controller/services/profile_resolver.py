"""
Profile resolution: assembles a User from independent store lookups.

Lookups:
- Core profile row (required; absent or failing → retry)
- Role assignment (optional → guest)
- Daily limits (optional → unlimited, or role defaults when enabled)
- Today's usage (optional → zeros, and a zeroed row is created in the background)

Right after sign-in the principal's own rows may not be visible to its own
queries yet (RLS lag), so an absent profile row is retried like an error.
"""
import asyncio
import logging
from typing import Awaitable, Dict, Optional, Set, TypeVar

from session_controller.domain.user import (
    UNLIMITED,
    DailyLimits,
    DailyUsage,
    LimitKind,
    Role,
    User,
    UserStatus,
)
from session_controller.exceptions import ProfileNotFoundError, StoreError
from session_controller.interfaces.notifier import INotifier
from session_controller.interfaces.repositories import IProfileRepository, IUsageRepository
from session_controller.services.usage_limiter import default_limits_for_role
from session_controller.utils.dates import parse_timestamp, utc_today

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProfileResolver:
    """Resolves a principal id into a complete User, or None.

    Stateless with respect to resolution and safe to call concurrently, but the
    caller is expected to keep one resolution per principal in flight.
    """

    def __init__(
        self,
        profile_repository: IProfileRepository,
        usage_repository: IUsageRepository,
        notifier: INotifier,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        query_timeout_seconds: float = 5.0,
        role_default_limits: bool = False
    ):
        self.profile_repository = profile_repository
        self.usage_repository = usage_repository
        self.notifier = notifier
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_seconds = retry_delay_seconds
        self.query_timeout_seconds = query_timeout_seconds
        self.role_default_limits = role_default_limits
        self._background_tasks: Set[asyncio.Task] = set()

    async def resolve(self, user_id: str) -> Optional[User]:
        """
        Resolve a user with bounded retries. Never raises.

        Returns:
            The assembled User, or None when identity could not be established
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                await asyncio.sleep(self.retry_delay_seconds)

            try:
                user = await self._resolve_once(user_id)
            except ProfileNotFoundError as e:
                last_error = e
                logger.warning(
                    f"Profile for {user_id} not visible (attempt {attempt}/{self.max_attempts})"
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Profile resolution for {user_id} failed "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )
            else:
                if attempt > 1:
                    logger.info(f"Profile for {user_id} resolved on attempt {attempt}")
                return user

        logger.error(f"Giving up on profile for {user_id} after {self.max_attempts} attempts: {last_error}")
        self.notifier.error("profile_load_failed", user_id=user_id, reason=str(last_error))
        return None

    @property
    def pending_background_tasks(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for background side effects (usage row creation) to finish."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def _resolve_once(self, user_id: str) -> User:
        profile = await self._query("profile", self.profile_repository.get_profile(user_id))
        if not profile:
            raise ProfileNotFoundError(f"No profile row for {user_id}")

        today = utc_today()
        role_name, limits_row, usage_row = await asyncio.gather(
            self._query("role", self.profile_repository.get_role(user_id)),
            self._query("daily limits", self.profile_repository.get_daily_limits(user_id)),
            self._query("daily usage", self.usage_repository.get_daily_usage(user_id, today)),
        )

        if usage_row is None:
            self._spawn(self._create_usage_row(user_id, today))

        role = self._parse_role(user_id, role_name)
        return User(
            user_id=str(profile.get("user_id", user_id)),
            email=profile.get("email", ""),
            full_name=profile.get("full_name") or "",
            role=role,
            status=self._parse_status(profile.get("status")),
            preferences=dict(profile.get("preferences") or {}),
            daily_limits=self._build_limits(role, limits_row),
            usage_today=self._build_usage(usage_row),
            last_login=parse_timestamp(profile.get("last_login")),
            created_at=parse_timestamp(profile.get("created_at")),
        )

    async def _query(self, name: str, query: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(query, timeout=self.query_timeout_seconds)
        except asyncio.TimeoutError:
            raise StoreError(f"{name} query timed out after {self.query_timeout_seconds}s")

    def _parse_role(self, user_id: str, role_name: Optional[str]) -> Role:
        if not role_name:
            logger.info(f"No role assigned to {user_id}, using guest")
            return Role.GUEST
        try:
            return Role(role_name)
        except ValueError:
            logger.warning(f"Unknown role '{role_name}' for {user_id}, using guest")
            return Role.GUEST

    @staticmethod
    def _parse_status(status: Optional[str]) -> UserStatus:
        if status is None:
            return UserStatus.ACTIVE
        try:
            return UserStatus(status)
        except ValueError:
            logger.warning(f"Unknown user status '{status}', treating as inactive")
            return UserStatus.INACTIVE

    def _build_limits(self, role: Role, row: Optional[Dict]) -> DailyLimits:
        if row is None:
            if self.role_default_limits:
                return default_limits_for_role(role)
            return DailyLimits()

        values = {}
        for kind in LimitKind:
            value = row.get(kind.value)
            values[kind.value] = UNLIMITED if value is None else int(value)
        return DailyLimits(**values)

    @staticmethod
    def _build_usage(row: Optional[Dict]) -> DailyUsage:
        if row is None:
            return DailyUsage()
        return DailyUsage(**{kind.value: int(row.get(kind.value) or 0) for kind in LimitKind})

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _create_usage_row(self, user_id: str, usage_date: str) -> None:
        try:
            await self.usage_repository.create_daily_usage(user_id, usage_date)
            logger.debug(f"Created usage row for {user_id} on {usage_date}")
        except Exception as e:
            logger.warning(f"Could not create usage row for {user_id} on {usage_date}: {e}")
