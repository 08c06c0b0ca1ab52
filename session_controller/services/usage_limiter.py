"""Daily usage quota tracking with optimistic increments."""
import logging
from types import MappingProxyType
from typing import Awaitable, Callable, Dict, Mapping, Optional, Set, Tuple

from session_controller.domain.user import UNLIMITED, DailyLimits, LimitKind, Role, User
from session_controller.interfaces.notifier import INotifier
from session_controller.interfaces.repositories import IUsageRepository
from session_controller.utils.dates import utc_today

logger = logging.getLogger(__name__)

# Suggested per-role ceilings for new accounts
DEFAULT_ROLE_LIMITS: Mapping[Role, DailyLimits] = MappingProxyType({
    Role.SUPER_ADMIN: DailyLimits(ai_analysis=UNLIMITED, chat_messages=UNLIMITED, exports=UNLIMITED),
    Role.ADMIN: DailyLimits(ai_analysis=100, chat_messages=200, exports=1000),
    Role.ANALYST: DailyLimits(ai_analysis=50, chat_messages=100, exports=500),
    Role.VIEWER: DailyLimits(ai_analysis=10, chat_messages=20, exports=100),
    Role.GUEST: DailyLimits(ai_analysis=0, chat_messages=10, exports=0),
})


def default_limits_for_role(role: Role) -> DailyLimits:
    """Fresh copy of the default limits for a role."""
    template = DEFAULT_ROLE_LIMITS[Role(role)]
    return DailyLimits(
        ai_analysis=template.ai_analysis,
        chat_messages=template.chat_messages,
        exports=template.exports,
    )


class UsageLimiter:
    """
    Enforces per-day quotas on the in-memory user and persists increments.

    Quota checks are advisory: they answer whether another unit is allowed and
    raise a warning once usage reaches the warning threshold.
    """

    def __init__(
        self,
        usage_repository: IUsageRepository,
        notifier: INotifier,
        warning_threshold: float = 0.8,
        deduplicate_warnings: bool = False
    ):
        """
        Args:
            usage_repository: Store for per-day counters
            notifier: Receives threshold warnings
            warning_threshold: Usage ratio at which warnings start
            deduplicate_warnings: Warn once per (user, day, kind, usage) instead of on every check
        """
        self.usage_repository = usage_repository
        self.notifier = notifier
        self.warning_threshold = warning_threshold
        self.deduplicate_warnings = deduplicate_warnings
        self._warned: Set[Tuple[str, str, LimitKind, int]] = set()

    def check_daily_limit(self, user: Optional[User], kind: LimitKind) -> bool:
        """Whether the user may consume one more unit of ``kind`` today."""
        if user is None:
            return False

        kind = LimitKind(kind)
        limit = user.daily_limits.get(kind)
        if limit == UNLIMITED:
            return True

        usage = user.usage_today.get(kind)
        if limit <= 0:
            return usage < limit

        ratio = usage / limit
        if self.warning_threshold <= ratio < 1.0:
            self._warn(user, kind, usage, limit, ratio)

        return usage < limit

    def remaining(self, user: Optional[User], kind: LimitKind) -> Optional[int]:
        """Units left today; None means unlimited."""
        if user is None:
            return 0
        limit = user.daily_limits.get(kind)
        if limit == UNLIMITED:
            return None
        return max(limit - user.usage_today.get(kind), 0)

    def summary(self, user: User) -> Dict[str, Dict[str, Optional[int]]]:
        return {
            kind.value: {
                "limit": user.daily_limits.get(kind),
                "used": user.usage_today.get(kind),
                "remaining": self.remaining(user, kind),
            }
            for kind in LimitKind
        }

    async def increment_usage(
        self,
        user: Optional[User],
        kind: LimitKind,
        refresh: Callable[[], Awaitable[None]]
    ) -> None:
        """
        Count one unit of usage.

        The in-memory counter moves first; the store write follows. On a failed
        write the authoritative counters are re-read through ``refresh`` instead
        of decrementing locally, so concurrent increments cannot drift.
        """
        if user is None:
            return

        kind = LimitKind(kind)
        optimistic = user.usage_today.increment(kind)

        try:
            stored = await self.usage_repository.increment_usage(user.user_id, utc_today(), kind, 1)
            logger.debug(
                f"Usage {kind.value} for {user.user_id}: local={optimistic}, stored={stored}"
            )
        except Exception as e:
            logger.error(f"Failed to persist {kind.value} usage for {user.user_id}: {e}")
            await refresh()

    def _warn(self, user: User, kind: LimitKind, usage: int, limit: int, ratio: float) -> None:
        if self.deduplicate_warnings:
            today = utc_today()
            marker = (user.user_id, today, kind, usage)
            if marker in self._warned:
                return
            # Markers from earlier days can never match again
            self._warned = {m for m in self._warned if m[1] == today}
            self._warned.add(marker)

        self.notifier.warning(
            "daily_limit_near",
            limit_kind=kind.value,
            usage=usage,
            limit=limit,
            percent=round(ratio * 100),
        )
