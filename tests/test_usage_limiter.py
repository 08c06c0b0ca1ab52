"""Unit tests for UsageLimiter."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from session_controller.domain.user import DailyLimits, DailyUsage, LimitKind, Role
from session_controller.services import usage_limiter
from session_controller.services.usage_limiter import (
    DEFAULT_ROLE_LIMITS,
    UsageLimiter,
    default_limits_for_role,
)
from tests.conftest import make_user


@pytest.fixture
def limiter(mock_usage_repository, mock_notifier):
    return UsageLimiter(mock_usage_repository, mock_notifier)


class TestCheckDailyLimit:
    """Tests for quota checks and threshold warnings."""

    def test_no_user(self, limiter):
        assert limiter.check_daily_limit(None, LimitKind.CHAT_MESSAGES) is False

    def test_unlimited(self, limiter, mock_notifier):
        user = make_user(usage=DailyUsage(chat_messages=10_000))

        assert limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES) is True
        mock_notifier.warning.assert_not_called()

    def test_below_threshold(self, limiter, mock_notifier):
        user = make_user(limits=DailyLimits(ai_analysis=10), usage=DailyUsage(ai_analysis=7))

        assert limiter.check_daily_limit(user, LimitKind.AI_ANALYSIS) is True
        mock_notifier.warning.assert_not_called()

    def test_warning_at_threshold(self, limiter, mock_notifier):
        user = make_user(limits=DailyLimits(ai_analysis=10), usage=DailyUsage(ai_analysis=8))

        assert limiter.check_daily_limit(user, LimitKind.AI_ANALYSIS) is True
        mock_notifier.warning.assert_called_once_with(
            "daily_limit_near", limit_kind="ai_analysis", usage=8, limit=10, percent=80
        )

    def test_exhausted_without_warning(self, limiter, mock_notifier):
        user = make_user(limits=DailyLimits(exports=5), usage=DailyUsage(exports=5))

        assert limiter.check_daily_limit(user, LimitKind.EXPORTS) is False
        mock_notifier.warning.assert_not_called()

    def test_zero_limit_blocks(self, limiter, mock_notifier):
        user = make_user(limits=DailyLimits(ai_analysis=0))

        assert limiter.check_daily_limit(user, LimitKind.AI_ANALYSIS) is False
        mock_notifier.warning.assert_not_called()

    def test_warning_repeats_by_default(self, limiter, mock_notifier):
        user = make_user(limits=DailyLimits(chat_messages=10), usage=DailyUsage(chat_messages=9))

        limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES)
        limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES)

        assert mock_notifier.warning.call_count == 2

    def test_deduplicated_warning(self, mock_usage_repository, mock_notifier):
        limiter = UsageLimiter(mock_usage_repository, mock_notifier, deduplicate_warnings=True)
        user = make_user(limits=DailyLimits(chat_messages=10), usage=DailyUsage(chat_messages=9))

        limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES)
        limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES)

        assert mock_notifier.warning.call_count == 1

    def test_deduplication_forgets_earlier_days(self, mock_usage_repository, mock_notifier, monkeypatch):
        limiter = UsageLimiter(mock_usage_repository, mock_notifier, deduplicate_warnings=True)
        user = make_user(limits=DailyLimits(chat_messages=10), usage=DailyUsage(chat_messages=9))

        monkeypatch.setattr(usage_limiter, "utc_today", lambda: "2024-05-01")
        limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES)
        monkeypatch.setattr(usage_limiter, "utc_today", lambda: "2024-05-02")
        limiter.check_daily_limit(user, LimitKind.CHAT_MESSAGES)

        assert mock_notifier.warning.call_count == 2
        assert {marker[1] for marker in limiter._warned} == {"2024-05-02"}


class TestIncrementUsage:
    """Tests for optimistic increments."""

    @pytest.mark.asyncio
    async def test_increment_persists(self, limiter, mock_usage_repository, sample_user):
        mock_usage_repository.increment_usage.return_value = 1
        refresh = AsyncMock()

        await limiter.increment_usage(sample_user, LimitKind.CHAT_MESSAGES, refresh)

        assert sample_user.usage_today.chat_messages == 1
        args = mock_usage_repository.increment_usage.call_args.args
        assert args[0] == "user_analyst"
        assert args[2] == LimitKind.CHAT_MESSAGES
        assert args[3] == 1
        refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_count_visible_before_write_completes(self, limiter, mock_usage_repository):
        user = make_user(limits=DailyLimits(ai_analysis=3), usage=DailyUsage(ai_analysis=2))
        gate = asyncio.Event()

        async def slow_write(*args):
            await gate.wait()
            return 3

        mock_usage_repository.increment_usage.side_effect = slow_write
        pending = asyncio.create_task(limiter.increment_usage(user, LimitKind.AI_ANALYSIS, AsyncMock()))
        while not mock_usage_repository.increment_usage.called:
            await asyncio.sleep(0)

        assert user.usage_today.ai_analysis == 3
        assert limiter.check_daily_limit(user, LimitKind.AI_ANALYSIS) is False
        gate.set()
        await pending
        assert user.usage_today.ai_analysis == 3

    @pytest.mark.asyncio
    async def test_failed_write_refreshes(self, limiter, mock_usage_repository, sample_user):
        mock_usage_repository.increment_usage.side_effect = RuntimeError("write failed")
        refresh = AsyncMock()

        await limiter.increment_usage(sample_user, LimitKind.EXPORTS, refresh)

        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_user_is_noop(self, limiter, mock_usage_repository):
        refresh = AsyncMock()

        await limiter.increment_usage(None, LimitKind.EXPORTS, refresh)

        mock_usage_repository.increment_usage.assert_not_called()
        refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_increment_can_reach_exhaustion(self, limiter, mock_usage_repository):
        user = make_user(limits=DailyLimits(exports=2), usage=DailyUsage(exports=1))

        await limiter.increment_usage(user, LimitKind.EXPORTS, AsyncMock())

        assert limiter.check_daily_limit(user, LimitKind.EXPORTS) is False


def test_remaining(limiter):
    user = make_user(limits=DailyLimits(exports=5), usage=DailyUsage(exports=7))

    assert limiter.remaining(user, LimitKind.EXPORTS) == 0
    assert limiter.remaining(user, LimitKind.CHAT_MESSAGES) is None
    assert limiter.remaining(None, LimitKind.EXPORTS) == 0


def test_summary(limiter):
    user = make_user(limits=DailyLimits(chat_messages=20), usage=DailyUsage(chat_messages=3))

    summary = limiter.summary(user)

    assert summary["chat_messages"] == {"limit": 20, "used": 3, "remaining": 17}
    assert summary["exports"]["remaining"] is None


def test_default_limits_are_copies():
    limits = default_limits_for_role(Role.GUEST)
    limits.chat_messages = 99

    assert DEFAULT_ROLE_LIMITS[Role.GUEST].chat_messages == 10
    assert default_limits_for_role(Role.ANALYST) == DailyLimits(
        ai_analysis=50, chat_messages=100, exports=500
    )
