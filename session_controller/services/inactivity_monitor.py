"""Inactivity monitor for idle session expiry.

Watches user-activity signals and force-expires sessions of non-privileged
users that stay idle past the inactivity timeout:
- Warning shortly before expiry (renewable)
- Forced sign-out at expiry, regardless of the warning
"""
import asyncio
import logging
import time
from contextlib import suppress
from typing import TYPE_CHECKING, Callable, Optional

from session_controller.domain.session import ActivitySignal, SessionState
from session_controller.domain.user import User
from session_controller.interfaces.notifier import INotifier

if TYPE_CHECKING:
    from .session_controller import SessionController

logger = logging.getLogger(__name__)


class InactivityMonitor:
    """Expires idle sessions.

    Attaches to a SessionController as a state listener: the check loop runs
    while any user is authenticated, and exemption is decided at each check so
    a role change made by a refresh takes effect without a state transition.
    """

    def __init__(
        self,
        controller: "SessionController",
        notifier: INotifier,
        inactivity_timeout_seconds: float = 8 * 60 * 60,
        warning_before_logout_seconds: float = 5 * 60,
        check_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize inactivity monitor.

        Args:
            controller: Controller whose identity is observed and signed out.
            notifier: Receives the expiry warning and the expiry notice.
            inactivity_timeout_seconds: Idle time before forced sign-out.
            warning_before_logout_seconds: Lead time of the warning.
            check_interval_seconds: Period of the idle check.
            clock: Monotonic time source.
        """
        self._controller = controller
        self._notifier = notifier
        self._timeout = inactivity_timeout_seconds
        self._warning_lead = warning_before_logout_seconds
        self._interval = check_interval_seconds
        self._clock = clock

        self._last_activity_at = clock()
        self._warning_shown = False
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def last_activity_at(self) -> float:
        return self._last_activity_at

    @property
    def warning_shown(self) -> bool:
        return self._warning_shown

    @property
    def running(self) -> bool:
        return self._running

    def attach(self) -> None:
        """Follow the controller's state changes."""
        self._controller.add_state_listener(self._on_state_change)
        self._on_state_change(self._controller.state, self._controller.user)

    def record_activity(self, signal: ActivitySignal = ActivitySignal.POINTER_DOWN) -> None:
        """Reset the idle clock on a user-activity signal."""
        signal = ActivitySignal(signal)
        logger.debug(f"Activity signal: {signal.value}")
        self._last_activity_at = self._clock()
        self._warning_shown = False

    def renew(self) -> None:
        """Keep the session alive from the expiry warning."""
        self._last_activity_at = self._clock()
        self._warning_shown = False
        logger.info("Session renewed from inactivity warning")

    def start(self) -> None:
        """Start the check loop."""
        if self._running:
            logger.debug("Inactivity monitor already running")
            return

        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._monitor_loop())
        logger.info(
            f"Inactivity monitor started "
            f"(check_interval={self._interval}s, timeout={self._timeout}s)"
        )

    def stop(self) -> None:
        """Stop the check loop (does not wait for it)."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
            logger.info("Inactivity monitor stopped")

    async def close(self) -> None:
        """Stop the check loop and wait for it to exit."""
        self._running = False
        task, self._task = self._task, None
        if task:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    def _on_state_change(self, state: SessionState, user: Optional[User]) -> None:
        if state == SessionState.AUTHENTICATED and user is not None:
            if not self._running:
                self.record_activity()
            self.start()
        else:
            self.stop()

    async def _monitor_loop(self) -> None:
        """Periodic idle check."""
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                await self._check_inactivity()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Inactivity monitor error: {e}", exc_info=True)

    async def _check_inactivity(self) -> None:
        user = self._controller.user
        if user is None:
            return
        if user.is_privileged():
            # Exempt users accrue no idle time
            self._last_activity_at = self._clock()
            self._warning_shown = False
            return

        idle = self._clock() - self._last_activity_at

        if idle >= self._timeout:
            logger.warning(f"Session for {user.user_id} idle for {idle:.0f}s, signing out")
            self._notifier.error("session_expired_inactivity", user_id=user.user_id)
            # Detach before signing out: the resulting state change stops this
            # monitor, which must not cancel the task doing the sign-out.
            self._running = False
            task, self._task = self._task, None
            if task is not None and task is not asyncio.current_task():
                task.cancel()
            await self._controller.sign_out()
            return

        if idle >= self._timeout - self._warning_lead and not self._warning_shown:
            self._warning_shown = True
            self._notifier.warning(
                "session_expiring",
                user_id=user.user_id,
                seconds_left=max(self._timeout - idle, 0),
            )
