"""
Session controller: the single owner of the application identity.

State machine:
    UNINITIALIZED → INITIALIZING → {AUTHENTICATED, UNAUTHENTICATED}
    AUTHENTICATED → UNAUTHENTICATED on sign-out, SIGNED_OUT or forced expiry

Identity is (re)established only through ProfileResolver. Live auth events are
ignored until initialization completes, and at most one resolution is in
flight per controller. Every failure except a refused sign-in is absorbed into
state and reported through the notifier.
"""
import asyncio
import logging
from contextlib import suppress
from typing import Callable, List, Optional

from session_controller.domain.session import AuthEvent, Session, SessionState
from session_controller.domain.user import LimitKind, User
from session_controller.interfaces.identity_backend import IIdentityBackend
from session_controller.interfaces.notifier import INotifier
from session_controller.interfaces.repositories import IProfileRepository
from session_controller.services.permission_evaluator import PermissionEvaluator
from session_controller.services.profile_resolver import ProfileResolver
from session_controller.services.usage_limiter import UsageLimiter
from session_controller.utils.dates import utc_now

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState, Optional[User]], None]


class SessionController:
    """
    Reconciles the identity backend's session with an application-level User.

    Create one per application, call ``start()`` once, and ``close()`` on
    shutdown. Consumers read ``user``/``loading`` and call the permission and
    quota helpers; nothing else writes the User.
    """

    def __init__(
        self,
        identity_backend: IIdentityBackend,
        profile_resolver: ProfileResolver,
        permission_evaluator: PermissionEvaluator,
        usage_limiter: UsageLimiter,
        profile_repository: IProfileRepository,
        notifier: INotifier,
        init_timeout_seconds: float = 15.0,
        refresh_interval_seconds: float = 5 * 60
    ):
        self.identity_backend = identity_backend
        self.profile_resolver = profile_resolver
        self.permission_evaluator = permission_evaluator
        self.usage_limiter = usage_limiter
        self.profile_repository = profile_repository
        self.notifier = notifier
        self.init_timeout_seconds = init_timeout_seconds
        self.refresh_interval_seconds = refresh_interval_seconds

        self._state = SessionState.UNINITIALIZED
        self._user: Optional[User] = None
        self._session: Optional[Session] = None
        self._loading = True
        self._started = False
        self._initialized = False
        self._mounted = True
        self._init_timed_out = False

        # Bumped on every sign-out; resolutions started earlier are not applied
        self._epoch = 0
        self._inflight: Optional[asyncio.Future] = None
        self._inflight_principal: Optional[str] = None

        self._init_timer: Optional[asyncio.TimerHandle] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listeners: List[StateListener] = []

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def init_timed_out(self) -> bool:
        return self._init_timed_out

    @property
    def resolution_in_flight(self) -> bool:
        return self._inflight is not None

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback for state transitions.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            with suppress(ValueError):
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run initialization (once per controller)."""
        if self._started:
            logger.warning("Session controller already started")
            return
        self._started = True

        self._unsubscribe = self.identity_backend.subscribe(self._handle_auth_event)
        self._set_state(SessionState.INITIALIZING)

        loop = asyncio.get_running_loop()
        self._init_timer = loop.call_later(self.init_timeout_seconds, self._on_init_timeout)

        try:
            await self._initialize()
        finally:
            self._cancel_init_timer()
            self._initialized = True
            self._loading = False

        logger.info(f"Session controller initialized (state={self._state.value})")

    async def close(self) -> None:
        """Tear down: stop listening and cancel timers. In-flight results are dropped."""
        if not self._mounted:
            return
        self._mounted = False

        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        self._cancel_init_timer()
        task = self._cancel_refresh()
        if task:
            with suppress(asyncio.CancelledError):
                await task

        logger.info("Session controller closed")

    async def _initialize(self) -> None:
        try:
            session = await self.identity_backend.get_current_session()
        except Exception as e:
            logger.error(f"Initial session check failed: {e}")
            self.notifier.error("session_check_failed", reason=str(e))
            session = None

        if not self._mounted:
            return

        self._session = session
        if session is None:
            self._set_unauthenticated()
            return

        epoch = self._epoch
        user = await self._resolve(session.user_id)
        if not self._can_apply(epoch):
            logger.debug("Discarding initial resolution (signed out or closed meanwhile)")
            return

        if user is not None:
            self._set_authenticated(user)
        else:
            self._set_unauthenticated()

    def _on_init_timeout(self) -> None:
        self._init_timer = None
        if self._initialized:
            return
        self._init_timed_out = True
        self._loading = False
        logger.error(f"Initialization did not finish within {self.init_timeout_seconds}s")
        self.notifier.error("initialization_timeout", timeout_seconds=self.init_timeout_seconds)

    # ------------------------------------------------------------------
    # Live auth events
    # ------------------------------------------------------------------

    async def _handle_auth_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        if not self._mounted:
            return
        if not self._initialized:
            logger.debug(f"Ignoring auth event {event} before initialization")
            return

        try:
            event = AuthEvent(event)
        except ValueError:
            logger.debug(f"Auth event {event}: session reference updated")
            if session is not None:
                self._session = session
            return

        if event == AuthEvent.INITIAL_SESSION:
            return

        if event == AuthEvent.SIGNED_IN:
            await self._on_signed_in(session)
        elif event == AuthEvent.SIGNED_OUT:
            logger.info("Signed out by identity backend")
            self._epoch += 1
            self._release_resolution()
            self._session = None
            self._set_unauthenticated()
        elif session is not None:
            self._session = session

    async def _on_signed_in(self, session: Optional[Session]) -> None:
        if self._user is not None or self._inflight is not None:
            logger.debug("Ignoring SIGNED_IN: identity present or resolution in flight")
            return
        if session is None:
            logger.warning("SIGNED_IN event without a session")
            return

        self._session = session
        epoch = self._epoch
        user = await self._resolve(session.user_id)
        if user is not None and self._can_apply(epoch):
            self._set_authenticated(user)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> None:
        """
        Verify credentials with the identity backend.

        Identity is populated by the resulting SIGNED_IN event, not here.

        Raises:
            CredentialsRejectedError: If the backend refuses the credentials
            IdentityBackendError: If the backend cannot be reached
        """
        session = await self.identity_backend.sign_in_with_password(email, password)
        self._session = session
        logger.info(f"Signed in {session.user_id}")

        try:
            await self.profile_repository.update_last_login(session.user_id, utc_now())
        except Exception as e:
            logger.warning(f"Failed to record last login for {session.user_id}: {e}")

    async def sign_out(self) -> None:
        """Sign out. Local state is always cleared, even if the backend call fails."""
        self._cancel_init_timer()
        self._cancel_refresh()
        self._epoch += 1
        self._release_resolution()

        user_id = self._user.user_id if self._user else None
        try:
            await self.identity_backend.sign_out()
        except Exception as e:
            logger.error(f"Backend sign-out failed for {user_id}: {e}")
            self.notifier.error("sign_out_failed", user_id=user_id, reason=str(e))
        finally:
            self._session = None
            self._set_unauthenticated()

        logger.info(f"Signed out {user_id}")

    async def refresh_user(self) -> None:
        """Re-resolve the current principal. A failed refresh keeps the previous User."""
        try:
            session = await self.identity_backend.get_current_session()
        except Exception as e:
            logger.warning(f"Session check during refresh failed: {e}")
            return

        if session is None:
            return

        self._session = session
        epoch = self._epoch
        user = await self._resolve(session.user_id)
        if user is None:
            logger.warning(f"Refresh for {session.user_id} failed, keeping previous identity")
            return
        if not self._can_apply(epoch):
            return

        self._set_authenticated(user)

    def has_permission(self, permission: str) -> bool:
        return self.permission_evaluator.has_permission(self._user, permission)

    async def can_perform(
        self,
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None
    ) -> bool:
        return await self.permission_evaluator.can_perform(
            self._user, action, resource_type, resource_id
        )

    def check_daily_limit(self, kind: LimitKind) -> bool:
        return self.usage_limiter.check_daily_limit(self._user, kind)

    async def increment_usage(self, kind: LimitKind) -> None:
        await self.usage_limiter.increment_usage(self._user, kind, self.refresh_user)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _resolve(self, principal_id: str) -> Optional[User]:
        """Resolve through the single in-flight slot.

        A caller asking for the principal already being resolved shares that
        resolution. The resolution itself is shielded from caller cancellation.
        """
        if self._inflight is not None:
            if self._inflight_principal == principal_id:
                return await asyncio.shield(self._inflight)
            logger.warning(
                f"Resolution for {self._inflight_principal} in flight, not resolving {principal_id}"
            )
            return None

        self._inflight = asyncio.ensure_future(self._run_resolution(principal_id))
        self._inflight_principal = principal_id
        return await asyncio.shield(self._inflight)

    async def _run_resolution(self, principal_id: str) -> Optional[User]:
        try:
            return await self.profile_resolver.resolve(principal_id)
        finally:
            if self._inflight is asyncio.current_task():
                self._release_resolution()

    def _release_resolution(self) -> None:
        """Free the in-flight slot; an older resolution keeps running but is not applied."""
        self._inflight = None
        self._inflight_principal = None

    def _can_apply(self, epoch: int) -> bool:
        return self._mounted and epoch == self._epoch

    def _set_authenticated(self, user: User) -> None:
        self._user = user
        self._start_refresh()
        self._set_state(SessionState.AUTHENTICATED)

    def _set_unauthenticated(self) -> None:
        self._cancel_refresh()
        self._user = None
        self._set_state(SessionState.UNAUTHENTICATED)

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        logger.info(f"Session state: {old_state.value} → {new_state.value}")

        for listener in list(self._listeners):
            try:
                listener(new_state, self._user)
            except Exception as e:
                logger.error(f"Session state listener failed: {e}")

    def _cancel_init_timer(self) -> None:
        if self._init_timer is not None:
            self._init_timer.cancel()
            self._init_timer = None

    def _start_refresh(self) -> None:
        if self.refresh_interval_seconds <= 0 or not self._mounted:
            return
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_loop())

    def _cancel_refresh(self) -> Optional[asyncio.Task]:
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            return task
        return None

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval_seconds)
            try:
                await self.refresh_user()
            except Exception as e:
                logger.error(f"Periodic user refresh failed: {e}", exc_info=True)
