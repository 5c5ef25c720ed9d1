from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Awaitable, Callable, Coroutine, Iterator

from orderdesk.application.dto.auth import (
    LoginInput,
    LoginOutcome,
    OtpChallenge,
    RefreshSessionInput,
    RegisterInput,
    SessionTokens,
    VerifyOtpInput,
)
from orderdesk.application.ports.auth_api_port import AuthApiPort
from orderdesk.application.ports.cookie_port import CookieJarPort
from orderdesk.application.ports.navigator_port import NavigatorPort
from orderdesk.application.ports.notifier_port import NotifierPort
from orderdesk.application.ports.realtime_port import RealtimeChannelPort
from orderdesk.application.ports.storage_port import DurableStoragePort
from orderdesk.application.services.auth_common import (
    REFRESH_COOKIE,
    SESSION_COOKIE,
    build_fingerprint,
    load_user,
    normalize_email,
    purge_forbidden_keys,
    save_user,
)
from orderdesk.application.services.single_flight import SingleFlight
from orderdesk.domain.entities.session import SessionState, empty_session
from orderdesk.domain.entities.user import User, is_terminal_status
from orderdesk.domain.exceptions import (
    AccountStatusError,
    ApiError,
    AuthenticationError,
    RealtimeConnectionError,
)
from orderdesk.domain.services.routes import is_public_route


logger = logging.getLogger(__name__)


StateListener = Callable[[SessionState], None]

REFRESH_KEY = "refresh-session"

SESSION_EXPIRED_NOTICE = "Your session has expired. Please log in again."
SERVER_ERROR_NOTICE = "Server error. Please try again later."


class SessionManager:
    """Single source of truth for who is logged in and which bearer token to send.

    Operations never raise authentication failures to the caller; they return
    a value and publish a new ``SessionState`` to subscribers.
    """

    def __init__(
        self,
        *,
        auth_api: AuthApiPort,
        storage: DurableStoragePort,
        cookies: CookieJarPort,
        navigator: NavigatorPort,
        notifier: NotifierPort,
        realtime: RealtimeChannelPort | None = None,
        fingerprint: str | None = None,
        login_path: str = "/login",
        suspended_path: str = "/account-suspended",
        refresh_cookie_path: str = "/api/v1/auth",
    ):
        self._auth_api = auth_api
        self._storage = storage
        self._cookies = cookies
        self._navigator = navigator
        self._notifier = notifier
        self._realtime = realtime
        self._fingerprint = fingerprint or build_fingerprint()
        self._login_path = login_path
        self._suspended_path = suspended_path
        self._refresh_cookie_path = refresh_cookie_path

        self._state = empty_session(is_loading=True)
        self._epoch = 0
        self._flights: SingleFlight[bool] = SingleFlight()
        self._listeners: dict[StateListener, None] = {}
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def access_token(self) -> str | None:
        return self._state.access_token

    @property
    def is_refreshing(self) -> bool:
        return self._flights.in_flight(REFRESH_KEY)

    def attach_realtime(self, realtime: RealtimeChannelPort) -> None:
        self._realtime = realtime

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners[listener] = None

        def _unsubscribe() -> None:
            self._listeners.pop(listener, None)

        return _unsubscribe

    async def initialize(self) -> bool:
        purge_forbidden_keys(self._storage)
        user = load_user(self._storage)
        session_id = self._cookies.get_cookie(SESSION_COOKIE)

        if user is not None and is_terminal_status(user.status):
            self._suspend(user.status)
            await self._disconnect_realtime()
            return False

        self._set_state(
            SessionState(
                user=user,
                session_id=session_id,
                is_authenticated=user is not None,
                is_loading=True,
            )
        )
        if user is None and session_id is None:
            logger.info("session_manager: initialize_no_session")
            self._update(is_loading=False)
            return False

        if await self.refresh_session():
            await self._sync_profile()
        return self._state.is_authenticated

    async def login(self, email: str, password: str) -> LoginOutcome | None:
        with self._loading_scope():
            try:
                result = await self._auth_api.login(
                    LoginInput(
                        email=normalize_email(email),
                        password=password,
                        fingerprint=self._fingerprint,
                    )
                )
            except AccountStatusError as exc:
                logger.warning("session_manager: login_blocked status=%s", exc.status)
                self._suspend(exc.status)
                await self._disconnect_realtime()
                return None
            except (AuthenticationError, ApiError) as exc:
                self._fail("Login failed", exc)
                return None

            if isinstance(result, OtpChallenge):
                logger.info("session_manager: login_requires_otp user_id=%s", result.user_id)
                self._update(is_loading=False)
                self._notifier.info("Please verify your email with the OTP code sent.")
                return LoginOutcome(requires_otp=True)

            user = await self._establish(result, label="Login failed")
            if user is None:
                return None
            logger.info("session_manager: login_succeeded user_id=%s", user.id)
            return LoginOutcome(requires_otp=False, user=user)

    async def verify_otp(self, email: str, otp_code: str) -> User | None:
        with self._loading_scope():
            try:
                tokens = await self._auth_api.verify_otp(
                    VerifyOtpInput(
                        email=normalize_email(email),
                        otp_code=otp_code.strip(),
                        fingerprint=self._fingerprint,
                    )
                )
            except AccountStatusError as exc:
                self._suspend(exc.status)
                await self._disconnect_realtime()
                return None
            except (AuthenticationError, ApiError) as exc:
                self._fail("OTP verification failed", exc)
                return None

            user = await self._establish(tokens, label="OTP verification failed")
            if user is not None:
                logger.info("session_manager: otp_verified user_id=%s", user.id)
            return user

    async def refresh_session(self) -> bool:
        return await self._flights.run(self._refresh_once, key=REFRESH_KEY)

    async def logout(self) -> None:
        token = self._state.access_token
        self._clear_local_session()
        self._notifier.success("You have been logged out successfully")
        logger.info("session_manager: logged_out")

        await self._disconnect_realtime()
        if not token:
            return
        try:
            await self._auth_api.logout(access_token=token)
        except (ApiError, AuthenticationError) as exc:
            logger.info("session_manager: logout_notify_failed reason=%s", exc)

    def update_user(self, **changes: Any) -> None:
        user = self._state.user
        if user is None:
            return
        updated = replace(user, **changes)
        if is_terminal_status(updated.status):
            self._suspend(updated.status)
            self._spawn(self._disconnect_realtime())
            return
        self._update(user=updated)
        save_user(self._storage, updated)

    async def register(self, email: str, name: str, password: str) -> bool:
        return await self._simple_call(
            lambda: self._auth_api.register(
                RegisterInput(
                    email=normalize_email(email),
                    name=name.strip(),
                    password=password,
                    fingerprint=self._fingerprint,
                )
            ),
            success="Registration successful! Please check your email for the OTP code.",
            failure="Registration failed",
        )

    async def resend_otp(self, email: str) -> bool:
        return await self._simple_call(
            lambda: self._auth_api.resend_otp(email=normalize_email(email)),
            success="A new OTP code has been sent to your email.",
            failure="Failed to resend OTP",
        )

    async def forgot_password(self, email: str) -> bool:
        return await self._simple_call(
            lambda: self._auth_api.forgot_password(email=normalize_email(email)),
            success="If your email is registered, you will receive a password reset link.",
            failure="Failed to send reset email",
        )

    async def reset_password(self, token: str, password: str) -> bool:
        return await self._simple_call(
            lambda: self._auth_api.reset_password(token=token, password=password),
            success="Password reset successful. You can now log in with your new password.",
            failure="Password reset failed",
        )

    async def _refresh_once(self) -> bool:
        cookie_session = self._cookies.get_cookie(SESSION_COOKIE)
        has_refresh_cookie = self._cookies.get_cookie(REFRESH_COOKIE) is not None
        body_session = None if cookie_session else self._state.session_id
        epoch = self._epoch

        if not (cookie_session or body_session or has_refresh_cookie or self._state.user):
            logger.info("session_manager: refresh_skipped reason=no_session")
            await self._end_session()
            return False

        with self._loading_scope():
            try:
                tokens = await self._auth_api.refresh_session(
                    RefreshSessionInput(fingerprint=self._fingerprint, session_id=body_session)
                )
            except AccountStatusError as exc:
                if epoch != self._epoch:
                    return False
                self._suspend(exc.status)
                await self._disconnect_realtime()
                return False
            except AuthenticationError as exc:
                if epoch != self._epoch:
                    return False
                logger.warning("session_manager: refresh_rejected reason=%s", exc)
                self._notifier.error(SESSION_EXPIRED_NOTICE)
                await self._end_session()
                return False
            except ApiError as exc:
                if epoch != self._epoch:
                    return False
                return await self._on_refresh_error(exc)

            if epoch != self._epoch:
                logger.info("session_manager: refresh_discarded reason=session_cleared")
                return False
            if tokens.user is not None and is_terminal_status(tokens.user.status):
                self._suspend(tokens.user.status)
                await self._disconnect_realtime()
                return False

            user = tokens.user or self._state.user
            self._set_state(
                replace(
                    self._state,
                    user=user,
                    access_token=tokens.access_token,
                    session_id=tokens.session_id or cookie_session or self._state.session_id,
                    is_authenticated=True,
                    is_loading=False,
                    error=None,
                )
            )
            if tokens.user is not None:
                save_user(self._storage, tokens.user)
            logger.info("session_manager: refresh_succeeded")
            return True

    async def _on_refresh_error(self, exc: ApiError) -> bool:
        if exc.is_server_error:
            self._notifier.error(SERVER_ERROR_NOTICE)
        elif exc.status_code == 401:
            self._notifier.error(SESSION_EXPIRED_NOTICE)

        if exc.is_transient and self._state.user is not None:
            logger.warning(
                "session_manager: refresh_failed status_code=%s retained=true",
                exc.status_code,
            )
            self._update(is_authenticated=True, is_loading=False, error=exc.message)
            return False

        logger.warning(
            "session_manager: refresh_failed status_code=%s retained=false",
            exc.status_code,
        )
        await self._end_session()
        return False

    async def _sync_profile(self) -> None:
        token = self._state.access_token
        if not token:
            return
        epoch = self._epoch
        try:
            user = await self._auth_api.get_me(access_token=token)
        except AccountStatusError as exc:
            self._suspend(exc.status)
            await self._disconnect_realtime()
            return
        except (AuthenticationError, ApiError) as exc:
            logger.warning("session_manager: profile_sync_failed reason=%s", exc)
            return

        if epoch != self._epoch:
            return
        if is_terminal_status(user.status):
            self._suspend(user.status)
            await self._disconnect_realtime()
            return
        self._update(user=user)
        save_user(self._storage, user)

    async def _establish(self, tokens: SessionTokens, *, label: str) -> User | None:
        user = tokens.user
        if user is None:
            logger.warning("session_manager: establish_failed reason=missing_user")
            self._update(error=label, is_loading=False)
            return None
        if is_terminal_status(user.status):
            logger.warning("session_manager: establish_blocked status=%s", user.status)
            self._suspend(user.status)
            await self._disconnect_realtime()
            return None

        self._set_state(
            SessionState(
                user=user,
                access_token=tokens.access_token,
                session_id=tokens.session_id or self._cookies.get_cookie(SESSION_COOKIE),
                is_authenticated=True,
                is_loading=False,
                error=None,
            )
        )
        save_user(self._storage, user)
        return user

    async def _simple_call(
        self,
        call: Callable[[], Awaitable[None]],
        *,
        success: str,
        failure: str,
    ) -> bool:
        try:
            await call()
        except (AuthenticationError, ApiError) as exc:
            self._fail(failure, exc)
            return False
        self._notifier.success(success)
        return True

    async def _end_session(self) -> None:
        self._clear_local_session()
        if not is_public_route(self._navigator.current_path()):
            self._navigator.navigate(self._login_path)
        await self._disconnect_realtime()

    def _suspend(self, status: str) -> None:
        label = "suspended" if status.upper() == "SUSPENDED" else "inactive"
        self._clear_local_session(error=f"Account {label}")
        self._notifier.error(f"Your account is {label}. Please contact support.")
        self._navigator.navigate(self._suspended_path)

    def _clear_local_session(self, *, error: str | None = None) -> None:
        self._epoch += 1
        save_user(self._storage, None)
        self._cookies.expire_cookie(SESSION_COOKIE, path="/")
        self._cookies.expire_cookie(REFRESH_COOKIE, path=self._refresh_cookie_path)
        self._set_state(replace(empty_session(), error=error))

    def _fail(self, label: str, exc: Exception) -> None:
        message = str(exc) or label
        logger.warning("session_manager: operation_failed label=%r reason=%s", label, message)
        self._update(error=message, is_loading=False)
        self._notifier.error(message)

    async def _disconnect_realtime(self) -> None:
        if self._realtime is None:
            return
        try:
            await self._realtime.disconnect()
        except RealtimeConnectionError as exc:
            logger.warning("session_manager: realtime_disconnect_failed reason=%s", exc)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @contextmanager
    def _loading_scope(self) -> Iterator[None]:
        self._update(is_loading=True, error=None)
        try:
            yield
        finally:
            if self._state.is_loading:
                self._update(is_loading=False)

    def _update(self, **changes: Any) -> None:
        self._set_state(replace(self._state, **changes))

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        purge_forbidden_keys(self._storage)
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("session_manager: state_listener_failed")
