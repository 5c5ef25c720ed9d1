from __future__ import annotations

import asyncio
from typing import Any

import pytest

from orderdesk.application.dto.auth import (
    LoginInput,
    OtpChallenge,
    RefreshSessionInput,
    RegisterInput,
    SessionTokens,
    VerifyOtpInput,
)
from orderdesk.application.services.session_manager import SessionManager
from orderdesk.domain.entities.user import User
from orderdesk.domain.exceptions import RealtimeConnectionError
from orderdesk.infrastructure.storage.json_file_storage import MemoryStorage
from orderdesk.infrastructure.ui.navigator import InMemoryNavigator
from orderdesk.infrastructure.ui.notifier import LoggingNotifier


def make_user(**overrides: Any) -> User:
    values = {
        "id": "user-1",
        "email": "ana@example.com",
        "name": "Ana",
        "role": "OWNER",
        "status": "ACTIVE",
        "is_email_verified": True,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }
    values.update(overrides)
    return User(**values)


def make_tokens(*, user: User | None = None, access_token: str = "access-1", session_id: str | None = "sess-1") -> SessionTokens:
    return SessionTokens(access_token=access_token, session_id=session_id, expires_at=None, user=user)


class FakeAuthApi:
    """Scripted AuthApiPort: each call pops a result, raising it when it is an exception."""

    def __init__(self):
        self.login_results: list[Any] = []
        self.verify_results: list[Any] = []
        self.refresh_results: list[Any] = []
        self.me_results: list[Any] = []
        self.logout_error: Exception | None = None
        self.simple_error: Exception | None = None
        self.refresh_gate: asyncio.Event | None = None
        self.calls: list[tuple[str, Any]] = []

    async def login(self, command: LoginInput) -> SessionTokens | OtpChallenge:
        self.calls.append(("login", command))
        return _pop(self.login_results)

    async def register(self, command: RegisterInput) -> None:
        self.calls.append(("register", command))
        self._raise_simple()

    async def verify_otp(self, command: VerifyOtpInput) -> SessionTokens:
        self.calls.append(("verify_otp", command))
        return _pop(self.verify_results)

    async def resend_otp(self, *, email: str) -> None:
        self.calls.append(("resend_otp", email))
        self._raise_simple()

    async def refresh_session(self, command: RefreshSessionInput) -> SessionTokens:
        self.calls.append(("refresh_session", command))
        if self.refresh_gate is not None:
            await self.refresh_gate.wait()
        return _pop(self.refresh_results)

    async def logout(self, *, access_token: str) -> None:
        self.calls.append(("logout", access_token))
        if self.logout_error is not None:
            raise self.logout_error

    async def forgot_password(self, *, email: str) -> None:
        self.calls.append(("forgot_password", email))
        self._raise_simple()

    async def reset_password(self, *, token: str, password: str) -> None:
        self.calls.append(("reset_password", token))
        self._raise_simple()

    async def get_me(self, *, access_token: str) -> User:
        self.calls.append(("get_me", access_token))
        return _pop(self.me_results)

    def count(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)

    def _raise_simple(self) -> None:
        if self.simple_error is not None:
            raise self.simple_error


def _pop(results: list[Any]) -> Any:
    result = results.pop(0)
    if isinstance(result, BaseException):
        raise result
    return result


class FakeCookieJar:
    def __init__(self, cookies: dict[str, str] | None = None):
        self.cookies = dict(cookies or {})
        self.expired: list[tuple[str, str]] = []

    def get_cookie(self, name: str) -> str | None:
        return self.cookies.get(name)

    def expire_cookie(self, name: str, *, path: str) -> None:
        self.cookies.pop(name, None)
        self.expired.append((name, path))


class FakeRealtime:
    def __init__(self, *, error: Exception | None = None):
        self.disconnects = 0
        self.error = error

    async def disconnect(self) -> None:
        self.disconnects += 1
        if self.error is not None:
            raise self.error


class FakeTransport:
    """In-memory RealtimeTransportPort; tests drive server-side events with ``fire``."""

    def __init__(self, *, auto_connect: bool = True, open_errors: int = 0):
        self.handlers: dict[str, Any] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.tokens: list[str | None] = []
        self.auto_connect = auto_connect
        self.open_errors = open_errors
        self.closed = False
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def sid(self) -> str | None:
        return "sid-1" if self._connected else None

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def open(self, *, token: str | None) -> None:
        self.tokens.append(token)
        if self.open_errors > 0:
            self.open_errors -= 1
            raise RealtimeConnectionError("handshake refused")
        if self.auto_connect:
            await self.server_connect()

    async def emit(self, event: str, data: Any) -> None:
        self.emitted.append((event, data))

    async def close(self) -> None:
        self.closed = True
        self._connected = False

    async def server_connect(self) -> None:
        self._connected = True
        await self.fire("connect")

    async def server_disconnect(self) -> None:
        self._connected = False
        await self.fire("disconnect", "transport close")

    async def fire(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is None:
            return
        result = handler(*args)
        if asyncio.iscoroutine(result):
            await result


async def no_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


@pytest.fixture
def auth_api() -> FakeAuthApi:
    return FakeAuthApi()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def cookies() -> FakeCookieJar:
    return FakeCookieJar()


@pytest.fixture
def navigator() -> InMemoryNavigator:
    return InMemoryNavigator(initial_path="/dashboard")


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def realtime() -> FakeRealtime:
    return FakeRealtime()


@pytest.fixture
def session(auth_api, storage, cookies, navigator, notifier, realtime) -> SessionManager:
    return SessionManager(
        auth_api=auth_api,
        storage=storage,
        cookies=cookies,
        navigator=navigator,
        notifier=notifier,
        realtime=realtime,
        fingerprint="test-client (Linux; CPython 3.12)",
    )
