from __future__ import annotations

from typing import Protocol

from orderdesk.application.dto.auth import (
    LoginInput,
    OtpChallenge,
    RefreshSessionInput,
    RegisterInput,
    SessionTokens,
    VerifyOtpInput,
)
from orderdesk.domain.entities.user import User


class AuthApiPort(Protocol):
    async def login(self, command: LoginInput) -> SessionTokens | OtpChallenge:
        ...

    async def register(self, command: RegisterInput) -> None:
        ...

    async def verify_otp(self, command: VerifyOtpInput) -> SessionTokens:
        ...

    async def resend_otp(self, *, email: str) -> None:
        ...

    async def refresh_session(self, command: RefreshSessionInput) -> SessionTokens:
        ...

    async def logout(self, *, access_token: str) -> None:
        ...

    async def forgot_password(self, *, email: str) -> None:
        ...

    async def reset_password(self, *, token: str, password: str) -> None:
        ...

    async def get_me(self, *, access_token: str) -> User:
        ...
