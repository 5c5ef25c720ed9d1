from __future__ import annotations

from dataclasses import dataclass

from orderdesk.domain.entities.user import User


@dataclass(frozen=True)
class LoginInput:
    email: str
    password: str
    fingerprint: str


@dataclass(frozen=True)
class RegisterInput:
    email: str
    name: str
    password: str
    fingerprint: str


@dataclass(frozen=True)
class VerifyOtpInput:
    email: str
    otp_code: str
    fingerprint: str


@dataclass(frozen=True)
class RefreshSessionInput:
    fingerprint: str
    session_id: str | None


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    session_id: str | None
    expires_at: str | None
    user: User | None


@dataclass(frozen=True)
class OtpChallenge:
    user_id: str
    email: str
    message: str


@dataclass(frozen=True)
class LoginOutcome:
    requires_otp: bool
    user: User | None = None
