from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from orderdesk.application.dto.auth import (
    LoginInput,
    OtpChallenge,
    RefreshSessionInput,
    RegisterInput,
    SessionTokens,
    VerifyOtpInput,
)
from orderdesk.application.ports.auth_api_port import AuthApiPort
from orderdesk.domain.entities.user import User
from orderdesk.domain.exceptions import (
    AccountInactiveError,
    AccountSuspendedError,
    ApiError,
    AuthenticationError,
    InvalidCredentialsError,
    InvalidOtpError,
    SessionRejectedError,
)
from orderdesk.infrastructure.http.api_client import MALFORMED_RESPONSE_STATUS, ApiClient
from orderdesk.infrastructure.http.mappers import to_otp_challenge, to_session_tokens, to_user
from orderdesk.infrastructure.http.schemas import (
    LoginRequest,
    OtpChallengePayload,
    RefreshSessionRequest,
    RegisterRequest,
    TokenPayload,
    UserPayload,
    VerifyOtpRequest,
)


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def map_auth_error(exc: ApiError, *, rejected: type[AuthenticationError]) -> Exception:
    """Translate 401/403 responses into authentication errors; pass others through."""
    if exc.status_code not in (401, 403):
        return exc
    lowered = exc.message.lower()
    if "suspend" in lowered:
        return AccountSuspendedError(exc.message)
    if "inactive" in lowered or "deactivated" in lowered:
        return AccountInactiveError(exc.message)
    return rejected(exc.message)


def _parse(model: type[ModelT], payload: Any, *, label: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.warning("auth_api: malformed_response label=%s errors=%s", label, exc.error_count())
        raise ApiError(MALFORMED_RESPONSE_STATUS, f"Unexpected {label} response from server.") from exc


def _body(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


class HttpAuthApi(AuthApiPort):
    def __init__(self, *, client: ApiClient):
        self._client = client

    async def login(self, command: LoginInput) -> SessionTokens | OtpChallenge:
        request = LoginRequest(email=command.email, password=command.password, fingerprint=command.fingerprint)
        payload = await self._post("/auth/login", _body(request), rejected=InvalidCredentialsError)
        if isinstance(payload, dict) and payload.get("requiresOtp"):
            logger.info("auth_api: login_requires_otp")
            return to_otp_challenge(_parse(OtpChallengePayload, payload, label="login"))
        return to_session_tokens(_parse(TokenPayload, payload, label="login"))

    async def register(self, command: RegisterInput) -> None:
        request = RegisterRequest(
            email=command.email,
            name=command.name,
            password=command.password,
            fingerprint=command.fingerprint,
        )
        await self._post("/auth/register", _body(request), rejected=InvalidCredentialsError)

    async def verify_otp(self, command: VerifyOtpInput) -> SessionTokens:
        request = VerifyOtpRequest(email=command.email, otp_code=command.otp_code, fingerprint=command.fingerprint)
        payload = await self._post("/auth/verify-otp", _body(request), rejected=InvalidOtpError)
        return to_session_tokens(_parse(TokenPayload, payload, label="verify-otp"))

    async def resend_otp(self, *, email: str) -> None:
        await self._post("/auth/resend-otp", {"email": email}, rejected=InvalidCredentialsError)

    async def refresh_session(self, command: RefreshSessionInput) -> SessionTokens:
        request = RefreshSessionRequest(fingerprint=command.fingerprint, session_id=command.session_id)
        payload = await self._post("/auth/refresh-session", _body(request), rejected=SessionRejectedError)
        return to_session_tokens(_parse(TokenPayload, payload, label="refresh-session"))

    async def logout(self, *, access_token: str) -> None:
        try:
            await self._client.request("POST", "/auth/logout", access_token=access_token)
        except ApiError as exc:
            raise map_auth_error(exc, rejected=SessionRejectedError) from exc

    async def forgot_password(self, *, email: str) -> None:
        await self._post("/auth/forgot-password", {"email": email}, rejected=InvalidCredentialsError)

    async def reset_password(self, *, token: str, password: str) -> None:
        await self._post(
            "/auth/reset-password",
            {"token": token, "password": password},
            rejected=InvalidCredentialsError,
        )

    async def get_me(self, *, access_token: str) -> User:
        try:
            payload = await self._client.request("GET", "/auth/me", access_token=access_token)
        except ApiError as exc:
            raise map_auth_error(exc, rejected=SessionRejectedError) from exc
        return to_user(_parse(UserPayload, payload, label="me"))

    async def _post(
        self,
        endpoint: str,
        body: dict[str, Any],
        *,
        rejected: type[AuthenticationError],
    ) -> Any:
        try:
            return await self._client.post(endpoint, body, with_auth=False)
        except ApiError as exc:
            raise map_auth_error(exc, rejected=rejected) from exc
