from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from orderdesk.domain.exceptions import ApiError
from orderdesk.infrastructure.http.schemas import ErrorPayload


logger = logging.getLogger(__name__)


DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"
MALFORMED_RESPONSE_STATUS = 502

TokenProvider = Callable[[], str | None]


def format_error_message(payload: Any, *, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Flatten a backend error body into one human-readable line."""
    if not isinstance(payload, dict):
        return fallback
    try:
        error = ErrorPayload.model_validate(payload)
    except ValidationError:
        return fallback

    if isinstance(error.message, list):
        return ", ".join(str(item) for item in error.message)
    if error.errors:
        messages: list[str] = []
        for value in error.errors.values():
            if isinstance(value, list):
                messages.extend(str(item) for item in value)
            else:
                messages.append(str(value))
        if messages:
            return ", ".join(messages)
    return error.message or fallback


def unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class ApiClient:
    """Async JSON client for the backend REST API.

    Holds the cookie jar shared by every request, so it also acts as the
    session's cookie store.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_prefix: str = "/api/v1",
        timeout_seconds: float = 10.0,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_prefix = api_prefix
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def set_token_provider(self, token_provider: TokenProvider) -> None:
        self._token_provider = token_provider

    async def get(self, endpoint: str, *, with_auth: bool = True) -> Any:
        return await self.request("GET", endpoint, with_auth=with_auth)

    async def post(self, endpoint: str, json: Any = None, *, with_auth: bool = True) -> Any:
        return await self.request("POST", endpoint, json=json, with_auth=with_auth)

    async def patch(self, endpoint: str, json: Any = None, *, with_auth: bool = True) -> Any:
        return await self.request("PATCH", endpoint, json=json, with_auth=with_auth)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        with_auth: bool = True,
        access_token: str | None = None,
    ) -> Any:
        url = self._url(endpoint)
        headers: dict[str, str] = {}
        token = access_token
        if token is None and with_auth and self._token_provider is not None:
            token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("api_client: request_failed method=%s url=%s reason=%s", method, url, exc)
            raise ApiError(0, str(exc) or "Network error occurred") from exc

        logger.debug("api_client: response method=%s url=%s status=%s", method, url, response.status_code)
        if response.is_error:
            message = format_error_message(
                _json_or_none(response),
                fallback=response.reason_phrase or DEFAULT_ERROR_MESSAGE,
            )
            logger.info(
                "api_client: error_response method=%s url=%s status=%s message=%r",
                method,
                url,
                response.status_code,
                message,
            )
            raise ApiError(response.status_code, message)

        if not response.content:
            return None
        payload = _json_or_none(response)
        if payload is None:
            raise ApiError(MALFORMED_RESPONSE_STATUS, "Malformed response body.")
        return unwrap(payload)

    def get_cookie(self, name: str) -> str | None:
        for cookie in self._client.cookies.jar:
            if cookie.name == name and not cookie.is_expired():
                return cookie.value
        return None

    def expire_cookie(self, name: str, *, path: str) -> None:
        self._client.cookies.delete(name, path=path)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(self._api_prefix):
            return endpoint
        return f"{self._api_prefix}{endpoint}"


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
