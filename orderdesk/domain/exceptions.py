from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class ApiError(DomainError):
    """REST call failed; status_code 0 means the request never got a response."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_network_error(self) -> bool:
        return self.status_code == 0

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    @property
    def is_transient(self) -> bool:
        return self.is_network_error or self.is_server_error or self.status_code in (408, 429)


class AuthenticationError(DomainError):
    """Credentials or session were rejected."""


class InvalidCredentialsError(AuthenticationError):
    """Email/password pair was rejected."""


class InvalidOtpError(AuthenticationError):
    """One-time passcode was rejected."""


class SessionRejectedError(AuthenticationError):
    """Server refused to refresh the session."""


class AccountStatusError(AuthenticationError):
    """Account is in a terminal status and cannot hold a session."""

    status = "INACTIVE"


class AccountSuspendedError(AccountStatusError):
    """Account was suspended."""

    status = "SUSPENDED"


class AccountInactiveError(AccountStatusError):
    """Account is inactive."""

    status = "INACTIVE"


class RealtimeConnectionError(DomainError):
    """Realtime channel could not be opened."""


class UnknownRoomTypeError(DomainError):
    """Room type is not one of the supported channels."""


class OrderMutationError(DomainError):
    """Order change was rejected; local cache was rolled back."""
