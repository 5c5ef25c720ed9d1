from __future__ import annotations

from dataclasses import dataclass

from orderdesk.domain.entities.user import User


@dataclass(frozen=True)
class SessionState:
    user: User | None = None
    access_token: str | None = None
    session_id: str | None = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: str | None = None

    def __repr__(self) -> str:
        token = "present" if self.access_token else "none"
        return (
            f"SessionState(user={self.user.id if self.user else None!r}, access_token={token}, "
            f"is_authenticated={self.is_authenticated}, is_loading={self.is_loading}, "
            f"error={self.error!r})"
        )


def empty_session(*, is_loading: bool = False) -> SessionState:
    return SessionState(is_loading=is_loading)
