from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


AccountStatus = Literal["ACTIVE", "INACTIVE", "SUSPENDED"]

TERMINAL_ACCOUNT_STATUSES = frozenset({"INACTIVE", "SUSPENDED"})


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str
    role: str
    status: AccountStatus
    is_email_verified: bool
    created_at: str
    updated_at: str
    profile_image_url: str | None = None
    last_login_at: str | None = None


def is_terminal_status(status: str | None) -> bool:
    return (status or "").upper() in TERMINAL_ACCOUNT_STATUSES
