from __future__ import annotations

import json
import logging
import platform
from dataclasses import asdict, fields

from orderdesk.application.ports.storage_port import DurableStoragePort
from orderdesk.domain.entities.user import User


logger = logging.getLogger(__name__)


USER_KEY = "user"
FORBIDDEN_STORAGE_KEYS = ("accessToken", "sessionId", "refreshToken")

SESSION_COOKIE = "sessionId"
REFRESH_COOKIE = "refreshToken"

CLIENT_NAME = "orderdesk-client"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_fingerprint(client_name: str = CLIENT_NAME) -> str:
    system = platform.system() or "unknown"
    implementation = platform.python_implementation()
    major, minor, _ = platform.python_version_tuple()
    return f"{client_name} ({system}; {implementation} {major}.{minor})"


def purge_forbidden_keys(storage: DurableStoragePort) -> None:
    for key in FORBIDDEN_STORAGE_KEYS:
        storage.remove_item(key)


def save_user(storage: DurableStoragePort, user: User | None) -> None:
    if user is None:
        storage.remove_item(USER_KEY)
    else:
        storage.set_item(USER_KEY, json.dumps(asdict(user)))
    purge_forbidden_keys(storage)


def load_user(storage: DurableStoragePort) -> User | None:
    raw = storage.get_item(USER_KEY)
    if not raw:
        return None
    try:
        payload = json.loads(raw)
        known = {field.name for field in fields(User)}
        return User(**{key: value for key, value in payload.items() if key in known})
    except (TypeError, ValueError, AttributeError):
        logger.warning("auth_common: discarded_malformed_user_record")
        storage.remove_item(USER_KEY)
        return None
