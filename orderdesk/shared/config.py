from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    api_prefix: str
    request_timeout_seconds: float
    realtime_namespace: str
    realtime_max_reconnect_attempts: int
    realtime_reconnect_delay_seconds: float
    realtime_connect_timeout_seconds: float
    session_refresh_interval_seconds: float
    storage_path: Path
    login_path: str
    suspended_path: str
    log_level: str

    @property
    def auth_cookie_path(self) -> str:
        return f"{self.api_prefix}/auth"


def get_settings() -> Settings:
    storage_default = str(Path.home() / ".orderdesk" / "storage.json")
    return Settings(
        api_base_url=_env("ORDERDESK_API_URL", "http://localhost:3000").rstrip("/"),
        api_prefix=_env("ORDERDESK_API_PREFIX", "/api/v1"),
        request_timeout_seconds=float(_env("ORDERDESK_REQUEST_TIMEOUT_SECONDS", "10")),
        realtime_namespace=_env("ORDERDESK_REALTIME_NAMESPACE", "/orders"),
        realtime_max_reconnect_attempts=int(_env("ORDERDESK_REALTIME_MAX_RECONNECT_ATTEMPTS", "5")),
        realtime_reconnect_delay_seconds=float(_env("ORDERDESK_REALTIME_RECONNECT_DELAY_SECONDS", "2")),
        realtime_connect_timeout_seconds=float(_env("ORDERDESK_REALTIME_CONNECT_TIMEOUT_SECONDS", "10")),
        session_refresh_interval_seconds=float(_env("ORDERDESK_SESSION_REFRESH_INTERVAL_SECONDS", "600")),
        storage_path=Path(_env("ORDERDESK_STORAGE_PATH", storage_default)).expanduser(),
        login_path=_env("ORDERDESK_LOGIN_PATH", "/login"),
        suspended_path=_env("ORDERDESK_SUSPENDED_PATH", "/account-suspended"),
        log_level=_env("ORDERDESK_LOG_LEVEL", "INFO").upper(),
    )
