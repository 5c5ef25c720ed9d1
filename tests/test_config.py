from __future__ import annotations

import logging
from pathlib import Path

from orderdesk.shared.config import get_settings
from orderdesk.shared.logging import configure_logging


def test_defaults(monkeypatch):
    for name in (
        "ORDERDESK_API_URL",
        "ORDERDESK_API_PREFIX",
        "ORDERDESK_REALTIME_NAMESPACE",
        "ORDERDESK_REALTIME_RECONNECT_DELAY_SECONDS",
        "ORDERDESK_SESSION_REFRESH_INTERVAL_SECONDS",
        "ORDERDESK_REALTIME_MAX_RECONNECT_ATTEMPTS",
        "ORDERDESK_STORAGE_PATH",
        "ORDERDESK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.api_base_url == "http://localhost:3000"
    assert settings.api_prefix == "/api/v1"
    assert settings.auth_cookie_path == "/api/v1/auth"
    assert settings.realtime_namespace == "/orders"
    assert settings.realtime_max_reconnect_attempts == 5
    assert settings.realtime_reconnect_delay_seconds == 2
    assert settings.session_refresh_interval_seconds == 600
    assert settings.storage_path == Path.home() / ".orderdesk" / "storage.json"
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ORDERDESK_API_URL", "https://api.example.com/")
    monkeypatch.setenv("ORDERDESK_REALTIME_MAX_RECONNECT_ATTEMPTS", "8")
    monkeypatch.setenv("ORDERDESK_STORAGE_PATH", str(tmp_path / "s.json"))
    monkeypatch.setenv("ORDERDESK_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.api_base_url == "https://api.example.com"
    assert settings.realtime_max_reconnect_attempts == 8
    assert settings.storage_path == tmp_path / "s.json"
    assert settings.log_level == "DEBUG"


def test_configure_logging_adds_one_handler():
    logger = logging.getLogger("orderdesk")
    before = list(logger.handlers)
    try:
        configure_logging("DEBUG")
        configure_logging("DEBUG")
        added = [handler for handler in logger.handlers if handler not in before]
        assert len(added) == 1
        assert logger.level == logging.DEBUG
    finally:
        for handler in logger.handlers[:]:
            if handler not in before:
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
