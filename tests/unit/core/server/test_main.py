"""Tests for the server entry point's bind guard and settings."""

from __future__ import annotations

import pytest

from carepoint.core.config.settings import get_settings
from carepoint.core.server import main


@pytest.mark.parametrize("host, expected", [
    ("127.0.0.1", True),
    ("localhost", True),
    ("::1", True),
    ("0.0.0.0", False),
    ("192.168.1.10", False),
    ("example.com", False),
])
def test_is_loopback_host(host, expected):
    assert main._is_loopback_host(host) is expected


def test_run_refuses_public_bind(monkeypatch):
    monkeypatch.setenv("CAREPOINT_HOST", "0.0.0.0")
    with pytest.raises(RuntimeError, match="CAREPOINT_ALLOW_INSECURE_BIND"):
        main.run()


def test_settings_defaults():
    settings = get_settings()
    assert settings.carepoint_host == "127.0.0.1"
    assert settings.carepoint_port == 8001
    assert settings.mood_window == 14
    assert settings.sleep_window == 7
    assert settings.missed_dose_grace_hours == 2


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("SLEEP_WINDOW", "10")
    monkeypatch.setenv("CAREPOINT_ALLOW_INSECURE_BIND", "true")
    settings = get_settings()
    assert settings.sleep_window == 10
    assert settings.carepoint_allow_insecure_bind is True
