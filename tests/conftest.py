"""Shared test fixtures for CarePoint tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))


# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("PROFILES_DIR", "")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "trackers.db"))
    for name in (
        "CAREPOINT_HOST",
        "CAREPOINT_PORT",
        "CAREPOINT_ALLOW_INSECURE_BIND",
        "MOOD_WINDOW",
        "SLEEP_WINDOW",
        "ADHERENCE_LOOKBACK_DAYS",
        "MISSED_DOSE_GRACE_HOURS",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of Settings()
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Scoring fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def risk_engine():
    """Risk engine built from the packaged profiles and rule tables."""
    from carepoint.domains.trackers.domain_logic.rule_tables import build_risk_engine

    return build_risk_engine()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tracker_db():
    """Create an in-memory TrackerDatabase for testing."""
    from carepoint.core.storage.database import TrackerDatabase

    db = TrackerDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from carepoint.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def tracker_repository(tracker_db, field_encryptor):
    """Create a TrackerRepository backed by in-memory SQLite."""
    from carepoint.core.storage.repository import TrackerRepository

    return TrackerRepository(tracker_db, field_encryptor)


@pytest.fixture
def audit_logger(tracker_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from carepoint.core.audit.logger import AuditLogger

    return AuditLogger(tracker_db)
