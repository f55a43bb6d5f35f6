"""SQLite database management for the CarePoint tracker data bank.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS mood_entries (
    id                  TEXT PRIMARY KEY,
    entry_date          TEXT NOT NULL,
    overall_mood        TEXT NOT NULL,
    energy_level        TEXT NOT NULL,
    stress_level        TEXT NOT NULL,
    anxiety_level       TEXT NOT NULL,
    sleep_quality       TEXT,
    social_interaction  TEXT,
    physical_activity   TEXT,
    symptoms_json       TEXT,
    triggers_json       TEXT,
    coping_json         TEXT,
    notes_enc           TEXT,
    created_at          TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS sleep_entries (
    id                   TEXT PRIMARY KEY,
    entry_date           TEXT NOT NULL,
    bed_time             TEXT,
    sleep_time           TEXT NOT NULL,
    wake_time            TEXT NOT NULL,
    sleep_quality        TEXT NOT NULL,
    sleep_duration       REAL NOT NULL,
    time_to_fall_asleep  INTEGER NOT NULL DEFAULT 0,
    night_wakeups        INTEGER NOT NULL DEFAULT 0,
    caffeine_intake      TEXT,
    screen_time_minutes  INTEGER NOT NULL DEFAULT 0,
    exercise_today       INTEGER NOT NULL DEFAULT 0,
    stress_level         TEXT,
    notes_enc            TEXT,
    created_at           TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS medicines (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    medicine_type   TEXT NOT NULL,
    purpose         TEXT,
    start_date      TEXT NOT NULL,
    end_date        TEXT NOT NULL,
    total_duration  INTEGER NOT NULL,
    schedule_json   TEXT NOT NULL,
    prescribed_by   TEXT,
    side_effects_json TEXT,
    notes_enc       TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);

-- One row per scheduled dose; status moves due -> taken/skipped, or due -> missed by the sweep
CREATE TABLE IF NOT EXISTS dose_logs (
    id               TEXT PRIMARY KEY,
    medicine_id      TEXT NOT NULL REFERENCES medicines(id),
    scheduled_date   TEXT NOT NULL,
    scheduled_time   TEXT NOT NULL,
    dosage           TEXT,
    status           TEXT NOT NULL DEFAULT 'due',
    taken_at         TEXT,
    actual_dosage    TEXT,
    side_effects_json TEXT,
    notes_enc        TEXT,
    updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS vaccine_trackers (
    id              TEXT PRIMARY KEY,
    child_name_enc  TEXT NOT NULL,
    date_of_birth   TEXT NOT NULL,
    gender          TEXT NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS vaccine_records (
    id                 TEXT PRIMARY KEY,
    tracker_id         TEXT NOT NULL REFERENCES vaccine_trackers(id),
    vaccine_name       TEXT NOT NULL,
    description        TEXT,
    due_date           TEXT NOT NULL,
    age_at_vaccination TEXT,
    is_completed       INTEGER NOT NULL DEFAULT 0,
    completed_date     TEXT,
    notes_enc          TEXT
);

-- Single-row cycle profile (id is always 'default')
CREATE TABLE IF NOT EXISTS period_trackers (
    id                TEXT PRIMARY KEY,
    name_enc          TEXT NOT NULL,
    age               INTEGER NOT NULL,
    last_period_date  TEXT NOT NULL,
    cycle_length      INTEGER NOT NULL DEFAULT 28,
    updated_at        TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_mood_date        ON mood_entries(entry_date);
CREATE INDEX IF NOT EXISTS idx_sleep_date       ON sleep_entries(entry_date);
CREATE INDEX IF NOT EXISTS idx_doses_medicine   ON dose_logs(medicine_id);
CREATE INDEX IF NOT EXISTS idx_doses_status     ON dose_logs(status);
CREATE INDEX IF NOT EXISTS idx_doses_scheduled  ON dose_logs(scheduled_date, scheduled_time);
CREATE INDEX IF NOT EXISTS idx_vaccine_tracker  ON vaccine_records(tracker_id);
"""

# ---------------------------------------------------------------------------
# V2: Assessment history + audit log
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS assessments (
    id           TEXT PRIMARY KEY,
    domain       TEXT NOT NULL,
    risk_level   TEXT NOT NULL,
    score        INTEGER NOT NULL,
    max_score    INTEGER NOT NULL,
    answers_enc  TEXT,
    result_enc   TEXT,
    created_at   TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    domain          TEXT,
    risk_level      TEXT,
    record_id       TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_assessments_domain ON assessments(domain);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp    ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action       ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_tool         ON audit_log(tool_name);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class TrackerDatabase:
    """SQLite database manager for the tracker data bank.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = TrackerDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_file), check_same_thread=False)
        else:
            self._conn = sqlite3.connect(":memory:", check_same_thread=False)

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Tracker database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        # V1: tracker tables (CREATE IF NOT EXISTS is idempotent)
        conn.executescript(_SCHEMA_V1)

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        current_version = row[0] if row[0] is not None else 0

        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: assessments and audit_log tables")

        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Tracker database closed")

    def __enter__(self) -> TrackerDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
