"""Audit logger: access trail for assessments and tracker writes.

Records every tool invocation, assessment, and deletion event in an audit
trail that never holds raw health data:

* ``tool_input_hash``: SHA-256 of canonical JSON instead of the input itself.
* ``domain`` / ``risk_level``: the scoring outcome, without the answers.
* ``record_id``: the persisted row the event touched, if any.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from carepoint.core.storage.database import TrackerDatabase

logger = logging.getLogger(__name__)


def _hash_input(data: Any) -> str:
    """SHA-256 hash of canonical JSON.

    Returns:
        Hex-encoded digest, or empty string if ``data`` is not serializable.
    """
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'tool_invocation' | 'assessment' | 'data_delete'
    tool_name: str = ""
    tool_input_hash: str = ""
    domain: str | None = None
    risk_level: str | None = None
    record_id: str | None = None
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed write is logged and
    swallowed so auditing never breaks the tool that triggered it.

    Usage::

        audit = AuditLogger(tracker_db)
        audit.log_assessment(
            tool_name="assess_pcos_risk",
            tool_input=answers,
            domain="pcos",
            risk_level="High",
        )
    """

    def __init__(self, database: TrackerDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID (empty on failure)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"), default=str)
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, tool_name, tool_input_hash, domain,
                    risk_level, record_id, duration_ms, status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action,
                    event.tool_name or None,
                    event.tool_input_hash or None,
                    event.domain,
                    event.risk_level,
                    event.record_id,
                    event.duration_ms,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event; event lost")
            return ""

        return event_id

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        record_id: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a tracker tool invocation.

        Args:
            tool_name: Name of the MCP tool.
            tool_input: Tool input data (hashed, never stored raw).
            record_id: ID of the row created or updated, if any.
            duration_ms: Tool execution duration in milliseconds.
            status: 'success' or 'failure'.
            error_type: Exception class name on failure.
            metadata: Additional non-identifying context.
        """
        return self.log_event(AuditEvent(
            action="tool_invocation",
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            record_id=record_id,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_assessment(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        domain: str,
        risk_level: str | None,
        record_id: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
    ) -> str:
        """Log a risk assessment with its outcome tier.

        Args:
            tool_name: Name of the assessment tool.
            tool_input: Answers or query (hashed).
            domain: Scored domain.
            risk_level: Resulting tier, or None when the assessment failed.
            record_id: Stored assessment ID when persisted.
            duration_ms: Tool execution duration in milliseconds.
            status: 'success' or 'failure'.
            error_type: Exception class name on failure.
        """
        return self.log_event(AuditEvent(
            action="assessment",
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            domain=domain,
            risk_level=risk_level,
            record_id=record_id,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
        ))

    def log_data_delete(
        self,
        *,
        tool_name: str = "",
        record_id: str | None = None,
        count: int = 0,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a data deletion event.

        Args:
            tool_name: Tool that initiated the delete.
            record_id: Specific row deleted (if applicable).
            count: Number of rows deleted.
            metadata: Additional context.
        """
        return self.log_event(AuditEvent(
            action="data_delete",
            tool_name=tool_name,
            record_id=record_id,
            metadata={**(metadata or {}), "records_deleted": count},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        domain: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events with optional filters.

        Args:
            action: Filter by action type.
            tool_name: Filter by tool name.
            domain: Filter by scored domain.
            since: ISO 8601 timestamp lower bound.
            limit: Maximum events to return.

        Returns:
            List of event dicts, newest first.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if tool_name:
            conditions.append("tool_name = ?")
            params.append(tool_name)
        if domain:
            conditions.append("domain = ?")
            params.append(domain)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None, since: str | None = None) -> int:
        """Count audit events, optionally by action and lower time bound."""
        conditions: list[str] = []
        params: list[Any] = []
        if action:
            conditions.append("action = ?")
            params.append(action)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)
        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()
        return row[0]

    def risk_level_counts(self, *, domain: str | None = None) -> dict[str, int]:
        """Tally assessment outcomes per risk tier.

        Answers "how often has each domain come back High?" without
        touching any stored answers.
        """
        query = (
            "SELECT risk_level, COUNT(*) AS n FROM audit_log "
            "WHERE action = 'assessment' AND status = 'success'"
        )
        params: list[Any] = []
        if domain:
            query += " AND domain = ?"
            params.append(domain)
        query += " GROUP BY risk_level"
        rows = self._db.connection.execute(query, params).fetchall()
        return {row["risk_level"]: row["n"] for row in rows if row["risk_level"]}
