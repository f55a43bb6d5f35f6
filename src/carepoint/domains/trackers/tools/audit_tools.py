"""MCP tools for viewing the audit trail.

The audit log holds tool names, hashed inputs, and assessment tiers only,
so it can be shown back to the user without exposing tracker data.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from carepoint.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 30,
        domain: str = "",
    ) -> str:
        """View recent tool usage and how often each risk tier came back.

        Args:
            days: Number of days to look back (default: 30).
            domain: Restrict to one assessment domain (optional).
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

        recent_events = audit_logger.get_events(since=since, domain=domain or None, limit=20)
        display_events = [
            {
                "timestamp": event.get("timestamp"),
                "action": event.get("action"),
                "tool_name": event.get("tool_name"),
                "domain": event.get("domain"),
                "risk_level": event.get("risk_level"),
                "status": event.get("status"),
                "duration_ms": event.get("duration_ms"),
            }
            for event in recent_events
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": audit_logger.count_events(since=since),
            "assessments": audit_logger.count_events(action="assessment", since=since),
            "risk_levels": audit_logger.risk_level_counts(domain=domain or None),
            "recent_events": display_events,
            "note": "This audit trail contains no tracker data, only hashed inputs and outcomes.",
        }, indent=2)
