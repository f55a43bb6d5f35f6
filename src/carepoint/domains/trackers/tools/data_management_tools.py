"""MCP tools for tracker data management (single-entry and full deletion).

These tools implement the user's right to delete their tracker data.
All deletions are audit-logged.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Callable

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from carepoint.core.audit.logger import AuditLogger
    from carepoint.core.storage.repository import TrackerRepository

logger = logging.getLogger(__name__)


def register_data_management_tools(
    mcp: FastMCP,
    repository: TrackerRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register data management tools on the MCP server."""

    def _delete_one(tool_name: str, kind: str, record_id: str, delete: Callable[[str], bool]) -> str:
        start_time = time.monotonic()
        deleted = delete(record_id)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if not deleted:
            return json.dumps({
                "status": "not_found",
                "id": record_id,
                "message": f"No {kind} found with that ID.",
            })
        if audit_logger is not None:
            audit_logger.log_data_delete(tool_name=tool_name, record_id=record_id, count=1)
        logger.info("Deleted %s %s", kind, record_id)
        return json.dumps({
            "status": "deleted",
            "id": record_id,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def delete_mood_entry(ctx: Context, entry_id: str) -> str:
        """Permanently delete one mood entry.

        Args:
            entry_id: ID returned by ``record_mood_entry``.
        """
        return _delete_one("delete_mood_entry", "mood entry", entry_id, repository.delete_mood_entry)

    @mcp.tool
    async def delete_sleep_entry(ctx: Context, entry_id: str) -> str:
        """Permanently delete one sleep entry.

        Args:
            entry_id: ID returned by ``record_sleep_entry``.
        """
        return _delete_one(
            "delete_sleep_entry", "sleep entry", entry_id, repository.delete_sleep_entry
        )

    @mcp.tool
    async def delete_vaccine_tracker(ctx: Context, tracker_id: str) -> str:
        """Permanently delete a child's vaccine tracker and its records.

        Args:
            tracker_id: ID returned by ``create_vaccine_tracker``.
        """
        return _delete_one(
            "delete_vaccine_tracker", "vaccine tracker", tracker_id,
            repository.delete_vaccine_tracker,
        )

    @mcp.tool
    async def delete_all_tracker_data(
        ctx: Context,
        confirm: str = "",
    ) -> str:
        """Permanently delete ALL stored tracker data and assessment history.

        This removes every mood and sleep entry, medicine and dose log,
        vaccine tracker, the cycle profile, and stored assessments. It
        cannot be undone. The audit trail is kept.

        Args:
            confirm: Must be exactly 'DELETE_ALL' to proceed. Safety gate.
        """
        if confirm != "DELETE_ALL":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To delete all tracker data, call this tool with "
                    "confirm='DELETE_ALL'. This action cannot be undone."
                ),
            })

        start_time = time.monotonic()
        count = repository.delete_all_data()
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_all_tracker_data",
                count=count,
                metadata={"confirmed": True},
            )

        return json.dumps({
            "status": "all_deleted",
            "records_deleted": count,
            "duration_ms": round(elapsed_ms, 1),
            "message": "All tracker data has been permanently deleted.",
        })
