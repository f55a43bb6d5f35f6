"""CarePoint risk MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from carepoint.core.audit.logger import AuditLogger
from carepoint.core.config.settings import get_settings
from carepoint.core.scoring.engine import RiskEngine
from carepoint.core.storage.database import TrackerDatabase
from carepoint.core.storage.encryption import EncryptionError, FieldEncryptor
from carepoint.core.storage.repository import TrackerRepository
from carepoint.domains.trackers.domain_logic.rule_tables import build_risk_engine
from carepoint.domains.trackers.tools.assessment_tools import register_assessment_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "CarePoint Risk"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    repository_override: TrackerRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
    engine_override: RiskEngine | None = None,
) -> FastMCP:
    """Create and configure the CarePoint risk MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads recommendation profiles and validates every rule table
       (a misconfigured domain aborts startup)
    3. Initializes the encrypted tracker data bank when a key is configured
    4. Registers assessment, tracker, data management, and audit tools
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "CarePoint telehealth risk server. Scores PCOS, child vaccination, "
            "medication adherence, mood, and sleep risk into Low, Moderate, or "
            "High tiers with tier-specific recommendations. Screening aid only; "
            "not a diagnosis."
        ),
    )

    # --- Risk engine (fails fast on incomplete configuration) ---
    if engine_override is not None:
        engine = engine_override
    else:
        engine = build_risk_engine(settings.profiles_dir or None)
    logger.info("Risk engine ready for domains: %s", ", ".join(engine.domains()))

    # --- Encrypted storage (tracker data bank) ---
    repository: TrackerRepository | None = None
    audit_logger: AuditLogger | None = audit_logger_override
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            encryptor = FieldEncryptor(settings.encryption_key)
            tracker_db = TrackerDatabase(settings.db_path)
            tracker_db.initialize()
            repository = TrackerRepository(tracker_db, encryptor)
            if audit_logger is None:
                audit_logger = AuditLogger(tracker_db)
            logger.info(
                "Tracker data bank initialized: %s (schema v%d)",
                settings.db_path,
                tracker_db.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence; tracker tools are disabled")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured; running without persistence. "
            "Set ENCRYPTION_KEY to enable the tracker data bank."
        )

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "domains": engine.domains(),
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["records_stored"] = repository.count_records()
        return status

    register_assessment_tools(
        server,
        engine,
        repository,
        audit_logger,
        mood_window=settings.mood_window,
        sleep_window=settings.sleep_window,
        adherence_lookback_days=settings.adherence_lookback_days,
    )
    logger.info("Assessment tools registered")

    # --- Tracker, data management, and audit tools (require storage) ---
    if repository is not None:
        from carepoint.domains.trackers.tools.data_management_tools import (
            register_data_management_tools,
        )
        from carepoint.domains.trackers.tools.tracker_tools import register_tracker_tools

        register_tracker_tools(
            server,
            repository,
            audit_logger,
            missed_dose_grace_hours=settings.missed_dose_grace_hours,
        )
        register_data_management_tools(server, repository, audit_logger)
        logger.info("Tracker and data management tools registered")

    if audit_logger is not None:
        from carepoint.domains.trackers.tools.audit_tools import register_audit_tools

        register_audit_tools(server, audit_logger)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
