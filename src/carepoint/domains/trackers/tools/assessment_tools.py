"""MCP tools for risk assessments.

Each tool gathers observations (from its arguments or from the tracker
data bank), runs the shared risk engine, and returns the assessment as
JSON. Every call is audit-logged with its domain and resulting tier.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from fastmcp import Context, FastMCP

from carepoint.core.storage.models import StoredAssessment
from carepoint.core.storage.repository import RepositoryError
from carepoint.domains.trackers.domain_logic import medicine, mood, pcos, sleep, vaccine
from carepoint.domains.trackers.domain_logic.metrics import parse_date

if TYPE_CHECKING:
    from carepoint.core.audit.logger import AuditLogger
    from carepoint.core.scoring.engine import RiskEngine
    from carepoint.core.storage.repository import TrackerRepository

logger = logging.getLogger(__name__)

Collector = Callable[[], tuple]


def register_assessment_tools(
    mcp: FastMCP,
    engine: RiskEngine,
    repository: TrackerRepository | None = None,
    audit_logger: AuditLogger | None = None,
    *,
    mood_window: int = mood.WINDOW_ENTRIES,
    sleep_window: int = sleep.WINDOW_ENTRIES,
    adherence_lookback_days: int = medicine.LOOKBACK_DAYS,
) -> None:
    """Register assessment tools on the MCP server.

    The PCOS questionnaire works without storage. Tracker-based
    assessments are only registered when a repository is available.
    """

    def _run_assessment(
        tool_name: str,
        tool_input: dict[str, Any],
        domain: str,
        collect: Collector,
        *,
        persist: bool = False,
    ) -> str:
        start_time = time.monotonic()
        try:
            observations, metrics = collect()
            assessment = engine.assess(domain, observations, metrics=metrics)
        except (RepositoryError, ValueError) as exc:
            if audit_logger is not None:
                audit_logger.log_assessment(
                    tool_name, tool_input,
                    domain=domain,
                    risk_level=None,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            logger.info("%s rejected input: %s", tool_name, exc)
            return json.dumps({"status": "error", "message": str(exc)})
        except Exception as exc:
            if audit_logger is not None:
                audit_logger.log_assessment(
                    tool_name, tool_input,
                    domain=domain,
                    risk_level=None,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            raise

        result = assessment.to_dict()
        record_id = None
        if persist and repository is not None:
            record_id = repository.save_assessment(StoredAssessment(
                id="",
                domain=domain,
                risk_level=assessment.tier.value,
                score=assessment.score,
                max_score=assessment.max_score,
                answers=tool_input,
                result=result,
            ))

        elapsed_ms = (time.monotonic() - start_time) * 1000
        if audit_logger is not None:
            audit_logger.log_assessment(
                tool_name, tool_input,
                domain=domain,
                risk_level=assessment.tier.value,
                record_id=record_id,
                duration_ms=elapsed_ms,
            )

        payload: dict[str, Any] = {"status": "ok", **result}
        if record_id:
            payload["assessmentId"] = record_id
        return json.dumps(payload, indent=2)

    @mcp.tool
    async def list_risk_domains(ctx: Context) -> str:
        """List the assessable risk domains with their thresholds and rules."""
        return json.dumps({
            "status": "ok",
            "storage_enabled": repository is not None,
            "domains": [engine.describe(domain) for domain in engine.domains()],
        }, indent=2)

    @mcp.tool
    async def assess_pcos_risk(
        ctx: Context,
        age: int | None = None,
        height_cm: float | None = None,
        weight_kg: float | None = None,
        cycle_length: int | None = None,
        missed_periods: str = "no",
        periods_late_often: str = "no",
        acne: str = "none",
        hair_fall: str = "no",
        facial_hair: str = "no",
        weight_gain_recently: str = "no",
        family_history_pcos: str = "no",
    ) -> str:
        """Screen for polycystic ovary syndrome from a short questionnaire.

        This is a screening aid, not a diagnosis. Results are stored
        (encrypted) when the data bank is enabled.

        Args:
            age: Age in years.
            height_cm: Height in centimetres.
            weight_kg: Weight in kilograms.
            cycle_length: Typical days between period starts.
            missed_periods: 'yes' if periods are frequently missed.
            periods_late_often: 'yes' if periods are often late.
            acne: 'none', 'mild', or 'severe'.
            hair_fall: 'yes' if experiencing hair thinning.
            facial_hair: 'yes' if experiencing excess facial or body hair.
            weight_gain_recently: 'yes' if weight increased without clear cause.
            family_history_pcos: 'yes' if a close relative has PCOS.
        """
        answers = {
            "age": age,
            "height_cm": height_cm,
            "weight_kg": weight_kg,
            "cycle_length": cycle_length,
            "missed_periods": missed_periods,
            "periods_late_often": periods_late_often,
            "acne": acne,
            "hair_fall": hair_fall,
            "facial_hair": facial_hair,
            "weight_gain_recently": weight_gain_recently,
            "family_history_pcos": family_history_pcos,
        }

        def collect():
            pcos.validate_pcos_answers(answers)
            return pcos.build_pcos_observations(answers)

        return _run_assessment("assess_pcos_risk", answers, pcos.DOMAIN, collect, persist=True)

    if repository is None:
        return

    @mcp.tool
    async def assess_vaccine_risk(ctx: Context, tracker_id: str) -> str:
        """Assess a child's vaccination status against the immunisation schedule.

        Args:
            tracker_id: ID returned by ``create_vaccine_tracker``.
        """
        def collect():
            tracker = repository.get_vaccine_tracker(tracker_id)
            if tracker is None:
                raise RepositoryError(f"Vaccine tracker not found: {tracker_id}")
            observations, metrics = vaccine.build_vaccine_observations(
                [asdict(record) for record in tracker.records],
                parse_date(tracker.date_of_birth),
                date.today(),
            )
            metrics["childName"] = tracker.child_name
            return observations, metrics

        return _run_assessment(
            "assess_vaccine_risk", {"tracker_id": tracker_id}, vaccine.DOMAIN, collect
        )

    @mcp.tool
    async def assess_medication_adherence(ctx: Context) -> str:
        """Assess adherence across active medicines over the recent lookback window."""
        def collect():
            now = datetime.now()
            since = (now - timedelta(days=adherence_lookback_days)).date().isoformat()
            medicines = [asdict(m) for m in repository.get_medicines(active_only=True)]
            logs = [asdict(log) for log in repository.get_dose_logs(since=since)]
            return medicine.build_adherence_observations(
                medicines, logs, now, lookback_days=adherence_lookback_days
            )

        return _run_assessment(
            "assess_medication_adherence",
            {"lookback_days": adherence_lookback_days},
            medicine.DOMAIN,
            collect,
        )

    @mcp.tool
    async def assess_mood_risk(ctx: Context) -> str:
        """Assess emotional wellbeing from the most recent mood entries."""
        def collect():
            entries = [asdict(e) for e in repository.get_mood_entries(limit=mood_window)]
            return mood.build_mood_observations(entries, window=mood_window)

        return _run_assessment(
            "assess_mood_risk", {"window": mood_window}, mood.DOMAIN, collect
        )

    @mcp.tool
    async def assess_sleep_risk(ctx: Context) -> str:
        """Assess sleep health from the most recent sleep entries."""
        def collect():
            entries = [asdict(e) for e in repository.get_sleep_entries(limit=sleep_window)]
            return sleep.build_sleep_observations(entries, window=sleep_window)

        return _run_assessment(
            "assess_sleep_risk", {"window": sleep_window}, sleep.DOMAIN, collect
        )

    @mcp.tool
    async def assessment_history(
        ctx: Context,
        domain: str = pcos.DOMAIN,
        limit: int = 10,
    ) -> str:
        """List previously stored assessments, newest first.

        Args:
            domain: Domain to list (default: 'pcos').
            limit: Maximum number of assessments to return.
        """
        stored = repository.get_assessments(domain=domain, limit=limit)
        return json.dumps({
            "status": "ok",
            "domain": domain,
            "count": len(stored),
            "assessments": [
                {
                    "id": item.id,
                    "createdAt": item.created_at,
                    "riskLevel": item.risk_level,
                    "score": item.score,
                    "maxScore": item.max_score,
                    "result": item.result,
                }
                for item in stored
            ],
        }, indent=2)
