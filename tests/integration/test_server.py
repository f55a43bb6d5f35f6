"""Integration tests for the CarePoint risk MCP server."""

from __future__ import annotations

import asyncio
import json
from datetime import date, timedelta

import pytest
from fastmcp import Client

from carepoint.core.server.app import SERVER_NAME, create_app


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    """Decode the JSON text a tool returned."""
    content = getattr(result, "content", result)
    return json.loads(content[0].text)


ASSESSMENT_TOOLS = ["health_check", "list_risk_domains", "assess_pcos_risk"]

TRACKER_TOOLS = [
    "assess_vaccine_risk",
    "assess_medication_adherence",
    "assess_mood_risk",
    "assess_sleep_risk",
    "assessment_history",
    "record_mood_entry",
    "record_sleep_entry",
    "add_medicine",
    "list_doses",
    "update_dose_status",
    "sweep_overdue_doses",
    "create_vaccine_tracker",
    "update_vaccine_status",
    "setup_period_tracker",
    "period_status",
    "delete_mood_entry",
    "delete_all_tracker_data",
    "audit_summary",
]

PCOS_SCENARIO = {
    "age": 25,
    "height_cm": 160,
    "weight_kg": 70,
    "cycle_length": 40,
    "missed_periods": "yes",
    "acne": "severe",
    "hair_fall": "yes",
    "weight_gain_recently": "yes",
    "family_history_pcos": "yes",
}


@pytest.fixture
def bare_client():
    """Server without a data bank (no ENCRYPTION_KEY)."""
    return Client(create_app())


@pytest.fixture
def client(tracker_repository, audit_logger):
    """Server backed by an in-memory tracker data bank."""
    mcp = create_app(
        repository_override=tracker_repository,
        audit_logger_override=audit_logger,
    )
    return Client(mcp)


def _call(client, tool: str, args: dict | None = None) -> dict:
    async def _go():
        async with client:
            return _payload(await client.call_tool(tool, args or {}))
    return _run(_go())


# ---------------------------------------------------------------------------
# Without storage
# ---------------------------------------------------------------------------

def test_server_without_storage_lists_assessment_tools(bare_client):
    """Only storage-free tools should be exposed without a key."""
    async def _check():
        async with bare_client:
            tools = await bare_client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ASSESSMENT_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
            assert "record_mood_entry" not in tool_names
            assert "assess_mood_risk" not in tool_names
    _run(_check())


def test_health_check_returns_ok(bare_client):
    """health_check should report the server and its domains."""
    result = _call(bare_client, "health_check")
    assert result["status"] == "ok"
    assert result["server"] == SERVER_NAME
    assert result["storage_enabled"] is False
    assert sorted(result["domains"]) == ["medicine", "mood", "pcos", "sleep", "vaccine"]


def test_pcos_assessment_without_storage(bare_client):
    """The questionnaire scores without a data bank and is not persisted."""
    result = _call(bare_client, "assess_pcos_risk", PCOS_SCENARIO)
    assert result["status"] == "ok"
    assert result["score"] == 16
    assert result["riskLevel"] == "High"
    assert result["urgentActions"]
    assert "assessmentId" not in result


def test_invalid_pcos_answer_returns_error(bare_client):
    """Unknown questionnaire choices come back as an error payload."""
    result = _call(bare_client, "assess_pcos_risk", {"acne": "extreme"})
    assert result["status"] == "error"
    assert "acne" in result["message"]


def test_list_risk_domains(bare_client):
    """Every domain should be described with thresholds."""
    result = _call(bare_client, "list_risk_domains")
    by_domain = {d["domain"]: d for d in result["domains"]}
    assert by_domain["sleep"]["thresholds"] == {"moderate": 3, "high": 6}


# ---------------------------------------------------------------------------
# With storage
# ---------------------------------------------------------------------------

def test_server_with_storage_lists_tracker_tools(client):
    """Tracker, data management, and audit tools register with storage."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ASSESSMENT_TOOLS + TRACKER_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_pcos_assessment_is_persisted(client):
    """Stored assessments show up in the history."""
    async def _check():
        async with client:
            first = _payload(await client.call_tool("assess_pcos_risk", PCOS_SCENARIO))
            history = _payload(await client.call_tool("assessment_history", {"domain": "pcos"}))
            return first, history
    first, history = _run(_check())
    assert first["assessmentId"]
    assert history["count"] == 1
    assert history["assessments"][0]["id"] == first["assessmentId"]
    assert history["assessments"][0]["riskLevel"] == "High"


def test_mood_entries_feed_mood_assessment(client):
    """Recorded check-ins drive the mood assessment."""
    async def _check():
        async with client:
            empty = _payload(await client.call_tool("assess_mood_risk", {}))
            for _ in range(3):
                saved = _payload(await client.call_tool("record_mood_entry", {
                    "overall_mood": "very_sad",
                    "energy_level": "very_low",
                    "stress_level": "very_high",
                    "anxiety_level": "severe",
                }))
                assert saved["status"] == "saved"
            scored = _payload(await client.call_tool("assess_mood_risk", {}))
            return empty, scored
    empty, scored = _run(_check())
    assert empty["riskLevel"] == "Low"
    assert empty["wellbeingScore"] == 10
    assert "shortCircuit" in empty
    assert scored["riskLevel"] == "High"
    assert scored["metrics"]["daysAnalyzed"] == 3
    assert scored["wellbeingScore"] == 0


def test_invalid_mood_entry_rejected(client):
    """Out-of-vocabulary levels are rejected with an error payload."""
    result = _call(client, "record_mood_entry", {
        "overall_mood": "elated",
        "energy_level": "high",
        "stress_level": "low",
        "anxiety_level": "none",
    })
    assert result["status"] == "error"


def test_sleep_entry_duration_computed(client):
    """Sleep duration is derived from sleep and wake times."""
    async def _check():
        async with client:
            saved = _payload(await client.call_tool("record_sleep_entry", {
                "sleep_time": "23:00",
                "wake_time": "07:00",
                "sleep_quality": "good",
            }))
            scored = _payload(await client.call_tool("assess_sleep_risk", {}))
            return saved, scored
    saved, scored = _run(_check())
    assert saved["sleep_duration_hours"] == 8.0
    assert scored["metrics"]["avgSleepDuration"] == 8.0
    assert scored["riskLevel"] == "Low"


def test_missed_doses_drive_adherence_risk(client):
    """Swept overdue doses count as missed in the adherence assessment."""
    today = date.today()

    async def _check():
        async with client:
            added = _payload(await client.call_tool("add_medicine", {
                "name": "Metformin",
                "medicine_type": "tablet",
                "start_date": (today - timedelta(days=10)).isoformat(),
                "end_date": (today - timedelta(days=1)).isoformat(),
                "dose_times": ["08:00", "20:00"],
            }))
            swept = _payload(await client.call_tool("sweep_overdue_doses", {}))
            scored = _payload(await client.call_tool("assess_medication_adherence", {}))
            return added, swept, scored
    added, swept, scored = _run(_check())
    assert added["doses_scheduled"] == 20
    assert swept["doses_marked_missed"] == 20
    assert scored["metrics"]["missed"] == 20
    assert scored["metrics"]["adherenceRate"] == 0
    assert scored["riskLevel"] == "High"


def test_vaccine_tracker_assessment(client):
    """A tracker with every due vaccine outstanding is High risk."""
    dob = (date.today() - timedelta(days=100)).isoformat()

    async def _check():
        async with client:
            created = _payload(await client.call_tool("create_vaccine_tracker", {
                "child_name": "Asha",
                "date_of_birth": dob,
                "gender": "female",
            }))
            scored = _payload(await client.call_tool(
                "assess_vaccine_risk", {"tracker_id": created["tracker_id"]}
            ))
            return created, scored
    created, scored = _run(_check())
    assert created["vaccines_scheduled"] == 31
    assert scored["riskLevel"] == "High"
    assert scored["metrics"]["childName"] == "Asha"
    assert scored["metrics"]["overdueCount"] == 20


def test_unknown_vaccine_tracker_returns_error(client):
    result = _call(client, "assess_vaccine_risk", {"tracker_id": "missing"})
    assert result["status"] == "error"


def test_period_status_after_setup(client):
    """period_status reports the current cycle day."""
    last = (date.today() - timedelta(days=10)).isoformat()

    async def _check():
        async with client:
            missing = _payload(await client.call_tool("period_status", {}))
            await client.call_tool("setup_period_tracker", {
                "name": "Mira",
                "age": 28,
                "last_period_date": last,
                "cycle_length": 28,
            })
            status = _payload(await client.call_tool("period_status", {}))
            return missing, status
    missing, status = _run(_check())
    assert missing["status"] == "not_found"
    assert status["cycleDay"] == 11
    assert status["phase"] == "Follicular"


def test_delete_all_requires_confirmation(client, tracker_repository):
    """delete_all_tracker_data is gated on confirm='DELETE_ALL'."""
    async def _check():
        async with client:
            await client.call_tool("record_mood_entry", {
                "overall_mood": "happy",
                "energy_level": "high",
                "stress_level": "low",
                "anxiety_level": "none",
            })
            cancelled = _payload(await client.call_tool("delete_all_tracker_data", {}))
            deleted = _payload(await client.call_tool(
                "delete_all_tracker_data", {"confirm": "DELETE_ALL"}
            ))
            return cancelled, deleted
    cancelled, deleted = _run(_check())
    assert cancelled["status"] == "cancelled"
    assert deleted["status"] == "all_deleted"
    assert deleted["records_deleted"] == 1
    assert tracker_repository.get_mood_entries() == []


def test_delete_unknown_entry_not_found(client):
    result = _call(client, "delete_mood_entry", {"entry_id": "nope"})
    assert result["status"] == "not_found"


def test_audit_summary_counts_tiers(client):
    """Assessments are audited with their tier and no raw answers."""
    async def _check():
        async with client:
            await client.call_tool("assess_pcos_risk", PCOS_SCENARIO)
            await client.call_tool("assess_pcos_risk", {})
            return _payload(await client.call_tool("audit_summary", {"domain": "pcos"}))
    summary = _run(_check())
    assert summary["assessments"] == 2
    assert summary["risk_levels"] == {"High": 1, "Low": 1}
    assert "severe" not in json.dumps(summary)
