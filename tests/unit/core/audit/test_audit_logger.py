"""Tests for the AuditLogger and input hashing."""

from __future__ import annotations

import json
import time

from carepoint.core.audit.logger import AuditEvent, AuditLogger, _hash_input


# ---------------------------------------------------------------------------
# _hash_input
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_sha256_hex(self):
        assert len(_hash_input({"acne": "mild"})) == 64

    def test_key_order_independent(self):
        assert _hash_input({"z": 1, "a": 2}) == _hash_input({"a": 2, "z": 1})

    def test_different_inputs_differ(self):
        assert _hash_input({"age": 20}) != _hash_input({"age": 21})

    def test_non_serializable_returns_empty(self):
        assert _hash_input(object()) == ""


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_returns_uuid(self, audit_logger: AuditLogger):
        eid = audit_logger.log_event(AuditEvent(action="tool_invocation", tool_name="t"))
        assert len(eid) == 36

    def test_tool_call_hashes_input(self, audit_logger: AuditLogger):
        audit_logger.log_tool_call(
            "record_mood_entry",
            {"overall_mood": "sad"},
            record_id="entry-1",
            duration_ms=3.2,
        )
        event = audit_logger.get_events()[0]
        assert event["action"] == "tool_invocation"
        assert event["record_id"] == "entry-1"
        assert len(event["tool_input_hash"]) == 64
        assert "sad" not in json.dumps(event)

    def test_metadata_json_stored(self, audit_logger: AuditLogger):
        audit_logger.log_tool_call("t", metadata={"window": 14})
        meta = json.loads(audit_logger.get_events()[0]["metadata_json"])
        assert meta == {"window": 14}

    def test_write_failure_returns_empty(self, tracker_db):
        logger = AuditLogger(tracker_db)
        tracker_db.close()
        assert logger.log_tool_call("t") == ""


class TestLogAssessment:
    def test_records_domain_and_tier(self, audit_logger: AuditLogger):
        audit_logger.log_assessment(
            "assess_pcos_risk", {"acne": "severe"}, domain="pcos", risk_level="High"
        )
        event = audit_logger.get_events(action="assessment")[0]
        assert event["domain"] == "pcos"
        assert event["risk_level"] == "High"
        assert event["status"] == "success"

    def test_failure_has_no_tier(self, audit_logger: AuditLogger):
        audit_logger.log_assessment(
            "assess_vaccine_risk", {"tracker_id": "x"},
            domain="vaccine", risk_level=None, status="failure", error_type="RepositoryError",
        )
        event = audit_logger.get_events()[0]
        assert event["risk_level"] is None
        assert event["error_type"] == "RepositoryError"


class TestLogDataDelete:
    def test_delete_event(self, audit_logger: AuditLogger):
        audit_logger.log_data_delete(tool_name="delete_mood_entry", record_id="m-1", count=1)
        event = audit_logger.get_events(action="data_delete")[0]
        assert event["record_id"] == "m-1"
        assert json.loads(event["metadata_json"])["records_deleted"] == 1


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestGetEvents:
    def test_filter_by_action_and_domain(self, audit_logger: AuditLogger):
        audit_logger.log_tool_call("record_sleep_entry")
        audit_logger.log_assessment("assess_sleep_risk", domain="sleep", risk_level="Low")
        audit_logger.log_assessment("assess_mood_risk", domain="mood", risk_level="High")

        assert len(audit_logger.get_events(action="assessment")) == 2
        assert len(audit_logger.get_events(domain="mood")) == 1
        assert len(audit_logger.get_events(tool_name="record_sleep_entry")) == 1

    def test_limit_respected(self, audit_logger: AuditLogger):
        for i in range(5):
            audit_logger.log_tool_call(f"tool_{i}")
        assert len(audit_logger.get_events(limit=3)) == 3

    def test_newest_first(self, audit_logger: AuditLogger):
        audit_logger.log_tool_call("first")
        time.sleep(0.01)
        audit_logger.log_tool_call("second")
        names = [e["tool_name"] for e in audit_logger.get_events()]
        assert names == ["second", "first"]


class TestCounts:
    def test_count_events(self, audit_logger: AuditLogger):
        assert audit_logger.count_events() == 0
        audit_logger.log_tool_call("a")
        audit_logger.log_assessment("b", domain="pcos", risk_level="Low")
        assert audit_logger.count_events() == 2
        assert audit_logger.count_events(action="assessment") == 1
        assert audit_logger.count_events(since="2020-01-01T00:00:00Z") == 2

    def test_risk_level_counts(self, audit_logger: AuditLogger):
        audit_logger.log_assessment("a", domain="pcos", risk_level="High")
        audit_logger.log_assessment("a", domain="pcos", risk_level="High")
        audit_logger.log_assessment("a", domain="pcos", risk_level="Low")
        audit_logger.log_assessment("b", domain="mood", risk_level="Moderate")
        audit_logger.log_assessment(
            "a", domain="pcos", risk_level=None, status="failure", error_type="ValueError"
        )
        assert audit_logger.risk_level_counts(domain="pcos") == {"High": 2, "Low": 1}
        assert audit_logger.risk_level_counts()["Moderate"] == 1
