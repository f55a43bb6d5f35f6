"""Tests for medication adherence observations and scoring."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from carepoint.domains.trackers.domain_logic.medicine import (
    build_adherence_observations,
    scheduled_at,
)

NOW = datetime(2026, 1, 11, 0, 0)


def _medicine(**overrides) -> dict:
    medicine = {
        "id": "med-1",
        "name": "Metformin",
        "start_date": "2026-01-01",
        "end_date": "2026-01-10",
        "is_active": True,
    }
    medicine.update(overrides)
    return medicine


def _logs(days: int, times=("08:00", "20:00"), *, start=date(2026, 1, 1), medicine_id="med-1"):
    logs = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        for slot in times:
            logs.append({
                "medicine_id": medicine_id,
                "scheduled_date": day,
                "scheduled_time": slot,
                "status": "due",
            })
    return logs


def _take(log: dict, delay_minutes: int = 0) -> None:
    log["status"] = "taken"
    log["taken_at"] = (scheduled_at(log) + timedelta(minutes=delay_minutes)).isoformat()


def _assess(risk_engine, medicines, logs, now=NOW):
    observations, metrics = build_adherence_observations(medicines, logs, now)
    return risk_engine.assess("medicine", observations, metrics=metrics).to_dict()


class TestAdherence:
    def test_ninety_percent_is_low(self, risk_engine):
        logs = _logs(10)
        for log in logs[:18]:
            _take(log)
        for log in logs[18:]:
            log["status"] = "missed"

        result = _assess(risk_engine, [_medicine()], logs)
        assert result["metrics"]["adherenceRate"] == 90
        assert result["metrics"]["taken"] == 18
        assert result["metrics"]["missed"] == 2
        assert result["metrics"]["onTime"] == 18
        assert result["metrics"]["onTimeRate"] == 90
        assert result["metrics"]["daysAnalyzed"] == 10
        assert result["riskLevel"] == "Low"

    def test_low_adherence_is_high(self, risk_engine):
        logs = _logs(5)
        for log in logs[:4]:
            _take(log)
        for log in logs[4:]:
            log["status"] = "missed"

        result = _assess(risk_engine, [_medicine()], logs)
        assert result["metrics"]["adherenceRate"] == 40
        assert result["score"] == 2
        assert result["riskLevel"] == "High"
        assert result["urgentActions"]

    def test_fewer_than_three_doses_short_circuits(self, risk_engine):
        logs = _logs(1)
        for log in logs:
            log["status"] = "missed"
        result = _assess(risk_engine, [_medicine()], logs)
        assert result["riskLevel"] == "Low"
        assert result["score"] == 0
        assert "shortCircuit" in result

    def test_pending_doses_do_not_lower_adherence(self, risk_engine):
        logs = _logs(3)
        for log in logs[:3]:
            _take(log)
        result = _assess(risk_engine, [_medicine()], logs)
        assert result["metrics"]["pending"] == 3
        assert result["metrics"]["adherenceRate"] == 100


class TestWindow:
    def test_future_doses_excluded(self):
        observations, _ = build_adherence_observations(
            [_medicine()], _logs(10), datetime(2026, 1, 3, 9, 0)
        )
        # Jan 1 and Jan 2 both slots, plus Jan 3 08:00
        assert observations["doses_scheduled"] == 5

    def test_inactive_medicine_ignored(self):
        observations, metrics = build_adherence_observations(
            [_medicine(is_active=False)], _logs(10), NOW
        )
        assert observations["doses_scheduled"] == 0
        assert metrics["activeMedicines"] == 0

    def test_lookback_limits_history(self):
        medicine = _medicine(start_date="2025-11-01", end_date=None)
        logs = _logs(71, times=("08:00",), start=date(2025, 11, 1))
        observations, _ = build_adherence_observations([medicine], logs, NOW, lookback_days=7)
        assert observations["doses_scheduled"] == 7


class TestDetails:
    def test_late_dose_is_not_on_time(self):
        logs = _logs(2)
        _take(logs[0], delay_minutes=30)
        _take(logs[1], delay_minutes=90)
        _, metrics = build_adherence_observations([_medicine()], logs, NOW)
        assert metrics["onTime"] == 1
        # 1 of 4 scheduled doses was taken on time
        assert metrics["onTimeRate"] == 25

    def test_side_effects_counted_without_points(self, risk_engine):
        logs = _logs(2)
        for log in logs:
            _take(log)
            log["side_effects_experienced"] = ["nausea"]
        observations, metrics = build_adherence_observations([_medicine()], logs, NOW)
        assert observations["side_effect_reports"] == 4
        assert metrics["sideEffectCounts"] == {"nausea": 4}
        result = risk_engine.assess("medicine", observations).to_dict()
        assert result["score"] == 0

    def test_course_ending_soon_flagged(self):
        medicine = _medicine(end_date="2026-01-13")
        observations, metrics = build_adherence_observations([medicine], _logs(10), NOW)
        assert observations["expiring_soon"] == 1
        assert metrics["expiringSoon"] == ["Metformin"]

    def test_finished_course_not_flagged(self):
        _, metrics = build_adherence_observations([_medicine()], _logs(10), NOW)
        assert metrics["expiringSoon"] == []
