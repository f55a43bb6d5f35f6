"""Tests for the vaccination schedule and overdue-risk scoring."""

from __future__ import annotations

from datetime import date, timedelta

from carepoint.domains.trackers.domain_logic.vaccine import (
    VACCINE_SCHEDULE,
    build_vaccine_observations,
    build_vaccine_schedule,
)

TODAY = date(2026, 3, 1)


def _assess(risk_engine, records, dob):
    observations, metrics = build_vaccine_observations(records, dob, TODAY)
    return risk_engine.assess("vaccine", observations, metrics=metrics).to_dict()


class TestSchedule:
    def test_schedule_size(self):
        assert len(VACCINE_SCHEDULE) == 31
        assert len(build_vaccine_schedule(TODAY)) == 31

    def test_due_dates_offset_from_birth(self):
        records = build_vaccine_schedule(date(2026, 1, 1))
        assert records[0]["vaccine_name"] == "BCG"
        assert records[0]["due_date"] == "2026-01-01"
        assert records[0]["age_at_vaccination"] == "At birth"
        assert records[2]["due_date"] == "2026-02-12"
        assert not any(r["is_completed"] for r in records)


class TestObservations:
    def test_nothing_due_short_circuits_to_low(self, risk_engine):
        records = [
            r for r in build_vaccine_schedule(TODAY)
            if date.fromisoformat(r["due_date"]) > TODAY
        ]
        result = _assess(risk_engine, records, TODAY)
        assert result["riskLevel"] == "Low"
        assert result["shortCircuit"] == "No vaccines are due yet"
        assert result["metrics"]["expectedCompletionRate"] == 100
        assert result["metrics"]["overdueCount"] == 0

    def test_early_vaccines_keep_nothing_due_result(self, risk_engine):
        records = [
            r for r in build_vaccine_schedule(TODAY)
            if date.fromisoformat(r["due_date"]) > TODAY
        ]
        for record in records[:2]:
            record["is_completed"] = True
        result = _assess(risk_engine, records, TODAY)
        assert result["riskLevel"] == "Low"
        assert "shortCircuit" in result
        assert result["metrics"]["completedVaccines"] == 2
        assert result["metrics"]["expectedCompletionRate"] == 100

    def test_all_overdue_is_high(self, risk_engine):
        dob = TODAY - timedelta(days=100)
        result = _assess(risk_engine, build_vaccine_schedule(dob), dob)
        assert result["metrics"]["expectedVaccines"] == 20
        assert result["metrics"]["overdueCount"] == 20
        assert result["metrics"]["expectedCompletionRate"] == 0
        assert result["score"] == 5
        assert result["riskLevel"] == "High"
        assert result["urgentActions"]

    def test_upcoming_within_window(self, risk_engine):
        dob = TODAY - timedelta(days=30)
        result = _assess(risk_engine, build_vaccine_schedule(dob), dob)
        metrics = result["metrics"]
        assert metrics["overdueCount"] == 2
        assert metrics["upcomingCount"] == 6
        assert metrics["upcomingVaccines"][0]["days_until"] == 12
        assert metrics["currentAge"] == "1 month"
        assert result["riskLevel"] == "Moderate"

    def test_completed_vaccines_are_not_overdue(self, risk_engine):
        dob = TODAY - timedelta(days=30)
        records = build_vaccine_schedule(dob)
        for record in records[:2]:
            record["is_completed"] = True
        result = _assess(risk_engine, records, dob)
        assert result["metrics"]["overdueCount"] == 0
        assert result["metrics"]["completedVaccines"] == 2
        assert result["metrics"]["expectedCompletionRate"] == 100
        assert result["riskLevel"] == "Low"

    def test_age_recommendations_follow_age_band(self, risk_engine):
        dob = TODAY - timedelta(days=800)
        _, metrics = build_vaccine_observations(build_vaccine_schedule(dob), dob, TODAY)
        assert "Annual flu vaccine recommended" in metrics["ageRecommendations"]
        assert "Important booster period for long-term immunity" in metrics["ageRecommendations"]
