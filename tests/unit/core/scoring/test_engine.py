"""Tests for the RiskEngine against the packaged rule tables and profiles."""

from __future__ import annotations

import shutil

import pytest

from carepoint.core.scoring.assembler import RecommendationCatalog
from carepoint.core.scoring.engine import RiskEngine
from carepoint.core.scoring.models import RiskTier, ScoringConfigurationError
from carepoint.domains.trackers.domain_logic.rule_tables import (
    PROFILE_DIR,
    RULE_TABLES,
    build_risk_engine,
)

DOMAINS = ["pcos", "vaccine", "medicine", "mood", "sleep"]


class TestConstruction:
    def test_registers_every_domain(self, risk_engine):
        assert sorted(risk_engine.domains()) == sorted(DOMAINS)

    def test_duplicate_domain_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            RiskEngine([RULE_TABLES[0], RULE_TABLES[0]], RecommendationCatalog())

    def test_empty_catalog_fails_validation(self):
        engine = RiskEngine(RULE_TABLES, RecommendationCatalog())
        with pytest.raises(ScoringConfigurationError):
            engine.validate()

    def test_missing_profiles_abort_build(self, tmp_path):
        with pytest.raises(ScoringConfigurationError):
            build_risk_engine(tmp_path)

    def test_urgent_insufficient_data_aborts_build(self, tmp_path):
        for profile in PROFILE_DIR.glob("*.yaml"):
            shutil.copy(profile, tmp_path / profile.name)
        mood = tmp_path / "mood.yaml"
        mood.write_text(mood.read_text().replace(
            "insufficient_data:\n",
            "insufficient_data:\n  urgent_actions: [Call emergency services now]\n",
        ))
        with pytest.raises(ScoringConfigurationError, match="mood"):
            build_risk_engine(tmp_path)

    def test_unknown_domain(self, risk_engine):
        with pytest.raises(ScoringConfigurationError, match="Unknown assessment domain"):
            risk_engine.assess("diabetes", {})


class TestDescribe:
    def test_pcos_description(self, risk_engine):
        info = risk_engine.describe("pcos")
        assert info["thresholds"] == {"moderate": 5, "high": 9}
        assert info["max_score"] == 22
        assert info["precondition"] is None

    def test_vaccine_precondition_reported(self, risk_engine):
        assert risk_engine.describe("vaccine")["precondition"] == "No vaccines are due yet"


HIGH_RISK = {
    "pcos": {"bmi": 31, "cycle_length": 40, "missed_periods": "yes"},
    "vaccine": {"due_count": 5, "overdue_count": 3, "expected_completion_rate": 40},
    "medicine": {"doses_scheduled": 10, "adherence_rate": 40},
    "mood": {"entry_count": 5, "avg_mood": 2, "avg_stress": 4, "avg_anxiety": 4},
    "sleep": {"entry_count": 7, "avg_duration": 5, "poor_quality_margin": 4},
}

LOW_RISK = {
    "pcos": {"bmi": 22, "cycle_length": 28, "acne": "none"},
    "vaccine": {"due_count": 4, "overdue_count": 0, "expected_completion_rate": 100},
    "medicine": {"doses_scheduled": 10, "adherence_rate": 95},
    "mood": {"entry_count": 5, "avg_mood": 4, "avg_stress": 2, "avg_anxiety": 1},
    "sleep": {"entry_count": 7, "avg_duration": 7.5, "poor_quality_margin": -5},
}


class TestTierInvariants:
    @pytest.mark.parametrize("domain", DOMAINS)
    def test_high_always_has_urgent_actions(self, risk_engine, domain):
        result = risk_engine.assess(domain, HIGH_RISK[domain]).to_dict()
        assert result["riskLevel"] == "High"
        assert result["urgentActions"]

    @pytest.mark.parametrize("domain", DOMAINS)
    def test_low_never_has_urgent_actions(self, risk_engine, domain):
        result = risk_engine.assess(domain, LOW_RISK[domain]).to_dict()
        assert result["riskLevel"] == "Low"
        assert result["urgentActions"] == []
        assert "shortCircuit" not in result

    @pytest.mark.parametrize("domain", DOMAINS)
    def test_high_threshold_reachable(self, risk_engine, domain):
        table = risk_engine.rule_table(domain)
        assert table.thresholds.high <= table.max_score

    @pytest.mark.parametrize("domain", DOMAINS)
    def test_short_circuit_or_empty_input_is_low(self, risk_engine, domain):
        assessment = risk_engine.assess(domain, {})
        assert assessment.tier is RiskTier.LOW
        assert assessment.score == 0
        assert assessment.to_dict()["urgentActions"] == []


class TestAssess:
    def test_idempotent(self, risk_engine):
        obs = {"cycle_length": 40, "acne": "severe", "missed_periods": "yes"}
        first = risk_engine.assess("pcos", obs).to_dict()
        second = risk_engine.assess("pcos", obs).to_dict()
        assert first == second

    def test_input_not_mutated(self, risk_engine):
        obs = {"acne": "mild"}
        risk_engine.assess("pcos", obs)
        assert obs == {"acne": "mild"}

    def test_metrics_passed_through(self, risk_engine):
        result = risk_engine.assess("pcos", {}, metrics={"bmi": None}).to_dict()
        assert result["metrics"] == {"bmi": None}

    def test_precondition_short_circuit_reports_reason(self, risk_engine):
        result = risk_engine.assess("mood", {"entry_count": 0}).to_dict()
        assert result["riskLevel"] == "Low"
        assert result["shortCircuit"] == "No mood entries recorded yet"
        assert result["wellbeingScore"] == 10
        assert result["factors"] == []

    def test_wellbeing_score_drops_with_risk(self, risk_engine):
        result = risk_engine.assess("sleep", {
            "entry_count": 7,
            "avg_duration": 5.5,
            "avg_time_to_sleep": 40,
            "avg_wakeups": 0,
            "poor_quality_margin": 3,
        }).to_dict()
        # 3 (short) + 2 (latency) + 3 (quality)
        assert result["score"] == 8
        assert result["riskLevel"] == "High"
        assert result["wellbeingScore"] == 2
        assert result["urgentActions"]
