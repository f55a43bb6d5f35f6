"""Tests for the mood rolling-window observations and scoring."""

from __future__ import annotations

from carepoint.domains.trackers.domain_logic.mood import build_mood_observations


def _entry(mood="neutral", energy="moderate", stress="moderate", anxiety="mild", symptoms=(), triggers=()):
    return {
        "overall_mood": mood,
        "energy_level": energy,
        "stress_level": stress,
        "anxiety_level": anxiety,
        "symptoms": list(symptoms),
        "triggers": list(triggers),
    }


def _assess(risk_engine, entries):
    observations, metrics = build_mood_observations(entries)
    return risk_engine.assess("mood", observations, metrics=metrics).to_dict()


class TestMoodObservations:
    def test_averages_over_scales(self):
        entries = [_entry(mood="happy", stress="low"), _entry(mood="sad", stress="high")]
        observations, metrics = build_mood_observations(entries)
        assert observations["entry_count"] == 2
        assert observations["avg_mood"] == 3.0
        assert observations["avg_stress"] == 3.0
        assert metrics["avgAnxiety"] == 2.0

    def test_window_keeps_newest_entries(self):
        entries = [_entry(mood="very_happy")] * 14 + [_entry(mood="very_sad")] * 6
        observations, metrics = build_mood_observations(entries)
        assert observations["entry_count"] == 14
        assert observations["avg_mood"] == 5.0
        assert metrics["daysAnalyzed"] == 14

    def test_unknown_levels_ignored(self):
        observations, _ = build_mood_observations([_entry(mood="ecstatic"), _entry(mood="sad")])
        assert observations["avg_mood"] == 2.0

    def test_top_triggers_and_symptoms(self):
        entries = [
            _entry(triggers=["work", "sleep"], symptoms=["headache"]),
            _entry(triggers=["work"], symptoms=["headache", "fatigue"]),
        ]
        observations, metrics = build_mood_observations(entries)
        assert metrics["topTriggers"][0] == "work"
        assert metrics["topSymptoms"][0] == "headache"
        assert observations["symptom_frequency"] == 1.5

    def test_empty_history(self):
        observations, metrics = build_mood_observations([])
        assert observations["entry_count"] == 0
        assert observations["avg_mood"] is None
        assert observations["symptom_frequency"] is None
        assert metrics["topTriggers"] == []


class TestMoodScoring:
    def test_struggling_week_is_high(self, risk_engine):
        entries = [
            _entry(
                mood="very_sad", energy="very_low", stress="very_high",
                anxiety="severe", symptoms=["a", "b", "c", "d"],
            )
        ] * 5
        result = _assess(risk_engine, entries)
        # mood 4 + stress 3 + anxiety 3 + energy 2 + symptoms 2
        assert result["score"] == 14
        assert result["riskLevel"] == "High"
        assert result["wellbeingScore"] == 0
        assert result["urgentActions"]

    def test_steady_mood_is_low(self, risk_engine):
        result = _assess(risk_engine, [_entry(mood="happy", energy="high", stress="low", anxiety="none")] * 7)
        assert result["score"] == 0
        assert result["riskLevel"] == "Low"
        assert result["wellbeingScore"] == 10

    def test_no_entries_short_circuits(self, risk_engine):
        result = _assess(risk_engine, [])
        assert result["riskLevel"] == "Low"
        assert result["shortCircuit"] == "No mood entries recorded yet"
        assert result["wellbeingScore"] == 10
