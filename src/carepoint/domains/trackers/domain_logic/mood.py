"""Mood and mental wellbeing: rule table and rolling-window observation builder."""

from __future__ import annotations

from collections import Counter
from typing import Any

from carepoint.core.scoring.models import Precondition, Rule, RuleTable, Thresholds
from carepoint.core.scoring.predicates import greater_than, less_than
from carepoint.domains.trackers.domain_logic.metrics import rolling_mean

DOMAIN = "mood"

WINDOW_ENTRIES = 14

MOOD_SCALE = {"very_sad": 1, "sad": 2, "neutral": 3, "happy": 4, "very_happy": 5}
LEVEL_SCALE = {"very_low": 1, "low": 2, "moderate": 3, "high": 4, "very_high": 5}
ANXIETY_SCALE = {"none": 1, "mild": 2, "moderate": 3, "high": 4, "severe": 5}

MOOD_RULES = RuleTable(
    domain=DOMAIN,
    thresholds=Thresholds(moderate=4, high=8),
    reports_wellbeing=True,
    precondition=Precondition(
        check=greater_than("entry_count", 0),
        reason="No mood entries recorded yet",
    ),
    rules=(
        Rule(
            id="mood_very_low",
            label="Persistently low mood (avg {avg_mood:.1f}/5)",
            points=4,
            description="Average mood has been sad or very sad",
            predicate=less_than("avg_mood", 2.5),
            group="mood",
        ),
        Rule(
            id="mood_low",
            label="Below-neutral mood (avg {avg_mood:.1f}/5)",
            points=2,
            description="Average mood has been below neutral",
            predicate=less_than("avg_mood", 3),
            group="mood",
        ),
        Rule(
            id="stress_high",
            label="High stress (avg {avg_stress:.1f}/5)",
            points=3,
            description="Sustained high stress affects mental and physical health",
            predicate=greater_than("avg_stress", 3.5),
            group="stress",
        ),
        Rule(
            id="stress_elevated",
            label="Elevated stress (avg {avg_stress:.1f}/5)",
            points=1,
            description="Stress has been above a moderate level",
            predicate=greater_than("avg_stress", 3),
            group="stress",
        ),
        Rule(
            id="anxiety_high",
            label="High anxiety (avg {avg_anxiety:.1f}/5)",
            points=3,
            description="Frequent high anxiety may need professional support",
            predicate=greater_than("avg_anxiety", 3.5),
            group="anxiety",
        ),
        Rule(
            id="anxiety_elevated",
            label="Elevated anxiety (avg {avg_anxiety:.1f}/5)",
            points=1,
            description="Anxiety has been above a moderate level",
            predicate=greater_than("avg_anxiety", 3),
            group="anxiety",
        ),
        Rule(
            id="energy_very_low",
            label="Very low energy (avg {avg_energy:.1f}/5)",
            points=2,
            description="Persistent fatigue is a common sign of low mood",
            predicate=less_than("avg_energy", 2.5),
            group="energy",
        ),
        Rule(
            id="energy_low",
            label="Low energy (avg {avg_energy:.1f}/5)",
            points=1,
            description="Energy has been below a moderate level",
            predicate=less_than("avg_energy", 3),
            group="energy",
        ),
        Rule(
            id="symptoms_frequent",
            label="Frequent symptoms ({symptom_frequency:.1f} per day)",
            points=2,
            description="More than three symptoms reported per entry",
            predicate=greater_than("symptom_frequency", 3),
            group="symptoms",
        ),
        Rule(
            id="symptoms_recurring",
            label="Recurring symptoms ({symptom_frequency:.1f} per day)",
            points=1,
            description="More than one and a half symptoms reported per entry",
            predicate=greater_than("symptom_frequency", 1.5),
            group="symptoms",
        ),
    ),
)


def _top(counter: Counter[str], n: int = 3) -> list[str]:
    return [name for name, _ in counter.most_common(n)]


def _rounded(value: float | None) -> float | None:
    return None if value is None else round(value, 1)


def build_mood_observations(
    entries: list[dict[str, Any]],
    *,
    window: int = WINDOW_ENTRIES,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Average the most recent ``window`` mood entries (input is newest-first).

    Returns:
        (observations, metrics)
    """
    recent = list(entries)[:window]

    avg_mood = rolling_mean([MOOD_SCALE.get(e.get("overall_mood")) for e in recent], window)
    avg_energy = rolling_mean([LEVEL_SCALE.get(e.get("energy_level")) for e in recent], window)
    avg_stress = rolling_mean([LEVEL_SCALE.get(e.get("stress_level")) for e in recent], window)
    avg_anxiety = rolling_mean([ANXIETY_SCALE.get(e.get("anxiety_level")) for e in recent], window)

    symptoms: Counter[str] = Counter()
    triggers: Counter[str] = Counter()
    for entry in recent:
        symptoms.update(entry.get("symptoms") or [])
        triggers.update(entry.get("triggers") or [])
    symptom_frequency = sum(symptoms.values()) / len(recent) if recent else None

    observations = {
        "entry_count": len(recent),
        "avg_mood": avg_mood,
        "avg_energy": avg_energy,
        "avg_stress": avg_stress,
        "avg_anxiety": avg_anxiety,
        "symptom_frequency": symptom_frequency,
    }
    metrics = {
        "avgMood": _rounded(avg_mood),
        "avgEnergy": _rounded(avg_energy),
        "avgStress": _rounded(avg_stress),
        "avgAnxiety": _rounded(avg_anxiety),
        "topTriggers": _top(triggers),
        "topSymptoms": _top(symptoms),
        "daysAnalyzed": len(recent),
    }
    return observations, metrics
