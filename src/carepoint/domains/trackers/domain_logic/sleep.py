"""Sleep quality: rule table and rolling-window observation builder."""

from __future__ import annotations

from collections import Counter
from typing import Any

from carepoint.core.scoring.models import Precondition, Rule, RuleTable, Thresholds
from carepoint.core.scoring.predicates import equal_to, greater_than, less_than
from carepoint.domains.trackers.domain_logic.metrics import rolling_mean

DOMAIN = "sleep"

WINDOW_ENTRIES = 7

SLEEP_QUALITY = ("poor", "fair", "good", "excellent")

SLEEP_RULES = RuleTable(
    domain=DOMAIN,
    thresholds=Thresholds(moderate=3, high=6),
    reports_wellbeing=True,
    precondition=Precondition(
        check=greater_than("entry_count", 0),
        reason="No sleep entries recorded yet",
    ),
    rules=(
        Rule(
            id="duration_short",
            label="Short sleep ({avg_duration:.1f}h average)",
            points=3,
            description="Averaging under 6 hours of sleep",
            predicate=less_than("avg_duration", 6),
            group="duration",
        ),
        Rule(
            id="duration_below_target",
            label="Below recommended sleep ({avg_duration:.1f}h average)",
            points=2,
            description="Averaging under the recommended 7 hours",
            predicate=less_than("avg_duration", 7),
            group="duration",
        ),
        Rule(
            id="duration_long",
            label="Long sleep ({avg_duration:.1f}h average)",
            points=1,
            description="Regularly sleeping more than 9 hours",
            predicate=greater_than("avg_duration", 9),
            group="duration",
        ),
        Rule(
            id="latency_long",
            label="Slow to fall asleep ({avg_time_to_sleep:.0f} min)",
            points=2,
            description="Taking over 30 minutes to fall asleep",
            predicate=greater_than("avg_time_to_sleep", 30),
            group="latency",
        ),
        Rule(
            id="latency_elevated",
            label="Delayed sleep onset ({avg_time_to_sleep:.0f} min)",
            points=1,
            description="Taking over 15 minutes to fall asleep",
            predicate=greater_than("avg_time_to_sleep", 15),
            group="latency",
        ),
        Rule(
            id="wakeups_frequent",
            label="Frequent night wakeups ({avg_wakeups:.1f} per night)",
            points=2,
            description="Waking more than twice per night",
            predicate=greater_than("avg_wakeups", 2),
            group="wakeups",
        ),
        Rule(
            id="wakeups_some",
            label="Night wakeups ({avg_wakeups:.1f} per night)",
            points=1,
            description="Waking more than once per night",
            predicate=greater_than("avg_wakeups", 1),
            group="wakeups",
        ),
        Rule(
            id="quality_mostly_poor",
            label="Mostly poor sleep quality",
            points=3,
            description="More poor or fair nights than good or excellent ones",
            predicate=greater_than("poor_quality_margin", 0),
            group="quality",
        ),
        Rule(
            id="quality_mixed",
            label="Mixed sleep quality",
            points=1,
            description="As many poor or fair nights as good or excellent ones",
            predicate=equal_to("poor_quality_margin", 0),
            group="quality",
        ),
    ),
)


def _rounded(value: float | None, digits: int = 1) -> float | None:
    return None if value is None else round(value, digits)


def build_sleep_observations(
    entries: list[dict[str, Any]],
    *,
    window: int = WINDOW_ENTRIES,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Average the most recent ``window`` sleep entries (input is newest-first).

    Returns:
        (observations, metrics)
    """
    recent = list(entries)[:window]

    avg_duration = rolling_mean([e.get("sleep_duration") for e in recent], window)
    avg_latency = rolling_mean([e.get("time_to_fall_asleep") for e in recent], window)
    avg_wakeups = rolling_mean([e.get("night_wakeups") for e in recent], window)

    quality = Counter(e.get("sleep_quality") for e in recent if e.get("sleep_quality"))
    poor_days = quality["poor"] + quality["fair"]
    good_days = quality["good"] + quality["excellent"]

    observations = {
        "entry_count": len(recent),
        "avg_duration": avg_duration,
        "avg_time_to_sleep": avg_latency,
        "avg_wakeups": avg_wakeups,
        "poor_quality_margin": poor_days - good_days if recent else None,
    }
    metrics = {
        "avgSleepDuration": _rounded(avg_duration),
        "avgTimeToSleep": _rounded(avg_latency, 0),
        "avgWakeups": _rounded(avg_wakeups),
        "qualityDistribution": {level: quality[level] for level in SLEEP_QUALITY},
        "poorSleepDays": poor_days,
        "goodSleepDays": good_days,
        "daysAnalyzed": len(recent),
    }
    return observations, metrics
