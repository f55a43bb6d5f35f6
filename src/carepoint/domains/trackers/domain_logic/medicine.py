"""Medication adherence: rule table and observation builder.

Dose status is consumed exactly as stored. The ``due -> missed`` transition
is applied by the repository sweep, never re-derived here.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from carepoint.core.scoring.models import Precondition, Rule, RuleTable, Thresholds
from carepoint.core.scoring.predicates import at_least, greater_than, less_than
from carepoint.domains.trackers.domain_logic.metrics import (
    adherence_rate,
    completion_rate,
    days_until,
    parse_date,
)

DOMAIN = "medicine"

LOOKBACK_DAYS = 30
ON_TIME_WINDOW = timedelta(minutes=60)
REFILL_NOTICE_DAYS = 3
MIN_SCHEDULED_DOSES = 3

MEDICINE_RULES = RuleTable(
    domain=DOMAIN,
    thresholds=Thresholds(moderate=1, high=2),
    precondition=Precondition(
        check=at_least("doses_scheduled", MIN_SCHEDULED_DOSES),
        reason="Fewer than 3 doses scheduled so far",
    ),
    rules=(
        Rule(
            id="adherence_critical",
            label="Adherence {adherence_rate}% (below 50%)",
            points=1,
            description="Missing most doses can lead to treatment failure",
            predicate=less_than("adherence_rate", 50),
        ),
        Rule(
            id="adherence_low",
            label="Adherence {adherence_rate}% (below 80%)",
            points=1,
            description="Adherence below the recommended 80% level",
            predicate=less_than("adherence_rate", 80),
        ),
        Rule(
            id="side_effects",
            label="Side effects reported",
            points=0,
            description="Side effects reported - monitor and discuss with doctor",
            predicate=greater_than("side_effect_reports", 0),
        ),
        Rule(
            id="refill_due",
            label="{expiring_soon} medication(s) ending soon",
            points=0,
            description="Plan refills before the current course ends",
            predicate=greater_than("expiring_soon", 0),
        ),
    ),
)


def scheduled_at(log: dict[str, Any]) -> datetime:
    """Combine a dose log's scheduled date and ``HH:MM`` time."""
    day = parse_date(log["scheduled_date"])
    hour, minute = (int(part) for part in str(log["scheduled_time"]).split(":"))
    return datetime(day.year, day.month, day.day, hour, minute)


def _taken_on_time(log: dict[str, Any]) -> bool:
    taken_at = log.get("taken_at")
    if not taken_at:
        return False
    try:
        taken = datetime.fromisoformat(str(taken_at))
    except ValueError:
        return False
    if taken.tzinfo is not None:
        taken = taken.replace(tzinfo=None)
    return abs(taken - scheduled_at(log)) <= ON_TIME_WINDOW


def build_adherence_observations(
    medicines: list[dict[str, Any]],
    logs: list[dict[str, Any]],
    now: datetime,
    *,
    lookback_days: int = LOOKBACK_DAYS,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Summarize dose logs for active medicines over the lookback window.

    The window starts at the later of the earliest active start date and
    ``now - lookback_days``. Only doses scheduled at or before ``now`` count.

    Returns:
        (observations, metrics)
    """
    active = {m["id"]: m for m in medicines if m.get("is_active", True)}
    today = now.date()

    if active:
        earliest = min(parse_date(m["start_date"]) for m in active.values())
        window_start = max(
            datetime(earliest.year, earliest.month, earliest.day),
            now - timedelta(days=lookback_days),
        )
    else:
        window_start = now

    statuses: Counter[str] = Counter()
    side_effects: Counter[str] = Counter()
    on_time = 0

    for log in logs:
        if log.get("medicine_id") not in active:
            continue
        when = scheduled_at(log)
        if when < window_start or when > now:
            continue
        status = log.get("status", "due")
        statuses[status] += 1
        if status == "taken" and _taken_on_time(log):
            on_time += 1
        for effect in log.get("side_effects_experienced") or []:
            side_effects[effect] += 1

    expiring = [
        m["name"]
        for m in active.values()
        if m.get("end_date")
        and 0 <= days_until(parse_date(m["end_date"]), today) <= REFILL_NOTICE_DAYS
    ]

    taken = statuses["taken"]
    missed = statuses["missed"]
    scheduled = sum(statuses.values())
    rate = adherence_rate(taken, missed)
    days_analyzed = max(1, math.ceil((now - window_start).total_seconds() / 86400))

    observations = {
        "doses_scheduled": scheduled,
        "adherence_rate": rate,
        "side_effect_reports": sum(side_effects.values()),
        "expiring_soon": len(expiring),
    }
    metrics = {
        "activeMedicines": len(active),
        "totalScheduled": scheduled,
        "taken": taken,
        "missed": missed,
        "skipped": statuses["skipped"],
        "pending": statuses["due"],
        "onTime": on_time,
        "adherenceRate": rate,
        "onTimeRate": completion_rate(on_time, scheduled),
        "sideEffectCounts": dict(side_effects),
        "expiringSoon": expiring,
        "daysAnalyzed": days_analyzed,
    }
    return observations, metrics
