"""Derived metrics feeding the risk rule tables.

Every function here is deterministic. Degenerate denominators return a
defined fallback (None or 100) instead of propagating NaN or infinity.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from enum import Enum

_SECONDS_PER_DAY = 86400

# ---------------------------------------------------------------------------
# Body measurements
# ---------------------------------------------------------------------------

def compute_bmi(height_cm, weight_kg) -> float | None:
    """Body-mass index, or None when height or weight is missing or non-positive."""
    try:
        height = float(height_cm)
        weight = float(weight_kg)
    except (TypeError, ValueError):
        return None
    if height <= 0 or weight <= 0 or math.isnan(height) or math.isnan(weight):
        return None
    height_m = height / 100
    return weight / (height_m * height_m)


def bmi_category(bmi: float | None) -> str | None:
    if bmi is None:
        return None
    if bmi < 18.5:
        return "Underweight"
    if bmi <= 25:
        return "Normal"
    if bmi <= 30:
        return "Overweight"
    return "Obese"


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------

def adherence_rate(taken: int, missed: int) -> int:
    """``taken / (taken + missed) * 100`` rounded; 100 when nothing was decided yet."""
    decided = taken + missed
    if decided <= 0:
        return 100
    return round(taken / decided * 100)


def completion_rate(completed: int, total: int) -> int:
    """Percentage of ``total`` items completed; 100 when ``total`` is zero."""
    if total <= 0:
        return 100
    return round(completed / total * 100)


def rolling_mean(values: Sequence[float | None], window: int) -> float | None:
    """Mean of the first ``window`` non-null values (input is newest-first).

    Returns None when there is nothing to average.
    """
    recent = [float(v) for v in list(values)[:window] if v is not None]
    if not recent:
        return None
    return sum(recent) / len(recent)


# ---------------------------------------------------------------------------
# Calendar arithmetic
# ---------------------------------------------------------------------------

def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole days from ``start`` to ``end``: ``floor((end - start) / 1 day)``."""
    delta = _as_datetime(end) - _as_datetime(start)
    return math.floor(delta.total_seconds() / _SECONDS_PER_DAY)


def days_until(target: date, today: date) -> int:
    """Days from ``today`` to ``target`` (negative when ``target`` has passed)."""
    return (target - today).days


def parse_date(value: str | date) -> date:
    """Parse an ISO date (a datetime string is truncated to its date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value.strip()[:10]).date()


# ---------------------------------------------------------------------------
# Menstrual cycle
# ---------------------------------------------------------------------------

class CyclePhase(str, Enum):
    MENSTRUAL = "Menstrual"
    FOLLICULAR = "Follicular"
    OVULATION = "Ovulation"
    LUTEAL = "Luteal"


OVULATION_OFFSET_DAYS = 14
MENSTRUAL_DAYS = 5


def cycle_day(last_period: date, cycle_length: int, today: date) -> int:
    """Current 1-based day within the cycle, wrapping after ``cycle_length`` days.

    Raises:
        ValueError: If ``last_period`` is after ``today`` or the cycle length
            is not positive.
    """
    if cycle_length <= 0:
        raise ValueError(f"cycle_length must be positive, got {cycle_length}")
    days_since = days_between(last_period, today) + 1
    if days_since < 1:
        raise ValueError("Last period date is in the future")
    if days_since > cycle_length:
        return days_since % cycle_length or cycle_length
    return days_since


def cycle_phase(day: int, cycle_length: int) -> CyclePhase:
    """Bucket a cycle day by fixed offsets from the estimated ovulation day."""
    if day <= MENSTRUAL_DAYS:
        return CyclePhase.MENSTRUAL
    if day <= cycle_length - 16:
        return CyclePhase.FOLLICULAR
    if day <= cycle_length - 12:
        return CyclePhase.OVULATION
    return CyclePhase.LUTEAL


def next_period_date(last_period: date, cycle_length: int, today: date) -> date:
    """First projected period start strictly after ``today``."""
    elapsed = max(0, days_between(last_period, today))
    cycles = elapsed // cycle_length + 1
    return last_period + timedelta(days=cycles * cycle_length)


def ovulation_date(next_period: date) -> date:
    return next_period - timedelta(days=OVULATION_OFFSET_DAYS)


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------

def sleep_duration_hours(sleep_time: str, wake_time: str) -> float | None:
    """Hours between ``HH:MM`` sleep and wake times, wrapping past midnight."""
    try:
        sleep_h, sleep_m = (int(part) for part in sleep_time.split(":"))
        wake_h, wake_m = (int(part) for part in wake_time.split(":"))
    except (AttributeError, ValueError):
        return None
    minutes = (wake_h * 60 + wake_m) - (sleep_h * 60 + sleep_m)
    if minutes < 0:
        minutes += 24 * 60
    return round(minutes / 60, 2)


# ---------------------------------------------------------------------------
# Ages
# ---------------------------------------------------------------------------

def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_child_age(age_in_days: int) -> str:
    """Human-readable age: days under a month, months under a year, then years and months."""
    if age_in_days < 30:
        return _plural(max(0, age_in_days), "day")
    if age_in_days < 365:
        return _plural(age_in_days // 30, "month")
    years = age_in_days // 365
    months = (age_in_days % 365) // 30
    label = _plural(years, "year")
    if months:
        label += " " + _plural(months, "month")
    return label


def format_schedule_age(age_in_days: int) -> str:
    """Label for the age at which a scheduled vaccine is given."""
    if age_in_days == 0:
        return "At birth"
    if age_in_days < 30:
        return f"{age_in_days} days"
    if age_in_days < 365:
        return f"{round(age_in_days / 30)} months"
    return f"{round(age_in_days / 365)} years"


def cycle_status(last_period: date, cycle_length: int, today: date) -> dict:
    """Summarize where ``today`` falls in the cycle.

    Returns:
        Dict with cycleDay, phase, nextPeriodDate, daysUntilNextPeriod,
        ovulationDate, and fertileWindow (five days before ovulation
        through the day after).
    """
    day = cycle_day(last_period, cycle_length, today)
    upcoming = next_period_date(last_period, cycle_length, today)
    ovulation = ovulation_date(upcoming)
    return {
        "cycleDay": day,
        "phase": cycle_phase(day, cycle_length).value,
        "nextPeriodDate": upcoming.isoformat(),
        "daysUntilNextPeriod": days_until(upcoming, today),
        "ovulationDate": ovulation.isoformat(),
        "fertileWindow": {
            "start": (ovulation - timedelta(days=5)).isoformat(),
            "end": (ovulation + timedelta(days=1)).isoformat(),
        },
    }
