"""Child vaccination schedule, overdue-risk rule table, and observation builder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from carepoint.core.scoring.models import Precondition, Rule, RuleTable, Thresholds
from carepoint.core.scoring.predicates import all_of, at_least, greater_than, less_than
from carepoint.domains.trackers.domain_logic.metrics import (
    completion_rate,
    days_between,
    days_until,
    format_child_age,
    format_schedule_age,
    parse_date,
)

DOMAIN = "vaccine"

UPCOMING_WINDOW_DAYS = 30


@dataclass(frozen=True)
class ScheduledVaccine:
    name: str
    age_in_days: int
    description: str


# National immunisation schedule, by age at administration.
VACCINE_SCHEDULE: tuple[ScheduledVaccine, ...] = (
    ScheduledVaccine("BCG", 0, "Tuberculosis vaccine"),
    ScheduledVaccine("Hepatitis B (1st dose)", 0, "First dose at birth"),
    ScheduledVaccine("OPV (1st dose)", 42, "Oral Polio Vaccine"),
    ScheduledVaccine("DPT (1st dose)", 42, "Diphtheria, Pertussis, Tetanus"),
    ScheduledVaccine("Hepatitis B (2nd dose)", 42, "Second dose"),
    ScheduledVaccine("Hib (1st dose)", 42, "Haemophilus influenzae type b"),
    ScheduledVaccine("Rotavirus (1st dose)", 42, "Rotavirus vaccine"),
    ScheduledVaccine("PCV (1st dose)", 42, "Pneumococcal vaccine"),
    ScheduledVaccine("OPV (2nd dose)", 70, "Second dose"),
    ScheduledVaccine("DPT (2nd dose)", 70, "Second dose"),
    ScheduledVaccine("Hib (2nd dose)", 70, "Second dose"),
    ScheduledVaccine("Rotavirus (2nd dose)", 70, "Second dose"),
    ScheduledVaccine("PCV (2nd dose)", 70, "Second dose"),
    ScheduledVaccine("OPV (3rd dose)", 98, "Third dose"),
    ScheduledVaccine("DPT (3rd dose)", 98, "Third dose"),
    ScheduledVaccine("Hepatitis B (3rd dose)", 98, "Third dose"),
    ScheduledVaccine("Hib (3rd dose)", 98, "Third dose"),
    ScheduledVaccine("Rotavirus (3rd dose)", 98, "Third dose"),
    ScheduledVaccine("PCV (3rd dose)", 98, "Third dose"),
    ScheduledVaccine("IPV (1st dose)", 98, "Inactivated Polio Vaccine"),
    ScheduledVaccine("Measles (1st dose)", 270, "Measles vaccine"),
    ScheduledVaccine("JE (1st dose)", 270, "Japanese Encephalitis"),
    ScheduledVaccine("Vitamin A (1st dose)", 270, "Vitamin A supplement"),
    ScheduledVaccine("DPT (Booster 1)", 450, "First booster"),
    ScheduledVaccine("OPV (Booster 1)", 450, "First booster"),
    ScheduledVaccine("Measles (2nd dose)", 450, "Second dose"),
    ScheduledVaccine("JE (2nd dose)", 450, "Second dose"),
    ScheduledVaccine("Vitamin A (2nd dose)", 450, "Second dose"),
    ScheduledVaccine("DPT (Booster 2)", 1825, "Second booster at 5 years"),
    ScheduledVaccine("OPV (Booster 2)", 1825, "Second booster at 5 years"),
    ScheduledVaccine("Typhoid", 1825, "Typhoid vaccine at 5 years"),
)


def build_vaccine_schedule(date_of_birth: date) -> list[dict[str, Any]]:
    """Expand the schedule into dated records for one child."""
    return [
        {
            "vaccine_name": vaccine.name,
            "description": vaccine.description,
            "due_date": (date_of_birth + timedelta(days=vaccine.age_in_days)).isoformat(),
            "age_at_vaccination": format_schedule_age(vaccine.age_in_days),
            "is_completed": False,
        }
        for vaccine in VACCINE_SCHEDULE
    ]


VACCINE_RULES = RuleTable(
    domain=DOMAIN,
    thresholds=Thresholds(moderate=1, high=4),
    precondition=Precondition(
        check=greater_than("due_count", 0),
        reason="No vaccines are due yet",
    ),
    rules=(
        Rule(
            id="overdue_three_plus",
            label="{overdue_count} overdue vaccines",
            points=2,
            description="Three or more vaccines are past their due date",
            predicate=at_least("overdue_count", 3),
        ),
        Rule(
            id="overdue_multiple",
            label="Multiple overdue vaccines",
            points=1,
            description="More than one vaccine is past its due date",
            predicate=at_least("overdue_count", 2),
        ),
        Rule(
            id="overdue_any",
            label="Overdue vaccine",
            points=1,
            description="At least one vaccine is past its due date",
            predicate=at_least("overdue_count", 1),
        ),
        Rule(
            id="behind_schedule",
            label="Behind schedule ({expected_completion_rate}% of due vaccines given)",
            points=1,
            description="Fewer than 70% of the vaccines due so far have been given",
            predicate=all_of(
                at_least("due_count", 3),
                less_than("expected_completion_rate", 70),
            ),
        ),
    ),
)


def age_recommendations(age_in_days: int) -> list[str]:
    """Age-band guidance shown alongside the vaccine assessment."""
    if age_in_days < 365:
        return [
            "Critical period - vaccines protect against serious infant diseases",
            "Follow 2-4-6 month schedule strictly",
            "Watch for fever after vaccines (normal response)",
        ]
    if age_in_days < 1825:
        return [
            "Important booster period for long-term immunity",
            "MMR and varicella vaccines critical before school",
            "Annual flu vaccine recommended",
        ]
    return [
        "School-age vaccines important for community immunity",
        "Consider travel vaccines if applicable",
        "Annual flu vaccine recommended",
    ]


def build_vaccine_observations(
    records: list[dict[str, Any]],
    date_of_birth: date,
    today: date,
    *,
    upcoming_days: int = UPCOMING_WINDOW_DAYS,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Summarize a child's vaccine records.

    A vaccine is *due* once its due date is on or before ``today`` and
    *overdue* once the due date has passed without completion.

    Returns:
        (observations, metrics)
    """
    total = len(records)
    completed = 0
    due = 0
    due_completed = 0
    overdue: list[str] = []
    upcoming: list[dict[str, Any]] = []

    for record in records:
        due_date = parse_date(record["due_date"])
        is_completed = bool(record.get("is_completed"))
        if is_completed:
            completed += 1
        if due_date <= today:
            due += 1
            if is_completed:
                due_completed += 1
        if is_completed:
            continue
        if due_date < today:
            overdue.append(record["vaccine_name"])
        elif 0 < days_until(due_date, today) <= upcoming_days:
            upcoming.append({
                "vaccine_name": record["vaccine_name"],
                "due_date": due_date.isoformat(),
                "days_until": days_until(due_date, today),
            })

    expected_rate = completion_rate(due_completed, due)
    age_in_days = days_between(date_of_birth, today)

    observations = {
        "overdue_count": len(overdue),
        "due_count": due,
        "expected_completion_rate": expected_rate,
    }
    metrics = {
        "totalVaccines": total,
        "completedVaccines": completed,
        "expectedVaccines": due,
        "overdueCount": len(overdue),
        "overdueVaccines": overdue,
        "upcomingCount": len(upcoming),
        "upcomingVaccines": upcoming,
        "completionRate": completion_rate(completed, total),
        "expectedCompletionRate": expected_rate,
        "currentAge": format_child_age(age_in_days),
        "ageRecommendations": age_recommendations(age_in_days),
    }
    return observations, metrics
