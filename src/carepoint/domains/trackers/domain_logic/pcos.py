"""PCOS risk questionnaire: rule table and observation builder."""

from __future__ import annotations

from typing import Any

from carepoint.core.scoring.models import Rule, RuleTable, Thresholds
from carepoint.core.scoring.predicates import equals, greater_than, is_yes, outside
from carepoint.domains.trackers.domain_logic.metrics import bmi_category, compute_bmi

DOMAIN = "pcos"

NORMAL_CYCLE_DAYS = (21, 35)

PCOS_RULES = RuleTable(
    domain=DOMAIN,
    thresholds=Thresholds(moderate=5, high=9),
    rules=(
        Rule(
            id="bmi_obese",
            label="BMI: {bmi:.1f} (Obese)",
            points=3,
            description="Higher BMI increases PCOS risk",
            predicate=greater_than("bmi", 30),
            group="bmi",
        ),
        Rule(
            id="bmi_overweight",
            label="BMI: {bmi:.1f} (Overweight)",
            points=2,
            description="Higher BMI increases PCOS risk",
            predicate=greater_than("bmi", 25),
            group="bmi",
        ),
        Rule(
            id="irregular_cycle",
            label="Irregular menstrual cycle",
            points=3,
            description="Cycle length outside normal range (21-35 days)",
            predicate=outside("cycle_length", *NORMAL_CYCLE_DAYS),
        ),
        Rule(
            id="missed_periods",
            label="Missed periods",
            points=3,
            description="Frequent missed periods indicate hormonal imbalance",
            predicate=is_yes("missed_periods"),
        ),
        Rule(
            id="periods_late",
            label="Periods often late",
            points=2,
            description="Irregular timing suggests ovulation issues",
            predicate=is_yes("periods_late_often"),
        ),
        Rule(
            id="acne_severe",
            label="Severe acne",
            points=2,
            description="Severe acne indicates significant hormonal imbalance",
            predicate=equals("acne", "severe"),
            group="acne",
        ),
        Rule(
            id="acne_mild",
            label="Mild acne",
            points=1,
            description="Hormonal acne is common in PCOS",
            predicate=equals("acne", "mild"),
            group="acne",
        ),
        Rule(
            id="hair_fall",
            label="Hair fall/thinning",
            points=2,
            description="Male-pattern hair loss due to excess androgens",
            predicate=is_yes("hair_fall"),
        ),
        Rule(
            id="facial_hair",
            label="Excess facial hair",
            points=3,
            description="Hirsutism is a key sign of elevated androgens",
            predicate=is_yes("facial_hair"),
        ),
        Rule(
            id="weight_gain",
            label="Recent weight gain",
            points=2,
            description="Unexplained weight gain is common in PCOS",
            predicate=is_yes("weight_gain_recently"),
        ),
        Rule(
            id="family_history",
            label="Family history of PCOS",
            points=2,
            description="Genetic predisposition increases risk",
            predicate=is_yes("family_history_pcos"),
        ),
    ),
)

QUESTIONNAIRE_FIELDS = (
    "age",
    "height_cm",
    "weight_kg",
    "cycle_length",
    "missed_periods",
    "periods_late_often",
    "acne",
    "hair_fall",
    "facial_hair",
    "weight_gain_recently",
    "family_history_pcos",
)


def build_pcos_observations(answers: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Turn a questionnaire submission into observations and display metrics.

    BMI is derived here; a missing or non-positive height leaves it None so
    the BMI rules simply do not fire.

    Returns:
        (observations, metrics)
    """
    observations = {name: answers.get(name) for name in QUESTIONNAIRE_FIELDS}
    bmi = compute_bmi(answers.get("height_cm"), answers.get("weight_kg"))
    observations["bmi"] = bmi

    metrics = {
        "bmi": round(bmi, 1) if bmi is not None else None,
        "bmiCategory": bmi_category(bmi),
        "age": answers.get("age"),
        "cycleLength": answers.get("cycle_length"),
    }
    return observations, metrics


ACNE_LEVELS = ("none", "mild", "severe")
YES_NO_FIELDS = (
    "missed_periods",
    "periods_late_often",
    "hair_fall",
    "facial_hair",
    "weight_gain_recently",
    "family_history_pcos",
)


def validate_pcos_answers(answers: dict[str, Any]) -> None:
    """Reject answers outside the questionnaire's choices.

    Numeric answers may be missing; the matching rules then do not fire.

    Raises:
        ValueError: On an unknown choice or a non-positive measurement.
    """
    acne = answers.get("acne")
    if acne is not None and str(acne).lower() not in ACNE_LEVELS:
        raise ValueError(f"acne must be one of {', '.join(ACNE_LEVELS)}")
    for name in YES_NO_FIELDS:
        value = answers.get(name)
        if value is not None and str(value).lower() not in ("yes", "no"):
            raise ValueError(f"{name} must be 'yes' or 'no'")
    for name in ("age", "height_cm", "weight_kg", "cycle_length"):
        value = answers.get(name)
        if value is not None and value <= 0:
            raise ValueError(f"{name} must be positive")
