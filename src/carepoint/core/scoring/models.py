"""Data models for rule-based health risk scoring.

A domain's scoring configuration is a :class:`RuleTable` (ordered weighted
rules plus tier thresholds). Recommendation content lives separately in
YAML domain profiles and is looked up by ``(domain, tier)``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

Observations = Mapping[str, Any]
Predicate = Callable[[Observations], bool]


class ScoringConfigurationError(Exception):
    """Raised when rule tables or recommendation profiles are incomplete.

    This is a startup-time failure: a lookup miss at assessment time means
    the catalog was never validated.
    """


def freeze_observations(values: Mapping[str, Any]) -> Observations:
    """Return a read-only copy of an observation mapping."""
    return MappingProxyType(dict(values))


# ---------------------------------------------------------------------------
# Tiers and thresholds
# ---------------------------------------------------------------------------

class RiskTier(str, Enum):
    """Three-way risk classification."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {RiskTier.LOW: 0, RiskTier.MODERATE: 1, RiskTier.HIGH: 2}


def _format_value(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


@dataclass(frozen=True)
class Thresholds:
    """Score cut-offs: ``[0, moderate)`` Low, ``[moderate, high)`` Moderate, ``>= high`` High."""

    moderate: int
    high: int

    def __post_init__(self) -> None:
        if not 0 < self.moderate < self.high:
            raise ValueError(
                f"Thresholds must satisfy 0 < moderate < high, got "
                f"moderate={self.moderate}, high={self.high}"
            )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    """A single weighted predicate.

    Rules sharing a ``group`` are alternatives (e.g. obese vs overweight):
    only the first one that fires, in table order, contributes.
    """

    id: str
    label: str
    points: int
    description: str
    predicate: Predicate = field(compare=False, repr=False)
    group: str | None = None

    def __post_init__(self) -> None:
        if self.points < 0:
            raise ValueError(f"Rule {self.id!r} has negative points: {self.points}")

    def render_label(self, observations: Observations) -> str:
        """Fill ``{field}`` placeholders in the label from the observations.

        Numeric strings are converted so format specs like ``{bmi:.1f}``
        apply. Falls back to the raw label when a field cannot be filled.
        """
        if "{" not in self.label:
            return self.label
        values = {name: _format_value(value) for name, value in observations.items()}
        try:
            return self.label.format(**values)
        except (KeyError, IndexError, TypeError, ValueError):
            return self.label


@dataclass(frozen=True)
class Precondition:
    """Input check that must hold before generic scoring runs.

    When ``check`` is false the assessment is forced to Low and ``reason``
    is reported instead of a score breakdown.
    """

    check: Predicate = field(compare=False, repr=False)
    reason: str = ""


@dataclass(frozen=True)
class RuleTable:
    """Ordered rules and thresholds for one assessment domain."""

    domain: str
    rules: tuple[Rule, ...]
    thresholds: Thresholds
    precondition: Precondition | None = None
    reports_wellbeing: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id {rule.id!r} in domain {self.domain!r}")
            seen.add(rule.id)

    @property
    def max_score(self) -> int:
        """Highest reachable score (grouped rules count their largest member once)."""
        total = 0
        group_max: dict[str, int] = {}
        for rule in self.rules:
            if rule.group is None:
                total += rule.points
            else:
                group_max[rule.group] = max(group_max.get(rule.group, 0), rule.points)
        return total + sum(group_max.values())


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecommendationBundle:
    """Guidance text selected wholesale for a tier."""

    urgent_actions: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    preventive_actions: tuple[str, ...] = ()
    extras: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class Factor:
    """A fired rule as surfaced to the user."""

    factor: str
    points: int
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"factor": self.factor, "points": self.points, "description": self.description}


@dataclass
class Assessment:
    """Complete risk assessment for one domain."""

    domain: str
    tier: RiskTier
    score: int
    max_score: int
    factors: list[Factor]
    bundle: RecommendationBundle
    metrics: dict[str, Any] = field(default_factory=dict)
    wellbeing_score: int | None = None
    short_circuit: str | None = None

    @property
    def risk_percentage(self) -> int:
        if self.max_score <= 0:
            return 0
        return round(self.score / self.max_score * 100)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape consumed by tracker front ends."""
        result: dict[str, Any] = {
            "domain": self.domain,
            "riskLevel": self.tier.value,
            "score": self.score,
            "maxScore": self.max_score,
            "riskPercentage": self.risk_percentage,
            "factors": [f.to_dict() for f in self.factors],
            "recommendations": list(self.bundle.recommendations),
            "urgentActions": list(self.bundle.urgent_actions),
            "preventiveActions": list(self.bundle.preventive_actions),
            "metrics": self.metrics,
        }
        for name, items in self.bundle.extras.items():
            result[_camel(name)] = list(items)
        if self.wellbeing_score is not None:
            result["wellbeingScore"] = self.wellbeing_score
        if self.short_circuit:
            result["shortCircuit"] = self.short_circuit
        return result


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
