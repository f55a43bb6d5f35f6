"""Risk engine: precondition, evaluation, classification, and assembly.

The engine is the single in-process entry point for every assessment
domain. Rule tables carry the domain-specific scoring; the catalog
carries the guidance text.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from carepoint.core.scoring.assembler import RecommendationCatalog
from carepoint.core.scoring.classifier import classify
from carepoint.core.scoring.evaluator import evaluate
from carepoint.core.scoring.models import (
    Assessment,
    Factor,
    RiskTier,
    RuleTable,
    ScoringConfigurationError,
    freeze_observations,
)
from carepoint.core.scoring.validator import ensure_valid_configuration

logger = logging.getLogger(__name__)

WELLBEING_CEILING = 10


class RiskEngine:
    """Configurable rule-based risk scoring.

    Usage::

        engine = RiskEngine(rule_tables, catalog)
        engine.validate()
        assessment = engine.assess("pcos", observations)
        payload = assessment.to_dict()
    """

    def __init__(
        self,
        rule_tables: Iterable[RuleTable],
        catalog: RecommendationCatalog,
    ) -> None:
        self._tables: dict[str, RuleTable] = {}
        for table in rule_tables:
            if table.domain in self._tables:
                raise ValueError(f"Duplicate rule table for domain {table.domain!r}")
            self._tables[table.domain] = table
        self._catalog = catalog

    def validate(self) -> None:
        """Check tier coverage for every domain.

        Raises:
            ScoringConfigurationError: If any domain is incomplete.
        """
        ensure_valid_configuration(self._tables.values(), self._catalog)

    def domains(self) -> list[str]:
        return list(self._tables)

    def rule_table(self, domain: str) -> RuleTable:
        """Return the rule table for ``domain``.

        Raises:
            ScoringConfigurationError: If the domain is unknown.
        """
        table = self._tables.get(domain)
        if table is None:
            raise ScoringConfigurationError(f"Unknown assessment domain: {domain!r}")
        return table

    def describe(self, domain: str) -> dict[str, Any]:
        """Summarize a domain's rules and thresholds (no observation data)."""
        table = self.rule_table(domain)
        return {
            "domain": domain,
            "thresholds": {
                "moderate": table.thresholds.moderate,
                "high": table.thresholds.high,
            },
            "max_score": table.max_score,
            "rules": [
                {"id": r.id, "points": r.points, "group": r.group}
                for r in table.rules
            ],
            "precondition": table.precondition.reason if table.precondition else None,
        }

    def assess(
        self,
        domain: str,
        observations: Mapping[str, Any],
        *,
        metrics: dict[str, Any] | None = None,
    ) -> Assessment:
        """Run a full assessment for one domain.

        Args:
            domain: Registered domain name (e.g. ``"pcos"``).
            observations: Observation set; frozen before evaluation.
            metrics: Derived display metrics passed through to the result.

        Returns:
            The assessment. A failed precondition yields Low with score 0.
        """
        table = self.rule_table(domain)
        obs = freeze_observations(observations)
        metrics = dict(metrics or {})

        if table.precondition is not None and not table.precondition.check(obs):
            logger.info("Assessment %s short-circuited: %s", domain, table.precondition.reason)
            return Assessment(
                domain=domain,
                tier=RiskTier.LOW,
                score=0,
                max_score=table.max_score,
                factors=[],
                bundle=self._catalog.assemble_insufficient_data(domain),
                metrics=metrics,
                wellbeing_score=WELLBEING_CEILING if table.reports_wellbeing else None,
                short_circuit=table.precondition.reason,
            )

        evaluation = evaluate(obs, table)
        tier = classify(evaluation.score, table.thresholds)
        bundle = self._catalog.assemble(tier, domain)

        factors = [
            Factor(
                factor=rule.render_label(obs),
                points=rule.points,
                description=rule.description,
            )
            for rule in evaluation.fired_rules
        ]

        logger.info(
            "Assessment %s: tier=%s score=%d/%d",
            domain, tier.value, evaluation.score, table.max_score,
        )
        return Assessment(
            domain=domain,
            tier=tier,
            score=evaluation.score,
            max_score=table.max_score,
            factors=factors,
            bundle=bundle,
            metrics=metrics,
            wellbeing_score=(
                max(0, WELLBEING_CEILING - evaluation.score) if table.reports_wellbeing else None
            ),
        )
