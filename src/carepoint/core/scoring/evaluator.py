"""Scoring evaluator: sums the points of every rule that fires."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from carepoint.core.scoring.models import Observations, Rule, RuleTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """Score and fired rules, in table order."""

    score: int
    fired_rules: tuple[Rule, ...]


def _fires(rule: Rule, observations: Observations) -> bool:
    try:
        return bool(rule.predicate(observations))
    except Exception:
        logger.warning("Predicate for rule %r raised; treating as not fired", rule.id, exc_info=True)
        return False


def evaluate(observations: Observations, rule_table: RuleTable) -> Evaluation:
    """Evaluate every rule in ``rule_table`` against ``observations``.

    Deterministic and side-effect free. Within an exclusive group only the
    first rule that fires is counted.

    Args:
        observations: Observation set for one assessment.
        rule_table: The domain's rules.

    Returns:
        Evaluation with the accumulated score and fired rules in table order.
    """
    fired: list[Rule] = []
    claimed_groups: set[str] = set()
    score = 0

    for rule in rule_table.rules:
        if rule.group is not None and rule.group in claimed_groups:
            continue
        if not _fires(rule, observations):
            continue
        fired.append(rule)
        score += rule.points
        if rule.group is not None:
            claimed_groups.add(rule.group)
        logger.debug("Rule fired: %s.%s (+%d)", rule_table.domain, rule.id, rule.points)

    return Evaluation(score=score, fired_rules=tuple(fired))
