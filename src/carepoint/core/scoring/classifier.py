"""Tier classifier: maps a score onto Low / Moderate / High."""

from __future__ import annotations

from carepoint.core.scoring.models import RiskTier, Thresholds


def classify(score: int, thresholds: Thresholds) -> RiskTier:
    """Classify a score against a domain's thresholds."""
    if score >= thresholds.high:
        return RiskTier.HIGH
    if score >= thresholds.moderate:
        return RiskTier.MODERATE
    return RiskTier.LOW
