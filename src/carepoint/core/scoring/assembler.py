"""Recommendation assembler: in-memory catalog of tiered guidance bundles."""

from __future__ import annotations

import logging

from carepoint.core.scoring.models import (
    RecommendationBundle,
    RiskTier,
    ScoringConfigurationError,
)

logger = logging.getLogger(__name__)


class RecommendationCatalog:
    """Recommendation bundles keyed by ``(domain, tier)``.

    A domain may also register an ``insufficient_data`` bundle, used when a
    rule table's precondition short-circuits scoring.
    """

    def __init__(self) -> None:
        self._bundles: dict[tuple[str, RiskTier], RecommendationBundle] = {}
        self._insufficient: dict[str, RecommendationBundle] = {}

    def register(self, domain: str, tier: RiskTier, bundle: RecommendationBundle) -> None:
        """Add a bundle for one tier of a domain."""
        key = (domain, RiskTier(tier))
        if key in self._bundles:
            raise ValueError(f"Duplicate recommendation bundle: {domain!r}/{key[1].value}")
        self._bundles[key] = bundle

    def register_insufficient_data(self, domain: str, bundle: RecommendationBundle) -> None:
        if domain in self._insufficient:
            raise ValueError(f"Duplicate insufficient-data bundle for {domain!r}")
        self._insufficient[domain] = bundle

    def get(self, domain: str, tier: RiskTier) -> RecommendationBundle | None:
        """Look up a bundle, returning None when missing."""
        return self._bundles.get((domain, RiskTier(tier)))

    def assemble(self, tier: RiskTier, domain: str) -> RecommendationBundle:
        """Return the bundle for ``(domain, tier)``.

        Raises:
            ScoringConfigurationError: If no bundle is registered.
        """
        bundle = self.get(domain, tier)
        if bundle is None:
            raise ScoringConfigurationError(
                f"No recommendation bundle for domain {domain!r}, tier {RiskTier(tier).value!r}"
            )
        return bundle

    def assemble_insufficient_data(self, domain: str) -> RecommendationBundle:
        """Bundle for a short-circuited assessment (falls back to Low)."""
        bundle = self._insufficient.get(domain)
        if bundle is not None:
            return bundle
        return self.assemble(RiskTier.LOW, domain)

    def has_insufficient_data(self, domain: str) -> bool:
        return domain in self._insufficient

    def insufficient_data_bundles(self) -> dict[str, RecommendationBundle]:
        return dict(self._insufficient)

    def domains(self) -> list[str]:
        """Return every domain with at least one registered bundle."""
        return sorted({domain for domain, _ in self._bundles})
