"""Domain profile loader: reads recommendation bundles from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from carepoint.core.scoring.assembler import RecommendationCatalog
from carepoint.core.scoring.models import RecommendationBundle, RiskTier

logger = logging.getLogger(__name__)

_BUNDLE_KEYS = ("urgent_actions", "recommendations", "preventive_actions")


@dataclass
class DomainProfile:
    """Recommendation content for one assessment domain."""

    domain: str
    version: str
    display_name: str
    description: str = ""
    tiers: dict[RiskTier, RecommendationBundle] = field(default_factory=dict)
    insufficient_data: RecommendationBundle | None = None


def _string_list(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value.strip(),)
    return tuple(str(item).strip() for item in value)


def _parse_bundle(data: dict[str, Any] | None) -> RecommendationBundle:
    data = data or {}
    extras = {
        key: _string_list(value)
        for key, value in data.items()
        if key not in _BUNDLE_KEYS
    }
    return RecommendationBundle(
        urgent_actions=_string_list(data.get("urgent_actions")),
        recommendations=_string_list(data.get("recommendations")),
        preventive_actions=_string_list(data.get("preventive_actions")),
        extras=extras,
    )


def load_profile_file(path: Path) -> DomainProfile:
    """Parse a YAML file into a DomainProfile.

    Tiers listed under ``tiers`` must be named ``Low``, ``Moderate`` or
    ``High``; any other name raises ``ValueError``.
    """
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f)

    tiers: dict[RiskTier, RecommendationBundle] = {}
    for tier_name, bundle_data in (data.get("tiers") or {}).items():
        tiers[RiskTier(tier_name)] = _parse_bundle(bundle_data)

    insufficient = data.get("insufficient_data")
    return DomainProfile(
        domain=data["domain"],
        version=str(data["version"]),
        display_name=data["display_name"],
        description=(data.get("description") or "").strip(),
        tiers=tiers,
        insufficient_data=_parse_bundle(insufficient) if insufficient else None,
    )


def register_profile(profile: DomainProfile, catalog: RecommendationCatalog) -> None:
    for tier, bundle in profile.tiers.items():
        catalog.register(profile.domain, tier, bundle)
    if profile.insufficient_data is not None:
        catalog.register_insufficient_data(profile.domain, profile.insufficient_data)


def load_profile_directory(directory: str | Path, catalog: RecommendationCatalog) -> int:
    """Load all YAML domain profiles from a directory into the catalog.

    Returns the number of profiles loaded.
    Skips files starting with underscore (like _schema.yaml).
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Profile directory does not exist: %s", directory)
        return 0

    count = 0
    for path in sorted(directory.glob("*.yaml")):
        if path.name.startswith("_"):
            continue
        try:
            profile = load_profile_file(path)
            register_profile(profile, catalog)
            count += 1
            logger.info("Loaded domain profile: %s (v%s)", profile.domain, profile.version)
        except Exception:
            logger.exception("Failed to load domain profile from %s", path)
    return count
