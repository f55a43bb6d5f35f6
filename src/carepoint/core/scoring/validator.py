"""Scoring configuration validator.

Checks that YAML domain profiles are well-formed and that every rule table
has complete tier coverage in the recommendation catalog. Run at startup:
an incomplete configuration must stop the server before any assessment.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from carepoint.core.scoring.assembler import RecommendationCatalog
from carepoint.core.scoring.loader import DomainProfile, load_profile_file
from carepoint.core.scoring.models import RiskTier, RuleTable, ScoringConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["domain", "version", "display_name"]


def validate_profile_file(path: Path) -> tuple[DomainProfile | None, list[str]]:
    """Validate a single domain profile YAML file.

    Returns: (profile_or_none, errors)
    """
    errors: list[str] = []
    try:
        profile = load_profile_file(path)
    except Exception as exc:
        return None, [f"{path}: Failed to load: {exc}"]

    for field_name in REQUIRED_FIELDS:
        if not getattr(profile, field_name, None):
            errors.append(f"{path}: Missing or empty required field '{field_name}'")

    for tier in RiskTier:
        if tier not in profile.tiers:
            errors.append(f"{path}: No recommendation bundle for tier '{tier.value}'")

    high = profile.tiers.get(RiskTier.HIGH)
    if high is not None and not high.urgent_actions:
        errors.append(f"{path}: High tier must define at least one urgent action")
    for tier in (RiskTier.LOW, RiskTier.MODERATE):
        bundle = profile.tiers.get(tier)
        if bundle is not None and bundle.urgent_actions:
            errors.append(f"{path}: {tier.value} tier must not define urgent actions")
    if profile.insufficient_data is not None and profile.insufficient_data.urgent_actions:
        errors.append(f"{path}: insufficient_data bundle must not define urgent actions")

    if path.stem != profile.domain:
        errors.append(
            f"{path}: Filename '{path.name}' should match domain '{profile.domain}'"
        )

    return profile, errors


def validate_profile_directory(directory: str | Path) -> tuple[int, list[str]]:
    """Validate all domain profile YAML files in a directory.

    Returns: (profile_count, errors)
    """
    directory = Path(directory)
    if not directory.is_dir():
        return 0, [f"Profile directory not found: {directory}"]

    yaml_files = sorted(p for p in directory.glob("*.yaml") if not p.name.startswith("_"))
    if not yaml_files:
        return 0, [f"No domain profile YAML files found in {directory}"]

    errors: list[str] = []
    seen: dict[str, Path] = {}
    loaded = 0
    for path in yaml_files:
        profile, file_errors = validate_profile_file(path)
        if file_errors:
            errors.extend(file_errors)
            continue
        assert profile is not None  # for type checkers
        loaded += 1
        if profile.domain in seen:
            errors.append(
                f"{path}: Duplicate domain '{profile.domain}' already defined in {seen[profile.domain]}"
            )
        else:
            seen[profile.domain] = path
    return loaded, errors


def validate_rule_tables(
    rule_tables: Iterable[RuleTable], catalog: RecommendationCatalog
) -> list[str]:
    """Check every rule table against the recommendation catalog.

    Returns:
        List of error strings; empty when the configuration is complete.
    """
    errors: list[str] = []
    for table in rule_tables:
        domain = table.domain
        for tier in RiskTier:
            bundle = catalog.get(domain, tier)
            if bundle is None:
                errors.append(f"{domain}: No recommendation bundle for tier '{tier.value}'")
            elif tier is RiskTier.HIGH and not bundle.urgent_actions:
                errors.append(f"{domain}: High tier has no urgent actions")
            elif tier is not RiskTier.HIGH and bundle.urgent_actions:
                errors.append(f"{domain}: {tier.value} tier has urgent actions")

        # Insufficient-data results are reported as Low
        fallback = catalog.insufficient_data_bundles().get(domain)
        if fallback is not None and fallback.urgent_actions:
            errors.append(f"{domain}: insufficient_data bundle has urgent actions")

        if not table.rules:
            errors.append(f"{domain}: Rule table is empty")
        if table.thresholds.high > table.max_score:
            errors.append(
                f"{domain}: High threshold {table.thresholds.high} exceeds "
                f"maximum score {table.max_score}"
            )
    return errors


def ensure_valid_configuration(
    rule_tables: Iterable[RuleTable], catalog: RecommendationCatalog
) -> None:
    """Fail fast when any domain lacks complete tier coverage.

    Raises:
        ScoringConfigurationError: Listing every problem found.
    """
    errors = validate_rule_tables(rule_tables, catalog)
    for err in errors:
        logger.error("%s", err)
    if errors:
        raise ScoringConfigurationError(
            f"Invalid scoring configuration ({len(errors)} error(s)): " + "; ".join(errors)
        )
