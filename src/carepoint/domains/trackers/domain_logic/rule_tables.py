"""Tracker rule tables and risk engine construction."""

from __future__ import annotations

import logging
from pathlib import Path

from carepoint.core.scoring.assembler import RecommendationCatalog
from carepoint.core.scoring.engine import RiskEngine
from carepoint.core.scoring.loader import load_profile_directory
from carepoint.core.scoring.models import RuleTable
from carepoint.domains.trackers.domain_logic.medicine import MEDICINE_RULES
from carepoint.domains.trackers.domain_logic.mood import MOOD_RULES
from carepoint.domains.trackers.domain_logic.pcos import PCOS_RULES
from carepoint.domains.trackers.domain_logic.sleep import SLEEP_RULES
from carepoint.domains.trackers.domain_logic.vaccine import VACCINE_RULES

logger = logging.getLogger(__name__)

# Recommendation profiles live under src/carepoint/domains/trackers/profiles/
PROFILE_DIR = Path(__file__).resolve().parent.parent / "profiles"

RULE_TABLES: tuple[RuleTable, ...] = (
    PCOS_RULES,
    VACCINE_RULES,
    MEDICINE_RULES,
    MOOD_RULES,
    SLEEP_RULES,
)


def build_risk_engine(profiles_dir: str | Path | None = None) -> RiskEngine:
    """Load recommendation profiles and return a validated risk engine.

    Args:
        profiles_dir: Directory of YAML domain profiles. Defaults to the
            profiles shipped with the package.

    Raises:
        ScoringConfigurationError: If any domain lacks complete tier coverage.
    """
    directory = Path(profiles_dir).expanduser() if profiles_dir else PROFILE_DIR
    catalog = RecommendationCatalog()
    count = load_profile_directory(directory, catalog)
    logger.info("Loaded %d domain profiles from %s", count, directory)

    engine = RiskEngine(RULE_TABLES, catalog)
    engine.validate()
    return engine
