"""
Scenario Lens — Which projection profile to read each risk through.

Manual mode uses the operator's choice for every risk; Auto mode uses each
risk's EII recommendation, falling back to Neutral.
"""

from __future__ import annotations

import logging

from riskquant.models.forecast_models import ProjectionProfile, ScenarioTTC
from riskquant.models.instability_models import (
    InstabilityResult,
    LensMode,
    ScenarioName,
    ScenarioOrderingResult,
    TTCLookup,
)

logger = logging.getLogger("riskquant.scenario_lens")

AUTO_SCENARIO_FALLBACK = ScenarioName.NEUTRAL
ORDERING_VIOLATION_FLAG = "ScenarioOrderingViolation"
NULL_AS_VALUE = 90

_PROFILE_TO_NAME = {
    ProjectionProfile.CONSERVATIVE: ScenarioName.CONSERVATIVE,
    ProjectionProfile.NEUTRAL: ScenarioName.NEUTRAL,
    ProjectionProfile.AGGRESSIVE: ScenarioName.AGGRESSIVE,
}
_NAME_TO_PROFILE = {name: profile for profile, name in _PROFILE_TO_NAME.items()}


class ScenarioOrderingViolation(ValueError):
    """Scenario TTCs are not ordered conservative ≥ neutral ≥ aggressive."""


def profile_to_scenario_name(profile: ProjectionProfile | str) -> ScenarioName:
    return _PROFILE_TO_NAME[ProjectionProfile(profile)]


def scenario_name_to_profile(name: ScenarioName | str) -> ProjectionProfile:
    return _NAME_TO_PROFILE[ScenarioName(name)]


def select_scenario_for_risk(
    instability: InstabilityResult | None,
    lens_mode: LensMode,
    manual_scenario: ScenarioName = ScenarioName.NEUTRAL,
) -> ScenarioName:
    if LensMode(lens_mode) == LensMode.MANUAL:
        return ScenarioName(manual_scenario)
    if instability is not None:
        return instability.recommended_scenario
    return AUTO_SCENARIO_FALLBACK


def get_ttc_for_scenario(ttc: ScenarioTTC | None, scenario: ScenarioName) -> TTCLookup:
    """TTC under the given scenario. Missing TTC data asks the caller to use neutral."""
    if ttc is None:
        return TTCLookup(ttc=None, fallback_to_neutral=True)
    profile = scenario_name_to_profile(scenario)
    return TTCLookup(ttc=getattr(ttc, f"{profile.value}_ttc"), fallback_to_neutral=False)


def _comparable(ttc: int | None) -> float:
    return NULL_AS_VALUE if ttc is None else ttc


def is_ordering_consistent(ttc: ScenarioTTC) -> bool:
    """conservative ≥ neutral ≥ aggressive, with neutral between the extremes."""
    c = _comparable(ttc.conservative_ttc)
    n = _comparable(ttc.neutral_ttc)
    a = _comparable(ttc.aggressive_ttc)
    return c >= n >= a and min(c, a) <= n <= max(c, a)


def validate_scenario_ordering(
    snapshots: list[ScenarioTTC], strict: bool = False
) -> ScenarioOrderingResult:
    """
    Check every TTC triple. Violations are logged and flagged, not raised,
    unless strict=True.
    """
    violations = [i for i, snap in enumerate(snapshots) if not is_ordering_consistent(snap)]
    if not violations:
        return ScenarioOrderingResult(valid=True)

    for i in violations:
        snap = snapshots[i]
        logger.warning(
            f"Scenario ordering violation at index {i}: conservative={snap.conservative_ttc} "
            f"neutral={snap.neutral_ttc} aggressive={snap.aggressive_ttc}"
        )
    if strict:
        raise ScenarioOrderingViolation(f"Scenario ordering violated at indices {violations}")
    return ScenarioOrderingResult(valid=False, flag=ORDERING_VIOLATION_FLAG, violations=violations)
