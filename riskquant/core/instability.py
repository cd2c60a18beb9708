"""
Escalation Instability Index (EII) — How unpredictable a risk's trajectory is.

Five sub-scores in [0, 1], weighted into a 0-100 index:
    velocity      |velocity| over 0..10
    volatility    volatility over 0..5
    sensitivity   scenario sensitivity
    confidence    1 − confidence
    momentum      1 − momentum stability

The index also picks a scenario lens: Conservative when confidence is low or
volatility high, Aggressive when velocity, sensitivity and confidence are all
high, Neutral otherwise.
"""

from __future__ import annotations

import logging

from riskquant.core.parsing import clamp, round_half_up, safe_number
from riskquant.models.forecast_models import ScenarioTTC
from riskquant.models.instability_models import (
    DriverContributor,
    EarlyWarning,
    FragilityLevel,
    FragilityResult,
    InstabilityBreakdown,
    InstabilityDrivers,
    InstabilityFlag,
    InstabilityInputs,
    InstabilityLevel,
    InstabilityResult,
    InstabilityTrend,
    InstabilityWeights,
    ScenarioDeltaSummary,
    ScenarioName,
)

logger = logging.getLogger("riskquant.instability")

VELOCITY_REASONABLE_MAX = 10.0
VOLATILITY_REASONABLE_MAX = 5.0
LOW_CONFIDENCE = 0.45
HIGH_VOLATILITY_SCORE = 0.7
AGGRESSIVE_VELOCITY_SCORE = 0.7
AGGRESSIVE_SENSITIVITY = 0.6
AGGRESSIVE_CONFIDENCE = 0.65
HIGH_SCENARIO_SPREAD = 0.7
MIN_HISTORY_DEPTH = 2

# TTC of "never within horizon" for spread and ordering arithmetic
TTC_NULL_PLACEHOLDER = 90

EII_DELTA_MIN = -20.0
EII_DELTA_MAX = 20.0
TREND_THRESHOLD = 5

IMMINENT_TTC = 21

WEIGHTS = InstabilityWeights()


def normalize01(value: float, low: float, high: float) -> float:
    """Map value from [low, high] onto [0, 1], clamped. Degenerate ranges give 0."""
    if high <= low:
        return 0.0
    return clamp((safe_number(value) - low) / (high - low), 0.0, 1.0)


def _unit(value: float, default: float = 0.0) -> float:
    return clamp(safe_number(value, default), 0.0, 1.0)


def instability_level(index: int) -> InstabilityLevel:
    if index <= 24:
        return InstabilityLevel.LOW
    if index <= 49:
        return InstabilityLevel.MODERATE
    if index <= 74:
        return InstabilityLevel.HIGH
    return InstabilityLevel.CRITICAL


def calc_instability_index(inputs: InstabilityInputs) -> InstabilityResult:
    velocity_score = normalize01(abs(safe_number(inputs.velocity)), 0.0, VELOCITY_REASONABLE_MAX)
    volatility_score = normalize01(inputs.volatility, 0.0, VOLATILITY_REASONABLE_MAX)
    sensitivity_score = _unit(inputs.scenario_sensitivity)
    confidence = _unit(inputs.confidence)
    momentum_stability = _unit(inputs.momentum_stability, 1.0)

    breakdown = InstabilityBreakdown(
        velocity_score=velocity_score,
        volatility_score=volatility_score,
        sensitivity_score=sensitivity_score,
        confidence_penalty=1 - confidence,
        momentum_penalty=1 - momentum_stability,
        weights=WEIGHTS,
    )

    raw = (
        WEIGHTS.velocity * breakdown.velocity_score
        + WEIGHTS.volatility * breakdown.volatility_score
        + WEIGHTS.sensitivity * breakdown.sensitivity_score
        + WEIGHTS.confidence_penalty * breakdown.confidence_penalty
        + WEIGHTS.momentum_penalty * breakdown.momentum_penalty
    )
    index = int(clamp(round_half_up(raw * 100), 0, 100))

    if confidence < LOW_CONFIDENCE or volatility_score > HIGH_VOLATILITY_SCORE:
        scenario = ScenarioName.CONSERVATIVE
        rationale = "Conservative: low confidence or high volatility."
    elif (
        velocity_score > AGGRESSIVE_VELOCITY_SCORE
        and sensitivity_score > AGGRESSIVE_SENSITIVITY
        and confidence > AGGRESSIVE_CONFIDENCE
    ):
        scenario = ScenarioName.AGGRESSIVE
        rationale = "Aggressive: high velocity, high sensitivity, and sufficient confidence."
    else:
        scenario = ScenarioName.NEUTRAL
        rationale = "Neutral: default scenario."

    flags: list[InstabilityFlag] = []
    if safe_number(inputs.history_depth) < MIN_HISTORY_DEPTH:
        flags.append(InstabilityFlag.LOW_HISTORY)
    if confidence < LOW_CONFIDENCE:
        flags.append(InstabilityFlag.LOW_CONFIDENCE)
    if sensitivity_score > HIGH_SCENARIO_SPREAD:
        flags.append(InstabilityFlag.HIGH_SCENARIO_SPREAD)

    return InstabilityResult(
        index=index,
        level=instability_level(index),
        breakdown=breakdown,
        recommended_scenario=scenario,
        rationale=[rationale],
        flags=flags,
    )


def calc_fragility(
    current_eii: float,
    confidence_penalty: float,
    previous_eii: float | None = None,
) -> FragilityResult:
    """
    Structural fragility: persistent instability rather than a one-off spike.

    With no previous run the delta counts as 0 and eii_delta is omitted.
    """
    current = safe_number(current_eii)
    eii_delta = current - safe_number(previous_eii) if previous_eii is not None else None
    delta_norm = normalize01(eii_delta or 0.0, EII_DELTA_MIN, EII_DELTA_MAX)
    raw = current * 0.6 + delta_norm * 20 * 0.3 + _unit(confidence_penalty) * 100 * 0.1
    score = int(clamp(round_half_up(raw), 0, 100))

    if score <= 39:
        level = FragilityLevel.STABLE
    elif score <= 69:
        level = FragilityLevel.WATCH
    else:
        level = FragilityLevel.STRUCTURALLY_FRAGILE
    return FragilityResult(score=score, level=level, eii_delta=eii_delta)


def instability_trend(current_eii: float, previous_eii: float | None) -> InstabilityTrend:
    if previous_eii is None:
        return InstabilityTrend.STABLE
    delta = safe_number(current_eii) - safe_number(previous_eii)
    if delta > TREND_THRESHOLD:
        return InstabilityTrend.RISING
    if delta < -TREND_THRESHOLD:
        return InstabilityTrend.FALLING
    return InstabilityTrend.STABLE


def _ttc_or_placeholder(ttc: int | None) -> float:
    return TTC_NULL_PLACEHOLDER if ttc is None else ttc


def calc_scenario_delta_summary(ttc: ScenarioTTC) -> ScenarioDeltaSummary:
    """Distances between scenario TTCs. "Never critical" counts as 90 cycles."""
    c = _ttc_or_placeholder(ttc.conservative_ttc)
    n = _ttc_or_placeholder(ttc.neutral_ttc)
    a = _ttc_or_placeholder(ttc.aggressive_ttc)
    spread = abs(c - a)
    return ScenarioDeltaSummary(
        neutral_to_conservative=abs(n - c),
        neutral_to_aggressive=abs(n - a),
        spread=spread,
        normalized_spread=normalize01(spread, 0, TTC_NULL_PLACEHOLDER),
    )


def compute_early_warning(
    eii_index: float, time_to_critical: int | None, confidence: float
) -> EarlyWarning:
    """
    Early warning for unstable risks that are not about to breach.

    An imminent breach (TTC ≤ 21) is already visible, so it never warns early.
    """
    if time_to_critical is not None and time_to_critical <= IMMINENT_TTC:
        return EarlyWarning()

    index = safe_number(eii_index)
    reasons: list[str] = []
    if index >= 60:
        reasons.append("EII ≥ 60 with no imminent breach (TTC > 21 or no critical crossing).")
    if index >= 50 and _unit(confidence) < LOW_CONFIDENCE:
        reasons.append("EII ≥ 50 with low confidence (< 45%).")
    return EarlyWarning(early_warning=bool(reasons), early_warning_reason=reasons)


# ── Portfolio drivers ──

VOLATILITY_DRIVER = 0.6
CONFIDENCE_PENALTY_DRIVER = 0.5
SENSITIVITY_DRIVER = 0.6
VELOCITY_DRIVER = 0.6
TOP_CONTRIBUTORS = 5


def calculate_instability_drivers(
    risks: list[tuple[str, str | None, InstabilityResult | None]],
) -> InstabilityDrivers:
    """
    Count risks past each driver threshold and list the top five by EII.

    Each entry is (risk id, title, instability result or None).
    """
    scored = [(rid, title, result) for rid, title, result in risks if result is not None]
    b = [result.breakdown for _, _, result in scored]

    top = sorted(scored, key=lambda row: row[2].index, reverse=True)[:TOP_CONTRIBUTORS]
    return InstabilityDrivers(
        high_volatility_count=sum(1 for x in b if x.volatility_score > VOLATILITY_DRIVER),
        low_confidence_count=sum(1 for x in b if x.confidence_penalty > CONFIDENCE_PENALTY_DRIVER),
        high_sensitivity_count=sum(1 for x in b if x.sensitivity_score > SENSITIVITY_DRIVER),
        high_velocity_count=sum(1 for x in b if x.velocity_score > VELOCITY_DRIVER),
        top_contributors=[
            DriverContributor(risk_id=rid, title=title or "—", eii=result.index, level=result.level)
            for rid, title, result in top
        ],
    )
