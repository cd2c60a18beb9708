"""
Tests for the Escalation Instability Index, fragility, early warning and scenario lens.
"""

import math

import pytest

from riskquant.core.instability import (
    calc_fragility,
    calc_instability_index,
    calc_scenario_delta_summary,
    calculate_instability_drivers,
    compute_early_warning,
    instability_trend,
    normalize01,
)
from riskquant.core.scenario_lens import (
    ScenarioOrderingViolation,
    get_ttc_for_scenario,
    profile_to_scenario_name,
    scenario_name_to_profile,
    select_scenario_for_risk,
    validate_scenario_ordering,
)
from riskquant.models.forecast_models import ProjectionProfile, ScenarioTTC
from riskquant.models.instability_models import (
    FragilityLevel,
    InstabilityFlag,
    InstabilityInputs,
    InstabilityLevel,
    InstabilityTrend,
    LensMode,
    ScenarioName,
)


def ttc(c, n, a) -> ScenarioTTC:
    return ScenarioTTC(conservative_ttc=c, neutral_ttc=n, aggressive_ttc=a)


# --- EII ---


def test_normalize01():
    assert normalize01(5, 0, 10) == 0.5
    assert normalize01(50, 0, 10) == 1.0
    assert normalize01(-3, 0, 10) == 0.0
    assert normalize01(3, 5, 5) == 0.0


def test_defaults_recommend_conservative():
    result = calc_instability_index(InstabilityInputs())
    assert result.index == 20
    assert result.level == InstabilityLevel.LOW
    assert result.recommended_scenario == ScenarioName.CONSERVATIVE
    assert result.rationale == ["Conservative: low confidence or high volatility."]
    assert result.flags == [InstabilityFlag.LOW_HISTORY, InstabilityFlag.LOW_CONFIDENCE]


def test_aggressive_recommendation():
    result = calc_instability_index(
        InstabilityInputs(
            velocity=9, volatility=0, momentum_stability=1, scenario_sensitivity=0.8,
            confidence=0.9, history_depth=5,
        )
    )
    assert result.recommended_scenario == ScenarioName.AGGRESSIVE
    assert result.flags == [InstabilityFlag.HIGH_SCENARIO_SPREAD]
    assert result.level == InstabilityLevel.MODERATE


def test_neutral_recommendation():
    result = calc_instability_index(
        InstabilityInputs(velocity=1, confidence=0.6, history_depth=4, scenario_sensitivity=0.3)
    )
    assert result.recommended_scenario == ScenarioName.NEUTRAL
    assert result.rationale == ["Neutral: default scenario."]
    assert result.flags == []


def test_negative_velocity_counts_by_magnitude():
    up = calc_instability_index(InstabilityInputs(velocity=6, confidence=0.8))
    down = calc_instability_index(InstabilityInputs(velocity=-6, confidence=0.8))
    assert up.index == down.index


def test_maximum_instability_is_critical():
    result = calc_instability_index(
        InstabilityInputs(velocity=10, volatility=5, scenario_sensitivity=1, confidence=0, momentum_stability=0)
    )
    assert result.index == 100
    assert result.level == InstabilityLevel.CRITICAL


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), -1e308, 1e308])
def test_index_bounded_for_adversarial_inputs(bad):
    result = calc_instability_index(
        InstabilityInputs(
            velocity=bad, volatility=bad, momentum_stability=bad,
            scenario_sensitivity=bad, confidence=bad, history_depth=0,
        )
    )
    assert 0 <= result.index <= 100
    b = result.breakdown
    for value in (b.velocity_score, b.volatility_score, b.sensitivity_score, b.confidence_penalty, b.momentum_penalty):
        assert 0 <= value <= 1
        assert not math.isnan(value)


# --- Fragility and trend ---


def test_fragility_with_previous_run():
    result = calc_fragility(80, 0.5, previous_eii=60)
    assert result.score == 59
    assert result.level == FragilityLevel.WATCH
    assert result.eii_delta == 20


def test_fragility_without_previous_run():
    result = calc_fragility(80, 0.5)
    assert result.score == 56
    assert result.eii_delta is None


def test_structurally_fragile():
    assert calc_fragility(100, 1.0, previous_eii=80).level == FragilityLevel.STRUCTURALLY_FRAGILE
    assert calc_fragility(10, 0.0).level == FragilityLevel.STABLE


def test_trend():
    assert instability_trend(70, 60) == InstabilityTrend.RISING
    assert instability_trend(60, 70) == InstabilityTrend.FALLING
    assert instability_trend(62, 60) == InstabilityTrend.STABLE
    assert instability_trend(62, None) == InstabilityTrend.STABLE


# --- Scenario spread and early warning ---


def test_scenario_delta_summary():
    summary = calc_scenario_delta_summary(ttc(10, 6, 3))
    assert summary.neutral_to_conservative == 4
    assert summary.neutral_to_aggressive == 3
    assert summary.spread == 7
    assert summary.normalized_spread == pytest.approx(7 / 90)

    never = calc_scenario_delta_summary(ttc(None, None, 2))
    assert never.spread == 88


def test_early_warning_rules():
    high = compute_early_warning(65, None, 0.8)
    assert high.early_warning is True
    assert high.early_warning_reason == [
        "EII ≥ 60 with no imminent breach (TTC > 21 or no critical crossing)."
    ]

    low_conf = compute_early_warning(55, 30, 0.3)
    assert low_conf.early_warning_reason == ["EII ≥ 50 with low confidence (< 45%)."]

    assert compute_early_warning(65, 30, 0.3).early_warning_reason.__len__() == 2
    assert compute_early_warning(40, None, 0.1).early_warning is False


def test_imminent_breach_never_warns_early():
    result = compute_early_warning(95, 10, 0.1)
    assert result.early_warning is False
    assert result.early_warning_reason == []


# --- Scenario lens ---


def test_scenario_ordering_valid():
    result = validate_scenario_ordering([ttc(10, 6, 3)])
    assert result.valid is True
    assert result.flag is None


def test_scenario_ordering_violation():
    result = validate_scenario_ordering([ttc(10, 6, 3), ttc(2, 6, 3)])
    assert result.valid is False
    assert result.flag == "ScenarioOrderingViolation"
    assert result.violations == [1]

    with pytest.raises(ScenarioOrderingViolation):
        validate_scenario_ordering([ttc(2, 6, 3)], strict=True)


def test_never_critical_sorts_last():
    assert validate_scenario_ordering([ttc(None, 6, 3)]).valid is True
    assert validate_scenario_ordering([ttc(5, None, 3)]).valid is False


def test_lens_selection():
    result = calc_instability_index(InstabilityInputs())
    assert select_scenario_for_risk(result, LensMode.MANUAL, ScenarioName.AGGRESSIVE) == ScenarioName.AGGRESSIVE
    assert select_scenario_for_risk(result, LensMode.AUTO) == ScenarioName.CONSERVATIVE
    assert select_scenario_for_risk(None, LensMode.AUTO) == ScenarioName.NEUTRAL


def test_ttc_lookup():
    assert get_ttc_for_scenario(ttc(10, 6, 3), ScenarioName.AGGRESSIVE).ttc == 3
    missing = get_ttc_for_scenario(None, ScenarioName.NEUTRAL)
    assert missing.ttc is None
    assert missing.fallback_to_neutral is True


def test_profile_name_mapping():
    for profile in ProjectionProfile:
        assert scenario_name_to_profile(profile_to_scenario_name(profile)) == profile
    assert profile_to_scenario_name("aggressive") == ScenarioName.AGGRESSIVE


# --- Drivers ---


def test_drivers_count_and_top_contributors():
    risks = []
    for i in range(7):
        result = calc_instability_index(
            InstabilityInputs(velocity=i * 1.5, volatility=i, confidence=0.1 * i, scenario_sensitivity=0.15 * i)
        )
        risks.append((f"R{i}", f"Risk {i}" if i else None, result))
    risks.append(("R-NONE", "Unscored", None))

    drivers = calculate_instability_drivers(risks)
    assert len(drivers.top_contributors) == 5
    eiis = [c.eii for c in drivers.top_contributors]
    assert eiis == sorted(eiis, reverse=True)
    assert drivers.high_velocity_count == sum(1 for _, _, r in risks if r and r.breakdown.velocity_score > 0.6)
    assert drivers.low_confidence_count >= 1
    assert all(c.risk_id != "R-NONE" for c in drivers.top_contributors)


def test_drivers_default_title():
    result = calc_instability_index(InstabilityInputs(velocity=10, volatility=5))
    drivers = calculate_instability_drivers([("R1", None, result)])
    assert drivers.top_contributors[0].title == "—"
