"""
Tests for Mitigation Spend Optimisation — baseline, materiality, curves and budget plans.
"""

import math

import pytest

from riskquant.core.optimisation import (
    DEFAULT_MAX_REDUCTION,
    MissingNeutralSnapshotError,
    SpendStepsError,
    build_curve,
    compute_materiality_weights,
    compute_mitigation_optimisation,
    get_neutral_p80_cost,
    reduction,
    validate_budget_cap,
    validate_spend_steps,
)
from riskquant.models.risk_models import RiskRecord


@pytest.fixture
def neutral(snapshot_factory):
    return snapshot_factory({"R1": 75_000, "R2": 48_000, "R3": 4_000}, p80=400_000)


# --- Baseline and validation ---


def test_missing_snapshot_is_fatal():
    with pytest.raises(MissingNeutralSnapshotError):
        get_neutral_p80_cost(None)


def test_non_finite_p80_is_fatal(neutral):
    broken = neutral.model_copy(update={"p80_cost": float("nan")})
    with pytest.raises(MissingNeutralSnapshotError):
        get_neutral_p80_cost(broken)


def test_default_spend_steps():
    assert validate_spend_steps(None) == [0, 25_000, 50_000, 100_000, 200_000]


@pytest.mark.parametrize(
    "steps",
    [
        [0],
        [5, 10],
        [0, 20, 10],
        [0, -1],
        [0, "10"],
        [0, float("nan")],
        [0, float("inf")],
        "0,10",
    ],
)
def test_invalid_spend_steps(steps):
    with pytest.raises(SpendStepsError):
        validate_spend_steps(steps)


def test_budget_cap_validation():
    assert validate_budget_cap(None) is None
    assert validate_budget_cap(0) == 0
    for bad in (-1, "5", float("nan")):
        with pytest.raises(SpendStepsError):
            validate_budget_cap(bad)


def test_optimisation_rejects_bad_steps(portfolio, neutral):
    with pytest.raises(SpendStepsError):
        compute_mitigation_optimisation(portfolio, neutral, spend_steps=[10, 20])


# --- Response curve ---


def test_reduction_is_monotone_and_bounded():
    levels = [0, 1_000, 25_000, 100_000, 1e6, 1e12]
    values = [reduction(s, 0.5, 1e-5) for s in levels]
    assert values[0] == 0
    assert values == sorted(values)
    assert all(v < 0.5 for v in values)
    assert reduction(-10, 0.5, 1e-5) == 0


def test_curve_shape():
    curve = build_curve([0, 25_000, 50_000], 400_000, 0.5, 0.25, 1e-5)
    assert curve[0].benefit_per_dollar == 0
    assert curve[1].incremental_spend == 25_000
    assert curve[2].cumulative_spend == 50_000
    assert curve[1].benefit_per_dollar > curve[2].benefit_per_dollar
    assert curve[2].cumulative_benefit == pytest.approx(
        curve[1].marginal_benefit + curve[2].marginal_benefit
    )


# --- Materiality ---


def test_materiality_from_snapshot(portfolio, neutral):
    weights = compute_materiality_weights(portfolio, neutral)
    assert [w.used_fallback for w in weights] == [False, False, False]
    assert weights[0].weight == pytest.approx(75_000 / 127_000)
    assert sum(w.weight for w in weights) == pytest.approx(1.0)


def test_materiality_fallback_uses_probability_times_cost(portfolio):
    weights = compute_materiality_weights(portfolio, None)
    assert all(w.used_fallback for w in weights)
    assert weights[1].weight == pytest.approx(48_000 / 127_000)


def test_materiality_fallback_when_snapshot_misses_a_risk(portfolio, snapshot_factory):
    partial = snapshot_factory({"R1": 10_000})
    weights = compute_materiality_weights(portfolio, partial)
    assert all(w.used_fallback for w in weights)


def test_unknown_probability_uses_default():
    records = [
        RiskRecord(id="A", probability=0, cost_impact=100_000, probability_known=False),
        RiskRecord(id="B", probability=0.2, cost_impact=100_000),
    ]
    weights = compute_materiality_weights(records, None)
    assert weights[0].weight == pytest.approx(0.5)


def test_equal_weights_when_nothing_is_material():
    records = [RiskRecord(id="A"), RiskRecord(id="B"), RiskRecord(id="C"), RiskRecord(id="D")]
    weights = compute_materiality_weights(records, None)
    assert [w.weight for w in weights] == [0.25] * 4
    assert compute_materiality_weights([], None) == []


# --- Ranking ---


def test_ranking(portfolio, neutral):
    result = compute_mitigation_optimisation(portfolio, neutral)
    assert result.baseline.neutral_p80 == 400_000
    assert result.budget_plan is None

    scores = [r.leverage_score for r in result.ranked]
    assert scores == sorted(scores, reverse=True)
    assert {r.risk_id for r in result.ranked} == {"R1", "R2", "R3"}

    for risk in result.ranked:
        assert risk.best_roi_band.from_ == 0
        assert risk.best_roi_band.to == 25_000
        assert len(risk.curve) == 5
        assert all(math.isfinite(p.cumulative_benefit) for p in risk.curve)


def test_meta_counts(portfolio, neutral):
    result = compute_mitigation_optimisation(portfolio, neutral)
    assert result.meta.spend_steps_used == [0, 25_000, 50_000, 100_000, 200_000]
    assert result.meta.metric_used.value == "p80CostReduction"
    assert result.meta.used_fallback_materiality_count == 0
    # Only R2 falls back to the default maxReduction; R3 missing k does not count
    assert result.meta.used_default_mitigation_params_count == 1


def test_explanation_names_defaults(portfolio, neutral):
    result = compute_mitigation_optimisation(portfolio, neutral)
    by_id = {r.risk_id: r for r in result.ranked}
    assert f"default maxReduction {DEFAULT_MAX_REDUCTION}" in by_id["R2"].explanation
    assert "default k" in by_id["R2"].explanation
    assert "Assumes" not in by_id["R1"].explanation
    assert "$0–$25,000" in by_id["R1"].explanation


# --- Budget plan ---


def test_budget_plan_respects_cap(portfolio, neutral):
    result = compute_mitigation_optimisation(portfolio, neutral, budget_cap=60_000)
    plan = result.budget_plan
    assert plan is not None
    assert plan.budget_cap == 60_000
    assert 0 < sum(a.spend for a in plan.allocations) <= 60_000
    bpds = [a.benefit_per_dollar for a in plan.allocations]
    assert bpds == sorted(bpds, reverse=True)
    assert plan.total_projected_benefit == pytest.approx(sum(a.marginal_benefit for a in plan.allocations))


def test_zero_budget_has_no_plan(portfolio, neutral):
    assert compute_mitigation_optimisation(portfolio, neutral, budget_cap=0).budget_plan is None
