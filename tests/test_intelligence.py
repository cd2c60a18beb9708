"""
Tests for Simulation Intelligence — metrics, pure enrichment, deltas and scenarios.
"""

import pytest

from riskquant.core.intelligence import calculate_delta, compute_risk_intelligence, enrich_snapshot
from riskquant.core.scenario import apply_scenario, effective_multiplier
from riskquant.models.forecast_models import ProjectionProfile
from riskquant.models.risk_models import RiskRecord
from riskquant.models.simulation_models import Direction


def test_velocity_over_newest_first_history(snapshot_factory):
    history = [
        snapshot_factory({"R1": 40_000}),
        snapshot_factory({"R1": 30_000}),
        snapshot_factory({"R1": 20_000}),
    ]
    metrics = compute_risk_intelligence(history[0], history)["R1"]
    assert metrics.velocity == pytest.approx(10_000)
    assert metrics.history_depth == 3
    assert 0 <= metrics.stability <= 100


def test_single_snapshot_has_zero_velocity(snapshot_factory):
    snap = snapshot_factory({"R1": 40_000})
    assert compute_risk_intelligence(snap, [snap])["R1"].velocity == 0
    assert compute_risk_intelligence(None, []) == {}


def test_enrich_snapshot_is_pure(snapshot_factory):
    snap = snapshot_factory({"R1": 40_000, "R2": 10_000})
    enriched = enrich_snapshot(snap, [snap])
    assert enriched is not snap
    assert snap.risks[0].velocity is None
    assert snap.avg_stability is None
    assert enriched.risks[0].velocity == 0
    assert enriched.avg_stability is not None


def test_delta_direction_and_flat_band(snapshot_factory):
    previous = snapshot_factory({"R1": 100_000, "R2": 100_000, "R3": 100_000})
    current = snapshot_factory({"R1": 120_000, "R2": 103_000, "R3": 50_000})
    delta = calculate_delta(previous, current)
    directions = {d.id: d.direction for d in delta.risk_deltas}
    assert directions == {"R1": Direction.UP, "R2": Direction.FLAT, "R3": Direction.DOWN}
    assert delta.portfolio_delta_cost == pytest.approx(-27_000)


def test_delta_against_empty_previous_has_zero_pct(snapshot_factory):
    delta = calculate_delta(snapshot_factory({}), snapshot_factory({"R1": 5_000}))
    assert delta.risk_deltas[0].delta_cost_pct == 0.0
    assert delta.portfolio_delta_cost_pct == 0.0


# --- Scenario adjustment ---


def test_zero_sensitivity_ignores_scenario():
    record = RiskRecord(id="R1", probability=0.5, cost_impact=1000, sensitivity=0.0)
    assert apply_scenario(record, ProjectionProfile.AGGRESSIVE) == record


def test_aggressive_scenario_raises_inputs():
    record = RiskRecord(id="R1", probability=0.5, cost_impact=1000, sensitivity=1.0)
    adjusted = apply_scenario(record, ProjectionProfile.AGGRESSIVE)
    assert adjusted.probability == pytest.approx(0.575)
    assert adjusted.cost_impact == pytest.approx(1150)
    assert record.probability == 0.5
    assert effective_multiplier(0.85, 0.5) == pytest.approx(0.925)


def test_scenario_clamps_probability():
    record = RiskRecord(id="R1", probability=0.95, cost_impact=1000, sensitivity=1.0)
    assert apply_scenario(record, ProjectionProfile.AGGRESSIVE).probability == 1.0
