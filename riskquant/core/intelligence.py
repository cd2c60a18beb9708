"""
Simulation Intelligence — Velocity, volatility and stability from snapshot history.

History is ordered newest first. For each risk in the current snapshot:

    velocity   = (mean₀ − meanₙ₋₁) / (n − 1)    over up to 5 snapshots holding the risk
    volatility = simStdDev / max(|simMeanCost|, 1e-6)
    stability  = clamp(100 · (1 − (0.5·min(|velocity| / denom, 1) + 0.5·min(volatility / 5, 1))), 0, 100)
"""

from __future__ import annotations

import math

from riskquant.core.parsing import clamp, safe_number
from riskquant.models.simulation_models import (
    Direction,
    RiskDelta,
    RiskIntelligence,
    RiskSimulationSummary,
    SimulationDelta,
    SimulationSnapshot,
)

HISTORY_WINDOW = 5
VOLATILITY_EPS = 1e-6
VOLATILITY_SCALE = 5.0
FLAT_THRESHOLD_PCT = 0.05


def _find(snapshot: SimulationSnapshot, risk_id: str) -> RiskSimulationSummary | None:
    for row in snapshot.risks:
        if row.id == risk_id:
            return row
    return None


def risk_intelligence(
    risk: RiskSimulationSummary,
    history: list[SimulationSnapshot],
    window: int = HISTORY_WINDOW,
) -> RiskIntelligence:
    """Metrics for one risk row given newest-first snapshot history."""
    means: list[float] = []
    for snap in history[:window]:
        row = _find(snap, risk.id)
        if row is not None and math.isfinite(row.sim_mean_cost):
            means.append(row.sim_mean_cost)

    velocity = (means[0] - means[-1]) / (len(means) - 1) if len(means) >= 2 else 0.0

    mean = safe_number(risk.sim_mean_cost)
    denom = max(abs(mean), VOLATILITY_EPS)
    volatility = safe_number(risk.sim_std_dev) / denom

    velocity_score = min(abs(velocity) / denom, 1.0)
    volatility_score = min(volatility / VOLATILITY_SCALE, 1.0)
    stability = clamp((1 - (0.5 * velocity_score + 0.5 * volatility_score)) * 100, 0.0, 100.0)

    return RiskIntelligence(
        risk_id=risk.id,
        velocity=velocity,
        volatility=volatility,
        stability=stability,
        history_depth=len(means),
    )


def compute_risk_intelligence(
    current: SimulationSnapshot | None,
    history: list[SimulationSnapshot],
    window: int = HISTORY_WINDOW,
) -> dict[str, RiskIntelligence]:
    """Per-risk metrics keyed by risk id. Empty when there is no current snapshot."""
    if current is None:
        return {}
    return {row.id: risk_intelligence(row, history, window) for row in current.risks}


def enrich_snapshot(
    snapshot: SimulationSnapshot,
    history: list[SimulationSnapshot],
) -> SimulationSnapshot:
    """
    Return a new snapshot whose rows carry velocity, volatility and stability,
    plus portfolio averages. The input snapshot is left untouched.
    """
    metrics = compute_risk_intelligence(snapshot, history)
    rows = [
        row.model_copy(
            update={
                "velocity": metrics[row.id].velocity,
                "volatility": metrics[row.id].volatility,
                "stability": metrics[row.id].stability,
            }
        )
        for row in snapshot.risks
    ]
    n = len(rows)
    return snapshot.model_copy(
        update={
            "risks": rows,
            "avg_velocity": sum(m.velocity for m in metrics.values()) / n if n else None,
            "avg_volatility": sum(m.volatility for m in metrics.values()) / n if n else None,
            "avg_stability": sum(m.stability for m in metrics.values()) / n if n else None,
        }
    )


def _safe_pct(delta: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return delta / previous


def calculate_delta(
    previous: SimulationSnapshot,
    current: SimulationSnapshot,
) -> SimulationDelta:
    """Portfolio and per-risk change between two snapshots, matched by risk id."""
    prev_by_id = {r.id: r for r in previous.risks}

    cost_delta = current.total_expected_cost - previous.total_expected_cost
    days_delta = current.total_expected_days - previous.total_expected_days

    risk_deltas: list[RiskDelta] = []
    for curr in current.risks:
        prev = prev_by_id.get(curr.id)
        prev_cost = prev.sim_mean_cost if prev is not None else 0.0
        curr_cost = curr.sim_mean_cost
        delta_cost = curr_cost - prev_cost
        delta_cost_pct = _safe_pct(delta_cost, prev_cost)
        prev_days = prev.expected_days if prev is not None else 0.0
        delta_days = curr.expected_days - prev_days

        if abs(delta_cost_pct) < FLAT_THRESHOLD_PCT:
            direction = Direction.FLAT
        else:
            direction = Direction.UP if delta_cost > 0 else Direction.DOWN

        risk_deltas.append(
            RiskDelta(
                id=curr.id,
                title=curr.title,
                category=curr.category,
                prev_expected_cost=prev_cost,
                curr_expected_cost=curr_cost,
                delta_cost=delta_cost,
                delta_cost_pct=delta_cost_pct,
                prev_expected_days=prev_days,
                curr_expected_days=curr.expected_days,
                delta_days=delta_days,
                delta_days_pct=_safe_pct(delta_days, prev_days),
                direction=direction,
            )
        )

    return SimulationDelta(
        portfolio_delta_cost=cost_delta,
        portfolio_delta_cost_pct=_safe_pct(cost_delta, previous.total_expected_cost),
        portfolio_delta_days=days_delta,
        portfolio_delta_days_pct=_safe_pct(days_delta, previous.total_expected_days),
        risk_deltas=risk_deltas,
    )
