"""
Test fixtures shared across all RiskQuant tests.
"""

import os
import tempfile

# Keep the audit trail out of the working tree; must run before settings import
os.environ.setdefault(
    "RISKQUANT_AUDIT_LOG_PATH", os.path.join(tempfile.gettempdir(), "riskquant-test-audit.jsonl")
)

import pytest

from riskquant.models.forecast_models import RiskSnapshot
from riskquant.models.risk_models import MitigationProfile, RiskRecord
from riskquant.models.simulation_models import RiskSimulationSummary, SimulationSnapshot


@pytest.fixture
def golden_risk():
    """The canonical cross-implementation risk: 50% chance of a 100k hit."""
    return RiskRecord(id="R-GOLD", title="Golden", probability=0.5, cost_impact=100_000)


@pytest.fixture
def portfolio():
    """Three risks with varied probability, impact and mitigation data."""
    return [
        RiskRecord(
            id="R1",
            title="Supplier insolvency",
            probability=0.3,
            cost_impact=250_000,
            schedule_impact_days=30,
            mitigation_strength=0.6,
            mitigation=MitigationProfile(effectiveness=0.5, confidence=0.9),
        ),
        RiskRecord(
            id="R2",
            title="Ground conditions",
            probability=0.6,
            cost_impact=80_000,
            schedule_impact_days=12,
            sensitivity=0.9,
        ),
        RiskRecord(
            id="R3",
            title="Permit delay",
            probability=0.1,
            cost_impact=40_000,
            schedule_impact_days=45,
            mitigation_strength=0.2,
        ),
    ]


@pytest.fixture
def risk_inputs():
    """Register entries as a client would post them (camelCase)."""
    return [
        {"id": "R1", "title": "Supplier insolvency", "probability": 0.3, "costImpact": 250000,
         "scheduleImpactDays": 30, "mitigationStrength": 0.6},
        {"id": "R2", "title": "Ground conditions", "probability": 60, "costImpact": 80000,
         "scheduleImpactDays": 12},
        {"id": "R3", "title": "Permit delay", "probability": 0.1, "baseCostImpact": 40000},
    ]


def make_snapshot(risks: dict[str, float], p80: float = 500_000.0, **kwargs) -> SimulationSnapshot:
    """Snapshot whose per-risk rows carry the given expected (and mean) cost."""
    rows = [
        RiskSimulationSummary(id=rid, title=rid, expected_cost=cost, sim_mean_cost=cost, trigger_rate=0.5)
        for rid, cost in risks.items()
    ]
    return SimulationSnapshot(
        p50_cost=p80 * 0.5,
        p80_cost=p80,
        p90_cost=p80 * 1.2,
        total_expected_cost=sum(risks.values()),
        risks=rows,
        **kwargs,
    )


def score_history(risk_id: str, scores: list[float]) -> list[RiskSnapshot]:
    """Consecutive cycles starting at 1, oldest first."""
    return [
        RiskSnapshot(
            risk_id=risk_id,
            cycle_index=i + 1,
            timestamp=f"2026-01-{i + 1:02d}T00:00:00Z",
            composite_score=score,
        )
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def history_factory():
    return score_history
