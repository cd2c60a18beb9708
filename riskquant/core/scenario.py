"""
Scenario Adjustment — Sensitivity-gated multipliers applied to risk inputs.

effective multiplier = 1 + (m − 1) · sensitivity, so a risk with sensitivity 0
is unaffected by any scenario and sensitivity 1 takes the full multiplier.
"""

from __future__ import annotations

from dataclasses import dataclass

from riskquant.core.parsing import MAX_IMPACT, clamp
from riskquant.models.forecast_models import ProjectionProfile
from riskquant.models.risk_models import RiskRecord


@dataclass(frozen=True)
class ScenarioMultipliers:
    probability: float
    impact: float
    persistence: float
    sensitivity: float


SCENARIO_MULTIPLIERS: dict[ProjectionProfile, ScenarioMultipliers] = {
    ProjectionProfile.CONSERVATIVE: ScenarioMultipliers(0.85, 0.85, 0.90, 0.90),
    ProjectionProfile.NEUTRAL: ScenarioMultipliers(1.0, 1.0, 1.0, 1.0),
    ProjectionProfile.AGGRESSIVE: ScenarioMultipliers(1.15, 1.15, 1.10, 1.10),
}


def effective_multiplier(m: float, sensitivity: float) -> float:
    return 1 + (m - 1) * clamp(sensitivity, 0.0, 1.0)


def apply_scenario(record: RiskRecord, scenario: ProjectionProfile) -> RiskRecord:
    """Return a new record with scenario-adjusted probability, impact, persistence and sensitivity."""
    m = SCENARIO_MULTIPLIERS[ProjectionProfile(scenario)]
    s = record.sensitivity
    return record.model_copy(
        update={
            "probability": clamp(record.probability * effective_multiplier(m.probability, s), 0.0, 1.0),
            "cost_impact": min(
                MAX_IMPACT, max(0.0, record.cost_impact * effective_multiplier(m.impact, s))
            ),
            "escalation_persistence": clamp(
                record.escalation_persistence * effective_multiplier(m.persistence, s), 0.0, 1.0
            ),
            "sensitivity": clamp(s * effective_multiplier(m.sensitivity, s), 0.0, 1.0),
        }
    )


def apply_scenario_to_all(records: list[RiskRecord], scenario: ProjectionProfile) -> list[RiskRecord]:
    return [apply_scenario(r, scenario) for r in records]
