"""
API Data Models — Request/response bodies and audit entries.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from riskquant.models.common import EngineModel
from riskquant.models.forecast_models import (
    ForecastDisplay,
    ForwardProjection,
    ForwardSignals,
    ProjectionProfile,
    ScenarioComparison,
)
from riskquant.models.decision_models import RiskDecision
from riskquant.models.instability_models import (
    EarlyWarning,
    FragilityResult,
    InstabilityDrivers,
    InstabilityResult,
    InstabilityTrend,
    LensMode,
    ScenarioName,
    ScenarioOrderingResult,
    TTCLookup,
)
from riskquant.models.optimisation_models import BenefitMetric, OptimisationResult
from riskquant.models.risk_models import RiskInput
from riskquant.models.simulation_models import (
    SamplingMode,
    SimulationDelta,
    SimulationReport,
    SimulationSnapshot,
)


class SimulateRequest(EngineModel):
    risks: list[RiskInput] = Field(default_factory=list)
    iterations: int | None = Field(default=None, ge=0)
    seed: int | None = None
    mode: SamplingMode = SamplingMode.FIXED
    workers: int | None = Field(default=None, ge=1)
    set_as_neutral: bool = False
    scenario: ProjectionProfile | None = Field(
        default=None, description="Scenario-adjust risks before sampling"
    )


class SimulateResponse(EngineModel):
    message: str = "simulation_complete"
    run_id: str
    snapshot: SimulationSnapshot
    report: SimulationReport
    delta: SimulationDelta | None = None
    warnings: list[str] = Field(default_factory=list)


class SimulationContextRequest(EngineModel):
    risks: list[RiskInput] = Field(default_factory=list)
    neutral_snapshot: SimulationSnapshot | None = None


class SimulationContextResponse(EngineModel):
    ok: bool = True
    risk_count: int
    has_snapshot: bool
    neutral_p80: float | None = None


class SimulationContextStatus(EngineModel):
    risk_count: int
    has_neutral_snapshot: bool
    neutral_p80: float
    last_updated_at: str | None = None
    last_source: str | None = None


class OptimisationRequest(EngineModel):
    # Raw values, checked by the optimisation validators so the error reads in domain terms
    spend_steps: list[Any] | None = None
    budget_cap: Any | None = None
    benefit_metric: BenefitMetric = BenefitMetric.P80_COST_REDUCTION


class OptimisationResponse(EngineModel):
    ok: bool = True
    request_id: str
    result: OptimisationResult


class OptimisationProbe(EngineModel):
    ok: bool = True
    has_neutral_snapshot: bool
    neutral_p80: float
    sample_ranked_count: int


class AnalysisRequest(EngineModel):
    risks: list[RiskInput] = Field(default_factory=list)
    simulation_history: list[SimulationSnapshot] = Field(
        default_factory=list, description="Newest first"
    )
    profile: ProjectionProfile = ProjectionProfile.NEUTRAL
    lens_mode: LensMode = LensMode.AUTO
    manual_scenario: ScenarioName = ScenarioName.NEUTRAL


class RiskAnalysis(EngineModel):
    """Everything the pipeline derives for one risk."""

    risk_id: str
    title: str = ""
    decision: RiskDecision
    instability: InstabilityResult
    fragility: FragilityResult
    early_warning: EarlyWarning
    trend: InstabilityTrend = InstabilityTrend.STABLE
    scenario_lens: ScenarioName = ScenarioName.NEUTRAL
    lens_ttc: TTCLookup = Field(default_factory=TTCLookup)
    forward_signals: ForwardSignals = Field(default_factory=ForwardSignals)
    forecast_display: ForecastDisplay | None = None


class AnalysisResponse(EngineModel):
    message: str = "analysis_complete"
    run_id: str
    cycle_index: int
    risks: list[RiskAnalysis] = Field(default_factory=list)
    projection: ForwardProjection
    scenario_comparison: ScenarioComparison
    scenario_ordering: ScenarioOrderingResult
    drivers: InstabilityDrivers
    warnings: list[str] = Field(default_factory=list)


class AuditEntry(EngineModel):
    """One engine run, as written to the audit trail."""

    run_id: str
    kind: str = Field(..., description="simulation | optimisation | analysis")
    risk_count: int = 0
    iterations: int = 0
    duration_ms: float = 0.0
    seed: int | None = None
    p80_cost: float | None = None
    detail: dict[str, Any] = Field(default_factory=dict)
