"""
Forecast Data Models — Risk snapshots, projected trajectories and portfolio pressure.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from riskquant.models.common import EngineModel, FrozenModel


class EscalationBand(str, Enum):
    NORMAL = "normal"
    WATCH = "watch"
    HIGH = "high"
    CRITICAL = "critical"


class ConfidenceBand(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProjectionProfile(str, Enum):
    CONSERVATIVE = "conservative"
    NEUTRAL = "neutral"
    AGGRESSIVE = "aggressive"


class PressureClass(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    SEVERE = "Severe"


class RiskSnapshot(FrozenModel):
    """One risk's composite score at a cycle. Momentum is filled in by the history store."""

    risk_id: str
    cycle_index: int
    timestamp: str
    composite_score: float
    mitigated_score: float | None = None
    momentum: float | None = None


class ProjectionParams(FrozenModel):
    momentum_decay: float
    confidence_decay: float


class EscalationBands(EngineModel):
    """Lower bounds of each band. Bands are half-open: [watch, high) is watch."""

    watch_min: float = 50
    high_min: float = 65
    critical_min: float = 80


class MomentumResult(FrozenModel):
    momentum_per_cycle: float = 0.0
    confidence: float = Field(default=0.0, ge=0, le=1)


class ConfidenceBreakdown(FrozenModel):
    depth_score: float
    stability_score: float
    volatility_penalty: float
    window: int


class ForecastConfidence(FrozenModel):
    score: int = Field(..., ge=0, le=100)
    band: ConfidenceBand
    breakdown: ConfidenceBreakdown


class ForecastPoint(FrozenModel):
    step: int
    projected_score: float = Field(..., ge=0, le=100)
    projected_delta_from_now: float
    confidence: float = Field(..., ge=0, le=1)


class RiskForecast(FrozenModel):
    risk_id: str
    horizon: int
    current_score: float
    momentum: float
    points: list[ForecastPoint] = Field(default_factory=list)
    time_to_critical: int | None = None
    crosses_critical_within_window: bool = False
    projected_critical: bool = False
    already_critical: bool = False


class MitigationForecast(FrozenModel):
    """Baseline vs mitigated trajectories for one risk."""

    risk_id: str
    baseline_forecast: RiskForecast
    mitigated_forecast: RiskForecast
    mitigation_strength: float = Field(..., ge=0, le=1)
    mitigation_insufficient: bool
    time_to_critical_baseline: int | None = None
    time_to_critical_mitigated: int | None = None
    forecast_confidence: int = Field(..., ge=0, le=100)
    confidence_band: ConfidenceBand
    projection_profile_used: ProjectionProfile
    insufficient_history: bool


class PortfolioForwardPressure(FrozenModel):
    total_risks: int = 0
    projected_critical_count: int = 0
    mitigation_insufficient_count: int = 0
    pct_projected_critical: float = 0.0
    pct_mitigation_insufficient: float = 0.0
    pressure_class: PressureClass = PressureClass.LOW


class ForwardProjection(FrozenModel):
    risk_forecasts_by_id: dict[str, MitigationForecast] = Field(default_factory=dict)
    forward_pressure: PortfolioForwardPressure = Field(default_factory=PortfolioForwardPressure)
    projection_profile_used: ProjectionProfile = ProjectionProfile.NEUTRAL


class ScenarioSummary(FrozenModel):
    forward_pressure: PortfolioForwardPressure
    projected_critical_count: int
    median_ttc: float | None = None


class ScenarioTTC(FrozenModel):
    """Baseline time-to-critical for one risk under each projection profile."""

    conservative_ttc: int | None = None
    neutral_ttc: int | None = None
    aggressive_ttc: int | None = None


class ScenarioComparison(FrozenModel):
    conservative: ScenarioSummary
    neutral: ScenarioSummary
    aggressive: ScenarioSummary
    scenario_ttc_by_id: dict[str, ScenarioTTC] = Field(default_factory=dict)


class ForwardSignals(FrozenModel):
    projected_critical: bool = False
    time_to_critical: int | None = None
    mitigation_insufficient: bool = False
    projected_peak_band: EscalationBand = EscalationBand.NORMAL
    has_forecast: bool = False
    already_critical: bool = False
    forecast_confidence: int | None = None
    confidence_band: ConfidenceBand | None = None
    insufficient_history: bool | None = None


class ForecastDisplay(FrozenModel):
    peak_band_display: EscalationBand
    crosses_critical_display: str
    ttc_baseline_display: str
    ttc_mitigated_display: str
    mitigation_insufficient_display: str
