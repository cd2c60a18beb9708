"""
Decision Data Models — Composite score inputs, weights, thresholds and outputs.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from riskquant.config import settings
from riskquant.models.common import EngineModel


class AlertTag(str, Enum):
    CRITICAL = "CRITICAL"
    ACCELERATING = "ACCELERATING"
    VOLATILE = "VOLATILE"
    UNSTABLE = "UNSTABLE"
    IMPROVING = "IMPROVING"
    EMERGING = "EMERGING"


class ScoreBand(str, Enum):
    LOW = "low"
    WATCH = "watch"
    CRITICAL = "critical"


class ScoreWeights(EngineModel):
    """Explicit weights. The trigger weight is whatever is left of 1."""

    velocity_weight: float = Field(default_factory=lambda: settings.velocity_weight)
    volatility_weight: float = Field(default_factory=lambda: settings.volatility_weight)
    stability_weight: float = Field(default_factory=lambda: settings.stability_weight)
    velocity_scale: float = Field(default_factory=lambda: settings.velocity_scale)
    volatility_cap: float = Field(default_factory=lambda: settings.volatility_cap)


class DecisionThresholds(EngineModel):
    """Alert thresholds. A threshold of 0 (or 100 for unstable) disables its tag."""

    critical_score_above: float = Field(default_factory=lambda: settings.critical_score_above)
    accelerating_velocity_min: float = Field(
        default_factory=lambda: settings.accelerating_velocity_min
    )
    volatile_coeff_above: float = Field(default_factory=lambda: settings.volatile_coeff_above)
    unstable_stability_below: float = Field(
        default_factory=lambda: settings.unstable_stability_below
    )
    improving_stability_above: float = Field(
        default_factory=lambda: settings.improving_stability_above
    )
    emerging_min_latest: float = Field(default_factory=lambda: settings.emerging_min_latest)
    emerging_min_rise: float = Field(default_factory=lambda: settings.emerging_min_rise)


class DecisionInputs(EngineModel):
    """Per-risk metrics feeding the composite score. Absent values are allowed."""

    risk_id: str
    title: str = ""
    trigger_rate: float | None = None
    velocity: float | None = None
    volatility: float | None = None
    stability_score: float | None = None
    trigger_rate_history: list[float] = Field(default_factory=list)


class ResolvedWeights(EngineModel):
    trigger: float = Field(..., ge=0, le=1)
    velocity: float = Field(..., ge=0, le=1)
    volatility: float = Field(..., ge=0, le=1)
    stability: float = Field(..., ge=0, le=1)
    renormalized: bool = False


class ScoreBreakdown(EngineModel):
    """Each weighted component, in score points."""

    trigger: float
    velocity: float
    volatility: float
    instability: float
    total: float


class CompositeScore(EngineModel):
    score: float = Field(..., ge=0, le=100)
    breakdown: ScoreBreakdown
    weights: ResolvedWeights


class RankedRisk(EngineModel):
    risk_id: str
    rank: int = Field(..., ge=1)


class RiskDecision(EngineModel):
    risk_id: str
    title: str = ""
    composite_score: float = Field(..., ge=0, le=100)
    rank: int = Field(..., ge=1)
    breakdown: ScoreBreakdown
    alert_tags: list[AlertTag] = Field(default_factory=list)
    score_band: ScoreBand
    trigger_rate: float = 0.0
    velocity: float = 0.0
    volatility: float = 0.0
    stability_score: float = 100.0


class ScoreDelta(EngineModel):
    risk_id: str
    previous_score: float | None
    current_score: float
    delta: float
    show: bool
