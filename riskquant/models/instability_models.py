"""
Instability Data Models — Escalation Instability Index (EII), fragility and warnings.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from riskquant.models.common import EngineModel, FrozenModel


class InstabilityLevel(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"


class ScenarioName(str, Enum):
    CONSERVATIVE = "Conservative"
    NEUTRAL = "Neutral"
    AGGRESSIVE = "Aggressive"


class InstabilityFlag(str, Enum):
    LOW_HISTORY = "LowHistory"
    LOW_CONFIDENCE = "LowConfidence"
    HIGH_SCENARIO_SPREAD = "HighScenarioSpread"


class FragilityLevel(str, Enum):
    STABLE = "Stable"
    WATCH = "Watch"
    STRUCTURALLY_FRAGILE = "Structurally Fragile"


class InstabilityTrend(str, Enum):
    RISING = "Rising"
    FALLING = "Falling"
    STABLE = "Stable"


class LensMode(str, Enum):
    MANUAL = "Manual"
    AUTO = "Auto"


class InstabilityInputs(EngineModel):
    velocity: float = 0.0
    volatility: float = 0.0
    momentum_stability: float = 1.0
    scenario_sensitivity: float = 0.0
    confidence: float = 0.0
    history_depth: int = 0


class InstabilityWeights(FrozenModel):
    velocity: float = 0.25
    volatility: float = 0.20
    sensitivity: float = 0.25
    confidence_penalty: float = 0.20
    momentum_penalty: float = 0.10


class InstabilityBreakdown(FrozenModel):
    velocity_score: float = Field(..., ge=0, le=1)
    volatility_score: float = Field(..., ge=0, le=1)
    sensitivity_score: float = Field(..., ge=0, le=1)
    confidence_penalty: float = Field(..., ge=0, le=1)
    momentum_penalty: float = Field(..., ge=0, le=1)
    weights: InstabilityWeights = Field(default_factory=InstabilityWeights)


class InstabilityResult(FrozenModel):
    index: int = Field(..., ge=0, le=100)
    level: InstabilityLevel
    breakdown: InstabilityBreakdown
    recommended_scenario: ScenarioName
    rationale: list[str] = Field(default_factory=list)
    flags: list[InstabilityFlag] = Field(default_factory=list)


class FragilityResult(FrozenModel):
    score: int = Field(..., ge=0, le=100)
    level: FragilityLevel
    eii_delta: float | None = None


class ScenarioDeltaSummary(FrozenModel):
    neutral_to_conservative: float
    neutral_to_aggressive: float
    spread: float
    normalized_spread: float = Field(..., ge=0, le=1)


class EarlyWarning(FrozenModel):
    early_warning: bool = False
    early_warning_reason: list[str] = Field(default_factory=list)


class ScenarioOrderingResult(FrozenModel):
    valid: bool
    flag: str | None = None
    violations: list[int] = Field(default_factory=list)


class TTCLookup(FrozenModel):
    ttc: int | None = None
    fallback_to_neutral: bool = False


class DriverContributor(FrozenModel):
    risk_id: str
    title: str
    eii: int
    level: InstabilityLevel


class InstabilityDrivers(FrozenModel):
    high_volatility_count: int = 0
    low_confidence_count: int = 0
    high_sensitivity_count: int = 0
    high_velocity_count: int = 0
    top_contributors: list[DriverContributor] = Field(default_factory=list)
