"""
Risk Data Models — Loose wire shape and the canonical record the engines consume.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from riskquant.models.common import EngineModel, FrozenModel


class RiskCategory(str, Enum):
    COMMERCIAL = "commercial"
    PROGRAMME = "programme"
    DESIGN = "design"
    CONSTRUCTION = "construction"
    PROCUREMENT = "procurement"
    HSE = "hse"
    AUTHORITY = "authority"
    OPERATIONS = "operations"
    OTHER = "other"


class RiskStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    MONITORING = "monitoring"
    MITIGATING = "mitigating"
    CLOSED = "closed"


class RatingLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class MitigationStatus(str, Enum):
    NONE = "none"
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


class RatingInput(EngineModel):
    """A 1-5 probability/consequence rating as supplied by the register."""

    probability: float | None = None
    consequence: float | None = None


class MitigationProfileInput(EngineModel):
    status: str | None = None
    effectiveness: float | None = None
    confidence: float | None = None
    lag_months: float | None = None


class RiskInput(EngineModel):
    """Risk as received from the register. Every numeric field may be missing or out of range."""

    id: str = Field(..., min_length=1)
    title: str = Field(default="")
    category: str | None = None
    status: str | None = None
    probability: float | None = None
    cost_impact: float | None = None
    base_cost_impact: float | None = None
    schedule_impact_days: float | None = None
    escalation_persistence: float | None = None
    sensitivity: float | None = None
    mitigation_strength: float | None = None
    inherent_rating: RatingInput | None = None
    residual_rating: RatingInput | None = None
    mitigation_profile: MitigationProfileInput | None = None


class RiskRating(FrozenModel):
    probability: int = Field(..., ge=1, le=5)
    consequence: int = Field(..., ge=1, le=5)
    score: int = Field(..., ge=1, le=25)
    level: RatingLevel


class MitigationProfile(FrozenModel):
    status: MitigationStatus = MitigationStatus.NONE
    effectiveness: float | None = Field(default=None, ge=0, le=1)
    confidence: float | None = Field(default=None, ge=0, le=1)
    lag_months: float = Field(default=0, ge=0)


class RiskRecord(FrozenModel):
    """Canonical, sanitised risk. All numeric fields are finite and non-negative."""

    id: str
    title: str = ""
    category: RiskCategory = RiskCategory.OTHER
    status: RiskStatus = RiskStatus.OPEN
    probability: float = Field(default=0, ge=0, le=1)
    cost_impact: float = Field(default=0, ge=0)
    schedule_impact_days: float = Field(default=0, ge=0)
    escalation_persistence: float = Field(default=0.5, ge=0, le=1)
    sensitivity: float = Field(default=0.5, ge=0, le=1)
    mitigation_strength: float | None = Field(default=None, ge=0, le=1)
    inherent_rating: RiskRating | None = None
    residual_rating: RiskRating | None = None
    mitigation: MitigationProfile | None = None
    # Set when the optimiser must fall back to its own probability default
    probability_known: bool = True
    warnings: list[str] = Field(default_factory=list)
