"""
Mitigation Optimisation Data Models — Benefit curves, leverage ranking and budget plans.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from riskquant.models.common import FrozenModel


class BenefitMetric(str, Enum):
    P80_COST_REDUCTION = "p80CostReduction"


class SpendBand(FrozenModel):
    from_: float = Field(..., alias="from")
    to: float


class CurvePoint(FrozenModel):
    incremental_spend: float
    cumulative_spend: float
    marginal_benefit: float
    cumulative_benefit: float
    benefit_per_dollar: float


class MaterialityWeight(FrozenModel):
    risk_id: str
    weight: float = Field(..., ge=0, le=1)
    used_fallback: bool


class RiskLeverage(FrozenModel):
    """One risk's return on mitigation spend."""

    risk_id: str
    risk_name: str
    leverage_score: float
    materiality_weight: float
    best_roi_band: SpendBand = Field(..., alias="bestROIBand")
    top_band_benefit_per_dollar: float
    explanation: str
    curve: list[CurvePoint] = Field(default_factory=list)


class BudgetAllocation(FrozenModel):
    risk_id: str
    risk_name: str
    band: SpendBand
    spend: float
    marginal_benefit: float
    benefit_per_dollar: float


class BudgetPlan(FrozenModel):
    budget_cap: float
    total_projected_benefit: float
    allocations: list[BudgetAllocation] = Field(default_factory=list)


class OptimisationBaseline(FrozenModel):
    neutral_p80: float


class OptimisationMeta(FrozenModel):
    spend_steps_used: list[float]
    metric_used: BenefitMetric
    used_fallback_materiality_count: int
    used_default_mitigation_params_count: int


class OptimisationResult(FrozenModel):
    baseline: OptimisationBaseline
    ranked: list[RiskLeverage] = Field(default_factory=list)
    meta: OptimisationMeta
    budget_plan: BudgetPlan | None = None
