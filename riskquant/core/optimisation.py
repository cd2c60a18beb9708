"""
Mitigation Spend Optimisation — Return on mitigation dollars, per risk and portfolio.

Each risk responds to spend along a diminishing-returns curve:

    reduction(s) = max_reduction · (1 − e^(−k·s))
    benefit(s)   = neutral P80 · materiality weight · reduction(s)

Risks are ranked by leverage (best band benefit-per-dollar × weight) and an
optional budget is spent greedily on whole bands, best return first.
"""

from __future__ import annotations

import logging
import math

from riskquant.config import settings
from riskquant.core.parsing import Invalid, clamp, parse_finite, safe_number
from riskquant.models.optimisation_models import (
    BenefitMetric,
    BudgetAllocation,
    BudgetPlan,
    CurvePoint,
    MaterialityWeight,
    OptimisationBaseline,
    OptimisationMeta,
    OptimisationResult,
    RiskLeverage,
    SpendBand,
)
from riskquant.models.risk_models import RiskRecord
from riskquant.models.simulation_models import SimulationSnapshot

logger = logging.getLogger("riskquant.optimisation")

BASE_K = 1 / 100_000
DEFAULT_MAX_REDUCTION = 0.25
FALLBACK_PROBABILITY = 0.2
# largest float below 1, keeps reduction strictly under its ceiling
_BELOW_ONE = math.nextafter(1.0, 0.0)


class MissingNeutralSnapshotError(ValueError):
    """No usable neutral baseline P80 to optimise against."""


class SpendStepsError(ValueError):
    """Spend steps or budget cap fail validation."""


def get_neutral_p80_cost(snapshot: SimulationSnapshot | None) -> float:
    if snapshot is None:
        raise MissingNeutralSnapshotError(
            "No neutral simulation snapshot; run a neutral simulation first"
        )
    parsed = parse_finite(snapshot.p80_cost)
    if isinstance(parsed, Invalid):
        raise MissingNeutralSnapshotError(f"Neutral snapshot P80 cost is unusable: {parsed.reason}")
    return parsed.value


def validate_spend_steps(steps: list | None) -> list[float]:
    """At least two finite, non-negative, ascending values starting at 0."""
    if steps is None:
        steps = settings.default_spend_steps
    if not isinstance(steps, list) or len(steps) < 2:
        raise SpendStepsError("spendSteps must be an array of at least 2 numbers")

    values: list[float] = []
    for i, raw in enumerate(steps):
        parsed = parse_finite(raw) if not isinstance(raw, str) else Invalid("string")
        if isinstance(parsed, Invalid) or parsed.value < 0:
            raise SpendStepsError(f"spendSteps[{i}] must be a finite number >= 0")
        values.append(parsed.value)

    if values[0] != 0:
        raise SpendStepsError("spendSteps must start at 0")
    if any(b < a for a, b in zip(values, values[1:])):
        raise SpendStepsError("spendSteps must be sorted ascending")
    return values


def validate_budget_cap(cap) -> float | None:
    if cap is None:
        return None
    parsed = parse_finite(cap) if not isinstance(cap, str) else Invalid("string")
    if isinstance(parsed, Invalid) or parsed.value < 0:
        raise SpendStepsError("budgetCap must be a finite number >= 0")
    return parsed.value


# ── Materiality ──


def compute_materiality_weights(
    records: list[RiskRecord], snapshot: SimulationSnapshot | None
) -> list[MaterialityWeight]:
    """
    Share of portfolio expected cost per risk.

    Uses the snapshot's per-risk expected cost when every risk appears there,
    otherwise probability × cost (probability 0.2 when unknown), otherwise
    equal weights. Every fallback path sets used_fallback.
    """
    if not records:
        return []

    if snapshot is not None:
        expected = {r.id: safe_number(r.expected_cost) for r in snapshot.risks}
        if all(r.id in expected for r in records):
            total = sum(max(0.0, expected[r.id]) for r in records)
            if total > 0:
                return [
                    MaterialityWeight(
                        risk_id=r.id,
                        weight=clamp(max(0.0, expected[r.id]) / total, 0.0, 1.0),
                        used_fallback=False,
                    )
                    for r in records
                ]

    raw = []
    for r in records:
        p = r.probability if r.probability_known else FALLBACK_PROBABILITY
        raw.append(max(0.0, safe_number(p) * safe_number(r.cost_impact)))
    total = sum(raw)
    if total > 0 and math.isfinite(total):
        return [
            MaterialityWeight(risk_id=r.id, weight=clamp(m / total, 0.0, 1.0), used_fallback=True)
            for r, m in zip(records, raw)
        ]

    equal = 1 / len(records)
    return [MaterialityWeight(risk_id=r.id, weight=equal, used_fallback=True) for r in records]


# ── Response model ──


def mitigation_params(record: RiskRecord) -> tuple[float, float, bool, bool]:
    """(max_reduction, k, used_default_max_reduction, used_default_k)."""
    profile = record.mitigation
    if profile is not None and profile.effectiveness is not None:
        max_reduction, default_max = profile.effectiveness, False
    elif record.mitigation_strength is not None:
        max_reduction, default_max = record.mitigation_strength, False
    else:
        max_reduction, default_max = DEFAULT_MAX_REDUCTION, True

    if profile is not None and profile.confidence is not None:
        k, default_k = BASE_K * (0.8 + 0.4 * clamp(profile.confidence, 0.0, 1.0)), False
    else:
        k, default_k = BASE_K, True
    return clamp(safe_number(max_reduction), 0.0, 1.0), k, default_max, default_k


def reduction(spend: float, max_reduction: float, k: float) -> float:
    """Fractional P80 reduction at a spend level; 0 for non-positive spend."""
    s = safe_number(spend)
    if s <= 0:
        return 0.0
    return max_reduction * min(-math.expm1(-k * s), _BELOW_ONE)


def benefit_at(spend: float, neutral_p80: float, weight: float, max_reduction: float, k: float) -> float:
    return neutral_p80 * weight * reduction(spend, max_reduction, k)


def build_curve(
    steps: list[float], neutral_p80: float, weight: float, max_reduction: float, k: float
) -> list[CurvePoint]:
    curve: list[CurvePoint] = []
    prev_spend = 0.0
    prev_benefit = 0.0
    for spend in steps:
        cumulative = benefit_at(spend, neutral_p80, weight, max_reduction, k)
        incremental = spend - prev_spend
        marginal = cumulative - prev_benefit
        curve.append(
            CurvePoint(
                incremental_spend=incremental,
                cumulative_spend=spend,
                marginal_benefit=marginal,
                cumulative_benefit=cumulative,
                benefit_per_dollar=marginal / incremental if incremental > 0 else 0.0,
            )
        )
        prev_spend, prev_benefit = spend, cumulative
    return curve


def best_roi_index(curve: list[CurvePoint]) -> int:
    best = 0
    for i, point in enumerate(curve):
        if point.benefit_per_dollar > curve[best].benefit_per_dollar:
            best = i
    return best


def band_for(steps: list[float], index: int) -> SpendBand:
    return SpendBand(**{"from": steps[index - 1] if index > 0 else 0.0, "to": steps[index]})


def _explanation(weight: float, band: SpendBand, bpd: float, default_max: bool, default_k: bool) -> str:
    text = (
        f"Materiality weight {weight:.3f}; best ROI band "
        f"${band.from_:,.0f}–${band.to:,.0f} (${bpd:.2f} benefit per dollar)."
    )
    notes = []
    if default_max:
        notes.append(f"default maxReduction {DEFAULT_MAX_REDUCTION}")
    if default_k:
        notes.append("default k")
    if notes:
        text += " Assumes " + "; ".join(notes) + "."
    return text


# ── Budget allocation ──


def allocate_budget(ranked: list[RiskLeverage], steps: list[float], budget_cap: float) -> BudgetPlan:
    """Greedy whole-band allocation, best benefit-per-dollar first."""
    candidates = []
    for risk in ranked:
        for i, point in enumerate(risk.curve):
            if point.incremental_spend > 0 and point.benefit_per_dollar > 0:
                candidates.append((risk, band_for(steps, i), point))
    candidates.sort(key=lambda c: c[2].benefit_per_dollar, reverse=True)

    remaining = budget_cap
    allocations: list[BudgetAllocation] = []
    for risk, band, point in candidates:
        if remaining <= 0:
            break
        if point.incremental_spend > remaining:
            continue
        allocations.append(
            BudgetAllocation(
                risk_id=risk.risk_id,
                risk_name=risk.risk_name,
                band=band,
                spend=point.incremental_spend,
                marginal_benefit=point.marginal_benefit,
                benefit_per_dollar=point.benefit_per_dollar,
            )
        )
        remaining -= point.incremental_spend

    return BudgetPlan(
        budget_cap=budget_cap,
        total_projected_benefit=sum(a.marginal_benefit for a in allocations),
        allocations=allocations,
    )


def compute_mitigation_optimisation(
    records: list[RiskRecord],
    neutral_snapshot: SimulationSnapshot | None,
    spend_steps: list | None = None,
    benefit_metric: BenefitMetric = BenefitMetric.P80_COST_REDUCTION,
    budget_cap=None,
) -> OptimisationResult:
    """
    Rank risks by mitigation leverage against the neutral P80 baseline.

    Raises MissingNeutralSnapshotError without a usable baseline and
    SpendStepsError for malformed steps or cap.
    """
    neutral_p80 = get_neutral_p80_cost(neutral_snapshot)
    steps = validate_spend_steps(spend_steps)
    cap = validate_budget_cap(budget_cap)

    weights = compute_materiality_weights(records, neutral_snapshot)
    used_default = 0
    ranked: list[RiskLeverage] = []

    for record, materiality in zip(records, weights):
        max_reduction, k, default_max, default_k = mitigation_params(record)
        if default_max:
            used_default += 1

        curve = build_curve(steps, neutral_p80, materiality.weight, max_reduction, k)
        best = best_roi_index(curve)
        band = band_for(steps, best)
        bpd = curve[best].benefit_per_dollar
        ranked.append(
            RiskLeverage(
                risk_id=record.id,
                risk_name=record.title or record.id,
                leverage_score=bpd * materiality.weight,
                materiality_weight=materiality.weight,
                best_roi_band=band,
                top_band_benefit_per_dollar=bpd,
                explanation=_explanation(materiality.weight, band, bpd, default_max, default_k),
                curve=curve,
            )
        )

    ranked.sort(key=lambda r: (-r.leverage_score, -r.materiality_weight, r.risk_name))
    plan = allocate_budget(ranked, steps, cap) if cap is not None and cap > 0 else None

    fallback_count = sum(1 for w in weights if w.used_fallback)
    logger.info(
        f"Optimisation: {len(ranked)} risks against P80 {neutral_p80:,.0f}, "
        f"fallback materiality={fallback_count}, default params={used_default}"
    )

    return OptimisationResult(
        baseline=OptimisationBaseline(neutral_p80=neutral_p80),
        ranked=ranked,
        meta=OptimisationMeta(
            spend_steps_used=steps,
            metric_used=BenefitMetric(benefit_metric),
            used_fallback_materiality_count=fallback_count,
            used_default_mitigation_params_count=used_default,
        ),
        budget_plan=plan,
    )
