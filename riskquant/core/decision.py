"""
Decision Layer — Scores, tags and ranks a portfolio, plus the read-side selectors.
"""

from __future__ import annotations

from riskquant.config import settings
from riskquant.core.alerts import derive_alert_tags
from riskquant.core.decision_scorer import compute_composite_score
from riskquant.core.parsing import safe_number
from riskquant.core.ranking import RankRow, rank_risks
from riskquant.models.decision_models import (
    AlertTag,
    DecisionInputs,
    DecisionThresholds,
    RiskDecision,
    ScoreBand,
    ScoreDelta,
    ScoreWeights,
)
from riskquant.models.simulation_models import RiskIntelligence, SimulationSnapshot


def get_score_band(score: float) -> ScoreBand:
    """Display band: low < 40, watch < 70, critical otherwise."""
    s = safe_number(score)
    if s >= 70:
        return ScoreBand.CRITICAL
    if s >= 40:
        return ScoreBand.WATCH
    return ScoreBand.LOW


def build_decisions(
    rows: list[DecisionInputs],
    weights: ScoreWeights | None = None,
    thresholds: DecisionThresholds | None = None,
) -> list[RiskDecision]:
    """Score, tag and rank every row. Returned in rank order."""
    thresholds = thresholds or DecisionThresholds()
    scored = {row.risk_id: compute_composite_score(row, weights) for row in rows}

    ranked = rank_risks(
        [
            RankRow(
                risk_id=row.risk_id,
                title=row.title,
                composite_score=scored[row.risk_id].score,
                trigger_rate=row.trigger_rate,
                velocity=row.velocity,
                volatility=row.volatility,
                stability_score=row.stability_score,
            )
            for row in rows
        ]
    )
    by_id = {row.risk_id: row for row in rows}

    decisions: list[RiskDecision] = []
    for item in ranked:
        row = by_id[item.risk_id]
        composite = scored[item.risk_id]
        decisions.append(
            RiskDecision(
                risk_id=row.risk_id,
                title=row.title,
                composite_score=composite.score,
                rank=item.rank,
                breakdown=composite.breakdown,
                alert_tags=derive_alert_tags(row, composite.score, thresholds),
                score_band=get_score_band(composite.score),
                trigger_rate=safe_number(row.trigger_rate),
                velocity=safe_number(row.velocity),
                volatility=safe_number(row.volatility),
                stability_score=safe_number(row.stability_score, 100.0),
            )
        )
    return decisions


def decision_inputs_from_snapshot(
    snapshot: SimulationSnapshot,
    intelligence: dict[str, RiskIntelligence],
    history: list[SimulationSnapshot] | None = None,
) -> list[DecisionInputs]:
    """
    Decision rows from the latest simulation plus its intelligence metrics.

    history (newest first) supplies the trigger-rate series for EMERGING,
    oldest value first.
    """
    rows: list[DecisionInputs] = []
    for risk in snapshot.risks:
        metrics = intelligence.get(risk.id)
        rates: list[float] = []
        for snap in reversed(history or []):
            for other in snap.risks:
                if other.id == risk.id:
                    rates.append(other.trigger_rate)
                    break
        rows.append(
            DecisionInputs(
                risk_id=risk.id,
                title=risk.title,
                trigger_rate=risk.trigger_rate,
                velocity=metrics.velocity if metrics else None,
                volatility=metrics.volatility if metrics else None,
                stability_score=metrics.stability if metrics else None,
                trigger_rate_history=rates,
            )
        )
    return rows


# ── Selectors ──


def select_decision(decisions: list[RiskDecision], risk_id: str) -> RiskDecision | None:
    for d in decisions:
        if d.risk_id == risk_id:
            return d
    return None


def select_ranked(decisions: list[RiskDecision]) -> list[RiskDecision]:
    return sorted(decisions, key=lambda d: d.rank)


def select_top_critical(
    decisions: list[RiskDecision],
    limit: int | None = None,
    thresholds: DecisionThresholds | None = None,
) -> list[RiskDecision]:
    """Highest-ranked rows at or above the critical threshold."""
    cutoff = (thresholds or DecisionThresholds()).critical_score_above
    n = settings.top_critical_limit if limit is None else limit
    return [d for d in select_ranked(decisions) if d.composite_score >= cutoff][: max(0, n)]


def select_flagged(decisions: list[RiskDecision]) -> list[RiskDecision]:
    return [d for d in select_ranked(decisions) if d.alert_tags]


def select_critical(decisions: list[RiskDecision]) -> list[RiskDecision]:
    return [d for d in select_ranked(decisions) if AlertTag.CRITICAL in d.alert_tags]


def select_score_deltas(
    current: list[RiskDecision],
    previous: list[RiskDecision] | None,
    show_threshold: float | None = None,
) -> list[ScoreDelta]:
    """Score change per risk against an earlier decision set."""
    threshold = settings.score_delta_show_threshold if show_threshold is None else show_threshold
    prev_by_id = {d.risk_id: d.composite_score for d in previous or []}
    deltas: list[ScoreDelta] = []
    for d in select_ranked(current):
        prev = prev_by_id.get(d.risk_id)
        delta = d.composite_score - prev if prev is not None else 0.0
        deltas.append(
            ScoreDelta(
                risk_id=d.risk_id,
                previous_score=prev,
                current_score=d.composite_score,
                delta=delta,
                show=prev is not None and abs(delta) >= threshold,
            )
        )
    return deltas
