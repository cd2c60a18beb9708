"""
Risk Ranking — Deterministic total order over decision rows.

Order: composite score desc, trigger rate desc, velocity desc, volatility desc,
stability asc, title (case-insensitive), risk id. Rank is the 1-based position.
"""

from __future__ import annotations

from dataclasses import dataclass

from riskquant.core.parsing import safe_number
from riskquant.models.decision_models import RankedRisk


@dataclass(frozen=True)
class RankRow:
    risk_id: str
    title: str = ""
    composite_score: float | None = None
    trigger_rate: float | None = None
    velocity: float | None = None
    volatility: float | None = None
    stability_score: float | None = None


def rank_key(row: RankRow) -> tuple:
    return (
        -safe_number(row.composite_score),
        -safe_number(row.trigger_rate),
        -safe_number(row.velocity),
        -safe_number(row.volatility),
        safe_number(row.stability_score, 100.0),
        (row.title or "").casefold(),
        row.risk_id.casefold(),
        row.risk_id,
    )


def rank_risks(rows: list[RankRow]) -> list[RankedRisk]:
    """Ranks for every row. Independent of the input order."""
    ordered = sorted(rows, key=rank_key)
    return [RankedRisk(risk_id=row.risk_id, rank=i + 1) for i, row in enumerate(ordered)]
