"""
Forecast Confidence — 0-100 score describing how far a forecast can be trusted.

Derived from snapshot history only:
    depth      more snapshots, more confidence (window of at most 6)
    stability  share of step-to-step deltas moving in the majority direction
    volatility std-dev of the deltas, as a 0-100 penalty

score = round(clamp(0.35·depth + 0.40·stability + 0.25·(100 − penalty)))
"""

from __future__ import annotations

import math

from riskquant.core.parsing import clamp, round_half_up, safe_number
from riskquant.models.forecast_models import (
    ConfidenceBand,
    ConfidenceBreakdown,
    ForecastConfidence,
    RiskSnapshot,
)

MAX_WINDOW = 6
DEPTH_SCORES = {1: 10, 2: 25, 3: 40, 4: 55, 5: 65, 6: 80}
DEPTH_MAX = 85
INSUFFICIENT_HISTORY_SCORE = 15


def confidence_band(score: float) -> ConfidenceBand:
    if score < 40:
        return ConfidenceBand.LOW
    if score < 70:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.HIGH


def depth_score(window: int) -> int:
    if window <= 0:
        return 0
    if window >= 7:
        return DEPTH_MAX
    return DEPTH_SCORES[window]


def _deltas(scores: list[float]) -> list[float]:
    return [b - a for a, b in zip(scores, scores[1:])]


def stability_score(scores: list[float]) -> int:
    deltas = _deltas(scores)
    if not deltas:
        return 0
    if all(d >= 0 for d in deltas) or all(d <= 0 for d in deltas):
        return 100
    rising = sum(1 for d in deltas if d > 0)
    falling = sum(1 for d in deltas if d < 0)
    return round_half_up(100 * max(rising, falling) / len(deltas))


def volatility_penalty(scores: list[float]) -> int:
    deltas = _deltas(scores)
    if not deltas:
        return 0
    mean = sum(deltas) / len(deltas)
    std = math.sqrt(sum((d - mean) ** 2 for d in deltas) / len(deltas))
    return round_half_up(min(100.0, std * 10))


def compute_forecast_confidence(history: list[RiskSnapshot]) -> ForecastConfidence:
    """Confidence from history (oldest first). Fewer than two snapshots scores 15."""
    if len(history) < 2:
        return ForecastConfidence(
            score=INSUFFICIENT_HISTORY_SCORE,
            band=confidence_band(INSUFFICIENT_HISTORY_SCORE),
            breakdown=ConfidenceBreakdown(
                depth_score=depth_score(len(history)),
                stability_score=0,
                volatility_penalty=0,
                window=len(history),
            ),
        )

    points = history[-MAX_WINDOW:]
    scores = [safe_number(p.composite_score) for p in points]
    depth = depth_score(len(points))
    stability = stability_score(scores)
    penalty = volatility_penalty(scores)
    raw = 0.35 * depth + 0.40 * stability + 0.25 * (100 - penalty)
    score = round_half_up(clamp(raw, 0.0, 100.0))

    return ForecastConfidence(
        score=score,
        band=confidence_band(score),
        breakdown=ConfidenceBreakdown(
            depth_score=depth,
            stability_score=stability,
            volatility_penalty=penalty,
            window=len(points),
        ),
    )
