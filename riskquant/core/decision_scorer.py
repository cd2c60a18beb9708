"""
Decision Scoring Engine — Composite 0-100 criticality score from risk metrics.

score = 100 × (w_trigger·trigger + w_velocity·velocity + w_volatility·volatility + w_stability·instability)

Normalisation (each 0-1):
    trigger     = clamp(triggerRate)
    velocity    = clamp(tanh(velocity / scale))     negative velocity contributes 0
    volatility  = clamp(volatility / cap)
    instability = clamp((100 − stabilityScore) / 100)

w_trigger = 1 − (w_velocity + w_volatility + w_stability). When that goes
negative the three explicit weights are rescaled to sum to 1 and w_trigger is 0.
Missing metrics count as 0, except stabilityScore which counts as 100.
"""

from __future__ import annotations

import math

from riskquant.core.parsing import clamp, safe_number
from riskquant.models.decision_models import (
    CompositeScore,
    DecisionInputs,
    ResolvedWeights,
    ScoreBreakdown,
    ScoreWeights,
)

DEFAULT_VELOCITY_SCALE = 1.0
DEFAULT_VOLATILITY_CAP = 0.8


def normalize_trigger_rate(trigger_rate: float | None) -> float:
    return clamp(safe_number(trigger_rate, 0.0), 0.0, 1.0)


def normalize_instability(stability_score: float | None) -> float:
    return clamp((100 - safe_number(stability_score, 100.0)) / 100, 0.0, 1.0)


def normalize_volatility(volatility: float | None, cap: float = DEFAULT_VOLATILITY_CAP) -> float:
    cap = cap if math.isfinite(cap) and cap > 0 else DEFAULT_VOLATILITY_CAP
    return clamp(safe_number(volatility, 0.0) / cap, 0.0, 1.0)


def normalize_velocity(velocity: float | None, scale: float = DEFAULT_VELOCITY_SCALE) -> float:
    scale = scale if math.isfinite(scale) and scale > 0 else DEFAULT_VELOCITY_SCALE
    return clamp(math.tanh(safe_number(velocity, 0.0) / scale), 0.0, 1.0)


def resolve_weights(weights: ScoreWeights | None = None) -> ResolvedWeights:
    """
    Turn configured weights into four weights in [0, 1] summing to at most 1.

    Negative or non-finite explicit weights count as 0.
    """
    w = weights or ScoreWeights()
    velocity = max(0.0, safe_number(w.velocity_weight))
    volatility = max(0.0, safe_number(w.volatility_weight))
    stability = max(0.0, safe_number(w.stability_weight))
    explicit = velocity + volatility + stability

    trigger = 1 - explicit
    if trigger < 0 and explicit > 0:
        scale = 1 / explicit
        return ResolvedWeights(
            trigger=0.0,
            velocity=clamp(velocity * scale, 0.0, 1.0),
            volatility=clamp(volatility * scale, 0.0, 1.0),
            stability=clamp(stability * scale, 0.0, 1.0),
            renormalized=True,
        )
    return ResolvedWeights(
        trigger=clamp(trigger, 0.0, 1.0),
        velocity=velocity,
        volatility=volatility,
        stability=stability,
    )


def compute_composite_score(
    metrics: DecisionInputs,
    weights: ScoreWeights | None = None,
) -> CompositeScore:
    """
    Compute the composite score with a per-component breakdown (in score points).

    Never returns NaN. Every component and the total are clamped to [0, 100].
    """
    config = weights or ScoreWeights()
    resolved = resolve_weights(config)

    trigger = clamp(normalize_trigger_rate(metrics.trigger_rate) * resolved.trigger * 100, 0.0, 100.0)
    velocity = clamp(
        normalize_velocity(metrics.velocity, config.velocity_scale) * resolved.velocity * 100,
        0.0,
        100.0,
    )
    volatility = clamp(
        normalize_volatility(metrics.volatility, config.volatility_cap) * resolved.volatility * 100,
        0.0,
        100.0,
    )
    instability = clamp(
        normalize_instability(metrics.stability_score) * resolved.stability * 100, 0.0, 100.0
    )

    total = clamp(trigger + velocity + volatility + instability, 0.0, 100.0)

    return CompositeScore(
        score=total,
        breakdown=ScoreBreakdown(
            trigger=trigger,
            velocity=velocity,
            volatility=volatility,
            instability=instability,
            total=total,
        ),
        weights=resolved,
    )
