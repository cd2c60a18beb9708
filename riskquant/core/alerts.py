"""
Alert Tags — Rule-based, non-exclusive tags derived from decision metrics.

A threshold of 0 disables its rule (100 for UNSTABLE). Missing metrics count
as 0, except stability which counts as 100.
"""

from __future__ import annotations

import math

from riskquant.core.parsing import safe_number
from riskquant.models.decision_models import AlertTag, DecisionInputs, DecisionThresholds


def derive_alert_tags(
    metrics: DecisionInputs,
    composite_score: float,
    thresholds: DecisionThresholds | None = None,
) -> list[AlertTag]:
    t = thresholds or DecisionThresholds()
    tags: list[AlertTag] = []

    def add(tag: AlertTag) -> None:
        if tag not in tags:
            tags.append(tag)

    score = safe_number(composite_score)
    critical_above = safe_number(t.critical_score_above)
    if critical_above > 0 and score >= critical_above:
        add(AlertTag.CRITICAL)

    velocity = safe_number(metrics.velocity)
    accelerating_min = safe_number(t.accelerating_velocity_min)
    if accelerating_min > 0 and velocity >= accelerating_min:
        add(AlertTag.ACCELERATING)

    volatility = safe_number(metrics.volatility)
    volatile_above = safe_number(t.volatile_coeff_above)
    if volatile_above > 0 and volatility >= volatile_above:
        add(AlertTag.VOLATILE)

    stability = safe_number(metrics.stability_score, 100.0)
    unstable_below = safe_number(t.unstable_stability_below, 100.0)
    if unstable_below < 100 and stability <= unstable_below:
        add(AlertTag.UNSTABLE)

    improving_above = safe_number(t.improving_stability_above)
    has_velocity = metrics.velocity is not None and math.isfinite(metrics.velocity)
    if improving_above > 0 and stability >= improving_above and has_velocity and metrics.velocity < 0:
        add(AlertTag.IMPROVING)

    history = metrics.trigger_rate_history
    if history:
        first = safe_number(history[0])
        last = safe_number(history[-1])
        if last >= t.emerging_min_latest and last - first >= t.emerging_min_rise:
            add(AlertTag.EMERGING)

    return tags
