"""
Risk Momentum — Score slope and confidence from recent snapshot history.
"""

from __future__ import annotations

import math

from riskquant.config import settings
from riskquant.core.parsing import clamp, safe_number
from riskquant.models.forecast_models import MomentumResult, RiskSnapshot

MOMENTUM_MIN = -8.0
MOMENTUM_MAX = 8.0
# std-dev of scores at which confidence drops to 0
VARIANCE_SCALE = 15.0


def clamp_momentum(value: float) -> float:
    return clamp(safe_number(value), MOMENTUM_MIN, MOMENTUM_MAX)


def compute_momentum(history: list[RiskSnapshot], window: int | None = None) -> MomentumResult:
    """
    Momentum per cycle and confidence from the last `window` snapshots (oldest first).

        momentum   = (last − first score) / cycle span, clamped to [−8, 8]
        confidence = min(1, (n − 1) / 4) × (1 − min(1, std / 15))

    Fewer than two snapshots, or a zero cycle span, gives momentum 0.
    """
    points = history[-(window or settings.momentum_window):]
    if len(points) < 2:
        return MomentumResult(momentum_per_cycle=0.0, confidence=0.0)

    n = len(points)
    scores = [safe_number(p.composite_score) for p in points]
    span = points[-1].cycle_index - points[0].cycle_index
    slope = (scores[-1] - scores[0]) / span if span != 0 else 0.0

    mean = sum(scores) / n
    std = math.sqrt(sum((s - mean) ** 2 for s in scores) / n)
    penalty = min(1.0, std / VARIANCE_SCALE)
    confidence = clamp(min(1.0, (n - 1) / 4) * (1 - penalty), 0.0, 1.0)

    return MomentumResult(momentum_per_cycle=clamp_momentum(slope), confidence=confidence)
