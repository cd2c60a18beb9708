"""
Escalation Bands — Score bands used by forecasting and escalation logic.

normal < 50 ≤ watch < 65 ≤ high < 80 ≤ critical (half-open, configurable).
"""

from __future__ import annotations

from riskquant.core.parsing import parse_finite, Invalid
from riskquant.models.forecast_models import EscalationBand, EscalationBands, ForecastPoint

DEFAULT_BANDS = EscalationBands()


def get_band(score: float, bands: EscalationBands | None = None) -> EscalationBand:
    b = bands or DEFAULT_BANDS
    parsed = parse_finite(score)
    if isinstance(parsed, Invalid):
        return EscalationBand.NORMAL
    s = parsed.value
    if s >= b.critical_min:
        return EscalationBand.CRITICAL
    if s >= b.high_min:
        return EscalationBand.HIGH
    if s >= b.watch_min:
        return EscalationBand.WATCH
    return EscalationBand.NORMAL


def is_currently_critical(score: float, bands: EscalationBands | None = None) -> bool:
    return get_band(score, bands) == EscalationBand.CRITICAL


def time_to_band(
    points: list[ForecastPoint],
    band: EscalationBand,
    bands: EscalationBands | None = None,
) -> int | None:
    """First step (1-based) whose projected score sits in band, or None."""
    for p in points:
        if get_band(p.projected_score, bands) == band:
            return p.step
    return None
