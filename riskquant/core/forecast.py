"""
Forward Projection Engine — Bounded score forecasts with mitigation stress testing.

At each step 1..horizon:
    score      = clamp(score + momentum, 0, 100)
    momentum  *= momentum_decay
    confidence *= confidence_decay

Momentum comes from the latest snapshot when it carries one, otherwise from
the history slope (see core/momentum.py). A mitigated forecast runs the same
loop with momentum × (1 − mitigation strength).
"""

from __future__ import annotations

import logging
import math
import statistics
from typing import Protocol

from riskquant.config import settings
from riskquant.core.bands import get_band, is_currently_critical, time_to_band
from riskquant.core.confidence import compute_forecast_confidence
from riskquant.core.momentum import clamp_momentum, compute_momentum
from riskquant.core.parsing import clamp, parse_unit_interval, safe_number, value_or
from riskquant.core.profiles import get_projection_params
from riskquant.models.forecast_models import (
    EscalationBand,
    EscalationBands,
    ForecastDisplay,
    ForecastPoint,
    ForwardProjection,
    ForwardSignals,
    MitigationForecast,
    PortfolioForwardPressure,
    PressureClass,
    ProjectionProfile,
    RiskForecast,
    RiskSnapshot,
    ScenarioComparison,
    ScenarioSummary,
    ScenarioTTC,
)
from riskquant.models.risk_models import RiskRecord

logger = logging.getLogger("riskquant.forecast")

SCORE_MIN = 0.0
SCORE_MAX = 100.0

PRESSURE_LOW_MAX = 0.10
PRESSURE_MODERATE_MAX = 0.20
PRESSURE_HIGH_MAX = 0.35


class SnapshotSource(Protocol):
    """Read side of the snapshot history store."""

    def history(self, risk_id: str) -> list[RiskSnapshot]: ...

    def latest(self, risk_id: str) -> RiskSnapshot | None: ...


def project_forward(
    current_score: float,
    momentum_per_cycle: float,
    confidence: float,
    horizon: int | None = None,
    momentum_decay: float | None = None,
    confidence_decay: float | None = None,
) -> list[ForecastPoint]:
    """
    Project a score forward one point per step.

    Inputs are sanitised rather than rejected: a non-finite score counts as 0,
    non-finite momentum as 0, confidence is clamped to [0, 1] and decays to
    [0, 1]. Scores never leave [0, 100] whatever the momentum or horizon.
    """
    neutral = get_projection_params(ProjectionProfile.NEUTRAL)
    steps = settings.forecast_horizon if horizon is None else max(0, int(horizon))
    m_decay = clamp(safe_number(momentum_decay, neutral.momentum_decay), 0.0, 1.0)
    c_decay = clamp(safe_number(confidence_decay, neutral.confidence_decay), 0.0, 1.0)

    start = clamp(safe_number(current_score), SCORE_MIN, SCORE_MAX)
    score = start
    momentum = safe_number(momentum_per_cycle)
    conf = value_or(parse_unit_interval(confidence), 0.0)

    points: list[ForecastPoint] = []
    for step in range(1, steps + 1):
        score = clamp(score + momentum, SCORE_MIN, SCORE_MAX)
        momentum *= m_decay
        conf *= c_decay
        points.append(
            ForecastPoint(
                step=step,
                projected_score=score,
                projected_delta_from_now=score - start,
                confidence=conf,
            )
        )
    return points


def _current_score(latest: RiskSnapshot | None) -> float:
    if latest is None:
        return 0.0
    return clamp(safe_number(latest.composite_score), SCORE_MIN, SCORE_MAX)


def _momentum(latest: RiskSnapshot | None, history: list[RiskSnapshot]) -> tuple[float, float]:
    """(momentum, confidence). Snapshot momentum wins when it is a finite number."""
    computed = compute_momentum(history)
    if latest is not None and latest.momentum is not None and math.isfinite(latest.momentum):
        return clamp_momentum(latest.momentum), computed.confidence
    return computed.momentum_per_cycle, computed.confidence


def _forecast_from_momentum(
    risk_id: str,
    current_score: float,
    momentum: float,
    confidence: float,
    profile: ProjectionProfile,
    horizon: int | None = None,
    bands: EscalationBands | None = None,
) -> RiskForecast:
    params = get_projection_params(profile)
    points = project_forward(
        current_score,
        momentum,
        confidence,
        horizon=horizon,
        momentum_decay=params.momentum_decay,
        confidence_decay=params.confidence_decay,
    )
    ttc = time_to_band(points, EscalationBand.CRITICAL, bands)
    already_critical = is_currently_critical(current_score, bands)
    return RiskForecast(
        risk_id=risk_id,
        horizon=len(points),
        current_score=current_score,
        momentum=momentum,
        points=points,
        time_to_critical=ttc,
        crosses_critical_within_window=ttc is not None,
        projected_critical=not already_critical and ttc is not None,
        already_critical=already_critical,
    )


def build_risk_forecast(
    risk_id: str,
    latest: RiskSnapshot | None,
    history: list[RiskSnapshot],
    profile: ProjectionProfile = ProjectionProfile.NEUTRAL,
    horizon: int | None = None,
    bands: EscalationBands | None = None,
) -> RiskForecast:
    """Forecast from the latest snapshot (score 0 when absent) and its history."""
    momentum, confidence = _momentum(latest, history)
    return _forecast_from_momentum(
        risk_id, _current_score(latest), momentum, confidence, ProjectionProfile(profile), horizon, bands
    )


def build_mitigation_stress_forecast(
    risk_id: str,
    latest: RiskSnapshot | None,
    history: list[RiskSnapshot],
    mitigation_strength: float | None = None,
    profile: ProjectionProfile = ProjectionProfile.NEUTRAL,
    horizon: int | None = None,
    bands: EscalationBands | None = None,
) -> MitigationForecast:
    """
    Baseline and mitigated forecasts from the same score and confidence.

    Missing or invalid mitigation strength counts as 0 (mitigated == baseline).
    mitigation_insufficient is True whenever the mitigated forecast still
    reaches critical within the horizon.
    """
    profile = ProjectionProfile(profile)
    current = _current_score(latest)
    momentum, confidence = _momentum(latest, history)
    strength = value_or(parse_unit_interval(mitigation_strength), 0.0)

    baseline = _forecast_from_momentum(
        risk_id, current, momentum, confidence, profile, horizon, bands
    )
    mitigated = _forecast_from_momentum(
        risk_id, current, momentum * (1 - strength), confidence, profile, horizon, bands
    )
    forecast_confidence = compute_forecast_confidence(history)

    return MitigationForecast(
        risk_id=risk_id,
        baseline_forecast=baseline,
        mitigated_forecast=mitigated,
        mitigation_strength=strength,
        mitigation_insufficient=mitigated.time_to_critical is not None,
        time_to_critical_baseline=baseline.time_to_critical,
        time_to_critical_mitigated=mitigated.time_to_critical,
        forecast_confidence=forecast_confidence.score,
        confidence_band=forecast_confidence.band,
        projection_profile_used=profile,
        insufficient_history=len(history) < 2,
    )


# ── Portfolio aggregation ──


def _safe_pct(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return max(0, count) / total


def pressure_class(pct: float) -> PressureClass:
    if not math.isfinite(pct) or pct < PRESSURE_LOW_MAX:
        return PressureClass.LOW
    if pct <= PRESSURE_MODERATE_MAX:
        return PressureClass.MODERATE
    if pct <= PRESSURE_HIGH_MAX:
        return PressureClass.HIGH
    return PressureClass.SEVERE


def compute_portfolio_forward_pressure(
    forecasts: list[MitigationForecast],
) -> PortfolioForwardPressure:
    total = len(forecasts)
    projected = sum(1 for f in forecasts if f.baseline_forecast.projected_critical)
    insufficient = sum(1 for f in forecasts if f.mitigation_insufficient)
    pct_projected = _safe_pct(projected, total)
    return PortfolioForwardPressure(
        total_risks=total,
        projected_critical_count=projected,
        mitigation_insufficient_count=insufficient,
        pct_projected_critical=pct_projected,
        pct_mitigation_insufficient=_safe_pct(insufficient, total),
        pressure_class=pressure_class(pct_projected),
    )


def run_forward_projection(
    records: list[RiskRecord],
    source: SnapshotSource,
    profile: ProjectionProfile = ProjectionProfile.NEUTRAL,
    horizon: int | None = None,
    bands: EscalationBands | None = None,
) -> ForwardProjection:
    """Mitigation stress forecasts for every risk plus portfolio forward pressure."""
    profile = ProjectionProfile(profile)
    forecasts = [
        build_mitigation_stress_forecast(
            r.id,
            source.latest(r.id),
            source.history(r.id),
            r.mitigation_strength,
            profile,
            horizon,
            bands,
        )
        for r in records
    ]
    pressure = compute_portfolio_forward_pressure(forecasts)
    logger.debug(
        f"Forward projection ({profile.value}): {pressure.projected_critical_count}/"
        f"{pressure.total_risks} projected critical, class={pressure.pressure_class.value}"
    )
    return ForwardProjection(
        risk_forecasts_by_id={f.risk_id: f for f in forecasts},
        forward_pressure=pressure,
        projection_profile_used=profile,
    )


def compute_scenario_comparison(
    records: list[RiskRecord],
    source: SnapshotSource,
    horizon: int | None = None,
    bands: EscalationBands | None = None,
) -> ScenarioComparison:
    """Run all three profiles; summarise each and collect per-risk TTC triples."""
    runs = {
        profile: run_forward_projection(records, source, profile, horizon, bands)
        for profile in (
            ProjectionProfile.CONSERVATIVE,
            ProjectionProfile.NEUTRAL,
            ProjectionProfile.AGGRESSIVE,
        )
    }

    def summarise(run: ForwardProjection) -> ScenarioSummary:
        ttcs = [
            f.baseline_forecast.time_to_critical
            for f in run.risk_forecasts_by_id.values()
            if f.baseline_forecast.time_to_critical is not None
        ]
        return ScenarioSummary(
            forward_pressure=run.forward_pressure,
            projected_critical_count=run.forward_pressure.projected_critical_count,
            median_ttc=float(statistics.median(ttcs)) if ttcs else None,
        )

    def ttc(profile: ProjectionProfile, risk_id: str) -> int | None:
        return runs[profile].risk_forecasts_by_id[risk_id].baseline_forecast.time_to_critical

    triples = {
        r.id: ScenarioTTC(
            conservative_ttc=ttc(ProjectionProfile.CONSERVATIVE, r.id),
            neutral_ttc=ttc(ProjectionProfile.NEUTRAL, r.id),
            aggressive_ttc=ttc(ProjectionProfile.AGGRESSIVE, r.id),
        )
        for r in records
    }

    return ScenarioComparison(
        conservative=summarise(runs[ProjectionProfile.CONSERVATIVE]),
        neutral=summarise(runs[ProjectionProfile.NEUTRAL]),
        aggressive=summarise(runs[ProjectionProfile.AGGRESSIVE]),
        scenario_ttc_by_id=triples,
    )


# ── Read-side adapters ──


def projected_peak_band(
    forecast: MitigationForecast, bands: EscalationBands | None = None
) -> EscalationBand:
    points = forecast.baseline_forecast.points
    if not points:
        return EscalationBand.NORMAL
    return get_band(max(p.projected_score for p in points), bands)


def get_forward_signals(
    risk_id: str,
    forecasts_by_id: dict[str, MitigationForecast],
    bands: EscalationBands | None = None,
) -> ForwardSignals:
    """Signals for one risk, or safe defaults with has_forecast=False."""
    forecast = forecasts_by_id.get(risk_id)
    if forecast is None:
        return ForwardSignals()
    baseline = forecast.baseline_forecast
    return ForwardSignals(
        projected_critical=baseline.projected_critical,
        time_to_critical=baseline.time_to_critical,
        mitigation_insufficient=forecast.mitigation_insufficient,
        projected_peak_band=projected_peak_band(forecast, bands),
        has_forecast=True,
        already_critical=baseline.already_critical,
        forecast_confidence=forecast.forecast_confidence,
        confidence_band=forecast.confidence_band,
        insufficient_history=forecast.insufficient_history,
    )


def normalize_forecast_for_display(
    forecast: MitigationForecast, bands: EscalationBands | None = None
) -> ForecastDisplay:
    """Display strings that keep "already critical" apart from "never critical"."""
    baseline = forecast.baseline_forecast
    critical = baseline.already_critical

    def ttc_text(value: int | None) -> str:
        if critical:
            return "0"
        return f"{value} cycles" if value is not None else "—"

    if critical:
        crosses = "— (already critical)"
        insufficient = "YES (remains critical)" if forecast.mitigation_insufficient else "—"
    else:
        crosses = "Yes" if baseline.crosses_critical_within_window else "No"
        insufficient = "Yes" if forecast.mitigation_insufficient else "No"

    return ForecastDisplay(
        peak_band_display=projected_peak_band(forecast, bands),
        crosses_critical_display=crosses,
        ttc_baseline_display=ttc_text(forecast.time_to_critical_baseline),
        ttc_mitigated_display=ttc_text(forecast.time_to_critical_mitigated),
        mitigation_insufficient_display=insufficient,
    )
