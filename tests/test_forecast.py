"""
Tests for Forward Projection — momentum, confidence, forecasts and portfolio pressure.
"""

import math

import pytest

from riskquant.core.bands import get_band
from riskquant.core.confidence import compute_forecast_confidence
from riskquant.core.forecast import (
    build_mitigation_stress_forecast,
    build_risk_forecast,
    compute_portfolio_forward_pressure,
    compute_scenario_comparison,
    get_forward_signals,
    normalize_forecast_for_display,
    pressure_class,
    project_forward,
    run_forward_projection,
)
from riskquant.core.momentum import compute_momentum
from riskquant.core.profiles import ProjectionProfileError, build_profile, get_projection_params
from riskquant.engine.history import SnapshotHistoryStore
from riskquant.models.forecast_models import (
    ConfidenceBand,
    EscalationBand,
    PressureClass,
    ProjectionProfile,
    RiskSnapshot,
)
from riskquant.models.risk_models import RiskRecord


def latest(score: float, momentum: float | None = None) -> RiskSnapshot:
    return RiskSnapshot(
        risk_id="R1", cycle_index=1, timestamp="", composite_score=score, momentum=momentum
    )


# --- Bands ---


def test_bands_are_half_open():
    assert get_band(49.99) == EscalationBand.NORMAL
    assert get_band(50) == EscalationBand.WATCH
    assert get_band(79.5) == EscalationBand.HIGH
    assert get_band(80) == EscalationBand.CRITICAL
    assert get_band(float("nan")) == EscalationBand.NORMAL


# --- Momentum and confidence ---


def test_momentum_slope_and_clamp(history_factory):
    assert compute_momentum(history_factory("R1", [40, 44, 48])).momentum_per_cycle == pytest.approx(4)
    assert compute_momentum(history_factory("R1", [0, 50, 100])).momentum_per_cycle == 8
    assert compute_momentum(history_factory("R1", [40])).momentum_per_cycle == 0


def test_momentum_uses_window(history_factory):
    scores = [90, 10, 20, 30, 40, 50]
    assert compute_momentum(history_factory("R1", scores), window=5).momentum_per_cycle == pytest.approx(8)
    assert compute_momentum(history_factory("R1", scores), window=3).momentum_per_cycle == pytest.approx(8)


def test_forecast_confidence_levels(history_factory):
    short = compute_forecast_confidence(history_factory("R1", [50]))
    assert short.score == 15
    assert short.band == ConfidenceBand.LOW

    steady = compute_forecast_confidence(history_factory("R1", [40, 42, 44, 46, 48, 50]))
    assert steady.breakdown.stability_score == 100
    assert steady.breakdown.volatility_penalty == 0
    assert steady.score == 93
    assert steady.band == ConfidenceBand.HIGH


# --- Projection ---


def test_projection_decays_momentum():
    neutral = get_projection_params(ProjectionProfile.NEUTRAL)
    points = project_forward(70, 5, 1.0, horizon=3)
    assert [p.step for p in points] == [1, 2, 3]
    assert points[0].projected_score == pytest.approx(75)
    assert points[1].projected_score == pytest.approx(75 + 5 * neutral.momentum_decay)
    assert points[2].confidence == pytest.approx(neutral.confidence_decay**3)
    assert points[2].projected_delta_from_now == pytest.approx(points[2].projected_score - 70)


@pytest.mark.parametrize(
    "score,momentum,confidence",
    [
        (float("nan"), float("inf"), float("nan")),
        (-500, -1e308, 5),
        (1e308, 1e308, -1),
        (99, 8, 0.5),
    ],
)
def test_projection_stays_bounded(score, momentum, confidence):
    for p in project_forward(score, momentum, confidence, horizon=50):
        assert 0 <= p.projected_score <= 100
        assert 0 <= p.confidence <= 1
        assert not math.isnan(p.projected_delta_from_now)


def test_no_history_forecast_is_flat():
    forecast = build_risk_forecast("R1", None, [])
    assert forecast.momentum == 0
    assert forecast.current_score == 0
    assert all(p.projected_score == 0 for p in forecast.points)
    assert forecast.projected_critical is False
    assert forecast.time_to_critical is None


def test_time_to_critical_from_snapshot_momentum():
    forecast = build_risk_forecast("R1", latest(70, momentum=5), [])
    assert forecast.time_to_critical == 3
    assert forecast.projected_critical is True
    assert forecast.already_critical is False


def test_snapshot_momentum_clamped():
    assert build_risk_forecast("R1", latest(10, momentum=50), []).momentum == 8


def test_mitigation_saturation():
    result = build_mitigation_stress_forecast("R1", latest(60, momentum=5), [], mitigation_strength=1.0)
    baseline = [p.projected_score for p in result.baseline_forecast.points]
    mitigated = [p.projected_score for p in result.mitigated_forecast.points]
    assert baseline == sorted(baseline)
    assert baseline[-1] > 60
    assert mitigated == [60] * len(mitigated)
    assert result.mitigation_insufficient is False
    assert result.insufficient_history is True


def test_invalid_mitigation_strength_counts_as_zero():
    result = build_mitigation_stress_forecast(
        "R1", latest(70, momentum=5), [], mitigation_strength=float("nan")
    )
    assert result.mitigation_strength == 0
    assert result.time_to_critical_mitigated == result.time_to_critical_baseline
    assert result.mitigation_insufficient is True


def test_already_critical_display():
    result = build_mitigation_stress_forecast("R1", latest(85), [], mitigation_strength=0.5)
    assert result.baseline_forecast.already_critical is True
    assert result.baseline_forecast.projected_critical is False

    display = normalize_forecast_for_display(result)
    assert display.crosses_critical_display == "— (already critical)"
    assert display.ttc_baseline_display == "0"
    assert display.mitigation_insufficient_display == "YES (remains critical)"
    assert display.peak_band_display == EscalationBand.CRITICAL


def test_display_for_rising_risk():
    result = build_mitigation_stress_forecast("R1", latest(70, momentum=5), [], mitigation_strength=0.9)
    display = normalize_forecast_for_display(result)
    assert display.crosses_critical_display == "Yes"
    assert display.ttc_baseline_display == "3 cycles"
    assert display.ttc_mitigated_display == "—"
    assert display.mitigation_insufficient_display == "No"


# --- Profiles ---


def test_profile_guard_rejects_out_of_band_decay():
    with pytest.raises(ProjectionProfileError):
        build_profile(ProjectionProfile.CONSERVATIVE, 0.2, 0.9)
    with pytest.raises(ProjectionProfileError):
        build_profile(ProjectionProfile.AGGRESSIVE, 0.9, 1.5)


def test_profiles_order_momentum_decay():
    c = get_projection_params("conservative").momentum_decay
    n = get_projection_params("neutral").momentum_decay
    a = get_projection_params("aggressive").momentum_decay
    assert c < n < a


# --- Portfolio ---


def _store_with(history_factory, scores_by_id):
    store = SnapshotHistoryStore(cap=10)
    for risk_id, scores in scores_by_id.items():
        for snap in history_factory(risk_id, scores):
            store.append(risk_id, snap)
    return store


def test_pressure_classes():
    assert pressure_class(0.05) == PressureClass.LOW
    assert pressure_class(0.1) == PressureClass.MODERATE
    assert pressure_class(0.2) == PressureClass.MODERATE
    assert pressure_class(0.3) == PressureClass.HIGH
    assert pressure_class(0.5) == PressureClass.SEVERE


def test_empty_portfolio_pressure():
    pressure = compute_portfolio_forward_pressure([])
    assert pressure.total_risks == 0
    assert pressure.pct_projected_critical == 0
    assert pressure.pressure_class == PressureClass.LOW


def test_forward_projection_and_signals(history_factory):
    store = _store_with(history_factory, {"UP": [60, 65, 70], "FLAT": [30, 30, 30]})
    records = [RiskRecord(id="UP", mitigation_strength=0.2), RiskRecord(id="FLAT")]
    projection = run_forward_projection(records, store)

    assert projection.forward_pressure.projected_critical_count == 1
    assert projection.forward_pressure.pct_projected_critical == 0.5
    assert projection.forward_pressure.pressure_class == PressureClass.SEVERE

    up = get_forward_signals("UP", projection.risk_forecasts_by_id)
    assert up.has_forecast is True
    assert up.projected_critical is True
    assert up.time_to_critical == 3
    assert up.projected_peak_band == EscalationBand.CRITICAL

    missing = get_forward_signals("NOPE", projection.risk_forecasts_by_id)
    assert missing.has_forecast is False
    assert missing.projected_peak_band == EscalationBand.NORMAL


def test_scenario_comparison(history_factory):
    store = _store_with(history_factory, {"UP": [60, 65, 70], "FLAT": [30, 30, 30]})
    records = [RiskRecord(id="UP"), RiskRecord(id="FLAT")]
    comparison = compute_scenario_comparison(records, store)

    ttc = comparison.scenario_ttc_by_id["UP"]
    assert ttc.conservative_ttc >= ttc.neutral_ttc >= ttc.aggressive_ttc
    assert comparison.neutral.median_ttc == 3.0
    assert comparison.scenario_ttc_by_id["FLAT"].neutral_ttc is None
    assert comparison.neutral.projected_critical_count == 1
