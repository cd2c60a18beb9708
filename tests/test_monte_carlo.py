"""
Tests for the Monte Carlo Engine — PRNG, determinism, percentiles and bounds.
"""

import asyncio
import math

import numpy as np
import pytest

from riskquant.core.monte_carlo import run_monte_carlo, simulate_portfolio
from riskquant.core.parsing import to_risk_records
from riskquant.core.prng import Mulberry32, draws_at
from riskquant.core.stats import RunningStats, percentile
from riskquant.models.risk_models import RiskInput, RiskRecord
from riskquant.models.simulation_models import SamplingMode
from riskquant.workers.simulation_worker import SimulationWorker


def _imul(a: int, b: int) -> int:
    return (a * b) & 0xFFFFFFFF


def reference_mulberry32(seed: int, count: int) -> list[float]:
    """Direct transcription of the published mulberry32 reference."""
    a = seed & 0xFFFFFFFF
    out = []
    for _ in range(count):
        a = (a + 0x6D2B79F5) & 0xFFFFFFFF
        t = _imul(a ^ (a >> 15), a | 1)
        t = ((t + _imul(t ^ (t >> 7), t | 61)) & 0xFFFFFFFF) ^ t
        out.append(((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296)
    return out


# --- PRNG ---


def test_sequential_generator_matches_reference():
    gen = Mulberry32(42)
    assert [gen.next() for _ in range(100)] == reference_mulberry32(42, 100)


def test_counter_draws_match_sequential_stream():
    expected = reference_mulberry32(123456789, 500)
    actual = draws_at(123456789, np.arange(1, 501))
    assert actual.tolist() == expected


def test_draws_are_unit_interval():
    u = draws_at(7, np.arange(1, 10_001))
    assert u.min() >= 0.0
    assert u.max() < 1.0


# --- Golden scenario ---


def test_golden_seeded_scenario(golden_risk):
    result = run_monte_carlo([golden_risk], iterations=1000, seed=42)
    stream = reference_mulberry32(42, 1000)

    # one draw per iteration in fixed mode, in stream order
    assert result.cost_samples == [100_000.0 if u < 0.5 else 0.0 for u in stream]

    s = result.summary
    assert (s.p50_cost, s.p80_cost, s.p90_cost) == (0.0, 100_000.0, 100_000.0)
    assert s.mean_cost == pytest.approx(48_000.0, rel=1e-12)
    assert result.risks[0].trigger_rate == pytest.approx(0.48)
    assert s.p50_time == s.p80_time == s.p90_time == 0


# --- Determinism ---


def test_same_seed_same_output(portfolio):
    a = run_monte_carlo(portfolio, iterations=3000, seed=99)
    b = run_monte_carlo(portfolio, iterations=3000, seed=99)
    assert a.cost_samples == b.cost_samples
    assert a.summary == b.summary
    assert a.risks == b.risks


@pytest.mark.parametrize("mode", [SamplingMode.FIXED, SamplingMode.TRIANGULAR])
def test_worker_count_does_not_change_seeded_output(portfolio, mode):
    serial = run_monte_carlo(portfolio, iterations=5000, seed=7, mode=mode, chunk_size=256, workers=1)
    parallel = run_monte_carlo(portfolio, iterations=5000, seed=7, mode=mode, chunk_size=256, workers=4)
    assert serial.cost_samples == parallel.cost_samples
    assert serial.time_samples == parallel.time_samples
    assert serial.summary == parallel.summary


def test_async_worker_matches_sync_engine(portfolio):
    worker = SimulationWorker()
    async_result = asyncio.run(worker.simulate(portfolio, iterations=4000, seed=11, workers=3))
    sync_result = run_monte_carlo(portfolio, iterations=4000, seed=11)
    assert async_result.cost_samples == sync_result.cost_samples


def test_unseeded_runs_complete(portfolio):
    result = run_monte_carlo(portfolio, iterations=500)
    assert result.summary.iterations == 500
    assert result.seed is None


# --- Percentiles and statistics ---


def test_percentiles_monotonic(portfolio):
    for seed in range(5):
        s = simulate_portfolio(portfolio, iterations=800, seed=seed).summary
        assert s.p50_cost <= s.p80_cost <= s.p90_cost
        assert s.p50_time <= s.p80_time <= s.p90_time


def test_percentile_nearest_rank():
    values = np.arange(10, dtype=float)
    assert percentile(values, 50) == 5
    assert percentile(values, 90) == 9
    assert percentile(values, 100) == 9
    assert percentile(np.array([]), 80) == 0.0


def test_running_stats_push_matches_batch():
    values = np.array([3.0, 7.5, -2.0, 10.0, 4.25, 0.0])
    pushed = RunningStats()
    for v in values:
        pushed.push(float(v))
    merged = RunningStats.from_batch(values[:2]).merge(RunningStats.from_batch(values[2:]))
    assert math.isclose(pushed.mean, values.mean())
    assert math.isclose(pushed.variance, values.var())
    assert math.isclose(merged.mean, values.mean())
    assert math.isclose(merged.variance, values.var())


def test_per_risk_stats_match_samples(golden_risk):
    result = run_monte_carlo([golden_risk], iterations=2000, seed=5, chunk_size=300)
    samples = np.array(result.cost_samples)
    row = result.risks[0]
    assert math.isclose(row.sim_mean_cost, samples.mean(), rel_tol=1e-9)
    assert math.isclose(row.sim_std_dev, samples.std(), rel_tol=1e-9)


# --- Degenerate and adversarial inputs ---


def test_zero_risks_and_zero_iterations():
    empty = run_monte_carlo([], iterations=100, seed=1)
    assert empty.summary.p80_cost == 0
    assert empty.summary.mean_cost == 0

    none = run_monte_carlo([RiskRecord(id="R1", probability=0.5, cost_impact=10)], iterations=0, seed=1)
    assert none.summary.iterations == 0
    assert none.cost_samples == []
    assert none.risks[0].trigger_rate == 0


def test_adversarial_inputs_stay_finite():
    records = to_risk_records(
        [
            RiskInput(id="A", probability=1.5, cost_impact=-10_000),
            RiskInput(id="B", probability=float("nan"), cost_impact=float("inf")),
            RiskInput(id="C", probability=1, cost_impact=1e308, schedule_impact_days=1e308),
            RiskInput(id="D", probability=1, cost_impact=1e308),
        ]
    )
    for mode in SamplingMode:
        result = run_monte_carlo(records, iterations=200, seed=3, mode=mode)
        values = [*result.cost_samples, *result.time_samples, *result.summary.model_dump().values()]
        assert all(math.isfinite(v) for v in values)
        for row in result.risks:
            assert math.isfinite(row.sim_mean_cost)
            assert math.isfinite(row.sim_std_dev)
            assert 0 <= row.trigger_rate <= 1
