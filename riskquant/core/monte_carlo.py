"""
Monte Carlo Simulation Engine — Seeded trigger/impact sampling over a risk portfolio.

Per iteration, per risk: a uniform draw below the risk's probability
triggers it, adding its cost and schedule impact to the iteration totals.

Modes:
    fixed       one draw per risk; impact is the most-likely value
    triangular  four draws per risk (cost shape, days shape, cost trigger,
                days trigger); impacts sampled from triangular(min, mode, max)
                with min/max = mode × (1 ∓ spread)

Iterations are processed in fixed-size chunks. With a seed, draw
k = i·R·S + j·S + s + 1 of the mulberry32 stream belongs to iteration i,
risk j, slot s, so every chunk is self-contained and results are bit-identical
for any chunk scheduling. Without a seed each chunk gets its own numpy Generator.
"""

from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from riskquant.config import settings
from riskquant.core.parsing import clamp
from riskquant.core.prng import draws_at
from riskquant.core.stats import RunningStats, percentile
from riskquant.models.risk_models import RiskRecord
from riskquant.models.simulation_models import (
    RiskSimulationSummary,
    SamplingMode,
    SimulationReport,
    SimulationResult,
    SimulationSnapshot,
    SimulationSummary,
)

logger = logging.getLogger("riskquant.simulation")

DRAWS_PER_RISK = {SamplingMode.FIXED: 1, SamplingMode.TRIANGULAR: 4}


@dataclass(frozen=True)
class SimulationPlan:
    """Column-oriented view of the portfolio, ready for vectorised sampling."""

    records: tuple[RiskRecord, ...]
    probability: np.ndarray
    cost: np.ndarray
    days: np.ndarray
    iterations: int
    seed: int | None
    mode: SamplingMode
    spread: float

    @property
    def risk_count(self) -> int:
        return len(self.records)

    @property
    def draws_per_risk(self) -> int:
        return DRAWS_PER_RISK[self.mode]


@dataclass
class ChunkResult:
    start: int
    cost_totals: np.ndarray
    time_totals: np.ndarray
    cost_stats: RunningStats
    days_stats: RunningStats
    trigger_counts: np.ndarray


def build_plan(
    records: list[RiskRecord],
    iterations: int,
    seed: int | None = None,
    mode: SamplingMode = SamplingMode.FIXED,
    spread: float | None = None,
) -> SimulationPlan:
    spread_used = settings.triangular_spread if spread is None else spread
    return SimulationPlan(
        records=tuple(records),
        probability=np.array([r.probability for r in records], dtype=np.float64),
        cost=np.array([r.cost_impact for r in records], dtype=np.float64),
        days=np.array([r.schedule_impact_days for r in records], dtype=np.float64),
        iterations=max(0, int(iterations)),
        seed=seed,
        mode=SamplingMode(mode),
        spread=clamp(spread_used, 0.0, 1.0),
    )


def chunk_bounds(iterations: int, chunk_size: int | None = None) -> list[tuple[int, int]]:
    size = max(1, chunk_size or settings.simulation_chunk_size)
    return [(start, min(start + size, iterations)) for start in range(0, iterations, size)]


def sample_triangular(
    u: np.ndarray, low: np.ndarray, mode: np.ndarray, high: np.ndarray
) -> np.ndarray:
    """Inverse-CDF triangular sample. A zero-width distribution returns the mode."""
    span = high - low
    with np.errstate(divide="ignore", invalid="ignore"):
        c = np.where(span > 0, (mode - low) / np.where(span > 0, span, 1.0), 0.0)
    left = low + np.sqrt(u * span * (mode - low))
    right = high - np.sqrt((1.0 - u) * span * (high - mode))
    return np.where(span > 0, np.where(u <= c, left, right), mode)


def _uniforms(plan: SimulationPlan, start: int, stop: int) -> np.ndarray:
    shape = (stop - start, plan.risk_count, plan.draws_per_risk)
    if plan.seed is None:
        return np.random.default_rng().random(shape)
    stride = np.uint64(plan.risk_count * plan.draws_per_risk)
    i = np.arange(start, stop, dtype=np.uint64)[:, None, None]
    j = np.arange(plan.risk_count, dtype=np.uint64)[None, :, None]
    s = np.arange(plan.draws_per_risk, dtype=np.uint64)[None, None, :]
    counters = i * stride + j * np.uint64(plan.draws_per_risk) + s + np.uint64(1)
    return draws_at(plan.seed, counters)


def simulate_chunk(plan: SimulationPlan, start: int, stop: int) -> ChunkResult:
    """Sample iterations [start, stop). Pure: depends only on the plan and the bounds."""
    n = stop - start
    if plan.risk_count == 0:
        zeros = np.zeros(n)
        empty = np.zeros((n, 0))
        return ChunkResult(
            start=start,
            cost_totals=zeros,
            time_totals=zeros.copy(),
            cost_stats=RunningStats.from_batch(empty),
            days_stats=RunningStats.from_batch(empty),
            trigger_counts=np.zeros(0, dtype=np.int64),
        )

    u = _uniforms(plan, start, stop)

    if plan.mode == SamplingMode.FIXED:
        cost_hit = u[:, :, 0] < plan.probability
        days_hit = cost_hit
        cost_value = np.broadcast_to(plan.cost, cost_hit.shape)
        days_value = np.broadcast_to(plan.days, cost_hit.shape)
    else:
        cost_value = sample_triangular(
            u[:, :, 0],
            plan.cost * (1 - plan.spread),
            plan.cost,
            plan.cost * (1 + plan.spread),
        )
        days_value = sample_triangular(
            u[:, :, 1],
            plan.days * (1 - plan.spread),
            plan.days,
            plan.days * (1 + plan.spread),
        )
        cost_hit = u[:, :, 2] < plan.probability
        days_hit = u[:, :, 3] < plan.probability

    cost = np.where(cost_hit, cost_value, 0.0)
    days = np.where(days_hit, days_value, 0.0)

    return ChunkResult(
        start=start,
        cost_totals=cost.sum(axis=1),
        time_totals=days.sum(axis=1),
        cost_stats=RunningStats.from_batch(cost),
        days_stats=RunningStats.from_batch(days),
        trigger_counts=cost_hit.sum(axis=0).astype(np.int64),
    )


def combine_chunks(plan: SimulationPlan, chunks: list[ChunkResult]) -> SimulationResult:
    """Merge chunk results in iteration order into a SimulationResult."""
    ordered = sorted(chunks, key=lambda c: c.start)
    r = plan.risk_count

    cost_stats = RunningStats(mean=np.zeros(r), m2=np.zeros(r))
    days_stats = RunningStats(mean=np.zeros(r), m2=np.zeros(r))
    total_cost_stats = RunningStats()
    total_time_stats = RunningStats()
    triggers = np.zeros(r, dtype=np.int64)

    for chunk in ordered:
        cost_stats.merge(chunk.cost_stats)
        days_stats.merge(chunk.days_stats)
        total_cost_stats.update(chunk.cost_totals)
        total_time_stats.update(chunk.time_totals)
        triggers += chunk.trigger_counts

    cost_samples = np.concatenate([c.cost_totals for c in ordered]) if ordered else np.zeros(0)
    time_samples = np.concatenate([c.time_totals for c in ordered]) if ordered else np.zeros(0)
    n = int(cost_samples.size)

    sorted_cost = np.sort(cost_samples)
    sorted_time = np.sort(time_samples)
    summary = SimulationSummary(
        iterations=n,
        p50_cost=percentile(sorted_cost, 50),
        p80_cost=percentile(sorted_cost, 80),
        p90_cost=percentile(sorted_cost, 90),
        mean_cost=float(total_cost_stats.mean) if n else 0.0,
        min_cost=float(sorted_cost[0]) if n else 0.0,
        max_cost=float(sorted_cost[-1]) if n else 0.0,
        cost_std_dev=float(total_cost_stats.std_dev) if n else 0.0,
        p50_time=percentile(sorted_time, 50),
        p80_time=percentile(sorted_time, 80),
        p90_time=percentile(sorted_time, 90),
        mean_time=float(total_time_stats.mean) if n else 0.0,
        min_time=float(sorted_time[0]) if n else 0.0,
        max_time=float(sorted_time[-1]) if n else 0.0,
    )

    cost_std = cost_stats.std_dev
    risks = [
        RiskSimulationSummary(
            id=record.id,
            title=record.title,
            category=record.category.value,
            expected_cost=record.probability * record.cost_impact,
            expected_days=record.probability * record.schedule_impact_days,
            sim_mean_cost=float(cost_stats.mean[j]) if n else 0.0,
            sim_mean_days=float(days_stats.mean[j]) if n else 0.0,
            sim_std_dev=float(cost_std[j]) if n else 0.0,
            trigger_rate=float(triggers[j]) / n if n else 0.0,
        )
        for j, record in enumerate(plan.records)
    ]

    return SimulationResult(
        cost_samples=cost_samples.tolist(),
        time_samples=time_samples.tolist(),
        summary=summary,
        risks=risks,
        seed=plan.seed,
        mode=plan.mode,
    )


def run_monte_carlo(
    records: list[RiskRecord],
    iterations: int | None = None,
    seed: int | None = None,
    mode: SamplingMode = SamplingMode.FIXED,
    spread: float | None = None,
    chunk_size: int | None = None,
    workers: int = 1,
) -> SimulationResult:
    """
    Run the simulation synchronously.

    Args:
        records: Canonical risk records
        iterations: Defaults to settings.default_iterations
        seed: Deterministic mulberry32 stream when given
        mode: fixed or triangular sampling
        spread: Triangular spread (triangular mode only)
        chunk_size: Iterations per chunk
        workers: Threads used to sample chunks. Does not affect seeded output.

    Returns:
        SimulationResult with sample arrays in iteration order.
    """
    n = settings.default_iterations if iterations is None else iterations
    plan = build_plan(records, n, seed=seed, mode=mode, spread=spread)
    bounds = chunk_bounds(plan.iterations, chunk_size)
    start_time = time.monotonic()

    if workers > 1 and len(bounds) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, settings.simulation_max_workers)) as pool:
            chunks = list(pool.map(lambda b: simulate_chunk(plan, *b), bounds))
    else:
        chunks = [simulate_chunk(plan, start, stop) for start, stop in bounds]

    result = combine_chunks(plan, chunks)
    logger.debug(
        f"Simulated {plan.risk_count} risks × {plan.iterations} iterations "
        f"({len(bounds)} chunks, {(time.monotonic() - start_time) * 1000:.1f}ms)"
    )
    return result


def simulate_portfolio(
    records: list[RiskRecord],
    iterations: int | None = None,
    spread: float | None = None,
    seed: int | None = None,
) -> SimulationResult:
    """Triangular-sampling run used for scenario comparisons."""
    return run_monte_carlo(
        records,
        iterations=settings.portfolio_iterations if iterations is None else iterations,
        seed=seed,
        mode=SamplingMode.TRIANGULAR,
        spread=spread,
    )


def build_simulation_snapshot(result: SimulationResult) -> SimulationSnapshot:
    """Freeze a run into a snapshot with a fresh id and timestamp."""
    s = result.summary
    return SimulationSnapshot(
        id=f"sim-{uuid.uuid4().hex[:12]}",
        timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        seed=result.seed,
        mode=result.mode,
        iterations=s.iterations,
        p50_cost=s.p50_cost,
        p80_cost=s.p80_cost,
        p90_cost=s.p90_cost,
        p50_time=s.p50_time,
        p80_time=s.p80_time,
        p90_time=s.p90_time,
        total_expected_cost=s.mean_cost,
        total_expected_days=s.mean_time,
        cost_std_dev=s.cost_std_dev,
        risks=list(result.risks),
    )


def build_simulation_report(result: SimulationResult) -> SimulationReport:
    s = result.summary
    return SimulationReport(
        iterations=s.iterations,
        mean_cost=s.mean_cost,
        p50_cost=s.p50_cost,
        p80_cost=s.p80_cost,
        p90_cost=s.p90_cost,
        cost_volatility=s.cost_std_dev,
        mean_time=s.mean_time,
        p80_time=s.p80_time,
    )
