"""
Simulation Worker — Async orchestrator for Monte Carlo runs.

Pipeline:
1. Build the sampling plan from canonical risk records
2. Fan chunks out to threads (bounded by `workers`)
3. Merge chunk statistics in chunk order
4. Freeze a snapshot, enrich it with history intelligence
5. Diff against the previous run and write the audit entry
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid

from riskquant.audit.logger import AuditLogger
from riskquant.config import settings
from riskquant.core.intelligence import calculate_delta, enrich_snapshot
from riskquant.core.monte_carlo import (
    build_plan,
    build_simulation_report,
    build_simulation_snapshot,
    chunk_bounds,
    combine_chunks,
    simulate_chunk,
)
from riskquant.core.scenario import apply_scenario_to_all
from riskquant.models.api_models import AuditEntry
from riskquant.models.forecast_models import ProjectionProfile
from riskquant.models.risk_models import RiskRecord
from riskquant.models.simulation_models import (
    SamplingMode,
    SimulationDelta,
    SimulationReport,
    SimulationResult,
    SimulationSnapshot,
)

logger = logging.getLogger("riskquant.worker")


class SimulationWorker:
    """Runs simulations off the event loop and keeps recent snapshots, newest first."""

    def __init__(self, audit: AuditLogger | None = None, history_cap: int | None = None) -> None:
        self.audit = audit
        self.history_cap = history_cap or settings.simulation_history_cap
        self._history: list[SimulationSnapshot] = []
        self._history_lock = threading.Lock()

    async def simulate(
        self,
        records: list[RiskRecord],
        iterations: int | None = None,
        seed: int | None = None,
        mode: SamplingMode = SamplingMode.FIXED,
        workers: int | None = None,
    ) -> SimulationResult:
        """
        Sample all chunks concurrently. Seeded output does not depend on `workers`.
        """
        n = settings.default_iterations if iterations is None else min(iterations, settings.max_iterations)
        plan = build_plan(records, n, seed=seed, mode=mode)
        bounds = chunk_bounds(plan.iterations)
        max_workers = settings.simulation_max_workers
        limit = asyncio.Semaphore(max(1, min(workers or max_workers, max_workers)))

        async def run_chunk(start: int, stop: int):
            async with limit:
                return await asyncio.to_thread(simulate_chunk, plan, start, stop)

        chunks = await asyncio.gather(*(run_chunk(start, stop) for start, stop in bounds))
        return combine_chunks(plan, list(chunks))

    async def run(
        self,
        records: list[RiskRecord],
        iterations: int | None = None,
        seed: int | None = None,
        mode: SamplingMode = SamplingMode.FIXED,
        workers: int | None = None,
        scenario: ProjectionProfile | None = None,
    ) -> tuple[SimulationSnapshot, SimulationReport, SimulationDelta | None]:
        """
        Simulate, snapshot and record a run.

        A scenario run adjusts the risks first and stands alone: it is not
        added to the history and reports no delta.

        Returns:
            (enriched snapshot, report, delta against the previous run or None)
        """
        run_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        label = ProjectionProfile(scenario).value if scenario is not None else "neutral"
        logger.info(f"[{run_id}] Simulating {len(records)} risks ({mode}, {label}, seed={seed})")

        if scenario is not None:
            records = apply_scenario_to_all(records, scenario)
        result = await self.simulate(records, iterations, seed, mode, workers)
        snapshot = build_simulation_snapshot(result)

        delta = None
        if scenario is not None:
            enriched = enrich_snapshot(snapshot, [snapshot])
        else:
            with self._history_lock:
                previous = list(self._history)
                enriched = enrich_snapshot(snapshot, [snapshot, *previous])
                self._history = [enriched, *previous][: self.history_cap]
            if previous:
                delta = calculate_delta(previous[0], enriched)

        elapsed_ms = (time.monotonic() - start_time) * 1000

        if self.audit is not None:
            self.audit.log(
                AuditEntry(
                    run_id=run_id,
                    kind="simulation",
                    risk_count=len(records),
                    iterations=result.summary.iterations,
                    duration_ms=round(elapsed_ms, 2),
                    seed=seed,
                    p80_cost=result.summary.p80_cost,
                    detail={
                        "snapshotId": enriched.id,
                        "mode": SamplingMode(mode).value,
                        "scenario": label,
                    },
                )
            )

        logger.info(
            f"[{run_id}] Simulation complete in {elapsed_ms:.0f}ms — "
            f"P50={result.summary.p50_cost:,.0f} P80={result.summary.p80_cost:,.0f} "
            f"P90={result.summary.p90_cost:,.0f}"
        )
        return enriched, build_simulation_report(result), delta

    def history(self) -> list[SimulationSnapshot]:
        """Recent enriched snapshots, newest first."""
        with self._history_lock:
            return list(self._history)

    def latest(self) -> SimulationSnapshot | None:
        with self._history_lock:
            return self._history[0] if self._history else None
