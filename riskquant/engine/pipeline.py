"""
Analysis Pipeline — Main orchestrator from simulation history to forward signals.

Full pipeline:
1. Take the newest simulation snapshot (simulating one if none covers the risks)
2. Derive velocity / volatility / stability per risk
3. Score, tag and rank → decisions
4. Append one scored cycle to the snapshot history store
5. Forward projection under the requested profile
6. Scenario comparison across all three profiles
7. EII, fragility, trend and early warning per risk
8. Scenario lens, ordering check and portfolio drivers
"""

from __future__ import annotations

import logging
import time
import uuid

from riskquant.audit.logger import AuditLogger
from riskquant.core.decision import build_decisions, decision_inputs_from_snapshot
from riskquant.core.forecast import (
    compute_scenario_comparison,
    get_forward_signals,
    normalize_forecast_for_display,
    run_forward_projection,
)
from riskquant.core.instability import (
    calc_fragility,
    calc_instability_index,
    calc_scenario_delta_summary,
    calculate_instability_drivers,
    compute_early_warning,
    instability_trend,
)
from riskquant.core.intelligence import compute_risk_intelligence
from riskquant.core.momentum import compute_momentum
from riskquant.core.scenario_lens import (
    get_ttc_for_scenario,
    select_scenario_for_risk,
    validate_scenario_ordering,
)
from riskquant.engine.history import SnapshotHistoryStore
from riskquant.models.api_models import AnalysisResponse, AuditEntry, RiskAnalysis
from riskquant.models.forecast_models import ProjectionProfile, RiskSnapshot, ScenarioTTC
from riskquant.models.instability_models import InstabilityInputs, LensMode, ScenarioName
from riskquant.models.risk_models import RiskRecord
from riskquant.models.simulation_models import SimulationSnapshot
from riskquant.workers.simulation_worker import SimulationWorker

logger = logging.getLogger("riskquant.engine.pipeline")


class AnalysisPipeline:
    """
    Ties together: intelligence → decisions → history → forecasts →
    instability → lens.

    Holds the previous EII per risk so fragility and trend can compare runs.
    """

    def __init__(
        self,
        history: SnapshotHistoryStore | None = None,
        worker: SimulationWorker | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.history = history or SnapshotHistoryStore()
        self.worker = worker or SimulationWorker()
        self.audit = audit
        self._previous_eii: dict[str, int] = {}

    async def _simulation_history(
        self, records: list[RiskRecord], supplied: list[SimulationSnapshot]
    ) -> list[SimulationSnapshot]:
        """
        Supplied history wins. Otherwise the worker's history is reused only
        when its newest run covers every submitted risk.
        """
        if supplied:
            return supplied
        known = self.worker.history()
        if known:
            covered = {r.id for r in known[0].risks}
            missing = [r.id for r in records if r.id not in covered]
            if not missing:
                return known
            logger.info(f"Latest simulation lacks {len(missing)} submitted risks; re-simulating")
        else:
            logger.info("No simulation history; running a neutral simulation first")
        await self.worker.run(records)
        return self.worker.history()

    async def run(
        self,
        records: list[RiskRecord],
        simulation_history: list[SimulationSnapshot] | None = None,
        profile: ProjectionProfile = ProjectionProfile.NEUTRAL,
        lens_mode: LensMode = LensMode.AUTO,
        manual_scenario: ScenarioName = ScenarioName.NEUTRAL,
    ) -> AnalysisResponse:
        """
        Execute one analysis cycle.

        Args:
            records: Canonical risk records
            simulation_history: Snapshots, newest first. Uses the worker's own when empty.
            profile: Projection profile for the primary forward projection
            lens_mode: Manual uses manual_scenario; Auto uses each risk's EII pick

        Returns:
            AnalysisResponse for every risk present in the newest snapshot
        """
        run_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        warnings: list[str] = []

        # ── Step 1-3: Intelligence and decisions ──
        sims = await self._simulation_history(records, simulation_history or [])
        current = sims[0]
        intelligence = compute_risk_intelligence(current, sims)
        decisions = build_decisions(decision_inputs_from_snapshot(current, intelligence, sims))
        logger.info(f"[{run_id}] Scored {len(decisions)} risks from snapshot {current.id or '-'}")

        # ── Step 4: Record this cycle ──
        cycle = self.history.next_cycle_index()
        timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        for d in decisions:
            self.history.append(
                d.risk_id,
                RiskSnapshot(
                    risk_id=d.risk_id,
                    cycle_index=cycle,
                    timestamp=timestamp,
                    composite_score=d.composite_score,
                ),
            )

        by_decision = {d.risk_id: d for d in decisions}
        scored = [r for r in records if r.id in by_decision]
        for r in records:
            if r.id not in by_decision:
                warnings.append(f"{r.id}: not in the latest simulation; skipped")

        # ── Step 5-6: Forecasts ──
        projection = run_forward_projection(scored, self.history, profile)
        comparison = compute_scenario_comparison(scored, self.history)

        # ── Step 7: Instability per risk ──
        analyses: list[RiskAnalysis] = []
        triples: list[ScenarioTTC] = []
        for record in scored:
            forecast = projection.risk_forecasts_by_id[record.id]
            ttc = comparison.scenario_ttc_by_id.get(record.id, ScenarioTTC())
            triples.append(ttc)
            history = self.history.history(record.id)
            spread = calc_scenario_delta_summary(ttc).normalized_spread
            metrics = intelligence.get(record.id)

            instability = calc_instability_index(
                InstabilityInputs(
                    velocity=abs(forecast.baseline_forecast.momentum),
                    volatility=metrics.volatility if metrics else 0.0,
                    momentum_stability=compute_momentum(history).confidence,
                    scenario_sensitivity=max(spread, record.sensitivity),
                    confidence=forecast.forecast_confidence / 100,
                    history_depth=len(history),
                )
            )
            previous = self._previous_eii.get(record.id)
            self._previous_eii[record.id] = instability.index

            lens = select_scenario_for_risk(instability, lens_mode, manual_scenario)
            analyses.append(
                RiskAnalysis(
                    risk_id=record.id,
                    title=record.title,
                    decision=by_decision[record.id],
                    instability=instability,
                    fragility=calc_fragility(
                        instability.index, instability.breakdown.confidence_penalty, previous
                    ),
                    early_warning=compute_early_warning(
                        instability.index,
                        forecast.time_to_critical_baseline,
                        forecast.forecast_confidence / 100,
                    ),
                    trend=instability_trend(instability.index, previous),
                    scenario_lens=lens,
                    lens_ttc=get_ttc_for_scenario(ttc, lens),
                    forward_signals=get_forward_signals(record.id, projection.risk_forecasts_by_id),
                    forecast_display=normalize_forecast_for_display(forecast),
                )
            )

        # ── Step 8: Portfolio checks ──
        ordering = validate_scenario_ordering(triples)
        if not ordering.valid:
            warnings.append(f"Scenario ordering violated for {len(ordering.violations)} risks")
        drivers = calculate_instability_drivers(
            [(a.risk_id, a.title, a.instability) for a in analyses]
        )

        elapsed_ms = (time.monotonic() - start_time) * 1000
        if self.audit is not None:
            self.audit.log(
                AuditEntry(
                    run_id=run_id,
                    kind="analysis",
                    risk_count=len(analyses),
                    iterations=current.iterations,
                    duration_ms=round(elapsed_ms, 2),
                    seed=current.seed,
                    p80_cost=current.p80_cost,
                    detail={
                        "cycleIndex": cycle,
                        "pressureClass": projection.forward_pressure.pressure_class.value,
                    },
                )
            )
        logger.info(
            f"[{run_id}] Analysis cycle {cycle} complete in {elapsed_ms:.0f}ms — "
            f"pressure={projection.forward_pressure.pressure_class.value}, "
            f"early warnings={sum(1 for a in analyses if a.early_warning.early_warning)}"
        )

        return AnalysisResponse(
            run_id=run_id,
            cycle_index=cycle,
            risks=analyses,
            projection=projection,
            scenario_comparison=comparison,
            scenario_ordering=ordering,
            drivers=drivers,
            warnings=warnings,
        )
