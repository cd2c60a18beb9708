"""
Simulation Route — POST /simulate

Runs the Monte Carlo engine over the submitted risks. With setAsNeutral the
resulting snapshot becomes the optimiser's baseline.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from riskquant.api.dependencies import get_simulation_context, get_simulation_worker
from riskquant.cache.simulation_context import SimulationContext
from riskquant.core.parsing import to_risk_records
from riskquant.models.api_models import SimulateRequest, SimulateResponse
from riskquant.workers.simulation_worker import SimulationWorker

logger = logging.getLogger("riskquant.api.simulation")

router = APIRouter()


@router.post("/simulate", response_model=SimulateResponse, response_model_by_alias=True)
async def simulate(
    request: SimulateRequest,
    worker: SimulationWorker = Depends(get_simulation_worker),
    context: SimulationContext = Depends(get_simulation_context),
):
    """
    Seeded or unseeded simulation.

    Input values that had to be cleaned up are reported in `warnings`;
    they never fail the request.
    """
    records = to_risk_records(request.risks)
    warnings = [f"{r.id}: {w}" for r in records for w in r.warnings]

    snapshot, report, delta = await worker.run(
        records,
        iterations=request.iterations,
        seed=request.seed,
        mode=request.mode,
        workers=request.workers,
        scenario=request.scenario,
    )

    if request.set_as_neutral:
        if request.scenario is not None:
            warnings.append("setAsNeutral ignored for a scenario-adjusted run")
        else:
            context.set(records, snapshot, source="simulate")

    return SimulateResponse(
        run_id=snapshot.id,
        snapshot=snapshot,
        report=report,
        delta=delta,
        warnings=warnings,
    )
