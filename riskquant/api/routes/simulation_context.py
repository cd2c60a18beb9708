"""
Simulation Context Routes — POST /simulation-context, GET /simulation-context/status
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from riskquant.api.dependencies import get_simulation_context
from riskquant.cache.simulation_context import SimulationContext
from riskquant.core.parsing import to_risk_records
from riskquant.models.api_models import (
    SimulationContextRequest,
    SimulationContextResponse,
    SimulationContextStatus,
)

router = APIRouter()


@router.post(
    "/simulation-context",
    response_model=SimulationContextResponse,
    response_model_by_alias=True,
)
async def set_simulation_context(
    request: SimulationContextRequest,
    context: SimulationContext = Depends(get_simulation_context),
):
    """Replace the risks and neutral snapshot the optimiser reads."""
    entry = context.set(to_risk_records(request.risks), request.neutral_snapshot, source="sync")
    snapshot = entry.neutral_snapshot
    return SimulationContextResponse(
        risk_count=len(entry.risks),
        has_snapshot=snapshot is not None,
        neutral_p80=snapshot.p80_cost if snapshot is not None else None,
    )


@router.get(
    "/simulation-context/status",
    response_model=SimulationContextStatus,
    response_model_by_alias=True,
)
async def simulation_context_status(
    context: SimulationContext = Depends(get_simulation_context),
):
    return context.status()
