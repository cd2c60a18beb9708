"""
Mitigation Optimisation Routes — POST/GET /mitigation-optimisation

POST validates spend steps and budget cap, then ranks risks by leverage
against the context's neutral P80. GET runs the same loader with defaults
as a smoke test.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import APIRouter, Depends, HTTPException

from riskquant.api.dependencies import get_audit_logger, get_simulation_context
from riskquant.audit.logger import AuditLogger
from riskquant.cache.simulation_context import SimulationContext
from riskquant.core.optimisation import compute_mitigation_optimisation
from riskquant.models.api_models import (
    AuditEntry,
    OptimisationProbe,
    OptimisationRequest,
    OptimisationResponse,
)

logger = logging.getLogger("riskquant.api.mitigation")

router = APIRouter()


@router.post(
    "/mitigation-optimisation",
    response_model=OptimisationResponse,
    response_model_by_alias=True,
)
async def mitigation_optimisation(
    request: OptimisationRequest,
    context: SimulationContext = Depends(get_simulation_context),
    audit: AuditLogger = Depends(get_audit_logger),
):
    request_id = str(uuid.uuid4())
    start_time = time.monotonic()
    entry = context.get()

    try:
        result = compute_mitigation_optimisation(
            entry.risks,
            entry.neutral_snapshot,
            spend_steps=request.spend_steps,
            benefit_metric=request.benefit_metric,
            budget_cap=request.budget_cap,
        )
    except ValueError as e:
        logger.warning(f"[{request_id}] Optimisation rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    audit.log(
        AuditEntry(
            run_id=request_id,
            kind="optimisation",
            risk_count=len(entry.risks),
            duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            p80_cost=result.baseline.neutral_p80,
            detail={
                "budgetCap": result.budget_plan.budget_cap if result.budget_plan else None,
                "topRisk": result.ranked[0].risk_id if result.ranked else None,
            },
        )
    )
    return OptimisationResponse(request_id=request_id, result=result)


@router.get(
    "/mitigation-optimisation",
    response_model=OptimisationProbe,
    response_model_by_alias=True,
)
async def mitigation_optimisation_probe(
    context: SimulationContext = Depends(get_simulation_context),
):
    entry = context.get()
    if entry.neutral_snapshot is None:
        return OptimisationProbe(has_neutral_snapshot=False, neutral_p80=0.0, sample_ranked_count=0)

    try:
        result = compute_mitigation_optimisation(entry.risks, entry.neutral_snapshot)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return OptimisationProbe(
        has_neutral_snapshot=True,
        neutral_p80=result.baseline.neutral_p80,
        sample_ranked_count=len(result.ranked),
    )
