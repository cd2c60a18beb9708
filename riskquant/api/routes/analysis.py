"""
Analysis Route — POST /analysis

One full decision → forecast → instability cycle over the submitted risks.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from riskquant.api.dependencies import get_pipeline
from riskquant.core.parsing import to_risk_records
from riskquant.engine.pipeline import AnalysisPipeline
from riskquant.models.api_models import AnalysisRequest, AnalysisResponse

router = APIRouter()


@router.post("/analysis", response_model=AnalysisResponse, response_model_by_alias=True)
async def analysis(
    request: AnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    records = to_risk_records(request.risks)
    response = await pipeline.run(
        records,
        simulation_history=request.simulation_history,
        profile=request.profile,
        lens_mode=request.lens_mode,
        manual_scenario=request.manual_scenario,
    )
    response.warnings.extend(f"{r.id}: {w}" for r in records for w in r.warnings)
    return response
