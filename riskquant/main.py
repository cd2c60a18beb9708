"""
RiskQuant FastAPI Application — Risk quantification engine service.

  POST /simulate                      → seeded Monte Carlo snapshot + report
  POST /simulation-context            → set risks + neutral snapshot
  GET  /simulation-context/status     → context probe
  POST /mitigation-optimisation       → leverage ranking + budget plan
  GET  /mitigation-optimisation       → smoke test with default steps
  POST /analysis                      → decisions, forecasts, EII
  GET  /health                        → {"status": "ok"}
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from riskquant.api.routes.analysis import router as analysis_router
from riskquant.api.routes.health import router as health_router
from riskquant.api.routes.mitigation import router as mitigation_router
from riskquant.api.routes.simulation import router as simulation_router
from riskquant.api.routes.simulation_context import router as context_router
from riskquant.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("riskquant")

app = FastAPI(
    title="RiskQuant",
    description="Risk quantification engine — simulation, scoring, forecasting, optimisation",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(simulation_router)
app.include_router(context_router)
app.include_router(mitigation_router)
app.include_router(analysis_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = await request.body()
    logger.error(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_errors(exc), "body": body.decode("utf-8", "replace")[:100]},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("riskquant.main:app", host=settings.host, port=settings.port)
