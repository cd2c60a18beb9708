"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from riskquant.audit.logger import AuditLogger
from riskquant.cache.simulation_context import SimulationContext
from riskquant.config import settings
from riskquant.engine.history import JsonFileHistoryBackend, SnapshotHistoryStore
from riskquant.engine.pipeline import AnalysisPipeline
from riskquant.workers.simulation_worker import SimulationWorker


@lru_cache
def get_simulation_context() -> SimulationContext:
    """Shared simulation context (risks + neutral snapshot)."""
    return SimulationContext()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()


@lru_cache
def get_history_store() -> SnapshotHistoryStore:
    """Snapshot history, file-backed when snapshot_history_path is set."""
    backend = (
        JsonFileHistoryBackend(settings.snapshot_history_path)
        if settings.snapshot_history_path
        else None
    )
    return SnapshotHistoryStore(backend=backend)


@lru_cache
def get_simulation_worker() -> SimulationWorker:
    """Shared simulation worker singleton."""
    return SimulationWorker(audit=get_audit_logger())


@lru_cache
def get_pipeline() -> AnalysisPipeline:
    """Shared analysis pipeline singleton."""
    return AnalysisPipeline(
        history=get_history_store(),
        worker=get_simulation_worker(),
        audit=get_audit_logger(),
    )
