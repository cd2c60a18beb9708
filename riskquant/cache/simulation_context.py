"""
Simulation Context — Holds the risks and neutral snapshot the optimiser reads.

Set by an explicit sync call (POST /simulation-context or a neutral
simulation run) and handed to the optimisation entry point by the caller.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

from riskquant.models.api_models import SimulationContextStatus
from riskquant.models.risk_models import RiskRecord
from riskquant.models.simulation_models import SimulationSnapshot

logger = logging.getLogger("riskquant.cache.context")


@dataclass(frozen=True)
class ContextEntry:
    """What the optimiser needs: canonical risks and the neutral baseline."""

    risks: list[RiskRecord] = field(default_factory=list)
    neutral_snapshot: SimulationSnapshot | None = None
    last_updated_at: str | None = None
    last_source: str | None = None


class SimulationContext:
    """
    In-memory holder of the latest risks and neutral snapshot.

    Each set() replaces the whole entry, so readers always see a consistent pair.
    """

    def __init__(self) -> None:
        self._entry = ContextEntry()
        self._lock = threading.Lock()

    def set(
        self,
        risks: list[RiskRecord],
        neutral_snapshot: SimulationSnapshot | None,
        source: str = "api",
    ) -> ContextEntry:
        entry = ContextEntry(
            risks=list(risks),
            neutral_snapshot=neutral_snapshot,
            last_updated_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            last_source=source,
        )
        with self._lock:
            self._entry = entry
        logger.info(
            f"Simulation context set from {source}: {len(entry.risks)} risks, "
            f"snapshot={'yes' if neutral_snapshot else 'no'}"
        )
        return entry

    def get(self) -> ContextEntry:
        with self._lock:
            return self._entry

    def status(self) -> SimulationContextStatus:
        """Read-only probe. neutralP80 is 0 when there is no baseline yet."""
        entry = self.get()
        snapshot = entry.neutral_snapshot
        return SimulationContextStatus(
            risk_count=len(entry.risks),
            has_neutral_snapshot=snapshot is not None,
            neutral_p80=snapshot.p80_cost if snapshot is not None else 0.0,
            last_updated_at=entry.last_updated_at,
            last_source=entry.last_source,
        )

    def clear(self) -> None:
        with self._lock:
            self._entry = ContextEntry()
