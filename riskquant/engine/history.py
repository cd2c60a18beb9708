"""
Snapshot History Store — Bounded per-risk score history with momentum on append.

Each risk keeps its most recent `cap` snapshots, oldest first. Appends for the
same risk are serialised by a per-risk lock; different risks never contend.
An optional backend persists the whole store after every append.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from riskquant.config import settings
from riskquant.core.momentum import compute_momentum
from riskquant.models.forecast_models import RiskSnapshot

logger = logging.getLogger("riskquant.engine.history")


class JsonFileHistoryBackend:
    """Persists history as one JSON document. A missing or corrupt file loads as empty."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, list[RiskSnapshot]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                raw = json.load(f)
            return {
                risk_id: [RiskSnapshot.model_validate(s) for s in snapshots]
                for risk_id, snapshots in raw.items()
            }
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable history file {self.path}: {e}")
            return {}

    def save(self, data: dict[str, list[RiskSnapshot]]) -> None:
        payload = {
            risk_id: [s.model_dump(by_alias=True) for s in snapshots]
            for risk_id, snapshots in data.items()
        }
        try:
            with open(self.path, "w") as f:
                json.dump(payload, f)
        except OSError as e:
            logger.error(f"Failed to persist snapshot history: {e}")


class SnapshotHistoryStore:
    """
    Append-only, capped history of RiskSnapshots keyed by risk id.

    Usage:
        store = SnapshotHistoryStore()
        store.append("R1", RiskSnapshot(risk_id="R1", cycle_index=1, ...))
        store.latest("R1").momentum
    """

    def __init__(
        self,
        cap: int | None = None,
        momentum_window: int | None = None,
        backend: JsonFileHistoryBackend | None = None,
    ) -> None:
        self.cap = max(1, cap if cap is not None else settings.snapshot_history_cap)
        self.momentum_window = momentum_window or settings.momentum_window
        self.backend = backend
        self._history: dict[str, list[RiskSnapshot]] = backend.load() if backend else {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._save_lock = threading.Lock()

    def _lock_for(self, risk_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(risk_id)
            if lock is None:
                lock = self._locks[risk_id] = threading.Lock()
            return lock

    def append(self, risk_id: str, snapshot: RiskSnapshot) -> RiskSnapshot:
        """
        Record a snapshot and return it with momentum filled in.

        Momentum covers the last `momentum_window` snapshots including this one.
        """
        with self._lock_for(risk_id):
            existing = self._history.get(risk_id, [])
            window = existing[-(self.momentum_window - 1):] if self.momentum_window > 1 else []
            momentum = compute_momentum([*window, snapshot], self.momentum_window)
            stored = snapshot.model_copy(
                update={"risk_id": risk_id, "momentum": momentum.momentum_per_cycle}
            )
            self._history[risk_id] = [*existing, stored][-self.cap:]

        if self.backend is not None:
            with self._save_lock:
                self.backend.save(self.snapshot_all())
        logger.debug(f"Snapshot appended: {risk_id} cycle={stored.cycle_index}")
        return stored

    def history(self, risk_id: str) -> list[RiskSnapshot]:
        """Snapshots for a risk, oldest first. A copy; the store is never exposed."""
        return list(self._history.get(risk_id, []))

    def latest(self, risk_id: str) -> RiskSnapshot | None:
        snapshots = self._history.get(risk_id)
        return snapshots[-1] if snapshots else None

    def risk_ids(self) -> list[str]:
        return list(self._history)

    def next_cycle_index(self) -> int:
        """One past the highest cycle seen for any risk."""
        cycles = [s[-1].cycle_index for s in list(self._history.values()) if s]
        return max(cycles, default=0) + 1

    def snapshot_all(self) -> dict[str, list[RiskSnapshot]]:
        return {risk_id: list(snapshots) for risk_id, snapshots in list(self._history.items())}

    def clear(self) -> None:
        self._history.clear()
        logger.debug("Snapshot history cleared")
