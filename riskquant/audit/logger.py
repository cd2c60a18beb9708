"""
Audit Logger — Structured JSON-lines audit trail.

Records every simulation, optimisation and analysis run with: timestamp,
run_id, kind, risk count, iterations, duration and headline outputs.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from riskquant.config import settings
from riskquant.models.api_models import AuditEntry

logger = logging.getLogger("riskquant.audit")


class AuditLogger:
    """Appends one JSON line per engine run."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    def log(self, entry: AuditEntry) -> None:
        """Append an entry. Write failures are logged, never raised."""
        line = json.dumps(
            {
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                **entry.model_dump(by_alias=True),
            }
        )
        try:
            with open(self.log_path, "a") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit entry {entry.run_id}: {e}")

    def read_recent(self, count: int = 50, kind: str | None = None) -> list[dict]:
        """Most recent entries, oldest first, optionally of one kind only."""
        try:
            with open(self.log_path) as f:
                lines = [line.strip() for line in f if line.strip()]
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Failed to read audit log: {e}")
            return []

        entries: list[dict] = []
        for line in lines:
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if kind is None or record.get("kind") == kind:
                entries.append(record)
        return entries[-count:]
