"""
Audit ledger — append-only provisioning history.

Every run appends one entry to an NDJSON (newline-delimited JSON)
file: what was probed, installed, skipped, or failed, and where a
halted run stopped. Preflight values are never written; only which
keys were prompted for.

The ledger is append-only: entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_DIR = "~/.provisioner"
DEFAULT_AUDIT_FILE = "audit.ndjson"
STATE_DIR_ENV = "PROV_STATE_DIR"


class AuditEntry(BaseModel):
    """A single audit log entry (one provisioning run)."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    state: str = ""                 # completed, halted
    dry_run: bool = False

    capabilities_total: int = 0
    installed: int = 0
    skipped: int = 0
    failed: int = 0
    duration_ms: int = 0

    halted_at: str | None = None
    halt_reason: str | None = None

    # capability → action, in run order
    outcomes: list[dict[str, Any]] = Field(default_factory=list)
    prompted_keys: list[str] = Field(default_factory=list)


def default_audit_path() -> Path:
    """``$PROV_STATE_DIR/audit.ndjson`` or ``~/.provisioner/audit.ndjson``."""
    base = os.environ.get(STATE_DIR_ENV) or DEFAULT_AUDIT_DIR
    return Path(base).expanduser() / DEFAULT_AUDIT_FILE


class AuditWriter:
    """Append-only audit ledger writer.

    Each call to write() appends a single JSON line to the ledger file.
    The file is created if it doesn't exist.
    """

    def __init__(self, path: Path | None = None):
        self._path = path if path is not None else default_audit_path()

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> bool:
        """Append an audit entry to the ledger.

        Returns:
            True if the entry was written. A ledger failure is logged,
            never raised: it must not mask the run's own outcome.
        """
        data = entry.model_dump(mode="json")
        line = json.dumps(data, ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)
            return False

        logger.debug("Audit entry written: %s", entry.operation_id)
        return True

    def read_all(self) -> list[AuditEntry]:
        """Read all entries from the ledger, oldest first."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """Read the most recent N entries."""
        return self.read_all()[-n:] if n > 0 else []

    def entry_count(self) -> int:
        if not self._path.is_file():
            return 0
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError:
            return 0
