"""
History use case — recent runs from the audit ledger.
"""

from __future__ import annotations

from pathlib import Path

from provisioner.core.persistence.audit import AuditEntry, AuditWriter


def get_history(n: int = 10, path: Path | None = None) -> list[AuditEntry]:
    """Return the ``n`` most recent runs, oldest first."""
    return AuditWriter(path).read_recent(n)
