"""
StepOutcome — the per-capability audit record of a run.

The orchestrator accumulates one outcome per capability it reached.
The ordered sequence is the audit trail: it is printed by the CLI,
returned as JSON, and summarised into the audit ledger.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class StepOutcome(BaseModel):
    """Result of running one capability through probe → install → re-probe."""

    capability: str
    action: Literal["skipped", "installed", "failed"]
    detail: str = ""
    error: str | None = None
    error_kind: Literal["install", "verification"] | None = None
    fatal: bool = True
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the capability ended in a satisfied state."""
        return self.action != "failed"

    @classmethod
    def skipped(cls, capability: str, detail: str = "", **kwargs: Any) -> StepOutcome:
        """Create a skip outcome (probe already satisfied)."""
        return cls(capability=capability, action="skipped", detail=detail, **kwargs)

    @classmethod
    def installed(cls, capability: str, detail: str = "", **kwargs: Any) -> StepOutcome:
        """Create an install outcome (installed and verified)."""
        return cls(capability=capability, action="installed", detail=detail, **kwargs)

    @classmethod
    def failed(
        cls,
        capability: str,
        error: str,
        error_kind: Literal["install", "verification"] = "install",
        **kwargs: Any,
    ) -> StepOutcome:
        """Create a failure outcome."""
        return cls(
            capability=capability,
            action="failed",
            error=error,
            error_kind=error_kind,
            **kwargs,
        )
