"""
Capability and ProbeResult models — the provisioning table contract.

A Capability pairs a read-only probe with a mutating installer.
The orchestrator only ever talks to capabilities through these two
callables, so capability-specific behaviour is data, not control flow.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProbeResult(BaseModel):
    """Outcome of evaluating one capability against the live machine."""

    model_config = ConfigDict(frozen=True)

    satisfied: bool
    detail: str = ""
    version: str | None = None      # detected version, when known
    location: str | None = None     # detected path, when known

    @classmethod
    def present(cls, detail: str = "", **kwargs: Any) -> ProbeResult:
        """Create a satisfied result."""
        return cls(satisfied=True, detail=detail, **kwargs)

    @classmethod
    def absent(cls, detail: str = "", **kwargs: Any) -> ProbeResult:
        """Create an unsatisfied result."""
        return cls(satisfied=False, detail=detail, **kwargs)


class Capability(BaseModel):
    """A named unit of provisioning state.

    Declared once, in dependency order, from the static catalog.
    Immutable after construction and never persisted: the state
    lives on the target machine, not in this model.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    minimum_version: str | None = None
    probe: Callable[[Any], ProbeResult]
    install: Callable[[Any], None]
    fatal: bool = True
    consumes: tuple[str, ...] = Field(default_factory=tuple)   # preflight domains

    def __repr__(self) -> str:
        return f"<Capability name={self.name!r} fatal={self.fatal}>"
