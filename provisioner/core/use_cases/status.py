"""
Status use case — probe the workstation without changing it.

Runs every capability's probe (read-only, no prompts) and reports
which ones a run would install.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.base import ToolInvoker
from provisioner.adapters.packages.powershell_gallery import PowerShellGalleryClient
from provisioner.adapters.shell.command import SubprocessInvoker
from provisioner.core.config.loader import ConfigError, load_config
from provisioner.core.context import ProvisionContext
from provisioner.core.data.catalog import build_capabilities
from provisioner.core.engine.orchestrator import Orchestrator


@dataclass
class CapabilityStatus:
    name: str
    description: str
    satisfied: bool
    detail: str = ""
    version: str | None = None
    fatal: bool = True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "satisfied": self.satisfied,
            "detail": self.detail,
            "version": self.version,
            "fatal": self.fatal,
        }


@dataclass
class StatusResult:
    """Probe results for every enabled capability."""

    capabilities: list[CapabilityStatus] = field(default_factory=list)
    error: str | None = None

    @property
    def satisfied(self) -> int:
        return sum(1 for c in self.capabilities if c.satisfied)

    @property
    def pending(self) -> list[str]:
        return [c.name for c in self.capabilities if not c.satisfied]

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "total": len(self.capabilities),
            "satisfied": self.satisfied,
            "pending": self.pending,
            "capabilities": [c.to_dict() for c in self.capabilities],
        }


def get_status(
    config_path: Path | None = None,
    invoker: ToolInvoker | None = None,
    environ: Mapping[str, str] | None = None,
) -> StatusResult:
    """Probe every enabled capability.

    Args:
        config_path: Optional explicit path to provision.yml.
        invoker: Tool invoker for version and config queries.
        environ: Environment snapshot (default: ``os.environ``).
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        return StatusResult(error=str(e))

    invoker = invoker or SubprocessInvoker()
    ctx = ProvisionContext.from_environment(
        config,
        invoker=invoker,
        packages=PowerShellGalleryClient(invoker),
        environ=environ,
    )

    orchestrator = Orchestrator(build_capabilities(config))
    result = StatusResult()
    for cap, probe in orchestrator.survey(ctx):
        result.capabilities.append(
            CapabilityStatus(
                name=cap.name,
                description=cap.description,
                satisfied=probe.satisfied,
                detail=probe.detail,
                version=probe.version,
                fatal=cap.fatal,
            )
        )
    return result
