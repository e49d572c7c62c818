"""
Run use case — provision the workstation.

This is the top-level vertical slice: load config, build the
capability table, assemble the context and collaborators, run the
orchestrator, and append the result to the audit ledger.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.base import PackageRepositoryClient, ToolInvoker
from provisioner.adapters.packages.powershell_gallery import PowerShellGalleryClient
from provisioner.adapters.shell.command import SubprocessInvoker
from provisioner.core.config.loader import ConfigError, load_config
from provisioner.core.context import ProvisionContext
from provisioner.core.data.catalog import build_capabilities, capability_names
from provisioner.core.engine.orchestrator import Orchestrator, ProvisionReport
from provisioner.core.engine.preflight import PreflightInput, Prompter
from provisioner.core.engine.prerequisites import PrerequisiteCheck, default_checks
from provisioner.core.observability.reporter import StatusReporter
from provisioner.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a provisioning run."""

    report: ProvisionReport | None = None
    capabilities: list[str] = field(default_factory=list)
    audit_path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.completed

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["capabilities"] = self.capabilities
        result["audit_path"] = str(self.audit_path) if self.audit_path else None
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def build_audit_entry(report: ProvisionReport, duration_ms: int = 0) -> AuditEntry:
    """Summarise a report into a ledger entry (no preflight values)."""
    return AuditEntry(
        operation_id=report.operation_id,
        state=report.state,
        dry_run=report.dry_run,
        capabilities_total=report.total,
        installed=report.installed,
        skipped=report.skipped,
        failed=report.failed,
        duration_ms=duration_ms,
        halted_at=report.halted_at,
        halt_reason=report.halt_reason,
        outcomes=[
            {"capability": o.capability, "action": o.action, "error_kind": o.error_kind}
            for o in report.outcomes
        ],
        prompted_keys=[a.key for a in report.answers if a.was_prompted],
    )


def run_provision(
    config_path: Path | None = None,
    only: list[str] | None = None,
    dry_run: bool = False,
    interactive: bool = True,
    invoker: ToolInvoker | None = None,
    packages: PackageRepositoryClient | None = None,
    reporter: StatusReporter | None = None,
    prompter: Prompter | None = None,
    environ: Mapping[str, str] | None = None,
    prerequisites: list[PrerequisiteCheck] | None = None,
    audit_writer: AuditWriter | None = None,
    record: bool = True,
) -> RunResult:
    """Provision every enabled capability.

    Args:
        config_path: Optional explicit path to provision.yml.
        only: Optional subset of capability names.
        dry_run: Probe only; report what would be installed.
        interactive: Allow preflight prompts.
        invoker: Tool invoker (default: real subprocesses).
        packages: Module fetch client (default: PowerShell Gallery).
        reporter: Status reporter (default: logging sink only).
        prompter: Line prompt used by preflight.
        environ: Environment snapshot (default: ``os.environ``).
        prerequisites: Override the config-implied prerequisite checks.
        audit_writer: Ledger writer (default: ``~/.provisioner``).
        record: Whether to append the run to the audit ledger.

    Returns:
        RunResult with the report, or an error for configuration problems.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        return RunResult(error=str(e))

    if only:
        unknown = sorted(set(only) - set(capability_names(config)))
        if unknown:
            return RunResult(error=f"Unknown capabilities: {', '.join(unknown)}")
        enabled = {c.name for c in build_capabilities(config)}
        disabled = sorted(set(only) - enabled)
        if disabled:
            return RunResult(
                error=f"Capabilities disabled in configuration: {', '.join(disabled)}"
            )

    invoker = invoker or SubprocessInvoker()
    packages = packages or PowerShellGalleryClient(invoker)

    ctx = ProvisionContext.from_environment(
        config,
        invoker=invoker,
        packages=packages,
        reporter=reporter,
        environ=environ,
        dry_run=dry_run,
    )

    capabilities = build_capabilities(config, only)
    orchestrator = Orchestrator(
        capabilities,
        preflight=PreflightInput(ctx, prompter=prompter, interactive=interactive),
        prerequisites=prerequisites if prerequisites is not None else default_checks(ctx),
    )

    start = time.monotonic()
    report = orchestrator.run(ctx)
    elapsed_ms = int((time.monotonic() - start) * 1000)

    result = RunResult(report=report, capabilities=[c.name for c in capabilities])

    if record:
        writer = audit_writer or AuditWriter()
        if writer.write(build_audit_entry(report, elapsed_ms)):
            result.audit_path = writer.path

    return result
