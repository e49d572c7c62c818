"""
Orchestrator — the idempotent provisioning loop.

Per capability:

    Pending → Probing → (Skipping | Installing) → Verifying → Done

Over the table:

    Running → Completed | Halted

Prerequisite checks and preflight collection happen before the first
capability. The probe gates the installer, so a capability is
installed at most once per run and a re-run on a provisioned machine
only skips. The first failure of a fatal capability halts the run;
nothing after it is probed or installed.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from provisioner.core.context import ProvisionContext
from provisioner.core.engine.preflight import PreflightInput
from provisioner.core.engine.prerequisites import PrerequisiteCheck
from provisioner.core.errors import InstallFailure, PrerequisiteError, VerificationFailure
from provisioner.core.models.capability import Capability, ProbeResult
from provisioner.core.models.outcome import StepOutcome
from provisioner.core.models.preflight import PreflightAnswer

logger = logging.getLogger(__name__)

RERUN_GUIDANCE = "Fix the issue above and re-run; satisfied capabilities will be skipped."


@dataclass
class ProvisionReport:
    """Result of one orchestrator run: the ordered audit trail."""

    operation_id: str = ""
    state: Literal["running", "completed", "halted"] = "running"
    outcomes: list[StepOutcome] = field(default_factory=list)
    answers: list[PreflightAnswer] = field(default_factory=list)
    halt_reason: str | None = None
    halted_at: str | None = None
    dry_run: bool = False

    @property
    def completed(self) -> bool:
        return self.state == "completed"

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def installed(self) -> int:
        return sum(1 for o in self.outcomes if o.action == "installed")

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.action == "skipped")

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.action == "failed")

    def actions(self) -> dict[str, str]:
        """``{capability: action}`` in run order."""
        return {o.capability: o.action for o in self.outcomes}

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "state": self.state,
            "dry_run": self.dry_run,
            "halt_reason": self.halt_reason,
            "halted_at": self.halted_at,
            "total": self.total,
            "installed": self.installed,
            "skipped": self.skipped,
            "failed": self.failed,
            # Values stay out of reports and the ledger
            "preflight": [
                {"domain": a.domain, "key": a.key, "was_prompted": a.was_prompted}
                for a in self.answers
            ],
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }


def generate_operation_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"prov-{now}-{short}"


class Orchestrator:
    """Drive an ordered capability table through probe → install → verify.

    Args:
        capabilities: The ordered table (declaration order is run order).
        preflight: Collector for the domains the table consumes.
        prerequisites: Checks run before anything else.
    """

    def __init__(
        self,
        capabilities: list[Capability],
        preflight: PreflightInput | None = None,
        prerequisites: list[PrerequisiteCheck] | None = None,
    ):
        names = [c.name for c in capabilities]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate capability names: {', '.join(dupes)}")

        self._capabilities = list(capabilities)
        self._preflight = preflight
        self._prerequisites = list(prerequisites or [])

    @property
    def capabilities(self) -> list[Capability]:
        return list(self._capabilities)

    def required_domains(self) -> list[str]:
        """Preflight domains consumed by the table, in first-use order."""
        domains: list[str] = []
        for cap in self._capabilities:
            for domain in cap.consumes:
                if domain not in domains:
                    domains.append(domain)
        return domains

    def survey(self, ctx: ProvisionContext) -> list[tuple[Capability, ProbeResult]]:
        """Probe every capability without installing or prompting."""
        return [(cap, self._probe(cap, ctx)) for cap in self._capabilities]

    # ── Run ─────────────────────────────────────────────────────

    def run(self, ctx: ProvisionContext, operation_id: str | None = None) -> ProvisionReport:
        """Provision every capability in order.

        Never raises for capability failures: they are recorded as
        failed StepOutcomes and (when fatal) halt the run.
        """
        report = ProvisionReport(
            operation_id=operation_id or generate_operation_id(),
            dry_run=ctx.dry_run,
        )
        reporter = ctx.reporter

        reporter.begin_section("Preflight")
        try:
            self._preflight_phase(ctx, report)
        except PrerequisiteError as e:
            reporter.error(str(e))
            reporter.error(RERUN_GUIDANCE)
            report.state = "halted"
            report.halt_reason = str(e)
            logger.info("Run %s halted in preflight: %s", report.operation_id, e)
            return report

        reporter.begin_section("Capabilities")
        for cap in self._capabilities:
            outcome = self._run_step(cap, ctx)
            report.outcomes.append(outcome)

            if outcome.action == "failed" and cap.fatal:
                report.state = "halted"
                report.halt_reason = outcome.error
                report.halted_at = cap.name
                reporter.error(f"Run halted at '{cap.name}'. {RERUN_GUIDANCE}")
                break
        else:
            report.state = "completed"

        reporter.begin_section("Summary")
        reporter.info(
            f"{report.installed} installed, {report.skipped} skipped, "
            f"{report.failed} failed ({report.state})"
        )
        logger.info(
            "Run %s %s: %d installed, %d skipped, %d failed",
            report.operation_id, report.state,
            report.installed, report.skipped, report.failed,
        )
        return report

    def _preflight_phase(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        for check in self._prerequisites:
            check(ctx)

        domains = self.required_domains()
        if not domains:
            return
        if self._preflight is None:
            raise PrerequisiteError(
                f"No preflight collector for domains: {', '.join(domains)}"
            )
        for domain in domains:
            report.answers.extend(self._preflight.collect(domain))

    # ── One capability ──────────────────────────────────────────

    def _probe(self, cap: Capability, ctx: ProvisionContext) -> ProbeResult:
        """Run a probe; anything inconclusive reads as unsatisfied."""
        try:
            result = cap.probe(ctx)
        except Exception as e:
            logger.debug("Probe for %s raised", cap.name, exc_info=True)
            return ProbeResult.absent(f"probe inconclusive: {e}")
        if not isinstance(result, ProbeResult):
            return ProbeResult.absent("probe returned no result")
        return result

    def _run_step(self, cap: Capability, ctx: ProvisionContext) -> StepOutcome:
        reporter = ctx.reporter
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        # Probing
        found = self._probe(cap, ctx)
        if found.satisfied:
            reporter.skip(f"{cap.name}: {found.detail or 'already satisfied'}")
            return StepOutcome.skipped(
                cap.name, detail=found.detail, fatal=cap.fatal, duration_ms=elapsed(),
            )

        if ctx.dry_run:
            reporter.info(f"{cap.name}: would install ({found.detail})")
            return StepOutcome.skipped(
                cap.name, detail=f"dry-run: {found.detail}", fatal=cap.fatal,
                duration_ms=elapsed(),
            )

        # Installing
        reporter.info(f"{cap.name}: installing ({found.detail})")
        try:
            cap.install(ctx)
        except InstallFailure as e:
            return self._fail(cap, ctx, str(e), "install", elapsed())
        except Exception as e:
            logger.debug("Installer for %s raised", cap.name, exc_info=True)
            return self._fail(cap, ctx, f"unexpected installer error: {e}", "install", elapsed())

        # Verifying
        try:
            verified = self._probe(cap, ctx)
            if not verified.satisfied:
                raise VerificationFailure(
                    f"installer reported success but {cap.name} is still not satisfied"
                    + (f": {verified.detail}" if verified.detail else "")
                )
        except VerificationFailure as e:
            return self._fail(cap, ctx, str(e), "verification", elapsed())

        reporter.success(f"{cap.name}: installed ({verified.detail})")
        return StepOutcome.installed(
            cap.name, detail=verified.detail, fatal=cap.fatal, duration_ms=elapsed(),
        )

    def _fail(
        self,
        cap: Capability,
        ctx: ProvisionContext,
        error: str,
        kind: Literal["install", "verification"],
        duration_ms: int,
    ) -> StepOutcome:
        label = "verification failed" if kind == "verification" else "install failed"
        ctx.reporter.error(f"{cap.name}: {label}: {error}")
        if not cap.fatal:
            ctx.reporter.warning(f"{cap.name} is non-fatal; continuing")
        return StepOutcome.failed(
            cap.name, error=error, error_kind=kind, fatal=cap.fatal, duration_ms=duration_ms,
        )
