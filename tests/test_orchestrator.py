"""
Tests for the orchestrator — gating, idempotency, verification, halting.

Two kinds of tables are used: small hand-built capabilities over a
dict of machine state, and the real catalog against a
``SimulatedMachine``.
"""

from pathlib import Path

import pytest

from provisioner.core.data.catalog import build_capabilities
from provisioner.core.engine.orchestrator import Orchestrator, ProvisionReport
from provisioner.core.engine.preflight import PreflightInput
from provisioner.core.errors import InstallFailure, PrerequisiteError
from provisioner.core.models.capability import Capability, ProbeResult
from provisioner.core.models.status import StatusLevel
from tests.simulated_machine import SimulatedMachine


# ── Helpers ─────────────────────────────────────────────────────


class FakeMachine:
    """Named flags; each capability probes and sets its own."""

    def __init__(self, *present: str):
        self.state = {name: True for name in present}
        self.installs: list[str] = []

    def capability(self, name: str, fatal: bool = True, effective: bool = True, **kwargs):
        def probe(ctx):
            if self.state.get(name):
                return ProbeResult.present(f"{name} ok")
            return ProbeResult.absent(f"{name} missing")

        def install(ctx):
            self.installs.append(name)
            if effective:
                self.state[name] = True

        kwargs.setdefault("probe", probe)
        kwargs.setdefault("install", install)
        return Capability(name=name, fatal=fatal, **kwargs)


def _run(machine: SimulatedMachine, config=None, reporter=None, dry_run=False, only=None,
         prompter=None) -> ProvisionReport:
    config = config or machine.identity_config()
    ctx = machine.context(config, reporter=reporter, dry_run=dry_run)
    preflight = PreflightInput(ctx, prompter=prompter, interactive=prompter is not None)
    return Orchestrator(build_capabilities(config, only=only), preflight=preflight).run(ctx)


FULL_TABLE = [
    "pwsh", "git", "git-identity", "vscode", "adk", "adk-winpe", "modules-path", "module-OSD",
]


# ── Gate correctness ────────────────────────────────────────────


class TestGate:
    def test_satisfied_capability_is_never_installed(self, machine: SimulatedMachine):
        fake = FakeMachine("a")
        report = Orchestrator([fake.capability("a"), fake.capability("b")]).run(machine.context())
        assert fake.installs == ["b"]
        assert report.actions() == {"a": "skipped", "b": "installed"}

    def test_each_capability_installed_at_most_once(self, machine: SimulatedMachine):
        fake = FakeMachine()
        caps = [fake.capability(n) for n in ("a", "b", "c")]
        Orchestrator(caps).run(machine.context())
        assert fake.installs == ["a", "b", "c"]

    def test_outcomes_follow_declaration_order(self, machine: SimulatedMachine):
        fake = FakeMachine("b")
        caps = [fake.capability(n) for n in ("c", "a", "b")]
        report = Orchestrator(caps).run(machine.context())
        assert [o.capability for o in report.outcomes] == ["c", "a", "b"]

    def test_probe_exception_reads_as_unsatisfied(self, machine: SimulatedMachine):
        state = {"installed": False}

        def probe(ctx):
            if not state["installed"]:
                raise OSError("registry unreadable")
            return ProbeResult.present("ok")

        def install(ctx):
            state["installed"] = True

        cap = Capability(name="flaky", probe=probe, install=install)
        report = Orchestrator([cap]).run(machine.context())
        assert report.outcomes[0].action == "installed"

    def test_probe_returning_garbage_reads_as_unsatisfied(self, machine: SimulatedMachine):
        calls = []
        cap = Capability(name="odd", probe=lambda ctx: None, install=calls.append)
        report = Orchestrator([cap]).run(machine.context())
        assert len(calls) == 1
        assert report.outcomes[0].error_kind == "verification"


# ── Idempotency ─────────────────────────────────────────────────


class TestIdempotency:
    def test_fresh_machine_installs_everything(self, machine: SimulatedMachine):
        report = _run(machine)
        assert report.completed
        assert list(report.actions()) == FULL_TABLE
        assert set(report.actions().values()) == {"installed"}
        assert machine.git_config["user.email"] == "dev@corp.example"
        assert str(machine.modules_path) in machine.user_search_path

    def test_second_run_skips_everything(self, machine: SimulatedMachine, reporter):
        _run(machine)
        winget_calls = len(machine.invoker.calls_for("winget"))

        report = _run(machine, reporter=reporter)

        assert report.completed
        assert set(report.actions().values()) == {"skipped"}
        assert len(machine.invoker.calls_for("winget")) == winget_calls
        assert reporter.levels().count(StatusLevel.SKIP) == len(FULL_TABLE)

    def test_provisioned_machine_only_skips(self, machine: SimulatedMachine):
        machine.provision_everything()
        report = _run(machine)
        assert report.installed == 0
        assert report.skipped == len(FULL_TABLE)
        assert machine.installed == []

    def test_outdated_runtime_is_upgraded(self, tmp_path: Path):
        m = SimulatedMachine(tmp_path, versions={"pwsh": "6.2.0"})
        report = _run(m, only=["pwsh", "git", "vscode"])
        assert report.actions() == {
            "pwsh": "installed", "git": "installed", "vscode": "installed",
        }
        assert m.versions["pwsh"] == "7.4.2"

        again = _run(m, only=["pwsh", "git", "vscode"])
        assert set(again.actions().values()) == {"skipped"}

    def test_rerun_after_halt_resumes(self, machine: SimulatedMachine):
        machine.failing["Microsoft.VisualStudioCode"] = 1
        first = _run(machine)
        assert first.halted_at == "vscode"

        del machine.failing["Microsoft.VisualStudioCode"]
        second = _run(machine)
        assert second.completed
        actions = second.actions()
        assert actions["pwsh"] == actions["git"] == actions["git-identity"] == "skipped"
        assert actions["vscode"] == "installed"


# ── Verification ────────────────────────────────────────────────


class TestVerification:
    def test_noop_installer_is_verification_failure(self, machine: SimulatedMachine):
        machine.noop.add("Git.Git")
        report = _run(machine)
        git = report.outcomes[1]
        assert git.action == "failed"
        assert git.error_kind == "verification"
        assert "still not satisfied" in git.error
        assert report.halted_at == "git"

    def test_success_requires_reprobe(self, machine: SimulatedMachine):
        fake = FakeMachine()
        report = Orchestrator([fake.capability("a", effective=False)]).run(machine.context())
        assert report.outcomes[0].error_kind == "verification"
        assert fake.installs == ["a"]


# ── Halt semantics ──────────────────────────────────────────────


class TestHalt:
    def test_fatal_failure_halts(self, machine: SimulatedMachine):
        machine.failing["Git.Git"] = 1603
        report = _run(machine)

        assert report.state == "halted"
        assert report.halted_at == "git"
        assert [o.capability for o in report.outcomes] == ["pwsh", "git"]
        assert machine.installed == ["Microsoft.PowerShell"]
        assert "1603" in report.halt_reason
        assert report.outcomes[1].error_kind == "install"

    def test_nothing_after_halt_is_probed(self, machine: SimulatedMachine):
        fake = FakeMachine()
        probed = []

        def probe(ctx):
            probed.append("c")
            return ProbeResult.absent()

        def boom(ctx):
            raise InstallFailure("broken")

        caps = [
            fake.capability("a"),
            fake.capability("b", install=boom),
            fake.capability("c", probe=probe),
        ]
        report = Orchestrator(caps).run(machine.context())
        assert report.halted_at == "b"
        assert probed == []

    def test_non_fatal_failure_continues(self, machine: SimulatedMachine, reporter):
        machine.failing["Microsoft.VisualStudioCode"] = 1
        config = machine.identity_config(capabilities={"vscode": {"fatal": False}})
        report = _run(machine, config=config, reporter=reporter)

        assert report.completed
        assert report.failed == 1
        assert report.actions()["vscode"] == "failed"
        assert report.actions()["module-OSD"] == "installed"
        assert any("non-fatal" in e.message for e in reporter.events)

    def test_unexpected_installer_exception_is_failure(self, machine: SimulatedMachine):
        def install(ctx):
            raise KeyError("missing")

        fake = FakeMachine()
        report = Orchestrator([fake.capability("a", install=install)]).run(machine.context())
        assert report.outcomes[0].action == "failed"
        assert "unexpected installer error" in report.outcomes[0].error

    def test_prerequisite_failure_records_no_outcomes(self, machine: SimulatedMachine):
        def denied(ctx):
            raise PrerequisiteError("not elevated")

        fake = FakeMachine()
        report = Orchestrator([fake.capability("a")], prerequisites=[denied]).run(machine.context())
        assert report.state == "halted"
        assert report.outcomes == []
        assert report.halted_at is None
        assert report.halt_reason == "not elevated"
        assert fake.installs == []

    def test_missing_preflight_collector_halts(self, machine: SimulatedMachine):
        fake = FakeMachine()
        cap = fake.capability("id", consumes=("identity",))
        report = Orchestrator([cap]).run(machine.context())
        assert report.state == "halted"
        assert "No preflight collector" in report.halt_reason

    def test_non_interactive_missing_identity_halts_before_install(self, machine: SimulatedMachine):
        config = machine.config()
        ctx = machine.context(config)
        preflight = PreflightInput(ctx, interactive=False)
        report = Orchestrator(build_capabilities(config), preflight=preflight).run(ctx)
        assert report.state == "halted"
        assert report.outcomes == []
        assert machine.invoker.calls_for("winget") == []


# ── Preflight ordering ──────────────────────────────────────────


class TestPreflightOrdering:
    def test_prompts_happen_before_first_install(self, machine: SimulatedMachine):
        installs_at_prompt: list[int] = []

        def prompter(label: str) -> str:
            installs_at_prompt.append(len(machine.installed))
            return "ask@corp.example" if "email" in label else "Asked Person"

        report = _run(machine, config=machine.config(), prompter=prompter)

        assert report.completed
        assert installs_at_prompt == [0, 0]
        assert [a.was_prompted for a in report.answers] == [True, True]
        assert machine.git_config["user.name"] == "Asked Person"

    def test_required_domains(self):
        fake = FakeMachine()
        caps = [
            fake.capability("a", consumes=("identity",)),
            fake.capability("b", consumes=("identity", "site")),
        ]
        assert Orchestrator(caps).required_domains() == ["identity", "site"]


# ── Dry run ─────────────────────────────────────────────────────


class TestDryRun:
    def test_dry_run_changes_nothing(self, machine: SimulatedMachine):
        report = _run(machine, dry_run=True)
        assert report.completed
        assert report.dry_run
        assert set(report.actions().values()) == {"skipped"}
        assert all(o.detail.startswith("dry-run:") for o in report.outcomes)
        assert machine.invoker.calls_for("winget") == []
        assert machine.packages.saved == []


# ── Construction and reporting ──────────────────────────────────


class TestOrchestratorMisc:
    def test_duplicate_names_rejected(self):
        fake = FakeMachine()
        with pytest.raises(ValueError, match="Duplicate capability names: a"):
            Orchestrator([fake.capability("a"), fake.capability("a")])

    def test_survey_probes_without_installing(self, machine: SimulatedMachine):
        fake = FakeMachine("a")
        results = Orchestrator([fake.capability("a"), fake.capability("b")]).survey(
            machine.context()
        )
        assert [(c.name, r.satisfied) for c, r in results] == [("a", True), ("b", False)]
        assert fake.installs == []

    def test_sections_reported(self, machine: SimulatedMachine, reporter):
        fake = FakeMachine()
        Orchestrator([fake.capability("a")]).run(machine.context(reporter=reporter))
        sections = [e.message for e in reporter.events if e.level == StatusLevel.SECTION]
        assert sections == ["Preflight", "Capabilities", "Summary"]

    def test_operation_id(self, machine: SimulatedMachine):
        report = Orchestrator([]).run(machine.context())
        assert report.operation_id.startswith("prov-")
        assert report.completed

    def test_report_dict_omits_answer_values(self, machine: SimulatedMachine):
        report = _run(machine)
        data = report.to_dict()
        assert data["installed"] == len(FULL_TABLE)
        assert {"domain": "identity", "key": "user.email", "was_prompted": False} in data["preflight"]
        assert "dev@corp.example" not in str(data)
