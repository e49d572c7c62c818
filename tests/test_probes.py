"""
Tests for state probes — read-only, total over absent/present.
"""

import os
from pathlib import Path

import pytest

from provisioner.adapters.base import InvocationResult
from provisioner.core.models.preflight import PreflightAnswer
from provisioner.core.services import probes
from tests.simulated_machine import SimulatedMachine

# ── Version helpers ──────────────────────────────────────────────────


class TestParseVersion:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("7.4.1", (7, 4, 1)),
            ("v2.43", (2, 43)),
            ("2.45.1.windows.1", (2, 45, 1)),
            (" 1.90.0 ", (1, 90, 0)),
            ("garbage", None),
            ("", None),
        ],
    )
    def test_parse(self, text, expected):
        assert probes.parse_version(text) == expected


class TestVersionAtLeast:
    def test_greater(self):
        assert probes.version_at_least("7.4.2", "7.4.0")

    def test_equal(self):
        assert probes.version_at_least("7.4.0", "7.4.0")

    def test_lower(self):
        assert not probes.version_at_least("6.2.7", "7.0.0")

    def test_missing_components_are_zero(self):
        assert probes.version_at_least("7.4", "7.4.0")
        assert not probes.version_at_least("7", "7.0.1")

    def test_numeric_not_lexical(self):
        assert probes.version_at_least("2.10.0", "2.9.0")

    def test_unparsable_found_is_insufficient(self):
        assert not probes.version_at_least("unknown", "1.0")


# ── Version probe ────────────────────────────────────────────────────


class TestVersionProbe:
    def test_missing_tool(self, machine: SimulatedMachine):
        result = probes.version_probe("pwsh", "7.0.0")(machine.context())
        assert not result.satisfied
        assert "not installed" in result.detail

    def test_sufficient(self, tmp_path: Path):
        m = SimulatedMachine(tmp_path, versions={"pwsh": "7.4.2"})
        result = probes.version_probe("pwsh", "7.4.0")(m.context())
        assert result.satisfied
        assert result.version == "7.4.2"

    def test_too_old(self, tmp_path: Path):
        m = SimulatedMachine(tmp_path, versions={"pwsh": "6.2.7"})
        result = probes.version_probe("pwsh", "7.0.0")(m.context())
        assert not result.satisfied
        assert result.version == "6.2.7"
        assert "< required 7.0.0" in result.detail

    def test_git_windows_suffix(self, tmp_path: Path):
        m = SimulatedMachine(tmp_path, versions={"git": "2.45.1"})
        assert probes.version_probe("git", "2.40.0")(m.context()).satisfied

    def test_unparsable_output(self, machine: SimulatedMachine):
        machine.invoker.make_available("pwsh")
        machine.invoker.set_handler(
            "pwsh", lambda args: InvocationResult(tool="pwsh", stdout="weird build"),
        )
        result = probes.version_probe("pwsh", "7.0.0")(machine.context())
        assert not result.satisfied
        assert "unreadable" in result.detail

    def test_query_failure_is_unsatisfied(self, machine: SimulatedMachine):
        machine.invoker.make_available("pwsh")
        machine.invoker.set_handler(
            "pwsh", lambda args: InvocationResult(tool="pwsh", exit_code=1, stderr="crash"),
        )
        result = probes.version_probe("pwsh", "7.0.0")(machine.context())
        assert not result.satisfied

    def test_no_minimum(self, tmp_path: Path):
        m = SimulatedMachine(tmp_path, versions={"code": "1.0.0"})
        assert probes.version_probe("code")(m.context()).satisfied

    def test_probe_does_not_install(self, machine: SimulatedMachine):
        probes.version_probe("pwsh", "7.0.0")(machine.context())
        assert machine.invoker.calls_for("winget") == []


# ── Existence probes ─────────────────────────────────────────────────


class TestExistenceProbes:
    def test_executable(self, tmp_path: Path):
        m = SimulatedMachine(tmp_path, versions={"code": "1.90.0"})
        assert probes.executable_probe("code")(m.context()).satisfied
        assert not probes.executable_probe("pwsh")(m.context()).satisfied

    def test_path(self, machine: SimulatedMachine):
        target = machine.root / "marker"
        probe = probes.path_probe(lambda ctx: target, label="marker")
        assert not probe(machine.context()).satisfied
        target.mkdir()
        result = probe(machine.context())
        assert result.satisfied
        assert result.location == str(target)

    def test_module(self, machine: SimulatedMachine):
        probe = probes.module_probe("OSD")
        assert not probe(machine.context()).satisfied
        (machine.modules_path / "OSD").mkdir(parents=True)
        assert probe(machine.context()).satisfied


class TestSearchPathProbe:
    def test_missing_directory(self, machine: SimulatedMachine):
        result = probes.search_path_probe()(machine.context())
        assert not result.satisfied
        assert "does not exist" in result.detail

    def test_directory_not_on_path(self, machine: SimulatedMachine):
        machine.modules_path.mkdir()
        result = probes.search_path_probe()(machine.context())
        assert not result.satisfied
        assert "not on PSModulePath" in result.detail

    def test_directory_on_path(self, machine: SimulatedMachine):
        machine.modules_path.mkdir()
        machine.user_search_path.append(str(machine.modules_path))
        assert probes.search_path_probe()(machine.context()).satisfied

    def test_reads_threaded_value_not_os_environ(self, machine: SimulatedMachine, monkeypatch):
        machine.modules_path.mkdir()
        monkeypatch.setenv("PSModulePath", str(machine.modules_path))
        ctx = machine.context()
        assert not probes.search_path_probe()(ctx).satisfied
        ctx.add_search_path(str(machine.modules_path))
        assert probes.search_path_probe()(ctx).satisfied
        assert os.environ["PSModulePath"] == str(machine.modules_path)


# ── Configuration probe ──────────────────────────────────────────────


class TestGitConfigProbe:
    KEYS = ("user.email", "user.name")

    def test_git_missing(self, machine: SimulatedMachine):
        assert not probes.git_config_probe(self.KEYS)(machine.context()).satisfied

    def test_configured(self, tmp_path: Path):
        m = SimulatedMachine(
            tmp_path,
            versions={"git": "2.45.1"},
            git_config={"user.email": "a@corp.example", "user.name": "A"},
        )
        assert probes.git_config_probe(self.KEYS)(m.context()).satisfied

    def test_placeholder_is_unsatisfied(self, tmp_path: Path):
        m = SimulatedMachine(
            tmp_path,
            versions={"git": "2.45.1"},
            git_config={"user.email": "you@example.com", "user.name": "A"},
        )
        result = probes.git_config_probe(self.KEYS)(m.context())
        assert not result.satisfied
        assert "user.email" in result.detail

    def test_must_match_collected_answer(self, tmp_path: Path):
        m = SimulatedMachine(
            tmp_path,
            versions={"git": "2.45.1"},
            git_config={"user.email": "old@corp.example", "user.name": "A"},
        )
        ctx = m.context()
        ctx.record_answers([
            PreflightAnswer(domain="identity", key="user.email", value="new@corp.example"),
        ])
        assert not probes.git_config_probe(self.KEYS)(ctx).satisfied
