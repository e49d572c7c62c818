"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from provisioner.core.observability.reporter import StatusReporter
from tests.simulated_machine import SimulatedMachine


@pytest.fixture
def machine(tmp_path: Path) -> SimulatedMachine:
    """A fresh machine: nothing installed, winget available."""
    return SimulatedMachine(tmp_path)


@pytest.fixture
def reporter() -> StatusReporter:
    """A reporter with no sinks; inspect ``.events``."""
    return StatusReporter(sinks=[])


@pytest.fixture
def tmp_state_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point the audit ledger at a temporary directory."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    monkeypatch.setenv("PROV_STATE_DIR", str(state_dir))
    return state_dir
