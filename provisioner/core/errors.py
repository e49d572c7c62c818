"""
Provisioning error taxonomy.

Probe failures are deliberately absent: an inconclusive probe is
always normalised to ``satisfied=False`` and never raised.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all provisioning failures."""


class PrerequisiteError(ProvisionError):
    """The machine does not meet a requirement the run cannot remediate.

    Raised before any capability runs (e.g. missing privilege, or a
    preflight field that needs a prompt in non-interactive mode).
    """


class InstallFailure(ProvisionError):
    """An installer's external tool returned non-zero or raised."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output

    def __str__(self) -> str:
        text = super().__str__()
        if self.output:
            text = f"{text}: {self.output}"
        return text


class VerificationFailure(ProvisionError):
    """The installer reported success but a re-probe is still unsatisfied."""
