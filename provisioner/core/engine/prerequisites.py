"""
Prerequisite checks — hard requirements verified before any capability.

A check raises ``PrerequisiteError`` when the machine is not in a
state the run can remediate. Checks are read-only.
"""

from __future__ import annotations

import ctypes
import os
import sys
from collections.abc import Callable

from provisioner.core.context import ProvisionContext
from provisioner.core.errors import PrerequisiteError

PrerequisiteCheck = Callable[[ProvisionContext], None]


def is_elevated() -> bool:
    """Whether the current process runs with administrator/root rights."""
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def require_elevation(ctx: ProvisionContext) -> None:
    if not is_elevated():
        raise PrerequisiteError(
            "Administrator privileges are required; re-run from an elevated shell"
        )


def default_checks(ctx: ProvisionContext) -> list[PrerequisiteCheck]:
    """Checks implied by the configuration."""
    checks: list[PrerequisiteCheck] = []
    if ctx.config.require_admin:
        checks.append(require_elevation)
    return checks
