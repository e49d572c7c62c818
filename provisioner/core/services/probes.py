"""
State probes — read-only detectors, one factory per strategy.

Each factory returns a ``probe(context) -> ProbeResult`` closure.
Probes never mutate the machine, never prompt, and never raise for
an absent capability: a missing tool, a failed query, or unparsable
version output all yield ``satisfied=False``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

from provisioner.core.context import ProvisionContext
from provisioner.core.models.capability import ProbeResult
from provisioner.core.services.identity import is_placeholder, read_git_config

logger = logging.getLogger(__name__)

Probe = Callable[[ProvisionContext], ProbeResult]

# tool → (version arguments, regex capturing the version)
VERSION_COMMANDS: dict[str, tuple[list[str], str]] = {
    "pwsh":  (["--version"], r"PowerShell\s+v?(\d+\.\d+(?:\.\d+)?)"),
    "git":   (["--version"], r"git version\s+(\d+\.\d+(?:\.\d+)?)"),
    "code":  (["--version"], r"^(\d+\.\d+(?:\.\d+)?)"),
    "winget": (["--version"], r"v?(\d+\.\d+(?:\.\d+)?)"),
}


# ── Version helpers (pure) ──────────────────────────────────────


def parse_version(text: str) -> tuple[int, ...] | None:
    """Parse ``"7.4.1"`` / ``"v2.43"`` into an integer tuple, or None."""
    match = re.match(r"v?(\d+(?:\.\d+)*)", text.strip())
    if not match:
        return None
    return tuple(int(x) for x in match.group(1).split(".")[:3])


def version_at_least(found: str, minimum: str) -> bool:
    """``found >= minimum`` with missing components read as zero.

    An unparsable ``found`` is never sufficient.
    """
    have = parse_version(found)
    want = parse_version(minimum)
    if have is None:
        return False
    if want is None:
        return True
    width = max(len(have), len(want))
    have += (0,) * (width - len(have))
    want += (0,) * (width - len(want))
    return have >= want


def extract_version(output: str, pattern: str) -> str | None:
    match = re.search(pattern, output, re.MULTILINE)
    return match.group(1) if match else None


# ── Existence probes ────────────────────────────────────────────


def executable_probe(tool: str) -> Probe:
    """Satisfied iff ``tool`` can be launched."""

    def probe(ctx: ProvisionContext) -> ProbeResult:
        if ctx.invoker.is_available(tool):
            return ProbeResult.present(f"{tool} found")
        return ProbeResult.absent(f"{tool} not found")

    return probe


def path_probe(path_for: Callable[[ProvisionContext], Path], label: str = "") -> Probe:
    """Satisfied iff the path computed from the context exists."""

    def probe(ctx: ProvisionContext) -> ProbeResult:
        path = path_for(ctx)
        name = label or str(path)
        if path.exists():
            return ProbeResult.present(f"{name} present", location=str(path))
        return ProbeResult.absent(f"{name} missing at {path}")

    return probe


def module_probe(module: str) -> Probe:
    """Satisfied iff ``<modules_path>/<module>`` is a directory."""
    return path_probe(
        lambda ctx: ctx.config.resolved_modules_path() / module,
        label=f"module {module}",
    )


def search_path_probe() -> Probe:
    """Satisfied iff the modules directory exists and is on the search path."""

    def probe(ctx: ProvisionContext) -> ProbeResult:
        directory = ctx.config.resolved_modules_path()
        variable = ctx.config.search_path_variable
        if not directory.is_dir():
            return ProbeResult.absent(f"{directory} does not exist")
        if not ctx.has_search_path(str(directory)):
            return ProbeResult.absent(f"{directory} not on {variable}")
        return ProbeResult.present(f"{directory} on {variable}", location=str(directory))

    return probe


# ── Version probe ───────────────────────────────────────────────


def version_probe(tool: str, minimum: str | None = None) -> Probe:
    """Satisfied iff ``tool`` reports a version ≥ ``minimum``.

    Uses ``VERSION_COMMANDS`` for the query. With no minimum, any
    parsable version satisfies.
    """
    args, pattern = VERSION_COMMANDS.get(tool, (["--version"], r"(\d+\.\d+(?:\.\d+)?)"))

    def probe(ctx: ProvisionContext) -> ProbeResult:
        if not ctx.invoker.is_available(tool):
            return ProbeResult.absent(f"{tool} not installed")

        result = ctx.invoker.execute(tool, args, env=ctx.child_env())
        if not result.ok:
            return ProbeResult.absent(f"{tool} version query failed (exit {result.exit_code})")

        # Some tools write their version to stderr
        version = extract_version(f"{result.stdout}\n{result.stderr}", pattern)
        if version is None:
            return ProbeResult.absent(f"{tool} version unreadable")

        if minimum and not version_at_least(version, minimum):
            return ProbeResult.absent(
                f"{tool} {version} < required {minimum}", version=version,
            )
        return ProbeResult.present(f"{tool} {version}", version=version)

    return probe


# ── Configuration probe ─────────────────────────────────────────


def git_config_probe(keys: tuple[str, ...]) -> Probe:
    """Satisfied iff every git ``--global`` key holds a real value.

    When preflight collected a value for a key, the configured value
    must also match it.
    """

    def probe(ctx: ProvisionContext) -> ProbeResult:
        for key in keys:
            current = read_git_config(ctx.invoker, key)
            if is_placeholder(key, current):
                return ProbeResult.absent(f"{key} not configured")
            wanted = ctx.answer(key)
            if wanted is not None and wanted != current:
                return ProbeResult.absent(f"{key} differs from collected value")
        return ProbeResult.present("identity configured")

    return probe
