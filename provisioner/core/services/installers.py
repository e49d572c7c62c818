"""
Capability installers — mutating actions, one factory per strategy.

Each factory returns an ``install(context) -> None`` closure. An
installer signals failure by raising ``InstallFailure``; returning
normally means "the tool reported success" and the orchestrator then
re-probes to verify.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from provisioner.adapters.base import PackageFetchError
from provisioner.core.context import ProvisionContext
from provisioner.core.errors import InstallFailure

logger = logging.getLogger(__name__)

Installer = Callable[[ProvisionContext], None]


def package_install(package_id: str) -> Installer:
    """Install ``package_id`` through the configured package manager."""

    def install(ctx: ProvisionContext) -> None:
        manager = ctx.config.package_manager
        if not ctx.invoker.is_available(manager):
            raise InstallFailure(f"package manager '{manager}' is not available")

        args = ctx.config.install_arguments(package_id)
        logger.info("Installing %s via %s", package_id, manager)
        result = ctx.invoker.execute(manager, args, env=ctx.child_env())
        if not result.ok:
            raise InstallFailure(
                f"{manager} install {package_id} exited with code {result.exit_code}",
                exit_code=result.exit_code,
                output=result.output,
            )

    return install


def module_fetch(module: str) -> Installer:
    """Save ``module`` into the modules directory from the repository."""

    def install(ctx: ProvisionContext) -> None:
        target = ctx.config.resolved_modules_path()
        target.mkdir(parents=True, exist_ok=True)
        try:
            ctx.packages.save(module, str(target), ctx.config.repository)
        except PackageFetchError as e:
            raise InstallFailure(f"fetching module {module} failed", output=str(e)) from e

    return install


def _persist_user_variable_command(variable: str, entry: str) -> str:
    """PowerShell snippet appending ``entry`` to a User-scope variable once."""
    var = variable.replace("'", "''")
    value = entry.replace("'", "''")
    return (
        f"$p = [Environment]::GetEnvironmentVariable('{var}', 'User'); "
        f"$parts = @($p -split [IO.Path]::PathSeparator | Where-Object {{ $_ }}); "
        f"if ($parts -notcontains '{value}') {{ "
        f"[Environment]::SetEnvironmentVariable('{var}', "
        f"(@($parts) + '{value}') -join [IO.Path]::PathSeparator, 'User') }}"
    )


def search_path_install(shell: str = "pwsh") -> Installer:
    """Create the modules directory and put it on the search path.

    The user-scoped variable is persisted through PowerShell first so
    the next login (and the next run) sees it. The run-scoped copy on
    the context is appended only once the persist succeeded.
    """

    def install(ctx: ProvisionContext) -> None:
        directory = ctx.config.resolved_modules_path()
        variable = ctx.config.search_path_variable
        directory.mkdir(parents=True, exist_ok=True)

        result = ctx.invoker.execute(
            shell,
            [
                "-NoProfile",
                "-NonInteractive",
                "-Command",
                _persist_user_variable_command(variable, str(directory)),
            ],
            env=ctx.child_env(),
        )
        if not result.ok:
            raise InstallFailure(
                f"persisting {variable} failed with exit code {result.exit_code}",
                exit_code=result.exit_code,
                output=result.output,
            )

        if not ctx.add_search_path(str(directory)):
            logger.debug("%s already on %s", directory, variable)

    return install


def git_config_install(keys: tuple[str, ...]) -> Installer:
    """Write collected preflight values with ``git config --global``."""

    def install(ctx: ProvisionContext) -> None:
        if not ctx.invoker.is_available("git"):
            raise InstallFailure("git is not available to write identity")

        for key in keys:
            value = ctx.answer(key)
            if value is None:
                raise InstallFailure(f"no value collected for {key}")
            result = ctx.invoker.execute("git", ["config", "--global", key, value])
            if not result.ok:
                raise InstallFailure(
                    f"git config {key} exited with code {result.exit_code}",
                    exit_code=result.exit_code,
                    output=result.output,
                )

    return install
