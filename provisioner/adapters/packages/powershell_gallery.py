"""
PowerShell Gallery client — save modules with ``Save-Module``.

Modules are materialised into a fixed directory rather than installed
into a PowerShell scope, so the directory can be put on the module
search path explicitly.
"""

from __future__ import annotations

import logging

from provisioner.adapters.base import PackageFetchError, PackageRepositoryClient, ToolInvoker

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


class PowerShellGalleryClient(PackageRepositoryClient):
    """Fetch modules through ``pwsh -Command Save-Module``.

    Args:
        invoker: Tool invoker used to launch PowerShell.
        shell: PowerShell executable name.
    """

    def __init__(self, invoker: ToolInvoker, shell: str = "pwsh"):
        self._invoker = invoker
        self._shell = shell

    @property
    def name(self) -> str:
        return "powershell-gallery"

    def save(self, package_name: str, target_directory: str, repository: str) -> None:
        command = (
            f"Save-Module -Name {_quote(package_name)} "
            f"-Path {_quote(target_directory)} "
            f"-Repository {_quote(repository)} -Force -ErrorAction Stop"
        )
        logger.info("Saving module %s from %s", package_name, repository)

        result = self._invoker.execute(
            self._shell,
            ["-NoProfile", "-NonInteractive", "-Command", command],
        )
        if not result.ok:
            raise PackageFetchError(
                f"Save-Module {package_name} failed (exit code {result.exit_code}): "
                f"{result.output or 'no output'}"
            )
