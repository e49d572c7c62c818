"""
Adapter base — the protocol contract between the core and external tools.

Probes and installers never call ``subprocess`` directly. They go
through a ToolInvoker (run an external program, get an exit code back)
or a PackageRepositoryClient (materialise a module into a directory),
so tests can swap in the mock doubles from ``provisioner.adapters.mock``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from pydantic import BaseModel

from provisioner.core.errors import ProvisionError

# Conventional "command not found" exit code
EXIT_NOT_FOUND = 127


class PackageFetchError(ProvisionError):
    """Raised by a PackageRepositoryClient when a module cannot be saved."""


class InvocationResult(BaseModel):
    """Result of running an external tool.

    Invokers NEVER raise for tool failures — a missing tool, a crash,
    or a non-zero exit is captured here.
    """

    tool: str
    arguments: list[str] = []
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the tool exited with code 0."""
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined output, stderr preferred for error reporting."""
        return (self.stderr or self.stdout).strip()


class ToolInvoker(ABC):
    """Run external programs (package managers, git, pwsh)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The invoker identifier (e.g. 'subprocess', 'mock')."""

    @abstractmethod
    def is_available(self, tool: str) -> bool:
        """Whether ``tool`` can be launched. Should be fast and never raise."""

    @abstractmethod
    def execute(
        self,
        tool: str,
        arguments: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
    ) -> InvocationResult:
        """Run ``tool`` with ``arguments`` and return its result.

        MUST never raise. Exit code 0 is success; anything else is
        surfaced to the caller through the result.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageRepositoryClient(ABC):
    """Materialise named modules from a package repository."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The client identifier."""

    @abstractmethod
    def save(self, package_name: str, target_directory: str, repository: str) -> None:
        """Save ``package_name`` from ``repository`` into ``target_directory``.

        Raises:
            PackageFetchError: If the module could not be saved.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
