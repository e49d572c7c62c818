"""
Mock adapters — test doubles for tool invocation and module fetch.

Used to simulate a machine without touching external tools. The
invoker can be scripted per tool with fixed results or handlers, and
records every call it receives.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from provisioner.adapters.base import (
    EXIT_NOT_FOUND,
    InvocationResult,
    PackageFetchError,
    PackageRepositoryClient,
    ToolInvoker,
)

Handler = Callable[[list[str]], InvocationResult]


class MockInvoker(ToolInvoker):
    """Universal mock invoker.

    By default every tool is available and exits 0 with no output.
    Pass ``available`` to restrict which tools exist.
    """

    def __init__(
        self,
        available: set[str] | None = None,
        default_output: str = "",
    ):
        self._available = set(available) if available is not None else None
        self._default_output = default_output
        self._results: dict[str, InvocationResult] = {}
        self._handlers: dict[str, Handler] = {}
        self._call_log: list[tuple[str, list[str], dict[str, str] | None]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[tuple[str, list[str], dict[str, str] | None]]:
        """All (tool, arguments, env) calls this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    def calls_for(self, tool: str) -> list[list[str]]:
        """Argument lists of every call made to ``tool``."""
        return [args for t, args, _ in self._call_log if t == tool]

    def make_available(self, tool: str) -> None:
        """Mark a tool as installed."""
        if self._available is not None:
            self._available.add(tool)

    def is_available(self, tool: str) -> bool:
        return self._available is None or tool in self._available

    def set_result(self, tool: str, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        """Configure a fixed result for every call to ``tool``."""
        self._results[tool] = InvocationResult(
            tool=tool, exit_code=exit_code, stdout=stdout, stderr=stderr,
        )

    def set_failure(self, tool: str, exit_code: int = 1, error: str = "Mock failure") -> None:
        """Configure ``tool`` to fail."""
        self.set_result(tool, exit_code=exit_code, stderr=error)

    def set_handler(self, tool: str, handler: Handler) -> None:
        """Route calls to ``tool`` through ``handler(arguments)``."""
        self._handlers[tool] = handler

    def execute(
        self,
        tool: str,
        arguments: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
    ) -> InvocationResult:
        args = list(arguments)
        self._call_log.append((tool, args, dict(env) if env is not None else None))

        if not self.is_available(tool):
            return InvocationResult(
                tool=tool,
                arguments=args,
                exit_code=EXIT_NOT_FOUND,
                stderr=f"{tool}: command not found",
            )

        if tool in self._handlers:
            return self._handlers[tool](args)

        if tool in self._results:
            return self._results[tool].model_copy(update={"arguments": args})

        return InvocationResult(tool=tool, arguments=args, stdout=self._default_output)

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._results.clear()
        self._handlers.clear()


class MockPackageClient(PackageRepositoryClient):
    """Mock module fetcher.

    A successful save creates ``<target>/<package>`` on disk so that a
    directory probe sees the module afterwards.
    """

    def __init__(self, create_directories: bool = True):
        self._create = create_directories
        self._failures: dict[str, str] = {}
        self.saved: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return "mock"

    def set_failure(self, package_name: str, error: str = "Mock fetch failure") -> None:
        """Configure a package to fail."""
        self._failures[package_name] = error

    def save(self, package_name: str, target_directory: str, repository: str) -> None:
        self.saved.append((package_name, target_directory, repository))
        if package_name in self._failures:
            raise PackageFetchError(self._failures[package_name])
        if self._create:
            (Path(target_directory) / package_name).mkdir(parents=True, exist_ok=True)
