"""
Provisioning context — everything a probe or installer may touch.

One context is built per run and handed to every capability. It
carries the collaborators (invoker, package client, reporter), the
collected preflight answers, and an explicit copy of the module
search-path variable.

Design notes:
    - The search path is a value on the context, not ``os.environ``.
      Installers append to it; later invocations receive it through
      ``child_env()``. Tests assert on it without touching the real
      process environment.
    - Single writer, strictly sequential: no locking.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from provisioner.adapters.base import PackageRepositoryClient, ToolInvoker
from provisioner.core.models.config import ProvisionConfig
from provisioner.core.models.preflight import PreflightAnswer
from provisioner.core.observability.reporter import StatusReporter

logger = logging.getLogger(__name__)


def _normalize(entry: str) -> str:
    return os.path.normcase(os.path.normpath(os.path.expanduser(entry)))


@dataclass
class ProvisionContext:
    """Run-scoped state threaded through every capability."""

    config: ProvisionConfig
    invoker: ToolInvoker
    packages: PackageRepositoryClient
    reporter: StatusReporter = field(default_factory=StatusReporter)
    environ: dict[str, str] = field(default_factory=dict)
    search_path: list[str] = field(default_factory=list)
    answers: dict[str, PreflightAnswer] = field(default_factory=dict)
    dry_run: bool = False

    @classmethod
    def from_environment(
        cls,
        config: ProvisionConfig,
        invoker: ToolInvoker,
        packages: PackageRepositoryClient,
        reporter: StatusReporter | None = None,
        environ: Mapping[str, str] | None = None,
        dry_run: bool = False,
    ) -> ProvisionContext:
        """Build a context from a snapshot of the process environment."""
        env = dict(os.environ if environ is None else environ)
        raw = env.get(config.search_path_variable, "")
        entries = [p for p in raw.split(os.pathsep) if p]
        return cls(
            config=config,
            invoker=invoker,
            packages=packages,
            reporter=reporter or StatusReporter(),
            environ=env,
            search_path=entries,
            dry_run=dry_run,
        )

    # ── Search path ─────────────────────────────────────────────

    def has_search_path(self, entry: str) -> bool:
        """Whether ``entry`` is already on the search path."""
        target = _normalize(entry)
        return any(_normalize(p) == target for p in self.search_path)

    def add_search_path(self, entry: str) -> bool:
        """Append ``entry`` once. Returns True if it was added."""
        if self.has_search_path(entry):
            return False
        self.search_path.append(entry)
        logger.debug("Search path += %s", entry)
        return True

    def search_path_value(self) -> str:
        return os.pathsep.join(self.search_path)

    def child_env(self) -> dict[str, str]:
        """Environment for external invocations, search path included."""
        env = dict(self.environ)
        env[self.config.search_path_variable] = self.search_path_value()
        return env

    # ── Preflight answers ───────────────────────────────────────

    def record_answers(self, answers: Iterable[PreflightAnswer]) -> None:
        for answer in answers:
            self.answers[answer.key] = answer

    def answer(self, key: str) -> str | None:
        """Collected value for a preflight field, or None."""
        found = self.answers.get(key)
        return found.value if found else None
