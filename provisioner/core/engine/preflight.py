"""
Preflight input — collect interactive answers once, before any mutation.

A *domain* groups fields collected together (e.g. ``identity``). For
each field the current value is read first (config seed, then the
domain's own store); a prompt is issued only when the value is absent
or a known placeholder, so re-runs on a configured machine are silent.

The orchestrator collects every domain its capability table consumes
before the first capability runs: a long run is never blocked midway
on a human.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import click

from provisioner.core.context import ProvisionContext
from provisioner.core.errors import PrerequisiteError
from provisioner.core.models.preflight import PreflightAnswer
from provisioner.core.services.identity import (
    EMAIL_KEY,
    NAME_KEY,
    is_placeholder,
    read_git_config,
)

logger = logging.getLogger(__name__)

Prompter = Callable[[str], str]
Reader = Callable[[ProvisionContext, str], str | None]

MAX_PROMPT_ATTEMPTS = 3


@dataclass(frozen=True)
class PreflightField:
    """One field of a domain."""

    key: str
    label: str
    seed: Callable[[ProvisionContext], str] = lambda ctx: ""


@dataclass(frozen=True)
class PreflightDomain:
    """A named group of fields and the reader for their current values."""

    name: str
    fields: tuple[PreflightField, ...]
    reader: Reader
    hint: str = ""
    placeholder: Callable[[str, str | None], bool] = field(default=is_placeholder)


def identity_domain() -> PreflightDomain:
    """The git commit identity: email and display name."""
    return PreflightDomain(
        name="identity",
        fields=(
            PreflightField(
                key=EMAIL_KEY,
                label="Git email address",
                seed=lambda ctx: ctx.config.identity.email,
            ),
            PreflightField(
                key=NAME_KEY,
                label="Git display name",
                seed=lambda ctx: ctx.config.identity.name,
            ),
        ),
        reader=lambda ctx, key: read_git_config(ctx.invoker, key),
        hint="set identity.email / identity.name in provision.yml",
    )


DEFAULT_DOMAINS: dict[str, Callable[[], PreflightDomain]] = {
    "identity": identity_domain,
}


def _click_prompt(label: str) -> str:
    return click.prompt(label, type=str)


class PreflightInput:
    """Collects preflight answers per domain, at most once per run.

    Args:
        context: The run context; answers are recorded on it.
        domains: Domain registry (defaults to ``DEFAULT_DOMAINS``).
        prompter: Line prompt, ``label -> value``.
        interactive: When False, a field needing a prompt raises
            ``PrerequisiteError`` instead.
    """

    def __init__(
        self,
        context: ProvisionContext,
        domains: dict[str, PreflightDomain] | None = None,
        prompter: Prompter | None = None,
        interactive: bool = True,
    ):
        self._ctx = context
        self._domains = domains if domains is not None else {
            name: factory() for name, factory in DEFAULT_DOMAINS.items()
        }
        self._prompter = prompter or _click_prompt
        self._interactive = interactive
        self._collected: dict[str, tuple[PreflightAnswer, ...]] = {}
        self.prompt_count = 0

    @property
    def collected_domains(self) -> list[str]:
        return list(self._collected)

    def collect(self, domain: str) -> tuple[PreflightAnswer, ...]:
        """Collect every field of ``domain``.

        Raises:
            PrerequisiteError: Unknown domain, or a prompt is needed while
                non-interactive, or no usable value after repeated prompts.
        """
        if domain in self._collected:
            return self._collected[domain]

        dom = self._domains.get(domain)
        if dom is None:
            raise PrerequisiteError(f"Unknown preflight domain '{domain}'")

        answers = tuple(self._collect_field(dom, f) for f in dom.fields)
        self._collected[domain] = answers
        self._ctx.record_answers(answers)
        return answers

    def _collect_field(self, dom: PreflightDomain, fld: PreflightField) -> PreflightAnswer:
        reporter = self._ctx.reporter

        seeded = fld.seed(self._ctx)
        if not dom.placeholder(fld.key, seeded):
            reporter.info(f"{fld.key}: using configured value")
            return PreflightAnswer(domain=dom.name, key=fld.key, value=seeded.strip())

        current = dom.reader(self._ctx, fld.key)
        if not dom.placeholder(fld.key, current):
            reporter.info(f"{fld.key}: already set ({current})")
            return PreflightAnswer(domain=dom.name, key=fld.key, value=current.strip())

        if not self._interactive:
            raise PrerequisiteError(
                f"{fld.key} is not configured and prompting is disabled"
                + (f"; {dom.hint}" if dom.hint else "")
            )

        if current:
            reporter.warning(f"{fld.key} holds a placeholder value ({current})")

        for _ in range(MAX_PROMPT_ATTEMPTS):
            self.prompt_count += 1
            value = (self._prompter(fld.label) or "").strip()
            if not dom.placeholder(fld.key, value):
                reporter.info(f"{fld.key}: collected")
                return PreflightAnswer(
                    domain=dom.name, key=fld.key, value=value, was_prompted=True,
                )
            reporter.warning(f"{fld.key}: '{value}' is not a usable value")

        raise PrerequisiteError(f"No usable value entered for {fld.key}")
