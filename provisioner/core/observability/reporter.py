"""
Status reporter — the leveled, user-facing provisioning channel.

Every machine-state change is announced through ``report(level, msg)``.
Events are appended in order and fanned out to sinks (console, log).
The reporter must never raise: a broken sink is dropped silently so
it cannot mask the provisioning failure being reported.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import click

from provisioner.core.models.status import StatusEvent, StatusLevel

logger = logging.getLogger(__name__)

Sink = Callable[[StatusEvent], None]

# ── Console presentation ────────────────────────────────────────

_CONSOLE_STYLE: dict[StatusLevel, tuple[str, str | None]] = {
    StatusLevel.INFO: ("→", None),
    StatusLevel.SUCCESS: ("✓", "green"),
    StatusLevel.WARNING: ("⚠", "yellow"),
    StatusLevel.ERROR: ("✗", "red"),
    StatusLevel.SKIP: ("⊘", "bright_black"),
}

_LOG_LEVELS: dict[StatusLevel, int] = {
    StatusLevel.INFO: logging.INFO,
    StatusLevel.SUCCESS: logging.INFO,
    StatusLevel.SKIP: logging.INFO,
    StatusLevel.SECTION: logging.INFO,
    StatusLevel.WARNING: logging.WARNING,
    StatusLevel.ERROR: logging.ERROR,
}


class ConsoleSink:
    """Print events with click, one line per event.

    Args:
        quiet: Only print WARNING and ERROR events.
        err: Write to stderr instead of stdout.
    """

    def __init__(self, quiet: bool = False, err: bool = False):
        self._quiet = quiet
        self._err = err

    def __call__(self, event: StatusEvent) -> None:
        if self._quiet and event.level not in (StatusLevel.WARNING, StatusLevel.ERROR):
            return

        if event.level is StatusLevel.SECTION:
            click.echo(err=self._err)
            click.secho(f"── {event.message} ──", fg="cyan", bold=True, err=self._err)
            return

        icon, color = _CONSOLE_STYLE[event.level]
        click.secho(f"   {icon} {event.message}", fg=color, err=self._err)


class LoggingSink:
    """Forward events to the stdlib logging tree."""

    def __init__(self, name: str = "provisioner.status"):
        self._logger = logging.getLogger(name)

    def __call__(self, event: StatusEvent) -> None:
        self._logger.log(
            _LOG_LEVELS[event.level],
            "[%s] %s",
            event.level.value.upper(),
            event.message,
        )


class StatusReporter:
    """Append-only, ordered emitter of status events."""

    def __init__(self, sinks: list[Sink] | None = None):
        self._sinks: list[Sink] = list(sinks) if sinks is not None else [LoggingSink()]
        self._events: list[StatusEvent] = []

    @property
    def events(self) -> list[StatusEvent]:
        """Every event emitted so far, oldest first."""
        return list(self._events)

    def add_sink(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def report(self, level: StatusLevel | str, message: object) -> None:
        """Emit one event. Never raises.

        ``level`` may be a StatusLevel or its name in any case
        (``"ERROR"``, ``"skip"``); unknown names are reported as INFO.
        A non-string ``message`` is converted with ``str()``.
        """
        try:
            parsed = StatusLevel(level.lower() if isinstance(level, str) else level)
        except ValueError:
            parsed = StatusLevel.INFO

        try:
            text = str(message)
        except Exception:
            text = object.__repr__(message)

        event = StatusEvent(level=parsed, message=text)

        self._events.append(event)
        for sink in self._sinks:
            try:
                sink(event)
            except Exception:
                continue

    def begin_section(self, title: str) -> None:
        """Start a cosmetic grouping. There is no matching end."""
        self.report(StatusLevel.SECTION, title)

    # ── Shorthands ──────────────────────────────────────────────

    def info(self, message: str) -> None:
        self.report(StatusLevel.INFO, message)

    def success(self, message: str) -> None:
        self.report(StatusLevel.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.report(StatusLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.report(StatusLevel.ERROR, message)

    def skip(self, message: str) -> None:
        self.report(StatusLevel.SKIP, message)

    def levels(self) -> list[StatusLevel]:
        """Levels of every emitted event, in order."""
        return [e.level for e in self._events]
