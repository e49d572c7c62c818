"""
Workstation Provisioner — CLI entrypoint.

Usage:
    provision --help
    provision run
    provision status
    provision config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import resolve_level, setup_logging

# Process exit codes
EXIT_OK = 0
EXIT_HALTED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

_ACTION_STYLE = {
    "installed": ("✓", "green"),
    "skipped": ("⊘", "bright_black"),
    "failed": ("✗", "red"),
}


@click.group()
@click.version_option(version=__version__, prog_name="provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Workstation Provisioner — bring an imaging workstation to a known-good state."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("PROV_LOG_LEVEL")),
        log_file=os.environ.get("PROV_LOG_FILE"),
        log_file_level=os.environ.get("PROV_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--only", "only", multiple=True, help="Provision only these capabilities.")
@click.option("--dry-run", is_flag=True, help="Probe only; show what would be installed.")
@click.option(
    "--non-interactive",
    is_flag=True,
    help="Never prompt; halt if an answer is missing.",
)
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool,
    only: tuple[str, ...],
    dry_run: bool,
    non_interactive: bool,
) -> None:
    """Provision every capability that is not already satisfied.

    Safe to re-run: satisfied capabilities are skipped.

    Examples:

        provision run

        provision run --only git --only git-identity

        provision run --dry-run
    """
    from provisioner.core.observability.reporter import (
        ConsoleSink,
        LoggingSink,
        StatusReporter,
    )
    from provisioner.core.use_cases.run import run_provision

    sinks = [LoggingSink()]
    if not as_json:
        sinks.insert(0, ConsoleSink(quiet=ctx.obj.get("quiet", False)))
    reporter = StatusReporter(sinks)

    try:
        result = run_provision(
            config_path=ctx.obj.get("config_path"),
            only=list(only) if only else None,
            dry_run=dry_run,
            interactive=not non_interactive and not as_json,
            reporter=reporter,
        )
    except KeyboardInterrupt:
        click.secho("\nInterrupted. Re-run to continue; finished steps will be skipped.", fg="yellow", err=True)
        sys.exit(EXIT_INTERRUPTED)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(EXIT_CONFIG)
        sys.exit(EXIT_OK if result.ok else EXIT_HALTED)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(EXIT_CONFIG)

    report = result.report
    assert report is not None  # guaranteed after error check above

    mode_label = "[dry-run] " if dry_run else ""
    click.echo()
    click.secho(f"📋 {mode_label}Run {report.operation_id}", fg="cyan", bold=True)
    for outcome in report.outcomes:
        icon, color = _ACTION_STYLE[outcome.action]
        click.secho(f"   {icon} {outcome.capability:<20} {outcome.action}", fg=color)
        if outcome.error:
            click.echo(f"     │ {outcome.error}")

    click.echo()
    if report.completed:
        click.secho(
            f"   Completed: {report.installed} installed, {report.skipped} skipped",
            fg="green",
            bold=True,
        )
        click.echo()
        sys.exit(EXIT_OK)

    where = f" at '{report.halted_at}'" if report.halted_at else " before provisioning"
    click.secho(f"   Halted{where}", fg="red", bold=True)
    if report.halt_reason:
        click.echo(f"   {report.halt_reason}")
    click.echo("   Fix the issue and re-run `provision run`.")
    click.echo()
    sys.exit(EXIT_HALTED)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Probe every capability without changing anything."""
    from provisioner.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(EXIT_CONFIG if result.error else EXIT_OK)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(EXIT_CONFIG)

    click.secho(
        f"\n🔍 Workstation: {result.satisfied}/{len(result.capabilities)} satisfied",
        fg="cyan",
        bold=True,
    )
    for cap in result.capabilities:
        if cap.satisfied:
            click.secho(f"   ✓ {cap.name:<20}", fg="green", nl=False)
        else:
            click.secho(f"   ✗ {cap.name:<20}", fg="red", nl=False)
        click.echo(f" {cap.detail}")

    if result.pending:
        click.echo()
        click.secho(f"   Pending: {', '.join(result.pending)}", fg="yellow")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def capabilities(ctx: click.Context, as_json: bool) -> None:
    """List the capability table in run order."""
    from provisioner.core.config.loader import ConfigError, load_config
    from provisioner.core.data.catalog import build_capabilities

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(EXIT_CONFIG)

    table = build_capabilities(config)

    if as_json:
        click.echo(json.dumps(
            [
                {
                    "name": c.name,
                    "description": c.description,
                    "minimum_version": c.minimum_version,
                    "fatal": c.fatal,
                    "consumes": list(c.consumes),
                }
                for c in table
            ],
            indent=2,
        ))
        return

    click.echo()
    for index, cap in enumerate(table, start=1):
        version = f" (≥ {cap.minimum_version})" if cap.minimum_version else ""
        flag = "" if cap.fatal else " [non-fatal]"
        click.secho(f"   {index:>2}. {cap.name}{version}{flag}", bold=True)
        click.echo(f"       {cap.description}")
    click.echo()


@cli.group()
def config() -> None:
    """Provisioning configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate provision.yml configuration."""
    from provisioner.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(EXIT_OK if result.valid else EXIT_CONFIG)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        if result.config_path:
            click.echo(f"   File: {result.config_path}")
        click.echo(f"   Package manager: {result.config.package_manager}")
        click.echo(f"   Modules: {', '.join(result.config.modules) or '(none)'}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(EXIT_CONFIG)

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("-n", "count", default=10, type=int, help="Number of runs to show.")
def history(as_json: bool, count: int) -> None:
    """Show recent provisioning runs from the audit ledger."""
    from provisioner.core.use_cases.history import get_history

    entries = get_history(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No provisioning runs recorded.")
        return

    click.echo()
    for entry in entries:
        color = "green" if entry.state == "completed" else "red"
        click.secho(f"   {entry.operation_id} ", nl=False, bold=True)
        click.secho(entry.state, fg=color, nl=False)
        dry = " [dry-run]" if entry.dry_run else ""
        click.echo(
            f"{dry} — {entry.installed} installed, {entry.skipped} skipped, "
            f"{entry.failed} failed"
        )
        if entry.halted_at:
            click.echo(f"     halted at {entry.halted_at}: {entry.halt_reason}")
    click.echo()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
