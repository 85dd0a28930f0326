"""
Stepwright — CLI entrypoint.

Usage:
    python -m stepwright.main --help
    python -m stepwright.main run
    python -m stepwright.main config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from stepwright import __version__
from stepwright.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="stepwright")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the installer config (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Stepwright — run declarative installers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.group()
def config() -> None:
    """Installer configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the installer configuration."""
    from stepwright.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        cfg = result.config
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Installer: {cfg.installer.name}")
        click.echo(f"   Pre-checks: {len(cfg.pre_checks)}")
        click.echo(f"   Fields: {len(cfg.config_fields)}")
        click.echo(f"   Steps: {len(cfg.install_steps)}")
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
        sys.exit(1)

    click.echo()


# ── Register command groups ─────────────────────────────────────

from stepwright.ui.cli.install import precheck, run, steps  # noqa: E402

cli.add_command(run)
cli.add_command(precheck)
cli.add_command(steps)


if __name__ == "__main__":
    cli()
