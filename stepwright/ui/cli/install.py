"""
CLI commands for running an installer — thin wrappers over
``stepwright.core.use_cases.install``.

Usage::

    stepwright run
    stepwright run --set hostname=box --yes
    stepwright run --values answers.yml --json
    stepwright precheck
    stepwright steps --set enableDocker=true
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from stepwright.core.engine import events as ev
from stepwright.core.engine.orchestrator import DISPLAY_DELAY_S, PendingPrompt
from stepwright.core.errors import ConfigLoadError, PreCheckFailure
from stepwright.core.models.installer import ConfigField
from stepwright.core.models.results import CheckOutcome
from stepwright.core.persistence.audit import AUDIT_FILE_ENV, AuditWriter

_STATUS_MARKERS = {
    "success": ("✅", "green"),
    "warning": ("⚠️ ", "yellow"),
    "error": ("❌", "red"),
}


# ── Session helpers ────────────────────────────────────────────


def _load_session(ctx: click.Context, *, mock: bool = False, **kwargs: Any):
    from stepwright.adapters.mock import MockProcessRunner
    from stepwright.core.use_cases.install import InstallerSession

    runner = MockProcessRunner() if mock else None
    try:
        return InstallerSession.load(ctx.obj.get("config_path"), runner=runner, **kwargs)
    except ConfigLoadError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _parse_sets(pairs: tuple[str, ...]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--set")
        values[key.strip()] = value
    return values


def _initial_values(values_file: str | None, sets: tuple[str, ...]) -> dict[str, Any]:
    from stepwright.core.config.loader import load_values_file

    values: dict[str, Any] = {}
    if values_file:
        try:
            values.update(load_values_file(Path(values_file)))
        except ConfigLoadError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)
    values.update(_parse_sets(sets))
    return values


def _ask_field(field: ConfigField, current: Any) -> Any:
    label = field.display_label
    if field.description:
        click.secho(f"   {field.description}", dim=True)
    if field.type == "boolean":
        return click.confirm(label, default=bool(current))
    if field.type == "select" and field.options:
        return click.prompt(
            label,
            type=click.Choice([o.value for o in field.options]),
            default=current if current is not None else None,
        )
    default = "" if current is None else str(current)
    return click.prompt(
        label,
        default=default,
        show_default=bool(default) and field.type != "password",
        hide_input=field.type == "password",
    )


def _collect_user_config(session, values: dict[str, Any], interactive: bool) -> None:
    """Validate values, asking for missing or invalid ones when interactive."""
    fields = {f.id: f for f in session.config_fields}
    if interactive:
        defaults = session.user_config
        for fid, f in fields.items():
            if fid not in values:
                values[fid] = _ask_field(f, defaults.get(fid))

    errors = session.save_user_config(values)
    while errors and interactive:
        for fid, message in errors.items():
            click.secho(f"   ❌ {message}", fg="red")
            if fid in fields:
                values[fid] = _ask_field(fields[fid], values.get(fid))
        errors = session.save_user_config(values)

    if errors:
        click.secho("❌ Invalid configuration:", fg="red", bold=True)
        for fid, message in errors.items():
            click.echo(f"   • {fid}: {message}")
        sys.exit(1)


# ── Rendering ──────────────────────────────────────────────────


def _echo_outcome(outcome: CheckOutcome) -> None:
    marker, color = _STATUS_MARKERS[outcome.status]
    click.secho(f"   {marker} {outcome.name}", fg=color, nl=False)
    click.echo(f"  {outcome.message}")


def _echo_event(event: dict) -> None:
    """Terminal listener for run events."""
    kind, data = event["type"], event["data"]

    if kind == ev.STEP_START:
        click.secho(f"\n▶ {data['name']}", fg="cyan", bold=True)
        if data.get("description"):
            click.echo(f"   {data['description']}")
    elif kind == ev.STEP_SKIPPED:
        click.secho(f"\n⊘ Skipping: {data['name']} (condition not met)", fg="yellow")
    elif kind == ev.COMMAND_START:
        label = data.get("description") or data.get("command", "")
        click.secho(f"   $ {label}", dim=True)
    elif kind == ev.COMMAND_OUTPUT:
        for line in data["data"].splitlines():
            click.echo(f"     {line}", err=data["type"] == "stderr")
    elif kind == ev.COMMAND_SKIPPED:
        click.secho(f"   ⊘ Skipping: {data['description']} (condition not met)", fg="yellow")
    elif kind == ev.COMMAND_RESULT and not data["success"]:
        click.secho(f"   ✗ {data.get('error') or 'failed'}", fg="red")
    elif kind == ev.VARIABLE_CAPTURED:
        click.secho(f"   📝 {data['name']}: {data['value']}", fg="magenta")
    elif kind == ev.DISPLAY_SHOWN:
        if data.get("title"):
            click.secho(f"   📊 {data['title']}", bold=True)
        for line in data.get("content", []):
            click.echo(f"      {line}")
    elif kind == ev.STEP_COMPLETE:
        click.secho(f"   ✓ {data['name']} completed", fg="green")
    elif kind == ev.STEP_ERROR:
        click.secho(f"   ❌ {data['step']}: {data['error']}", fg="red")
    elif kind == ev.POSTINSTALL_RESULT:
        if data["success"]:
            click.secho(f"   ✓ {data['name']}", fg="green")
        else:
            click.secho(f"   ⚠️  {data['name']}: {data.get('error')}", fg="yellow")


def _interactive_answer(pending: PendingPrompt, error: str | None) -> Any:
    """Answer a suspended prompt from the terminal."""
    if error:
        click.secho(f"   ❌ {error}", fg="red")

    p = pending.prompt
    message = pending.message or "Value"
    default = pending.default

    if p.prompt_type == "confirm":
        return click.confirm(message, default=bool(default))
    if p.prompt_type == "select" and p.options:
        for o in p.options:
            click.echo(f"     • {o.value}" + (f"  {o.label}" if o.label else ""))
        return click.prompt(message, type=click.Choice(p.option_values), default=default)
    if p.prompt_type == "multiselect":
        for o in p.options:
            click.echo(f"     • {o.value}" + (f"  {o.label}" if o.label else ""))
        joined = ",".join(default or [])
        return click.prompt(f"{message} (comma-separated)", default=joined, show_default=bool(joined))

    text_default = "" if default is None else str(default)
    return click.prompt(
        message,
        default=text_default,
        show_default=bool(text_default) and p.prompt_type != "password",
        hide_input=p.prompt_type == "password",
    )


# ── Commands ───────────────────────────────────────────────────


@click.command()
@click.option("--set", "sets", multiple=True, metavar="KEY=VALUE", help="Set a config value.")
@click.option("--values", "values_file", type=click.Path(exists=False), help="JSON/YAML file of config values.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Don't ask; take defaults for fields and prompts.")
@click.option("--skip-prechecks", is_flag=True, help="Don't run pre-checks.")
@click.option("--ignore-prechecks", is_flag=True, help="Run pre-checks but proceed even if they fail.")
@click.option("--mock", is_flag=True, help="Use mock runner (no real execution).")
@click.option(
    "--display-delay", type=float, default=DISPLAY_DELAY_S, show_default=True,
    help="Seconds each display command stays up.",
)
@click.option(
    "--audit-log", type=click.Path(), envvar=AUDIT_FILE_ENV, default=None,
    help=f"Append a run summary to this NDJSON file (or set {AUDIT_FILE_ENV}).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    sets: tuple[str, ...],
    values_file: str | None,
    assume_yes: bool,
    skip_prechecks: bool,
    ignore_prechecks: bool,
    mock: bool,
    display_delay: float,
    audit_log: str | None,
    as_json: bool,
) -> None:
    """Run the installer: pre-checks, then every install step."""
    from stepwright.core.use_cases.install import answer_with_defaults

    interactive = not (assume_yes or as_json)
    audit = AuditWriter(Path(audit_log)) if audit_log else None
    session = _load_session(ctx, mock=mock, audit=audit, display_delay=display_delay)
    quiet = ctx.obj.get("quiet", False)

    if not as_json and not quiet:
        info = session.config.installer
        title = f"{info.name} {info.version}".strip()
        click.secho(f"\n📦 {title}", fg="cyan", bold=True)
        if info.description:
            click.echo(f"   {info.description}")
        click.echo()

    _collect_user_config(session, _initial_values(values_file, sets), interactive)

    report = None
    if not skip_prechecks and session.config.pre_checks:
        if not as_json:
            click.secho("🔍 Pre-checks", fg="cyan", bold=True)
        report = session.run_prechecks(on_result=None if as_json else _echo_outcome)
        try:
            report.require_passed()
        except PreCheckFailure as e:
            if not ignore_prechecks:
                if as_json:
                    click.echo(json.dumps({"error": str(e), "prechecks": report.to_dict()}, indent=2))
                else:
                    click.secho(f"❌ {e}", fg="red")
                sys.exit(1)
            if not as_json:
                click.secho(f"⚠️  {e} (ignored)", fg="yellow")

    answer = _interactive_answer if interactive else answer_with_defaults
    if as_json:
        result = session.run(answer=answer)
    else:
        with session.events.subscribe(_echo_event):
            result = session.run(answer=answer)

    if as_json:
        data = result.to_dict()
        if report is not None:
            data["prechecks"] = report.to_dict()
        click.echo(json.dumps(data, indent=2, default=str))
        sys.exit(0 if result.success else 1)

    click.echo()
    if result.success:
        click.secho("✅ Installation completed", fg="green", bold=True)
        click.echo(f"   Steps: {len(result.steps_completed)} completed, {len(result.steps_skipped)} skipped")
    else:
        click.secho(f"❌ Installation failed: {result.error}", fg="red", bold=True)
    if audit is not None:
        click.secho(f"   📝 Audit entry written to {audit.path}", dim=True)
    click.echo()
    if not result.success:
        sys.exit(1)


@click.command()
@click.option("--mock", is_flag=True, help="Use mock runner (no real execution).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def precheck(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """Run the pre-installation checks only.

    \b
    Only plain read-only commands (uname, df, free, ...) run for real.
    A check that pipes, chains or redirects (e.g. "df -h / | tail -1")
    is simulated and will not match its expected pattern unless it is
    marked "safe": true.
    """
    session = _load_session(ctx, mock=mock)

    if not as_json:
        click.secho(f"\n🔍 Pre-checks: {session.config.installer.name}", fg="cyan", bold=True)
    report = session.run_prechecks(on_result=None if as_json else _echo_outcome)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.passed else 1)

    click.echo()
    if not report.outcomes:
        click.echo("   No pre-checks defined.")
    elif report.passed:
        click.secho("✅ All checks passed", fg="green", bold=True)
    else:
        click.secho(f"❌ Failed: {', '.join(report.failed)}", fg="red", bold=True)
        sys.exit(1)


@click.command()
@click.option("--set", "sets", multiple=True, metavar="KEY=VALUE", help="Set a config value.")
@click.option("--values", "values_file", type=click.Path(exists=False), help="JSON/YAML file of config values.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def steps(ctx: click.Context, sets: tuple[str, ...], values_file: str | None, as_json: bool) -> None:
    """List the install steps that would run for the given values."""
    session = _load_session(ctx)
    errors = session.save_user_config(_initial_values(values_file, sets))
    for fid, message in errors.items():
        click.secho(f"⚠️  {fid}: {message} (using defaults)", fg="yellow", err=True)

    active = session.get_install_steps()
    active_ids = {id(s) for s in active}

    if as_json:
        click.echo(json.dumps(
            [
                {
                    "name": s.name,
                    "description": s.description,
                    "condition": s.condition,
                    "commands": len(s.commands),
                    "active": id(s) in active_ids,
                }
                for s in session.config.install_steps
            ],
            indent=2,
        ))
        return

    click.secho(f"\n📋 {session.config.installer.name}", fg="cyan", bold=True)
    for i, s in enumerate(session.config.install_steps, start=1):
        cond = f"  [if {s.condition}]" if s.condition else ""
        if id(s) in active_ids:
            click.secho(f"   {i}. {s.name}", fg="green", nl=False)
        else:
            click.secho(f"   {i}. {s.name} (skipped)", fg="yellow", nl=False)
        click.echo(f"  ({len(s.commands)} commands){cond}")
    click.echo()
