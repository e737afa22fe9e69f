"""p4c -- p4connect diagnostic CLI.

Thin command-line wrapper over P4Client for checking a p4 setup and
looking at parsed output.

Usage:
    p4c [--user USER] [--port P4PORT] COMMAND [OPTIONS]
"""

from __future__ import annotations

import dataclasses
import functools
import json
import logging
import sys
from typing import Any, Callable

import click

from p4connect.client import DEFAULT_PATH, P4Client
from p4connect.config import P4Config
from p4connect.exceptions import P4Error
from p4connect.models import Change
from p4connect.network import (
    is_p4_installed_locally,
    resolve_p4port_to_ip,
    try_resolve_trust,
)


def setup_logging(config: P4Config) -> None:
    """Configure Python logging."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    fmt = "%(asctime)s %(name)-20s %(levelname)-5s %(message)s"
    logging.basicConfig(level=level, format=fmt, handlers=[logging.StreamHandler(sys.stderr)], force=True)


def _echo_json(data: Any) -> None:
    if dataclasses.is_dataclass(data):
        data = dataclasses.asdict(data)
    elif isinstance(data, list):
        data = [dataclasses.asdict(d) if dataclasses.is_dataclass(d) else d for d in data]
    click.echo(json.dumps(data, indent=2, default=str))


def _echo_change(change: Change) -> None:
    click.echo(f"Change {change.revision} by {change.user}@{change.workspace} on {change.date}")
    if change.description:
        click.echo(f"  {change.description}")


def p4_errors(func: Callable[..., None]) -> Callable[..., None]:
    """Turn P4Error into a ClickException so the CLI exits cleanly."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except P4Error as e:
            raise click.ClickException(str(e)) from e

    return wrapper


pass_config = click.make_pass_decorator(P4Config)


def _client(config: P4Config) -> P4Client:
    if not config.user or not config.port:
        raise click.UsageError("--user and --port (or P4USER and P4PORT) are required")
    return P4Client.from_config(config)


@click.group()
@click.option("--user", envvar="P4USER", default=None, help="p4 user name.")
@click.option("--port", envvar="P4PORT", default=None, help="Server address, e.g. ssl:p4:1666.")
@click.option("--password", envvar="P4PASSWD", default=None, help="Password to log in with.")
@click.option("--ticket", envvar="P4TICKET", default=None, help="Ready session ticket (skips login).")
@click.option("--fingerprint", envvar="P4TRUST", default=None, help="Server trust fingerprint.")
@click.option("--timeout", type=float, default=None, help="Seconds each p4 call may take.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    user: str | None,
    port: str | None,
    password: str | None,
    ticket: str | None,
    fingerprint: str | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """p4c -- query a Perforce server through p4connect."""
    config = P4Config()
    if user:
        config.user = user
    if port:
        config.port = port
    if password:
        config.password = password
    if ticket:
        config.ticket = ticket
    if fingerprint:
        config.fingerprint = fingerprint
    if timeout:
        config.timeout = timeout
    if verbose:
        config.log_level = "DEBUG"

    setup_logging(config)
    ctx.obj = config


# ── setup checks ─────────────────────────────────────────────────────────


@cli.command()
@pass_config
@p4_errors
def doctor(config: P4Config) -> None:
    """Check that p4 is installed and the server can be found."""
    if not is_p4_installed_locally(timeout=config.timeout):
        raise click.ClickException("p4 not found -- install the Helix command-line client")
    click.echo("✓ p4 available")

    if not config.port:
        click.echo("No P4PORT set, skipping server checks.")
        return

    resolved = resolve_p4port_to_ip(config.port, timeout=config.timeout)
    if resolved.error:
        raise click.ClickException(resolved.error)
    click.echo(f"✓ {resolved.host}:{resolved.port} -> {resolved.ip or 'unresolved'}")

    if resolved.ip:
        fingerprint = try_resolve_trust(resolved.ip, resolved.port, timeout=config.timeout)
        if fingerprint:
            click.echo(f"✓ Trusted fingerprint: {fingerprint}")
        else:
            click.echo("No trust entry for this server (see 'p4 trust -l').")


@cli.command()
@pass_config
@p4_errors
def login(config: P4Config) -> None:
    """Check the credentials by logging in."""
    _client(config).verify_credentials()
    click.echo(f"✓ Logged in to {config.port} as {config.user}")


@cli.command("resolve-port")
@click.argument("p4port")
@pass_config
@p4_errors
def resolve_port(config: P4Config, p4port: str) -> None:
    """Resolve the host of a P4PORT string to an IP."""
    resolved = resolve_p4port_to_ip(p4port, timeout=config.timeout)
    if resolved.error:
        raise click.ClickException(resolved.error)
    click.echo(f"Host: {resolved.host}")
    click.echo(f"Port: {resolved.port}")
    click.echo(f"IP: {resolved.ip or 'unresolved'}")


# ── changes ──────────────────────────────────────────────────────────────


@cli.command()
@click.argument("revision")
@click.option("--diffs", is_flag=True, help="Include per-file diffs.")
@click.option("--annotate", "with_annotate", is_flag=True, help="Annotate each file.")
@click.option("--json", "as_json", is_flag=True, help="Print JSON.")
@pass_config
@p4_errors
def describe(config: P4Config, revision: str, diffs: bool, with_annotate: bool, as_json: bool) -> None:
    """Describe a changelist."""
    change = _client(config).describe(revision, diffs=diffs, annotate=with_annotate)
    if change is None:
        raise click.ClickException(f"No such changelist: {revision}")
    if as_json:
        _echo_json(change)
        return

    _echo_change(change)
    click.echo(f"Files ({change.file_count}):")
    for f in change.files:
        click.echo(f"  {f.action:<10s} {f.path}")
        for paragraph in f.differences:
            click.echo("    " + paragraph.replace("\n", "\n    "))


@cli.command()
@click.argument("path", default=DEFAULT_PATH)
@click.option("--max", "-m", "limit", type=int, default=10, show_default=True, help="Max changes, 0 for all.")
@click.option("--shelved", is_flag=True, help="List shelved changes.")
@click.option("--json", "as_json", is_flag=True, help="Print JSON.")
@pass_config
@p4_errors
def changes(config: P4Config, path: str, limit: int, shelved: bool, as_json: bool) -> None:
    """List recent changelists under PATH."""
    result = _client(config).changes(shelves=shelved, limit=limit, path=path)
    if as_json:
        _echo_json(result)
        return
    if not result:
        click.echo("No changes found.")
        return
    for change in result:
        _echo_change(change)


@cli.command()
@click.argument("start")
@click.argument("end")
@click.argument("path", default=DEFAULT_PATH)
@pass_config
@p4_errors
def between(config: P4Config, start: str, end: str, path: str) -> None:
    """List change numbers strictly between START and END."""
    revisions = _client(config).get_raw_changes_between(start, end, path)
    if not revisions:
        click.echo("No changes found.")
        return
    for revision in revisions:
        click.echo(revision)


# ── workspaces ───────────────────────────────────────────────────────────


@cli.command()
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Print JSON.")
@pass_config
@p4_errors
def client(config: P4Config, name: str, as_json: bool) -> None:
    """Show a client workspace spec."""
    spec = _client(config).client(name)
    if as_json:
        _echo_json(spec)
        return
    click.echo(f"Client: {spec.name}")
    click.echo(f"Root: {spec.root}")
    click.echo("View:")
    for view in spec.views:
        click.echo(f"  {view.remote} -> {view.local}")


@cli.command()
@click.argument("user")
@click.argument("host")
@pass_config
@p4_errors
def clients(config: P4Config, user: str, host: str) -> None:
    """List USER's clients on HOST."""
    names = _client(config).get_clients_for_user_and_host(user, host)
    if not names:
        click.echo("No clients found.")
        return
    for name in names:
        click.echo(name)


# ── files ────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("path")
@click.option("--revision", "-r", default=None, help="Changelist to annotate at.")
@click.option("--json", "as_json", is_flag=True, help="Print JSON.")
@pass_config
@p4_errors
def annotate(config: P4Config, path: str, revision: str | None, as_json: bool) -> None:
    """Show which changelist last touched each line of a file."""
    result = _client(config).annotate(path, revision)
    if as_json:
        _echo_json(result)
        return
    change = result.change.value if result.change else "unknown"
    click.echo(f"{result.file} ({change} at {result.revision})")
    for line in result.lines:
        click.echo(f"{line.revision:>8s}: {line.text}")


if __name__ == "__main__":
    cli()
