#!/usr/bin/env python3
"""
Countify CLI - Command-line interface for Countify.

Provides commands for:
- new / list / show: create and inspect count sessions
- inc / dec / reset: change a session's count within its limits
- rename / duplicate / favorite / delete: manage sessions
- defaults: settings applied to new sessions
- export / import / clear: snapshot and maintenance
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from countify.cli.formatting import filter_sessions, format_row, sort_recent, time_ago
from countify.core.haptics import LoggingHapticSink
from countify.core.models import DEFAULT_SESSION_NAME, CountSession, utc_now
from countify.core.paths import get_db_path, get_snapshot_path
from countify.core.registry import SessionRegistry
from countify.core.store import SQLiteStore
from countify.core.validators import validate_session_name
from countify.io.snapshot import export_snapshot, import_snapshot

# Create the main CLI app
cli = typer.Typer(
    name="countify",
    help="Countify CLI - Keep named counters with steps and limits",
    no_args_is_help=True,
)


@cli.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log storage and haptic events",
    ),
) -> None:
    """Countify command-line interface."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _open_registry() -> SessionRegistry:
    try:
        db_path = get_db_path()
    except (ValueError, PermissionError) as e:
        typer.echo(f"Error resolving database path: {e}", err=True)
        raise typer.Exit(1)
    return SessionRegistry(SQLiteStore(db_path), haptics=LoggingHapticSink())


def _resolve_session(registry: SessionRegistry, session_ref: str) -> CountSession:
    """Find exactly one session whose id starts with ``session_ref``."""
    prefix = session_ref.strip().lower()
    matches = [
        session
        for session in registry.list_sessions()
        if prefix and str(session.id).startswith(prefix)
    ]
    if not matches:
        typer.echo(f"Session not found: {session_ref}", err=True)
        raise typer.Exit(1)
    if len(matches) > 1:
        typer.echo(f"Session id prefix is ambiguous: {session_ref}", err=True)
        raise typer.Exit(1)
    return matches[0]


def _check_name(name: str) -> None:
    try:
        validate_session_name(name)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _describe(session: CountSession, now: datetime) -> str:
    lines = [
        f"{session.name}",
        f"  id:         {session.id}",
        f"  count:      {session.count}",
        f"  step size:  {session.step_size}",
        f"  limits:     {session.limits_description()}",
        f"  negatives:  {'Allowed' if session.allow_negatives else 'Disabled'}",
        f"  vibration:  {'On' if session.haptic_enabled else 'Off'}",
        f"  favorite:   {'Yes' if session.favorite else 'No'}",
        f"  modified:   {time_ago(session.last_modified, now)}",
    ]
    return "\n".join(lines)


@cli.command()
def new(
    name: str = typer.Argument(DEFAULT_SESSION_NAME, help="Session name"),
    count: int = typer.Option(0, "--count", "-c", help="Starting count"),
    step: int = typer.Option(1, "--step", "-s", help="Step size"),
    upper: Optional[int] = typer.Option(None, "--upper", help="Upper limit"),
    lower: Optional[int] = typer.Option(None, "--lower", help="Lower limit"),
    haptic: Optional[bool] = typer.Option(
        None,
        "--haptic/--no-haptic",
        help="Vibration on count changes (uses the default if not specified)",
    ),
    allow_negatives: Optional[bool] = typer.Option(
        None,
        "--allow-negatives/--no-allow-negatives",
        help="Allow counting below zero (uses the default if not specified)",
    ),
) -> None:
    """
    Create a new count session.

    Out-of-range values are adjusted rather than rejected: the step size is
    at least 1, limits are widened to fit one step, and the count is
    clamped into the limits.
    """
    _check_name(name)
    registry = _open_registry()
    session = registry.create_session(
        name=name,
        count=count,
        step_size=step,
        upper_limit=upper,
        lower_limit=lower,
        haptic_enabled=haptic,
        allow_negatives=allow_negatives,
    )
    typer.echo(f"✓ Created session {str(session.id)[:8]}")
    typer.echo(_describe(session, utc_now()))


@cli.command("list")
def list_(
    search: str = typer.Option("", "--search", "-q", help="Filter by name"),
    favorites: bool = typer.Option(
        False, "--favorites", "-f", help="Only show favorite sessions"
    ),
) -> None:
    """List sessions, most recently modified first."""
    registry = _open_registry()
    sessions = registry.list_sessions()

    if not sessions:
        typer.echo("No sessions yet. Create one with 'countify new'.")
        return

    sessions = filter_sessions(sessions, search)
    if favorites:
        sessions = [session for session in sessions if session.favorite]

    now = utc_now()
    for session in sort_recent(sessions):
        typer.echo(format_row(session, now))


@cli.command()
def show(session_ref: str = typer.Argument(..., help="Session id or id prefix")) -> None:
    """Show one session with all of its settings."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)
    typer.echo(_describe(session, utc_now()))


@cli.command()
def inc(session_ref: str = typer.Argument(..., help="Session id or id prefix")) -> None:
    """Increment a session by its step size."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)
    result = registry.increment(session.id)
    if result is None or not result.applied:
        typer.echo(f"{session.name}: {session.count} (upper limit reached)")
        return
    typer.echo(f"{result.session.name}: {result.session.count}")


@cli.command()
def dec(session_ref: str = typer.Argument(..., help="Session id or id prefix")) -> None:
    """Decrement a session by its step size."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)
    result = registry.decrement(session.id)
    if result is None or not result.applied:
        typer.echo(f"{session.name}: {session.count} (lower limit reached)")
        return
    typer.echo(f"{result.session.name}: {result.session.count}")


@cli.command()
def reset(
    session_ref: str = typer.Argument(..., help="Session id or id prefix"),
    confirm: bool = typer.Option(
        False,
        "--confirm",
        "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """Reset a session to zero, or to its lower limit when that is positive."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)

    if not confirm:
        if not typer.confirm(
            f"Reset '{session.name}' to {session.reset_value}?"
        ):
            typer.echo("Operation cancelled.")
            raise typer.Exit()

    updated = registry.reset(session.id)
    if updated is not None:
        typer.echo(f"✓ {updated.name}: {updated.count}")


@cli.command()
def rename(
    session_ref: str = typer.Argument(..., help="Session id or id prefix"),
    name: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename a session."""
    _check_name(name)
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)
    updated = registry.rename(session.id, name)
    if updated is not None:
        typer.echo(f"✓ Renamed to {updated.name}")


@cli.command()
def duplicate(
    session_ref: str = typer.Argument(..., help="Session id or id prefix"),
) -> None:
    """Copy a session's count and settings into a new session."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)
    copy = registry.duplicate(session.id)
    if copy is not None:
        typer.echo(f"✓ Created {copy.name} ({str(copy.id)[:8]})")


@cli.command()
def favorite(
    session_ref: str = typer.Argument(..., help="Session id or id prefix"),
) -> None:
    """Toggle a session's favorite flag."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)
    updated = registry.toggle_favorite(session.id)
    if updated is not None:
        state = "marked as favorite" if updated.favorite else "removed from favorites"
        typer.echo(f"✓ {updated.name} {state}")


@cli.command()
def delete(
    session_ref: str = typer.Argument(..., help="Session id or id prefix"),
    confirm: bool = typer.Option(
        False,
        "--confirm",
        "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """Delete a session."""
    registry = _open_registry()
    session = _resolve_session(registry, session_ref)

    if not confirm:
        if not typer.confirm(f"Delete '{session.name}'?"):
            typer.echo("Operation cancelled.")
            raise typer.Exit()

    registry.delete_session(session.id)
    typer.echo(f"✓ Deleted {session.name}")


@cli.command()
def defaults(
    haptic: Optional[bool] = typer.Option(
        None, "--haptic/--no-haptic", help="Default vibration for new sessions"
    ),
    allow_negatives: Optional[bool] = typer.Option(
        None,
        "--allow-negatives/--no-allow-negatives",
        help="Default negative-number policy for new sessions",
    ),
) -> None:
    """
    Show or change the defaults for new sessions.

    Changing a default does not affect existing sessions.
    """
    registry = _open_registry()
    current = registry.set_defaults(
        haptic_enabled=haptic, allow_negatives=allow_negatives
    )
    typer.echo(f"Default vibration: {'On' if current.haptic_enabled else 'Off'}")
    typer.echo(
        f"Default allow negatives: {'Yes' if current.allow_negatives else 'No'}"
    )


@cli.command()
def export(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Snapshot file (uses default if not specified)",
    ),
) -> None:
    """Export all sessions to a JSONL snapshot."""
    registry = _open_registry()
    target = output or get_snapshot_path()
    written = export_snapshot(registry, target)
    typer.echo(f"✓ Exported {written} sessions to {target}")


@cli.command("import")
def import_(
    source: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        help="Snapshot file (uses default if not specified)",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Delete existing sessions before importing",
    ),
) -> None:
    """Import sessions from a JSONL snapshot."""
    registry = _open_registry()
    target = source or get_snapshot_path()
    try:
        imported = import_snapshot(registry, target, overwrite=overwrite)
    except FileNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.echo(f"Error importing snapshot: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✓ Imported {imported} sessions from {target}")


@cli.command()
def clear(
    confirm: bool = typer.Option(
        False,
        "--confirm",
        "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """
    Delete all sessions.

    Defaults for new sessions are kept.
    """
    registry = _open_registry()

    if not confirm:
        if not typer.confirm("This will delete ALL sessions. Are you sure?"):
            typer.echo("Operation cancelled.")
            raise typer.Exit()

    registry.clear()
    typer.echo("✓ All sessions deleted.")


if __name__ == "__main__":
    cli()
