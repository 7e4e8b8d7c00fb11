"""Utility functions to print formatted CLI messages for progress updates."""

from __future__ import annotations

import click

__all__ = ["echo_banner", "echo_session", "echo_success", "echo_field"]


def echo_banner(text: str) -> None:
    """Print a colourful banner announcing a wizard step.

    Args:
        text: Banner text.
    """
    click.secho(f"\n=== {text} ===", fg="cyan")


def echo_session(session_id: str, step: str | None = None) -> None:
    """Echo a bullet with the session id and, optionally, the step reached."""
    if step:
        click.echo(f"  • {session_id} → {step}")
    else:
        click.echo(f"  • {session_id}")


def echo_success(text: str) -> None:
    """Echo a green success message prefixed with a tick."""
    click.secho(f"✓ {text}", fg="green")


def echo_field(name: str, value: object) -> None:
    """Echo one ``name: value`` line, dimming unset values."""
    if value in (None, "", ()):
        click.secho(f"  {name}: -", dim=True)
    else:
        click.echo(f"  {name}: {value}")
