"""Helpers shared by the sub-command modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import click
import structlog

from ncomatic.pipelines import WizardOrchestrator
from ncomatic.utils.errors import NcomaticError


def get_wizard(ctx_obj) -> WizardOrchestrator:
    """Return the orchestrator built by the root group."""
    return ctx_obj["wizard"]


@contextmanager
def wizard_errors(session_id: str | None = None) -> Iterator[None]:
    """Run a wizard call with *session_id* bound to every log event.

    Pipeline errors leave as :class:`click.ClickException` carrying the error
    kind, e.g. ``SessionNotFoundError: ...``.
    """
    try:
        if session_id is None:
            yield
        else:
            with structlog.contextvars.bound_contextvars(session_id=session_id):
                yield
    except NcomaticError as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc


def session_argument(func):
    """``SESSION_ID`` positional argument used by most commands."""
    return click.argument("session_id", metavar="SESSION_ID")(func)
