"""Routing and preview commands: ``next-step``, ``previous-step``, ``preview``."""

from __future__ import annotations

import click

from ncomatic.models import WizardStep

from ._common import get_wizard, session_argument, wizard_errors

_STEPS = click.Choice([s.value for s in WizardStep])


@click.command(name="next-step", help="Print the step after --from for this session.")
@session_argument
@click.option("--from", "current", type=_STEPS, default=WizardStep.FILE_UPLOAD.value)
@click.pass_obj
def next_step(ctx_obj, session_id: str, current: str) -> None:
    with wizard_errors(session_id):
        click.echo(get_wizard(ctx_obj).process_next_step(session_id, current).value)


@click.command(name="previous-step", help="Print the step before --from for this session.")
@session_argument
@click.option("--from", "current", type=_STEPS, default=WizardStep.GENERAL_METADATA.value)
@click.pass_obj
def previous_step(ctx_obj, session_id: str, current: str) -> None:
    with wizard_errors(session_id):
        click.echo(get_wizard(ctx_obj).process_previous_step(session_id, current).value)


@click.command(name="preview", help="Print the raw lines of the data file as JSON.")
@session_argument
@click.pass_obj
def preview(ctx_obj, session_id: str) -> None:
    with wizard_errors(session_id):
        click.echo(get_wizard(ctx_obj).parse_data_file_by_line(session_id))
