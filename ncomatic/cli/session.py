"""Session lifecycle commands: ``new``, ``show`` and ``delete``."""

from __future__ import annotations

import click

from ncomatic.models import SessionRecord
from ncomatic.utils.display import echo_banner, echo_field, echo_success

from ._common import get_wizard, session_argument, wizard_errors

_SHOWN_FIELDS = (
    "platform",
    "community",
    "data_file_type",
    "data_file_name",
    "data_archive_name",
    "positional_file_name",
    "template_file_name",
    "delimiter",
    "header_line_numbers",
    "no_header_lines",
    "converted_file_name",
    "archive_name",
)


@click.command(name="new", help="Create a wizard session and print its id.")
@click.option("--platform", help="Measurement platform, e.g. 'Argo_Float'.")
@click.option("--file-type", "file_type", help="File type tag, e.g. 'eTuff' or 'Custom_File_Type'.")
@click.pass_obj
def new(ctx_obj, platform: str | None, file_type: str | None) -> None:
    wizard = get_wizard(ctx_obj)
    with wizard_errors():
        sid = wizard.persist(SessionRecord(platform=platform, data_file_type=file_type))
    echo_success("Session created")
    click.echo(sid)


@click.command(name="show", help="Print the stored state of a session.")
@session_argument
@click.pass_obj
def show(ctx_obj, session_id: str) -> None:
    wizard = get_wizard(ctx_obj)
    with wizard_errors(session_id):
        record = wizard.lookup(session_id)
        staged = wizard.staged_files(session_id)
    echo_banner(f"Session {session_id}")
    for name in _SHOWN_FIELDS:
        value = getattr(record, name)
        if name == "header_line_numbers":
            value = ",".join(str(n) for n in value)
        echo_field(name, value)
    echo_field("converted", "yes" if record.is_converted else "no")
    echo_field("staged", ", ".join(staged) or None)


@click.command(name="delete", help="Delete a session record and its metadata (files stay on disk).")
@session_argument
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_obj
def delete(ctx_obj, session_id: str, yes: bool) -> None:
    wizard = get_wizard(ctx_obj)
    if not yes and not click.confirm(f"Delete session {session_id}?"):
        raise click.Abort()
    with wizard_errors(session_id):
        wizard.lookup(session_id)
        wizard.delete(session_id)
    echo_success(f"Session {session_id} deleted")
