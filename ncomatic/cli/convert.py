"""Convert a session's data file and bundle the outputs.

Writes ``<stem>.nc`` (registered file types), ``rosetta.template`` and
``<stem>.zip`` into ``<download>/<id>/``.  File types without a converter are
split into rows using the session's delimiter; ``--rows`` prints them.
"""

from __future__ import annotations

import json

import click

from ncomatic.utils.display import echo_banner, echo_field, echo_success

from ._common import get_wizard, session_argument, wizard_errors


@click.command(name="convert", help="Convert the session's data file to netCDF.")
@session_argument
@click.option("--rows", "print_rows", is_flag=True, help="Print decomposed rows (fallback only).")
@click.pass_obj
def cli(ctx_obj, session_id: str, print_rows: bool) -> None:
    """Entry-point for ``ncomatic-cli convert``."""
    wizard = get_wizard(ctx_obj)
    echo_banner("Convert")
    with wizard_errors(session_id):
        result = wizard.convert(session_id)

    echo_field("download_dir", result.download_dir)
    echo_field("converted_file_name", result.converted_file_name)
    echo_field("template_file_name", result.template_file_name)
    echo_field("archive_name", result.archive_name)
    if result.used_fallback:
        echo_field("rows", len(result.rows))
        if print_rows:
            click.echo(json.dumps(result.rows))
    echo_success(f"Session {session_id} converted")
