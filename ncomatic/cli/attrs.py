"""Record delimiter and header lines for a ``Custom_File_Type`` session."""

from __future__ import annotations

import click

from ncomatic.utils.display import echo_field, echo_session, echo_success

from ._common import get_wizard, session_argument, wizard_errors


@click.command(name="custom-attrs", help="Set delimiter and header lines of a custom file.")
@session_argument
@click.option("--delimiter", required=True, help="Delimiter name (Comma, Tab …) or symbol.")
@click.option("--header-lines", default=None, metavar="<0,1,…>", help="0-based header line numbers.")
@click.option("--no-header-lines", is_flag=True, help="The file has no header lines.")
@click.pass_obj
def cli(ctx_obj, session_id: str, delimiter: str, header_lines: str | None, no_header_lines: bool) -> None:
    wizard = get_wizard(ctx_obj)
    with wizard_errors(session_id):
        record = wizard.process_custom_file_type_attributes(
            session_id, delimiter, header_lines, no_header_lines
        )
        step = wizard.process_next_step(session_id, "customFileTypeAttributes")
    echo_field("delimiter", repr(record.delimiter))
    echo_field("header_line_numbers", ",".join(str(n) for n in record.header_line_numbers))
    echo_session(session_id, step.value)
    echo_success("Custom file attributes recorded")
