"""Stage data, positional and template files for a session.

Key flags
---------
* ``--data`` / ``--positional`` / ``--template`` – files to upload.  A data
  archive (``.zip``, ``.tar.gz`` …) is extracted straight away.
* ``--clear-data`` / ``--clear-positional`` / ``--clear-template`` – forget a
  previous upload (the staged file stays on disk).
* ``--file-type`` – record the file type tag with the upload.
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog

from ncomatic.models import FileRole, UploadedFile
from ncomatic.utils.display import echo_banner, echo_field, echo_session, echo_success

from ._common import get_wizard, session_argument, wizard_errors

log = structlog.get_logger()

_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def _payload(role: FileRole, path: Path | None, clear: bool) -> UploadedFile | None:
    if path is not None and clear:
        raise click.UsageError(f"Cannot upload and clear the {role.value.lower()} file at once.")
    if clear:
        return UploadedFile(role=role)
    if path is None:
        return None
    return UploadedFile(role=role, name=path.name, content=path.read_bytes())


@click.command(name="upload", help="Upload files into a session.")
@session_argument
@click.option("--data", "data", type=_FILE, help="Primary data file or archive.")
@click.option("--positional", "positional", type=_FILE, help="Positional companion file.")
@click.option("--template", "template", type=_FILE, help="rosetta.template from an earlier run.")
@click.option("--clear-data", is_flag=True)
@click.option("--clear-positional", is_flag=True)
@click.option("--clear-template", is_flag=True)
@click.option("--file-type", "file_type", help="File type tag to record.")
@click.pass_obj
def cli(  # noqa: D401 – Click callback naming rule
    ctx_obj,
    session_id: str,
    data: Path | None,
    positional: Path | None,
    template: Path | None,
    clear_data: bool,
    clear_positional: bool,
    clear_template: bool,
    file_type: str | None,
) -> None:
    """Entry-point for ``ncomatic-cli upload``."""
    files = [
        f
        for f in (
            _payload(FileRole.DATA, data, clear_data),
            _payload(FileRole.POSITIONAL, positional, clear_positional),
            _payload(FileRole.TEMPLATE, template, clear_template),
        )
        if f is not None
    ]
    if not files and file_type is None:
        raise click.UsageError("Nothing to upload.")

    wizard = get_wizard(ctx_obj)
    echo_banner("Upload")
    with wizard_errors(session_id):
        record = wizard.process_file_upload(session_id, files, data_file_type=file_type)
        step = wizard.process_next_step(session_id)

    echo_field("data_file_type", record.data_file_type)
    echo_field("data_file_name", record.data_file_name)
    echo_field("positional_file_name", record.positional_file_name)
    echo_field("template_file_name", record.template_file_name)
    echo_session(session_id, step.value)
    echo_success("Upload recorded")
