"""
Session conversion: staged data file → netCDF + template + ZIP bundle.

:func:`convert_session` performs every disk step of a conversion and returns
a :class:`~ncomatic.pipelines.types.ConversionResult`; it never touches a
store.  The caller records the output names with :func:`apply_result` and
writes the new snapshot back only after this function returned, so a failure
anywhere leaves the session in its pre-conversion state.

Layout produced under ``<download_root>/<id>/``::

    <data stem>.nc        (registered converters only)
    rosetta.template
    <data stem>.zip
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from ncomatic.converters import ConverterRegistry, default_registry
from ncomatic.io.staging import (
    atomic_target,
    compress,
    create_download_subdirectory,
    parse_by_delimiter,
    write_template,
)
from ncomatic.models import (
    TARGET_EXTENSION,
    TEMPLATE_FILE_NAME,
    GeneralMetadata,
    SessionRecord,
    Template,
    VariableMetadata,
)
from ncomatic.utils.errors import (
    ConversionError,
    FileIOError,
    FormatError,
    ValidationError,
    session_scope,
)

from .types import ConversionResult

log = structlog.get_logger()


def target_name(data_file_name: str) -> str:
    """Return the converted file name for *data_file_name*.

    >>> target_name("sub/track.csv")
    'track.nc'
    """
    stem, _ = os.path.splitext(Path(data_file_name).name)
    return f"{stem}{TARGET_EXTENSION}"


def convert_session(
    record: SessionRecord,
    *,
    upload_root: Path,
    download_root: Path,
    general: GeneralMetadata | None = None,
    variables: VariableMetadata | None = None,
    registry: ConverterRegistry = default_registry,
) -> ConversionResult:
    """Convert the data file of *record* and bundle the outputs.

    Args:
        record: Session snapshot; must carry an id and a data file name.
        upload_root: Root of the per-session upload folders.
        download_root: Root of the per-session download folders.
        general: Merged general metadata written into target and template.
        variables: Merged variable metadata written into target and template.
        registry: Converter lookup keyed by ``record.data_file_type``.

    Returns:
        Names of the produced artifacts, plus the decomposed rows when no
        converter is registered for the file type.

    Raises:
        ValidationError: No data file, or fallback without a delimiter.
        FileIOError: The data file is missing or an output cannot be written.
        FormatError: The converter did not recognise the file structure.
        ConversionError: The converter failed for any other reason.
    """
    op = "convert"
    sid = record.id
    if not sid:
        raise ValidationError("Session has no id", operation=op)
    if not record.data_file_name:
        raise ValidationError("No data file uploaded", session_id=sid, operation=op)

    general = general or GeneralMetadata()
    variables = variables or VariableMetadata()

    source = Path(upload_root).expanduser() / sid / record.data_file_name
    if not source.is_file():
        raise FileIOError(f"Data file {source} not found", session_id=sid, operation=op)
    download_dir = create_download_subdirectory(Path(download_root).expanduser(), sid)
    converted = target_name(record.data_file_name)

    log.info("convert.start", session_id=sid, file_type=record.data_file_type, source=str(source))

    with session_scope(sid):
        # ── 1. format-specific conversion or delimited fallback ─────────
        rows = None
        outputs = [TEMPLATE_FILE_NAME]
        converter = registry.create(record.data_file_type, general=general, variables=variables)
        if converter is not None:
            try:
                converter.parse(source)
            except (FormatError, FileIOError):
                raise
            except Exception as exc:
                raise ConversionError(
                    f"{record.data_file_type} parser failed: {exc}", session_id=sid, operation=op
                ) from exc

            try:
                with atomic_target(download_dir / converted) as tmp:
                    converter.convert(tmp)
            except ConversionError:
                raise
            except Exception as exc:
                raise ConversionError(
                    f"Writing {converted} failed: {exc}", session_id=sid, operation=op
                ) from exc
            outputs.insert(0, converted)
            log.info("convert.encoded", session_id=sid, target=converted)
        else:
            if not record.delimiter:
                raise ValidationError(
                    f"No converter for {record.data_file_type!r} and no delimiter set",
                    session_id=sid,
                    operation=op,
                )
            rows = parse_by_delimiter(source, record.header_line_numbers, record.delimiter)
            log.info("convert.decomposed", session_id=sid, rows=len(rows))

        # ── 2. template artifact ────────────────────────────────────────
        template = Template.from_session(record, general, variables)
        template_name = write_template(download_dir, template, TEMPLATE_FILE_NAME)

        # ── 3. bundle this run's outputs only ───────────────────────────
        archive_name = compress(download_dir, record.data_file_name, outputs, session_id=sid)

    log.info("convert.done", session_id=sid, archive=archive_name)
    return ConversionResult(
        converted_file_name=converted,
        template_file_name=template_name,
        archive_name=archive_name,
        download_dir=download_dir,
        rows=rows,
    )


def apply_result(record: SessionRecord, result: ConversionResult) -> SessionRecord:
    """Return *record* with the conversion output names set."""
    return record.model_copy(
        update={
            "converted_file_name": result.converted_file_name,
            "template_file_name": result.template_file_name,
            "archive_name": result.archive_name,
        }
    )


__all__ = ["convert_session", "apply_result", "target_name"]
