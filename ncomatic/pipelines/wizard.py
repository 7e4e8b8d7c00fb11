"""
Per-session wizard state machine.

:class:`WizardOrchestrator` is the single entry point an outer layer (the
bundled CLI, or an HTTP front-end) calls with a session id and the payload of
one wizard step.  Each operation

1. reads the current :class:`~ncomatic.models.SessionRecord` snapshot,
2. performs its disk work through :mod:`ncomatic.io.staging`,
3. derives a *new* snapshot, and
4. writes it back through the :class:`~ncomatic.store.SessionStore` as the
   last action, guarded by the store's compare-and-set on ``version``.

A failure before step 4 therefore never leaves a half-updated record behind.
Upload handling is expressed through the pure function :func:`merge_upload`.
"""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from ncomatic.config.properties import Properties
from ncomatic.config.schema import ConfigSchema
from ncomatic.converters import ConverterRegistry, default_registry
from ncomatic.io.staging import (
    extract_archive,
    list_inventory,
    parse_by_line,
    read_template,
    write_uploaded_file,
)
from ncomatic.models import (
    CUSTOM_FILE_TYPE,
    ROLE_FIELDS,
    FileRole,
    GeneralMetadata,
    MetadataKind,
    SessionRecord,
    Template,
    UploadedFile,
    VariableMetadata,
    WizardStep,
    parse_header_lines,
)
from ncomatic.store import MetadataStore, SessionStore
from ncomatic.utils.archive import is_archive_name
from ncomatic.utils.errors import FormatError, ValidationError, session_scope

from . import routing
from .convert import apply_result, convert_session
from .metadata import GeneralInput, MetadataProcessor, VariableInput
from .types import ConversionResult

log = structlog.get_logger()

_CUSTOM_FIELDS = {"delimiter": None, "header_line_numbers": (), "no_header_lines": False}
# rosetta.template, or rosetta_N.template after a name collision during extraction.
_TEMPLATE_ENTRY_RE = re.compile(r"rosetta(?:_\d+)?\.template")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------
def merge_upload(current: SessionRecord, delta: Mapping[str, object]) -> SessionRecord:
    """Return a new snapshot with *delta* applied to *current*.

    When the resulting file type is not the custom type, the delimited-text
    fields are cleared so the record stays valid after a type change.

    Raises:
        ValidationError: When the merged snapshot is inconsistent.
    """
    data = current.model_dump()
    data.update(delta)
    if data.get("data_file_type") != CUSTOM_FILE_TYPE:
        data.update(_CUSTOM_FIELDS)
    try:
        return SessionRecord.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid session update: {exc.errors()[0]['msg']}",
            session_id=current.id,
            operation="merge_upload",
        ) from exc


def classify_inventory(inventory: Iterable[str]) -> Tuple[Optional[str], Optional[str], List[str]]:
    """Split archive entries into data file, template file and all data candidates.

    Entries whose name contains ``rosetta.template`` (or its ``rosetta_N.template``
    collision form) are templates; anything else is a data file.  The last
    entry of each kind wins.
    """
    data_name: Optional[str] = None
    template_name: Optional[str] = None
    candidates: List[str] = []
    for entry in inventory:
        if _TEMPLATE_ENTRY_RE.search(entry):
            template_name = entry
        else:
            candidates.append(entry)
            data_name = entry
    return data_name, template_name, candidates


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class WizardOrchestrator:
    """Drive sessions through upload, attributes, metadata and conversion.

    Args:
        session_store: Persistence of :class:`SessionRecord` snapshots.
        metadata_store: Persistence of general / variable metadata.
        properties: Upload and download roots, read once per operation.
        cfg: Configuration providing the platform and delimiter lookups.
        registry: Converter lookup keyed by file type.
    """

    def __init__(
        self,
        session_store: SessionStore,
        metadata_store: MetadataStore,
        properties: Properties,
        cfg: ConfigSchema,
        registry: ConverterRegistry = default_registry,
    ) -> None:
        self._sessions = session_store
        self._metadata_store = metadata_store
        self._properties = properties
        self._cfg = cfg
        self._registry = registry
        self.metadata = MetadataProcessor(session_store, metadata_store, properties, registry)

    # ------------------------------------------------------------------ #
    # Record lifecycle
    # ------------------------------------------------------------------ #
    def _resolve_community(self, record: SessionRecord, *, operation: str) -> Optional[str]:
        if not record.platform:
            return None
        community = self._cfg.community_for(record.platform)
        if community is None:
            raise ValidationError(
                f"Unknown platform {record.platform!r}",
                session_id=record.id,
                operation=operation,
            )
        return community

    def persist(self, record: SessionRecord) -> str:
        """Store a new session, assigning an id and community; return the id."""
        if record.id is None:
            record = record.model_copy(update={"id": uuid.uuid4().hex})
        community = self._resolve_community(record, operation="persist")
        record = merge_upload(record, {"community": community})
        sid = self._sessions.persist(record)
        log.info("wizard.session.created", session_id=sid, platform=record.platform)
        return sid

    def update(self, record: SessionRecord) -> SessionRecord:
        """Write an id-bearing snapshot back; return the stored one."""
        if not record.id:
            raise ValidationError("Cannot update a record without an id", operation="update")
        community = self._resolve_community(record, operation="update")
        return self._sessions.update(merge_upload(record, {"community": community}))

    def delete(self, session_id: str) -> None:
        """Remove the record and its metadata; staged files stay on disk."""
        self._sessions.delete(session_id)
        self._metadata_store.delete(session_id)
        log.info("wizard.session.deleted", session_id=session_id)

    def lookup(self, session_id: str) -> SessionRecord:
        return self._sessions.lookup_by_id(session_id)

    # ------------------------------------------------------------------ #
    # Step: file upload
    # ------------------------------------------------------------------ #
    def process_file_upload(
        self,
        session_id: str,
        files: Iterable[UploadedFile],
        data_file_type: Optional[str] = None,
    ) -> SessionRecord:
        """Stage uploaded files and record their names.

        Per role present in *files*: a new name is staged, the persisted name
        is a no-op, an empty name without bytes clears the role ("undo").
        A DATA archive is extracted at once and its inventory decides the data
        and template names.  A staged template is validated and seeds the
        session's metadata when none is stored yet.

        Returns:
            The resulting snapshot (unchanged when nothing differed).
        """
        op = "process_file_upload"
        record = self._sessions.lookup_by_id(session_id)
        upload_root = self._properties.lookup_upload_directory()

        by_role: Dict[FileRole, UploadedFile] = {}
        for f in files:
            if f.role in by_role:
                raise ValidationError(
                    f"More than one {f.role.value} file in one upload",
                    session_id=session_id,
                    operation=op,
                )
            by_role[f.role] = f

        delta: Dict[str, object] = {}
        if data_file_type is not None and data_file_type != record.data_file_type:
            delta["data_file_type"] = data_file_type

        # Validate every role before touching the disk.
        pending: List[UploadedFile] = []
        for role, f in by_role.items():
            field = ROLE_FIELDS[role]
            persisted = record.file_name(role)
            if f.is_undo:
                if persisted:
                    delta[field] = None
                    if role is FileRole.DATA:
                        delta["data_archive_name"] = None
                    log.info("wizard.upload.undo", session_id=session_id, role=role.value)
                continue
            name = f.name.strip()
            if name == persisted or (role is FileRole.DATA and name == record.data_archive_name):
                log.debug("wizard.upload.unchanged", session_id=session_id, role=role.value)
                continue
            if not f.content:
                raise ValidationError(
                    f"{role.value} file {name!r} has no content",
                    session_id=session_id,
                    operation=op,
                )
            pending.append(f)

        staged_template: Optional[str] = None
        for f in pending:
            final = write_uploaded_file(upload_root, session_id, f.name.strip(), f.content)
            log.info("wizard.upload.staged", session_id=session_id, role=f.role.value, name=final)

            if f.role is FileRole.DATA and is_archive_name(final):
                inventory = extract_archive(upload_root, session_id, final)
                data_name, template_name, candidates = classify_inventory(inventory)
                if data_name is None:
                    raise FormatError(
                        f"Archive {final} contains no data file",
                        session_id=session_id,
                        operation=op,
                    )
                if len(candidates) > 1:
                    log.warning(
                        "wizard.upload.multiple_data_files",
                        session_id=session_id,
                        candidates=candidates,
                        chosen=data_name,
                    )
                delta["data_file_name"] = data_name
                delta["data_archive_name"] = final
                if template_name is not None:
                    delta["template_file_name"] = template_name
                    staged_template = template_name
                continue

            delta[ROLE_FIELDS[f.role]] = final
            if f.role is FileRole.DATA:
                delta["data_archive_name"] = None
            elif f.role is FileRole.TEMPLATE:
                staged_template = final

        template: Optional[Template] = None
        if staged_template is not None:
            with session_scope(session_id):
                template = read_template(upload_root / session_id / staged_template)
            delta.update(self._template_defaults(record, delta, template))

        merged = merge_upload(record, delta)
        if merged != record:
            merged = self._sessions.update(merged)
        if template is not None:
            seeded = self.metadata.seed_from_template(session_id, template)
            if seeded:
                log.info(
                    "wizard.upload.template_seeded",
                    session_id=session_id,
                    kinds=[k.value for k in seeded],
                )
        return merged

    @staticmethod
    def _template_defaults(
        record: SessionRecord, delta: Mapping[str, object], template: Template
    ) -> Dict[str, object]:
        """Fields a staged template fills in when the session leaves them unset."""
        out: Dict[str, object] = {}
        file_type = delta.get("data_file_type", record.data_file_type)
        if file_type is None:
            file_type = template.data_file_type
            out["data_file_type"] = file_type
        if file_type == CUSTOM_FILE_TYPE and template.data_file_type == CUSTOM_FILE_TYPE:
            if record.delimiter is None and not record.header_line_numbers:
                out["delimiter"] = template.delimiter
                out["header_line_numbers"] = template.header_line_numbers
                out["no_header_lines"] = template.no_header_lines
        return out

    # ------------------------------------------------------------------ #
    # Step: custom file-type attributes
    # ------------------------------------------------------------------ #
    def process_custom_file_type_attributes(
        self,
        session_id: str,
        delimiter: Optional[str],
        header_lines: object = None,
        no_header_lines: bool = False,
    ) -> SessionRecord:
        """Record the delimiter and header lines of a custom-type session.

        Args:
            session_id: Session to update.
            delimiter: Configured name (``"Comma"``) or the symbol itself.
            header_lines: 0-based line numbers as ints or ``"0,1"``.
            no_header_lines: ``True`` when the file has no header lines.
        """
        op = "process_custom_file_type_attributes"
        record = self._sessions.lookup_by_id(session_id)
        if not record.is_custom:
            raise ValidationError(
                f"Delimiter and header lines apply to {CUSTOM_FILE_TYPE} only "
                f"(session type is {record.data_file_type!r})",
                session_id=session_id,
                operation=op,
            )
        if delimiter is None or delimiter == "":
            raise ValidationError("A delimiter is required", session_id=session_id, operation=op)
        symbol = self._cfg.delimiter_symbol(delimiter)

        if no_header_lines:
            lines: Tuple[int, ...] = ()
        else:
            try:
                lines = parse_header_lines(header_lines)
            except ValueError as exc:
                raise ValidationError(str(exc), session_id=session_id, operation=op) from exc
            if not lines:
                raise ValidationError(
                    "Header line numbers are required unless no_header_lines is set",
                    session_id=session_id,
                    operation=op,
                )

        updated = merge_upload(
            record,
            {"delimiter": symbol, "header_line_numbers": lines, "no_header_lines": no_header_lines},
        )
        if updated == record:
            return record
        log.info("wizard.custom_attrs", session_id=session_id, delimiter=symbol, header_lines=lines)
        return self._sessions.update(updated)

    # ------------------------------------------------------------------ #
    # Steps: metadata
    # ------------------------------------------------------------------ #
    def process_general_metadata(
        self, session_id: str, user_input: GeneralInput | GeneralMetadata | None
    ) -> GeneralMetadata:
        """Merge and store general metadata; return the stored value."""
        merged = self.metadata.merge_general(user_input, session_id)
        self.metadata.persist(merged, session_id, MetadataKind.GENERAL)
        return merged

    def process_variable_metadata(
        self, session_id: str, user_input: VariableInput | VariableMetadata | None
    ) -> VariableMetadata:
        """Merge and store variable metadata; return the stored value."""
        merged = self.metadata.merge_variable(user_input, session_id)
        self.metadata.persist(merged, session_id, MetadataKind.VARIABLE)
        return merged

    def get_metadata_for_client(self, session_id: str, kind: MetadataKind | str) -> str:
        """Return stored metadata of *kind* as a JSON string."""
        self._sessions.lookup_by_id(session_id)
        try:
            kind = MetadataKind(kind)
        except ValueError:
            raise ValidationError(
                f"Unknown metadata kind {kind!r}",
                session_id=session_id,
                operation="get_metadata_for_client",
            ) from None
        return self.metadata.render_for_client(session_id, kind)

    # ------------------------------------------------------------------ #
    # Routing
    # ------------------------------------------------------------------ #
    def process_next_step(
        self, session_id: str, current: WizardStep | str = WizardStep.FILE_UPLOAD
    ) -> WizardStep:
        """Return the step after *current* for the session's file type."""
        record = self._sessions.lookup_by_id(session_id)
        try:
            return routing.next_step(record.data_file_type, current)
        except ValidationError as exc:
            exc.session_id = session_id
            raise

    def process_previous_step(
        self, session_id: str, current: WizardStep | str = WizardStep.GENERAL_METADATA
    ) -> WizardStep:
        """Return the step before *current* for the session's file type."""
        record = self._sessions.lookup_by_id(session_id)
        try:
            return routing.previous_step(record.data_file_type, current)
        except ValidationError as exc:
            exc.session_id = session_id
            raise

    # ------------------------------------------------------------------ #
    # Preview / conversion
    # ------------------------------------------------------------------ #
    def _data_path(self, record: SessionRecord, *, operation: str) -> Path:
        if not record.data_file_name:
            raise ValidationError("No data file uploaded", session_id=record.id, operation=operation)
        return self._properties.lookup_upload_directory() / record.id / record.data_file_name

    def staged_files(self, session_id: str) -> List[str]:
        """Return every file staged for the session, archive contents included."""
        self._sessions.lookup_by_id(session_id)
        directory = self._properties.lookup_upload_directory() / session_id
        if not directory.exists():
            return []
        with session_scope(session_id):
            return list_inventory(directory)

    def parse_data_file_by_line(self, session_id: str) -> str:
        """Return the raw lines of the staged data file as a JSON array."""
        record = self._sessions.lookup_by_id(session_id)
        with session_scope(session_id):
            return parse_by_line(self._data_path(record, operation="parse_data_file_by_line"))

    def convert(self, session_id: str) -> ConversionResult:
        """Convert the session and record the output names.

        The record is written only after conversion, template and bundle all
        succeeded.
        """
        record = self._sessions.lookup_by_id(session_id)
        general, variables = self.metadata.merged(session_id)
        result = convert_session(
            record,
            upload_root=self._properties.lookup_upload_directory(),
            download_root=self._properties.lookup_download_directory(),
            general=general,
            variables=variables,
            registry=self._registry,
        )
        self._sessions.update(apply_result(record, result))
        return result


__all__ = ["WizardOrchestrator", "merge_upload", "classify_inventory"]
