"""
Extraction, merging and persistence of session metadata.

Two families are kept per session, independently of the session record:

* **general**  – global attributes (``title``, ``institution`` …).
* **variable** – one attribute set per variable name.

Merging follows a fixed precedence, lowest first:

1. metadata embedded in the session's data file (known formats only),
2. whatever has already been persisted for the session,
3. the fields the user just submitted.

Blank values never overwrite a non-blank one, so clearing a form field does
not erase previously known metadata.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

import structlog

from ncomatic.config.properties import Properties
from ncomatic.converters import ConverterRegistry, default_registry
from ncomatic.models import GeneralMetadata, MetadataKind, Template, VariableMetadata
from ncomatic.store import MetadataStore, SessionStore
from ncomatic.utils.errors import NcomaticError, PersistenceError, ValidationError

log = structlog.get_logger()

GeneralInput = Mapping[str, object]
VariableInput = Mapping[str, Mapping[str, object]]


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------
def _text(value: object) -> str:
    return "" if value is None else str(value)


def as_general(user_input: GeneralInput | GeneralMetadata | None) -> GeneralMetadata:
    """Coerce a plain mapping into :class:`GeneralMetadata`."""
    if isinstance(user_input, GeneralMetadata):
        return user_input
    return GeneralMetadata(attributes={str(k): _text(v) for k, v in (user_input or {}).items()})


def as_variables(user_input: VariableInput | VariableMetadata | None) -> VariableMetadata:
    """Coerce a nested mapping into :class:`VariableMetadata`."""
    if isinstance(user_input, VariableMetadata):
        return user_input
    variables = {}
    for name, attrs in (user_input or {}).items():
        if not isinstance(attrs, Mapping):
            raise ValidationError(
                f"Attributes of variable {name!r} must be a mapping",
                operation="merge_variable",
            )
        variables[str(name)] = {str(k): _text(v) for k, v in attrs.items()}
    return VariableMetadata(variables=variables)


class MetadataProcessor:
    """Merge extracted and user-supplied metadata for wizard sessions.

    Args:
        session_store: Source of session records (data file name and tag).
        metadata_store: Persistence for the two metadata families.
        properties: Supplies the upload root the data file lives under.
        registry: Converter lookup used for extraction.
    """

    def __init__(
        self,
        session_store: SessionStore,
        metadata_store: MetadataStore,
        properties: Properties,
        registry: ConverterRegistry = default_registry,
    ) -> None:
        self._sessions = session_store
        self._metadata = metadata_store
        self._properties = properties
        self._registry = registry

    # ------------------------------------------------------------------ #
    # Extraction
    # ------------------------------------------------------------------ #
    def extract_from_known_file(
        self, path: Optional[Path], data_file_type: Optional[str]
    ) -> Tuple[GeneralMetadata, VariableMetadata]:
        """Return metadata embedded in *path* when its type supports it.

        Types without a registered converter, converters that do not extract
        metadata, missing files and unparseable files all yield empty
        metadata.
        """
        empty = (GeneralMetadata(), VariableMetadata())
        if path is None:
            return empty
        converter = self._registry.create(data_file_type)
        if converter is None or not converter.extracts_metadata:
            return empty
        if not Path(path).is_file():
            log.warning("metadata.extract.missing", path=str(path), file_type=data_file_type)
            return empty
        try:
            converter.parse(Path(path))
        except NcomaticError as exc:
            log.warning("metadata.extract.failed", path=str(path), error=str(exc))
            return empty
        return converter.extract_general_metadata(), converter.extract_variable_metadata()

    def _extract_for_session(self, session_id: str) -> Tuple[GeneralMetadata, VariableMetadata]:
        record = self._sessions.lookup_by_id(session_id)
        path = None
        if record.data_file_name:
            path = self._properties.lookup_upload_directory() / session_id / record.data_file_name
        return self.extract_from_known_file(path, record.data_file_type)

    def extract_general(self, session_id: str) -> GeneralMetadata:
        """General metadata embedded in the session's data file."""
        return self._extract_for_session(session_id)[0]

    def extract_variables(self, session_id: str) -> VariableMetadata:
        """Variable metadata embedded in the session's data file."""
        return self._extract_for_session(session_id)[1]

    # ------------------------------------------------------------------ #
    # Persisted state
    # ------------------------------------------------------------------ #
    def _load(self, session_id: str, kind: MetadataKind) -> Optional[dict]:
        doc = self._metadata.lookup(session_id, kind)
        if doc is not None and not isinstance(doc, dict):
            raise PersistenceError(
                f"Stored {kind.value} metadata is not an object",
                session_id=session_id,
                operation="metadata.lookup",
            )
        return doc

    def load_general(self, session_id: str) -> GeneralMetadata:
        return as_general(self._load(session_id, MetadataKind.GENERAL))

    def load_variables(self, session_id: str) -> VariableMetadata:
        return as_variables(self._load(session_id, MetadataKind.VARIABLE))

    # ------------------------------------------------------------------ #
    # Merge
    # ------------------------------------------------------------------ #
    def merge_general(
        self, user_input: GeneralInput | GeneralMetadata | None, session_id: str
    ) -> GeneralMetadata:
        """Return extracted ⊕ persisted ⊕ *user_input* general metadata."""
        extracted = self.extract_general(session_id)
        return extracted.overlay(self.load_general(session_id)).overlay(as_general(user_input))

    def merge_variable(
        self, user_input: VariableInput | VariableMetadata | None, session_id: str
    ) -> VariableMetadata:
        """Return extracted ⊕ persisted ⊕ *user_input* variable metadata."""
        extracted = self.extract_variables(session_id)
        return extracted.overlay(self.load_variables(session_id)).overlay(as_variables(user_input))

    def merged(self, session_id: str) -> Tuple[GeneralMetadata, VariableMetadata]:
        """Return extracted ⊕ persisted metadata of both kinds, parsing the file once."""
        general, variables = self._extract_for_session(session_id)
        return (
            general.overlay(self.load_general(session_id)),
            variables.overlay(self.load_variables(session_id)),
        )

    # ------------------------------------------------------------------ #
    # Persist / render
    # ------------------------------------------------------------------ #
    def persist(
        self,
        metadata: GeneralMetadata | VariableMetadata,
        session_id: str,
        kind: MetadataKind,
    ) -> None:
        """Store *metadata* under ``(session_id, kind)``."""
        kind = MetadataKind(kind)
        if kind is MetadataKind.GENERAL and isinstance(metadata, GeneralMetadata):
            payload: dict = dict(metadata.attributes)
        elif kind is MetadataKind.VARIABLE and isinstance(metadata, VariableMetadata):
            payload = {k: dict(v) for k, v in metadata.variables.items()}
        else:
            raise ValidationError(
                f"{type(metadata).__name__} cannot be stored as {kind.value} metadata",
                session_id=session_id,
                operation="metadata.persist",
            )
        self._metadata.persist(session_id, kind, payload)
        log.info("metadata.persisted", session_id=session_id, kind=kind.value, keys=len(payload))

    def render_for_client(self, session_id: str, kind: MetadataKind) -> str:
        """Return the persisted metadata of *kind* as a JSON string (``"{}"`` if none)."""
        return json.dumps(self._load(session_id, MetadataKind(kind)) or {})

    def seed_from_template(self, session_id: str, template: Template) -> List[MetadataKind]:
        """Persist the template's metadata for every kind not stored yet.

        Returns:
            The kinds that were seeded.
        """
        seeded: List[MetadataKind] = []
        if template.general_metadata and self._load(session_id, MetadataKind.GENERAL) is None:
            self.persist(as_general(template.general_metadata), session_id, MetadataKind.GENERAL)
            seeded.append(MetadataKind.GENERAL)
        if template.variable_metadata and self._load(session_id, MetadataKind.VARIABLE) is None:
            self.persist(
                as_variables(template.variable_metadata), session_id, MetadataKind.VARIABLE
            )
            seeded.append(MetadataKind.VARIABLE)
        return seeded


__all__ = ["MetadataProcessor", "as_general", "as_variables"]
