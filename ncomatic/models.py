"""
Domain-level value objects shared by the staging, conversion and wizard layers.

The module provides:

* **Enumerations** for uploaded file roles, wizard steps and metadata kinds.
* **`SessionRecord`** – the immutable snapshot of one wizard run.  Every step
  produces a *new* snapshot; nothing mutates a record in place.
* **`UploadedFile`** – the transient upload payload for one file role.
* **Metadata models** (`GeneralMetadata`, `VariableMetadata`) and the
  **`Template`** document written as ``rosetta.template``.

Every class inherits from :class:`pydantic.BaseModel` with ``frozen=True`` so
snapshots are hashable and cannot drift once created.
"""

from __future__ import annotations

import enum
from typing import Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

# --------------------------------------------------------------------------- #
# Fixed naming contract
# --------------------------------------------------------------------------- #
#: File-type tag routing a session through the delimiter / header-line step.
CUSTOM_FILE_TYPE = "Custom_File_Type"

#: Name of the template artifact written next to every converted file.
TEMPLATE_FILE_NAME = "rosetta.template"

#: Extension of the converted target format (netCDF).
TARGET_EXTENSION = ".nc"

#: Revision of the template document layout.
TEMPLATE_FORMAT_VERSION = 1


# --------------------------------------------------------------------------- #
# 1 – enumerations
# --------------------------------------------------------------------------- #
class FileRole(str, enum.Enum):
    """Role of an uploaded file inside a session."""

    DATA = "DATA"
    POSITIONAL = "POSITIONAL"
    TEMPLATE = "TEMPLATE"


class WizardStep(str, enum.Enum):
    """Logical wizard steps returned by the routing helpers."""

    FILE_UPLOAD = "fileUpload"
    CUSTOM_FILE_TYPE_ATTRIBUTES = "customFileTypeAttributes"
    GENERAL_METADATA = "generalMetadata"
    VARIABLE_METADATA = "variableMetadata"
    CONVERTED = "converted"


class MetadataKind(str, enum.Enum):
    """Metadata families persisted per session."""

    GENERAL = "general"
    VARIABLE = "variable"


# --------------------------------------------------------------------------- #
# 2 – helpers
# --------------------------------------------------------------------------- #
def parse_header_lines(value: object) -> Tuple[int, ...]:
    """Normalise header line numbers to a sorted tuple of unique ints.

    Accepts ``None``, a comma-separated string (``"0, 1,2"``) or any iterable
    of ints / numeric strings.

    Raises:
        ValueError: When an entry is not a non-negative integer.
    """
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        items: Iterable[object] = [v for v in value.split(",") if v.strip()]
    elif isinstance(value, int):
        items = [value]
    else:
        items = value  # type: ignore[assignment]

    out: set[int] = set()
    for item in items:
        try:
            num = int(str(item).strip())
        except ValueError:
            raise ValueError(f"header line number {item!r} is not an integer") from None
        if num < 0:
            raise ValueError(f"header line number {num} is negative")
        out.add(num)
    return tuple(sorted(out))


# --------------------------------------------------------------------------- #
# 3 – session snapshot
# --------------------------------------------------------------------------- #
class SessionRecord(BaseModel, frozen=True):
    """Persisted state of one wizard run.

    Attributes
    ----------
    id
        Opaque identifier assigned on first persist; doubles as the name of the
        per-session upload and download sub-directories.
    version
        Store revision used for compare-and-set writes.
    platform / community
        Platform chosen by the user and the community it belongs to.
    data_file_type
        Declared file-type tag (``"eTuff"``, ``"Custom_File_Type"``, …).
    data_file_name
        Primary data file, relative to the session upload directory.
    data_archive_name
        Archive the data file was extracted from, when uploaded compressed.
    positional_file_name / template_file_name
        Optional companion files.  ``template_file_name`` also receives the
        template artifact name after conversion.
    delimiter / header_line_numbers / no_header_lines
        Delimited-text parsing attributes; only meaningful for the custom type.
    converted_file_name / archive_name
        Conversion outputs inside the session download directory.
    """

    id: Optional[str] = None
    version: int = 0

    platform: Optional[str] = None
    community: Optional[str] = None

    data_file_type: Optional[str] = None
    data_file_name: Optional[str] = None
    data_archive_name: Optional[str] = None
    positional_file_name: Optional[str] = None
    template_file_name: Optional[str] = None

    delimiter: Optional[str] = None
    header_line_numbers: Tuple[int, ...] = ()
    no_header_lines: bool = False

    converted_file_name: Optional[str] = None
    archive_name: Optional[str] = None

    @field_validator("header_line_numbers", mode="before")
    @classmethod
    def _coerce_header_lines(cls, v):
        return parse_header_lines(v)

    @model_validator(mode="after")
    def _custom_fields_only_for_custom_type(self):
        """Delimiter and header lines belong to the custom file type only."""
        if self.data_file_type != CUSTOM_FILE_TYPE and (
            self.delimiter is not None or self.header_line_numbers
        ):
            raise ValueError(
                "delimiter/header_line_numbers are only allowed for "
                f"{CUSTOM_FILE_TYPE!r} (got {self.data_file_type!r})"
            )
        return self

    # ------------------------------------------------------------------ #
    @property
    def is_custom(self) -> bool:
        """``True`` when the session declares the generic custom file type."""
        return self.data_file_type == CUSTOM_FILE_TYPE

    @property
    def is_converted(self) -> bool:
        """``True`` once all three conversion outputs are recorded."""
        return bool(
            self.converted_file_name and self.template_file_name and self.archive_name
        )

    def file_name(self, role: FileRole) -> Optional[str]:
        """Return the persisted file name for *role*."""
        return {
            FileRole.DATA: self.data_file_name,
            FileRole.POSITIONAL: self.positional_file_name,
            FileRole.TEMPLATE: self.template_file_name,
        }[role]


#: Record field holding the file name of each upload role.
ROLE_FIELDS: Dict[FileRole, str] = {
    FileRole.DATA: "data_file_name",
    FileRole.POSITIONAL: "positional_file_name",
    FileRole.TEMPLATE: "template_file_name",
}


class UploadedFile(BaseModel, frozen=True):
    """One file of an upload request.  Never persisted on its own."""

    role: FileRole
    name: str = ""
    content: bytes = b""

    @property
    def is_undo(self) -> bool:
        """Empty name *and* no bytes: the user removed a previous upload."""
        return not self.name.strip() and not self.content


# --------------------------------------------------------------------------- #
# 4 – metadata
# --------------------------------------------------------------------------- #
class GeneralMetadata(BaseModel, frozen=True):
    """Global (file-level) attributes written into the converted file."""

    attributes: Dict[str, str] = Field(default_factory=dict)

    def overlay(self, other: "GeneralMetadata") -> "GeneralMetadata":
        """Return a copy where non-blank values of *other* win."""
        merged = dict(self.attributes)
        merged.update({k: v for k, v in other.attributes.items() if str(v).strip()})
        return GeneralMetadata(attributes=merged)


class VariableMetadata(BaseModel, frozen=True):
    """Per-variable attribute sets keyed by variable name."""

    variables: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    def overlay(self, other: "VariableMetadata") -> "VariableMetadata":
        """Return a copy where non-blank values of *other* win per attribute."""
        merged = {name: dict(attrs) for name, attrs in self.variables.items()}
        for name, attrs in other.variables.items():
            target = merged.setdefault(name, {})
            target.update({k: v for k, v in attrs.items() if str(v).strip()})
        return VariableMetadata(variables=merged)


class Template(BaseModel, frozen=True, extra="forbid"):
    """Content of the ``rosetta.template`` artifact.

    Captures everything required to redo a conversion without prompting the
    user again.  Unknown keys are rejected so a foreign JSON document is not
    mistaken for a template.
    """

    format_version: int = TEMPLATE_FORMAT_VERSION
    data_file_type: str
    data_file_name: Optional[str] = None
    platform: Optional[str] = None
    community: Optional[str] = None
    delimiter: Optional[str] = None
    header_line_numbers: Tuple[int, ...] = ()
    no_header_lines: bool = False
    general_metadata: Dict[str, str] = Field(default_factory=dict)
    variable_metadata: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    @field_validator("header_line_numbers", mode="before")
    @classmethod
    def _coerce_header_lines(cls, v):
        return parse_header_lines(v)

    @classmethod
    def from_session(
        cls,
        record: SessionRecord,
        general: GeneralMetadata,
        variables: VariableMetadata,
    ) -> "Template":
        """Build the template describing *record* and its metadata."""
        return cls(
            data_file_type=record.data_file_type or "",
            data_file_name=record.data_file_name,
            platform=record.platform,
            community=record.community,
            delimiter=record.delimiter,
            header_line_numbers=record.header_line_numbers,
            no_header_lines=record.no_header_lines,
            general_metadata=dict(general.attributes),
            variable_metadata={k: dict(v) for k, v in variables.variables.items()},
        )


__all__ = [
    "CUSTOM_FILE_TYPE",
    "TEMPLATE_FILE_NAME",
    "TARGET_EXTENSION",
    "TEMPLATE_FORMAT_VERSION",
    "FileRole",
    "WizardStep",
    "MetadataKind",
    "ROLE_FIELDS",
    "parse_header_lines",
    "SessionRecord",
    "UploadedFile",
    "GeneralMetadata",
    "VariableMetadata",
    "Template",
]
