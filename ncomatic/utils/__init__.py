"""
Public façade for the *utils* package.

Anything imported here becomes part of the *stable* public API.  The
logging helpers are deliberately not re-exported; import
:mod:`ncomatic.utils.logging` directly so rich/structlog load only where
needed.
"""

from __future__ import annotations

from .archive import archive_suffix, is_archive_name
from .errors import (
    ConversionError,
    FileIOError,
    FormatError,
    NcomaticError,
    PersistenceError,
    SessionNotFoundError,
    ValidationError,
)

__all__: list[str] = [
    "archive_suffix",
    "is_archive_name",
    "NcomaticError",
    "ValidationError",
    "SessionNotFoundError",
    "FileIOError",
    "FormatError",
    "ConversionError",
    "PersistenceError",
]
