"""Exception taxonomy shared by the staging, conversion and wizard layers.

Every error raised on purpose by *ncomatic* derives from :class:`NcomaticError`
so callers can tell the kinds apart without string matching.  The optional
``session_id`` / ``operation`` attributes identify where a failure happened;
they are folded into ``str(exc)`` for log lines.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class NcomaticError(RuntimeError):
    """Base class for all errors raised by the ingestion pipeline."""

    def __init__(
        self,
        message: str,
        *,
        session_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.message = message
        self.session_id = session_id
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        ctx = [
            f"{k}={v}"
            for k, v in (("session", self.session_id), ("operation", self.operation))
            if v
        ]
        return f"{self.message} ({', '.join(ctx)})" if ctx else self.message


class ValidationError(NcomaticError):
    """Missing or contradictory input for the current wizard step."""


class SessionNotFoundError(NcomaticError):
    """No session record exists for the requested id."""


class FileIOError(NcomaticError):
    """A disk read, write or directory creation failed."""


class FormatError(NcomaticError):
    """An archive, template or known-format file has unrecognisable structure."""


class ConversionError(NcomaticError):
    """A converter failed while parsing or writing the target file."""


class PersistenceError(NcomaticError):
    """The session or metadata store rejected a read or write."""


@contextmanager
def session_scope(session_id: str | None) -> Iterator[None]:
    """Attach *session_id* to any :class:`NcomaticError` leaving the block without one."""
    try:
        yield
    except NcomaticError as exc:
        if exc.session_id is None:
            exc.session_id = session_id
        raise


__all__ = [
    "NcomaticError",
    "session_scope",
    "ValidationError",
    "SessionNotFoundError",
    "FileIOError",
    "FormatError",
    "ConversionError",
    "PersistenceError",
]
