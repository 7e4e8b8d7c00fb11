"""
Session and metadata stores.

The wizard only talks to the two abstract interfaces below, so the storage
technology stays swappable.  Two implementations ship with the package:

* ``InMemory*`` – process-local dictionaries, used by tests and embedders.
* ``Json*``     – one JSON document per record under a root directory, used by
  the CLI so sessions survive between invocations.

Per-id atomicity is provided by compare-and-set on
:attr:`SessionRecord.version`: :meth:`SessionStore.update` refuses a snapshot
whose version no longer matches the stored one, and every accepted write bumps
the version.  Each implementation serialises its critical section with a
:class:`threading.Lock`; the JSON stores do not coordinate across processes.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from ncomatic.io.staging import atomic_target
from ncomatic.models import MetadataKind, SessionRecord
from ncomatic.utils.errors import PersistenceError, SessionNotFoundError

log = structlog.get_logger()


def _reject(message: str, *, session_id: str | None, operation: str) -> PersistenceError:
    """Log and return a :class:`PersistenceError` for the caller to raise."""
    log.error("store.rejected", session_id=session_id, operation=operation, reason=message)
    return PersistenceError(message, session_id=session_id, operation=operation)


# --------------------------------------------------------------------------- #
# 1 – interfaces
# --------------------------------------------------------------------------- #
class SessionStore(ABC):
    """DAO for :class:`SessionRecord` snapshots."""

    @abstractmethod
    def lookup_by_id(self, session_id: str) -> SessionRecord:
        """Return the stored record.

        Raises:
            SessionNotFoundError: When no record exists for *session_id*.
        """

    @abstractmethod
    def persist(self, record: SessionRecord) -> str:
        """Insert a new record (its id must be set and unused); return the id."""

    @abstractmethod
    def update(self, record: SessionRecord) -> SessionRecord:
        """Replace the stored record if its version matches; return the new snapshot."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove the record; unknown ids are ignored."""


class MetadataStore(ABC):
    """DAO for metadata documents keyed by ``(session id, kind)``."""

    @abstractmethod
    def lookup(self, session_id: str, kind: MetadataKind) -> Optional[dict]:
        """Return the stored payload or ``None``."""

    @abstractmethod
    def persist(self, session_id: str, kind: MetadataKind, payload: dict) -> None:
        """Insert or replace the payload."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove every payload of *session_id*."""


def _checked_insert(existing: Optional[SessionRecord], record: SessionRecord) -> SessionRecord:
    if not record.id:
        raise _reject("record has no id", session_id=None, operation="persist")
    if existing is not None:
        raise _reject(f"id {record.id} already in use", session_id=record.id, operation="persist")
    return record.model_copy(update={"version": 1})


def _checked_update(existing: Optional[SessionRecord], record: SessionRecord) -> SessionRecord:
    if existing is None:
        raise SessionNotFoundError(
            f"No session {record.id}", session_id=record.id, operation="update"
        )
    if existing.version != record.version:
        raise _reject(
            f"stale write (stored version {existing.version}, got {record.version})",
            session_id=record.id,
            operation="update",
        )
    return record.model_copy(update={"version": record.version + 1})


# --------------------------------------------------------------------------- #
# 2 – in-memory implementations
# --------------------------------------------------------------------------- #
class InMemorySessionStore(SessionStore):
    """Dictionary-backed session store."""

    def __init__(self) -> None:
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def lookup_by_id(self, session_id: str) -> SessionRecord:
        with self._lock:
            record = self._records.get(session_id)
        if record is None:
            raise SessionNotFoundError(
                f"No session {session_id}", session_id=session_id, operation="lookup"
            )
        return record

    def persist(self, record: SessionRecord) -> str:
        with self._lock:
            stored = _checked_insert(self._records.get(record.id or ""), record)
            self._records[stored.id] = stored
        return stored.id

    def update(self, record: SessionRecord) -> SessionRecord:
        with self._lock:
            stored = _checked_update(self._records.get(record.id or ""), record)
            self._records[stored.id] = stored
        return stored

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)


class InMemoryMetadataStore(MetadataStore):
    """Dictionary-backed metadata store."""

    def __init__(self) -> None:
        self._docs: Dict[Tuple[str, MetadataKind], dict] = {}
        self._lock = threading.Lock()

    def lookup(self, session_id: str, kind: MetadataKind) -> Optional[dict]:
        with self._lock:
            doc = self._docs.get((session_id, MetadataKind(kind)))
        return json.loads(json.dumps(doc)) if doc is not None else None

    def persist(self, session_id: str, kind: MetadataKind, payload: dict) -> None:
        with self._lock:
            self._docs[(session_id, MetadataKind(kind))] = json.loads(json.dumps(payload))

    def delete(self, session_id: str) -> None:
        with self._lock:
            for key in [k for k in self._docs if k[0] == session_id]:
                del self._docs[key]


# --------------------------------------------------------------------------- #
# 3 – JSON directory implementations
# --------------------------------------------------------------------------- #
def _write_json(path: Path, text: str, *, session_id: str | None, operation: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with atomic_target(path) as tmp:
            tmp.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise _reject(f"cannot write {path}: {exc}", session_id=session_id, operation=operation) from exc


def _read_text(path: Path, *, session_id: str | None, operation: str) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise _reject(f"cannot read {path}: {exc}", session_id=session_id, operation=operation) from exc


class JsonSessionStore(SessionStore):
    """Store each record as ``<root>/sessions/<id>.json``."""

    def __init__(self, root: Path) -> None:
        self._dir = Path(root).expanduser() / "sessions"
        self._lock = threading.Lock()

    def _path(self, session_id: str) -> Path:
        return self._dir / f"{session_id}.json"

    def _load(self, session_id: str) -> Optional[SessionRecord]:
        text = _read_text(self._path(session_id), session_id=session_id, operation="lookup")
        if text is None:
            return None
        try:
            return SessionRecord.model_validate_json(text)
        except PydanticValidationError as exc:
            raise _reject(
                f"corrupt session document: {exc.error_count()} error(s)",
                session_id=session_id,
                operation="lookup",
            ) from exc

    def lookup_by_id(self, session_id: str) -> SessionRecord:
        with self._lock:
            record = self._load(session_id)
        if record is None:
            raise SessionNotFoundError(
                f"No session {session_id}", session_id=session_id, operation="lookup"
            )
        return record

    def persist(self, record: SessionRecord) -> str:
        with self._lock:
            stored = _checked_insert(self._load(record.id) if record.id else None, record)
            _write_json(
                self._path(stored.id), stored.model_dump_json(indent=2),
                session_id=stored.id, operation="persist",
            )
        return stored.id

    def update(self, record: SessionRecord) -> SessionRecord:
        with self._lock:
            existing = self._load(record.id) if record.id else None
            stored = _checked_update(existing, record)
            _write_json(
                self._path(stored.id), stored.model_dump_json(indent=2),
                session_id=stored.id, operation="update",
            )
        return stored

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._path(session_id).unlink(missing_ok=True)


class JsonMetadataStore(MetadataStore):
    """Store metadata as ``<root>/metadata/<id>.<kind>.json``."""

    def __init__(self, root: Path) -> None:
        self._dir = Path(root).expanduser() / "metadata"
        self._lock = threading.Lock()

    def _path(self, session_id: str, kind: MetadataKind) -> Path:
        return self._dir / f"{session_id}.{MetadataKind(kind).value}.json"

    def lookup(self, session_id: str, kind: MetadataKind) -> Optional[dict]:
        with self._lock:
            text = _read_text(self._path(session_id, kind), session_id=session_id, operation="lookup")
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise _reject(
                f"corrupt metadata document: {exc}", session_id=session_id, operation="lookup"
            ) from exc

    def persist(self, session_id: str, kind: MetadataKind, payload: dict) -> None:
        with self._lock:
            _write_json(
                self._path(session_id, kind), json.dumps(payload, indent=2),
                session_id=session_id, operation="persist",
            )

    def delete(self, session_id: str) -> None:
        with self._lock:
            for kind in MetadataKind:
                self._path(session_id, kind).unlink(missing_ok=True)


__all__ = [
    "SessionStore",
    "MetadataStore",
    "InMemorySessionStore",
    "InMemoryMetadataStore",
    "JsonSessionStore",
    "JsonMetadataStore",
]
