"""
Disk-level staging of wizard uploads and conversion outputs.

Every helper is stateless and works on paths composed as
``{root}/{session_id}/{name}``; the roots themselves are supplied by the
caller.  Files are never written in place: content goes to a temporary file
inside the destination directory first and is then moved over the final name
with :func:`os.replace`, so a crash never leaves a half-written file behind.

Public helpers
--------------
* :func:`write_uploaded_file`       – store upload bytes, disambiguating names.
* :func:`create_download_subdirectory`
* :func:`parse_by_delimiter` / :func:`parse_by_line`
* :func:`extract_archive`           – ZIP / TAR family, returns the inventory.
* :func:`compress`                  – bundle outputs into one ZIP.
* :func:`list_inventory`
* :func:`write_template` / :func:`read_template`
"""

from __future__ import annotations

import json
import logging
import os
import tarfile
import tempfile
import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ncomatic.models import TEMPLATE_FILE_NAME, Template
from ncomatic.utils.archive import archive_suffix, is_archive_name
from ncomatic.utils.errors import FileIOError, FormatError, ValidationError

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_TMP_PREFIX = ".tmp_ncomatic_"  # Prefix of every temporary file we create


# ---------------------------------------------------------------------------
# 0 – path and write primitives
# ---------------------------------------------------------------------------
def _session_dir(root: Path, session_id: str, *, operation: str) -> Path:
    """Return ``root/session_id`` after checking the id is a single segment."""
    if not session_id or "/" in session_id or "\\" in session_id or session_id in {".", ".."}:
        raise ValidationError(
            f"Invalid session id {session_id!r}", session_id=session_id, operation=operation
        )
    return Path(root).expanduser() / session_id


def _safe_relative(name: str, *, session_id: str | None, operation: str) -> PurePosixPath:
    """Return *name* as a relative path that cannot escape its directory."""
    rel = PurePosixPath(name.replace("\\", "/"))
    if not name.strip() or rel.is_absolute() or ".." in rel.parts:
        raise ValidationError(
            f"Unsafe file name {name!r}", session_id=session_id, operation=operation
        )
    return rel


def _ensure_dir(path: Path, *, session_id: str | None, operation: str) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileIOError(
            f"Cannot create directory {path}: {exc}",
            session_id=session_id,
            operation=operation,
        ) from exc
    return path


@contextmanager
def atomic_target(dest: Path) -> Iterator[Path]:
    """Yield a temporary path next to *dest*; move it over *dest* on success.

    The temporary file is removed when the ``with`` body raises, leaving any
    previous *dest* untouched.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=_TMP_PREFIX, suffix=dest.suffix, dir=dest.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        yield tmp
        os.replace(tmp, dest)
    finally:
        if tmp.exists():
            tmp.unlink()


def _atomic_write_bytes(dest: Path, content: bytes) -> None:
    """Write *content* to *dest* through :func:`atomic_target`."""
    with atomic_target(dest) as tmp:
        with open(tmp, "wb") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())


def _split_name(name: str) -> tuple[str, str]:
    """Split *name* into stem and (possibly compound) extension."""
    suf = archive_suffix(name)
    if suf:
        return name[: -len(suf)], name[-len(suf):]
    stem, ext = os.path.splitext(name)
    return stem, ext


def _disambiguate(directory: Path, name: str) -> str:
    """Return the first ``stem_N.ext`` that does not exist under *directory*."""
    stem, ext = _split_name(name)
    i = 1
    while (directory / f"{stem}_{i}{ext}").exists():
        i += 1
    return f"{stem}_{i}{ext}"


# ---------------------------------------------------------------------------
# 1 – uploads and directories
# ---------------------------------------------------------------------------
def write_uploaded_file(root: Path, session_id: str, name: str, content: bytes) -> str:
    """Store uploaded *content* under ``root/session_id`` and return its name.

    Re-submitting identical bytes under an existing name is a no-op and returns
    that name.  Different bytes under an existing name never overwrite the
    previous upload; the new file receives a ``_N`` suffix instead.

    Args:
        root: Upload root directory.
        session_id: Session identifier (sub-directory name).
        name: File name declared by the client; a bare name without directories.
        content: Raw file bytes.

    Returns:
        The file name actually used on disk.

    Raises:
        ValidationError: When *name* is empty, contains a path or is unsafe.
        FileIOError: When the directory or file cannot be written.
    """
    op = "write_uploaded_file"
    directory = _ensure_dir(
        _session_dir(root, session_id, operation=op), session_id=session_id, operation=op
    )
    rel = _safe_relative(name, session_id=session_id, operation=op)
    if len(rel.parts) != 1:
        raise ValidationError(
            f"File name {name!r} must not contain a directory", session_id=session_id, operation=op
        )
    final = rel.name

    target = directory / final
    try:
        if target.exists():
            if target.is_file() and target.read_bytes() == content:
                log.debug("Upload %s already staged with identical content", target)
                return final
            final = _disambiguate(directory, final)
            target = directory / final
            log.info("Name collision – staging upload as %s", final)

        _atomic_write_bytes(target, content)
    except OSError as exc:
        raise FileIOError(
            f"Cannot write {target}: {exc}", session_id=session_id, operation=op
        ) from exc

    log.info("Staged upload %s (%d bytes)", target, len(content))
    return final


def create_download_subdirectory(root: Path, session_id: str) -> Path:
    """Ensure ``root/session_id`` exists and return it."""
    op = "create_download_subdirectory"
    return _ensure_dir(
        _session_dir(root, session_id, operation=op), session_id=session_id, operation=op
    )


# ---------------------------------------------------------------------------
# 2 – text parsing
# ---------------------------------------------------------------------------
def _read_lines(path: Path, *, operation: str) -> List[str]:
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as fh:
            return [line.rstrip("\r\n") for line in fh]
    except OSError as exc:
        raise FileIOError(f"Cannot read {path}: {exc}", operation=operation) from exc


def parse_by_delimiter(
    path: Path, header_line_numbers: Iterable[int], delimiter: str
) -> List[List[str]]:
    """Split a delimited text file into token lists.

    Lines whose **0-based** index appears in *header_line_numbers* are
    skipped, as are empty lines.  A whitespace delimiter splits on runs of
    whitespace; any other delimiter splits on each occurrence.

    Args:
        path: File to read.
        header_line_numbers: Indices of lines to skip.
        delimiter: Delimiter symbol.

    Returns:
        One list of tokens per remaining line, in file order.
    """
    if not delimiter:
        raise ValidationError("A delimiter is required", operation="parse_by_delimiter")

    skip = set(header_line_numbers)
    rows: List[List[str]] = []
    for idx, line in enumerate(_read_lines(path, operation="parse_by_delimiter")):
        if idx in skip or not line.strip():
            continue
        rows.append(line.split() if delimiter == " " else line.split(delimiter))
    return rows


def parse_by_line(path: Path) -> str:
    """Return the lines of *path* as a JSON array string for client display."""
    return json.dumps(_read_lines(path, operation="parse_by_line"))


# ---------------------------------------------------------------------------
# 3 – archives
# ---------------------------------------------------------------------------
def _zip_members(zf: zipfile.ZipFile) -> Iterator[tuple[str, bytes]]:
    for info in zf.infolist():
        if info.is_dir():
            continue
        yield info.filename, zf.read(info)


def _tar_members(tf: tarfile.TarFile) -> Iterator[tuple[str, bytes]]:
    for member in tf.getmembers():
        if member.isdir():
            continue
        if not member.isfile():
            log.warning("Skipping non-regular archive member %s", member.name)
            continue
        fh = tf.extractfile(member)
        if fh is None:
            continue
        with fh:
            yield member.name, fh.read()


def _stage_entry(dest: Path, rel: PurePosixPath, content: bytes, *, session_id: str) -> str:
    """Write one archive entry below *dest*, following the upload collision rules."""
    op = "extract_archive"
    directory = _ensure_dir(dest.joinpath(*rel.parent.parts), session_id=session_id, operation=op)
    name = rel.name
    target = directory / name
    try:
        if target.exists():
            if target.is_file() and target.read_bytes() == content:
                log.debug("Archive entry %s already staged with identical content", target)
                return rel.as_posix()
            name = _disambiguate(directory, name)
            target = directory / name
            log.info("Name collision – extracting %s as %s", rel, name)
        _atomic_write_bytes(target, content)
    except OSError as exc:
        raise FileIOError(
            f"Cannot write {target}: {exc}", session_id=session_id, operation=op
        ) from exc
    log.debug("Extracted file: %s", target)
    return (rel.parent / name).as_posix()


def extract_archive(root: Path, session_id: str, archive_name: str) -> List[str]:
    """Extract every file of ``root/session_id/archive_name`` in place.

    All entry names are checked before the first file is written, so an
    unsafe archive leaves the session directory untouched.  An entry whose
    name is already taken by a file with different bytes is stored under a
    ``_N`` suffix, as in :func:`write_uploaded_file`.

    Args:
        root: Upload root directory.
        session_id: Session identifier.
        archive_name: Archive file inside the session directory.

    Returns:
        Inventory – the staged file names (relative, POSIX style) in archive
        order.

    Raises:
        FormatError: When the archive is malformed or an entry would escape
            the session directory.
        FileIOError: When an extracted file cannot be written.
    """
    op = "extract_archive"
    dest = _session_dir(root, session_id, operation=op)
    archive = dest / archive_name
    if not archive.is_file():
        raise FileIOError(f"Archive {archive} not found", session_id=session_id, operation=op)

    entries: List[tuple[PurePosixPath, bytes]] = []
    try:
        if zipfile.is_zipfile(archive):
            log.info("Unzipping ZIP: %s → %s", archive, dest)
            opener = zipfile.ZipFile(archive)
            members = _zip_members
        elif tarfile.is_tarfile(archive):
            log.info("Unpacking TAR: %s → %s", archive, dest)
            opener = tarfile.open(archive)
            members = _tar_members
        else:
            raise FormatError(
                f"{archive_name} is not a readable archive",
                session_id=session_id,
                operation=op,
            )

        with opener as handle:
            for entry, content in members(handle):
                try:
                    rel = _safe_relative(entry, session_id=session_id, operation=op)
                except ValidationError as exc:
                    raise FormatError(exc.message, session_id=session_id, operation=op) from exc
                entries.append((rel, content))
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, zlib.error) as exc:
        raise FormatError(
            f"Malformed archive {archive_name}: {exc}", session_id=session_id, operation=op
        ) from exc

    inventory = [_stage_entry(dest, rel, content, session_id=session_id) for rel, content in entries]
    log.info("Extracted %d file(s) from %s", len(inventory), archive_name)
    return inventory


def compress(
    directory: Path,
    base_name: str,
    members: Optional[Iterable[str]] = None,
    *,
    session_id: str | None = None,
) -> str:
    """Bundle output files of *directory* into ``<base>.zip``.

    Args:
        directory: Download directory of a session.
        base_name: Name the archive is derived from (extension stripped).
        members: File names to bundle.  ``None`` takes every regular file
            directly inside *directory* except archives and temporary files;
            outputs of earlier conversions are then included as well.
        session_id: Session the bundle belongs to, for error reporting.

    Returns:
        The archive file name (relative to *directory*).

    Raises:
        FileIOError: When a member is missing or the archive cannot be written.
    """
    op = "compress"
    directory = Path(directory)
    stem, _ = _split_name(Path(base_name).name)
    archive_name = f"{stem}.zip"
    target = directory / archive_name

    try:
        if members is None:
            paths = sorted(
                p for p in directory.iterdir()
                if p.is_file()
                and not p.name.startswith(_TMP_PREFIX)
                and not is_archive_name(p.name)
            )
        else:
            paths = [directory / name for name in dict.fromkeys(members)]
        with atomic_target(target) as tmp:
            with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for p in paths:
                    zf.write(p, arcname=p.name)
    except OSError as exc:
        raise FileIOError(
            f"Cannot create {target}: {exc}", session_id=session_id, operation=op
        ) from exc

    log.info("Compressed %d file(s) into %s", len(paths), target)
    return archive_name


def list_inventory(directory: Path) -> List[str]:
    """Return the sorted relative names of all files below *directory*.

    Unlike the inventory returned by :func:`extract_archive`, which covers one
    archive, this lists everything staged so far, temporary files excluded.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileIOError(f"{directory} is not a directory", operation="list_inventory")
    return sorted(
        p.relative_to(directory).as_posix()
        for p in directory.rglob("*")
        if p.is_file() and not p.name.startswith(_TMP_PREFIX)
    )


# ---------------------------------------------------------------------------
# 4 – template artifact
# ---------------------------------------------------------------------------
def write_template(directory: Path, template: Template, name: str = TEMPLATE_FILE_NAME) -> str:
    """Serialise *template* as JSON into ``directory/name`` and return *name*."""
    target = Path(directory) / name
    try:
        _atomic_write_bytes(target, template.model_dump_json(indent=2).encode("utf-8"))
    except OSError as exc:
        raise FileIOError(f"Cannot write {target}: {exc}", operation="write_template") from exc
    return name


def read_template(path: Path) -> Template:
    """Load and validate a template artifact.

    Raises:
        FileIOError: When the file cannot be read.
        FormatError: When the content is not a valid template document.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileIOError(f"Cannot read {path}: {exc}", operation="read_template") from exc
    try:
        return Template.model_validate_json(text)
    except PydanticValidationError as exc:
        raise FormatError(
            f"{Path(path).name} is not a valid template: {exc.error_count()} error(s)",
            operation="read_template",
        ) from exc


__all__ = [
    "atomic_target",
    "write_uploaded_file",
    "create_download_subdirectory",
    "parse_by_delimiter",
    "parse_by_line",
    "extract_archive",
    "compress",
    "list_inventory",
    "write_template",
    "read_template",
]
