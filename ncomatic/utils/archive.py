"""
Helpers for identifying uploaded archives.

The predicates are *pure* name checks: an upload is treated as an archive
when its basename ends with one of the recognised suffixes.  The wizard calls
:func:`is_archive_name` right after staging a data file to decide whether
extraction must follow; the staging layer uses :func:`archive_suffix` to keep
compound extensions intact when it renames a colliding upload.
"""

from __future__ import annotations

from pathlib import Path

#: Recognised archive endings, compound ones first.
_ARCHIVE_SUFFIXES: tuple[str, ...] = (
    ".tar.gz",
    ".tar.bz2",
    ".tar",
    ".tgz",
    ".tbz",
    ".zip",
)


def archive_suffix(name: str) -> str | None:
    """Return the archive suffix of *name* (lower-cased) or ``None``."""
    lower_name = Path(name).name.lower()
    return next((suf for suf in _ARCHIVE_SUFFIXES if lower_name.endswith(suf)), None)


def is_archive_name(name: str) -> bool:
    """Return *True* when *name* carries a compressed-archive extension.

        >>> is_archive_name("cruise_42.ZIP")
        True
        >>> is_archive_name("tag.2012.tar.gz")
        True
        >>> is_archive_name("data.csv")
        False
    """
    return archive_suffix(name) is not None


__all__ = ["archive_suffix", "is_archive_name"]
