"""
Pydantic models that mirror the YAML configuration consumed by *ncomatic*.

The classes in this module define a strongly-typed representation of the
configuration file so that the rest of the codebase works with validated
objects instead of ad-hoc dictionaries.  Besides the directory roots the
document carries two small resource tables used by the wizard:

* ``platforms`` – each platform belongs to exactly one community.
* ``delimiters`` – human-facing delimiter names mapped to their symbol.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# --------------------------------------------------------------------------- #
# 1.  Leaf models                                                             #
# --------------------------------------------------------------------------- #
class Directories(BaseModel):
    """Root directories supplied by the deployment.

    Attributes:
        upload:   Root under which ``<id>/`` upload folders are created.
        download: Root under which ``<id>/`` download folders are created.
        store:    Root of the JSON session / metadata stores used by the CLI.
    """

    upload: Path
    download: Path
    store: Path

    @field_validator("upload", "download", "store", mode="after")
    @classmethod
    def _expand(cls, v: Path) -> Path:
        return v.expanduser()


class Platform(BaseModel):
    """A measurement platform and the community it is filed under."""

    name: str = Field(..., min_length=1)
    community: str = Field(..., min_length=1)


# --------------------------------------------------------------------------- #
# 2.  Root model                                                              #
# --------------------------------------------------------------------------- #
class ConfigSchema(BaseModel):
    """Root object produced by :func:`ncomatic.config.load_config`."""

    version: int = 1
    directories: Directories
    delimiters: Dict[str, str] = Field(default_factory=dict)
    platforms: List[Platform] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_platforms(self):
        """Platform names are lookup keys and must not repeat."""
        seen: set[str] = set()
        for p in self.platforms:
            key = p.name.lower()
            if key in seen:
                raise ValueError(f"duplicate platform {p.name!r}")
            seen.add(key)
        return self

    # ------------------------------------------------------------------ #
    # Resource lookups
    # ------------------------------------------------------------------ #
    def community_for(self, platform: str) -> Optional[str]:
        """Return the community of *platform* or ``None`` when unknown.

        Underscores are treated as spaces and matching is case-insensitive, so
        ``"Argo_Float"`` resolves the ``"Argo Float"`` entry.
        """
        wanted = platform.replace("_", " ").strip().lower()
        for p in self.platforms:
            if p.name.lower() == wanted:
                return p.community
        return None

    def delimiter_symbol(self, delimiter: str) -> str:
        """Translate a delimiter name (``"Comma"``) into its symbol.

        Values that are not a configured name are returned unchanged so callers
        may pass the symbol directly.
        """
        for name, symbol in self.delimiters.items():
            if name.lower() == delimiter.strip().lower():
                return symbol
        return delimiter


__all__ = ["ConfigSchema", "Directories", "Platform"]
