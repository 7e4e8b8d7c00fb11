"""Directory properties consulted by the wizard on every operation.

The upload and download roots are deployment settings, not something the
staging layer owns.  :class:`Properties` is the small lookup interface the
orchestrator reads them through; :class:`ConfigProperties` serves them from a
validated :class:`~ncomatic.config.schema.ConfigSchema`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from .schema import ConfigSchema


class Properties(ABC):
    """Lookup of the externally configured directory roots."""

    @abstractmethod
    def lookup_upload_directory(self) -> Path:
        """Return the root of the per-session upload folders."""
        raise NotImplementedError

    @abstractmethod
    def lookup_download_directory(self) -> Path:
        """Return the root of the per-session download folders."""
        raise NotImplementedError


class ConfigProperties(Properties):
    """Serve directory roots from a loaded configuration."""

    def __init__(self, cfg: ConfigSchema) -> None:
        self._cfg = cfg

    def lookup_upload_directory(self) -> Path:
        return self._cfg.directories.upload

    def lookup_download_directory(self) -> Path:
        return self._cfg.directories.download


__all__ = ["Properties", "ConfigProperties"]
