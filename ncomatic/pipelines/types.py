"""
Typed, immutable value objects returned by the pipeline stages.

Every class inherits from :class:`pydantic.BaseModel` with ``frozen=True``
so results can be logged or handed to a caller without fear of mutation.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel


class ConversionResult(BaseModel, frozen=True):
    """Outputs of one :func:`ncomatic.pipelines.convert.convert_session` run.

    Attributes
    ----------
    converted_file_name
        Target name (``<data stem>.nc``).  Recorded on the session even when the
        delimited fallback ran and no netCDF file was written.
    template_file_name
        Always ``rosetta.template``.
    archive_name
        ZIP bundle of the download directory.
    download_dir
        Absolute path of ``<download_root>/<id>``.
    rows
        Token lists produced by the delimited fallback; ``None`` when a
        registered converter handled the file.
    """

    converted_file_name: str
    template_file_name: str
    archive_name: str
    download_dir: Path
    rows: Optional[List[List[str]]] = None

    @property
    def used_fallback(self) -> bool:
        """``True`` when the file had no registered converter."""
        return self.rows is not None


__all__ = ["ConversionResult"]
