"""Base class for file-format converters.

A converter turns one staged source file into the netCDF target.  The
interface is intentionally small (``parse`` then ``convert``) so new file
types can be registered without touching the wizard.  Instances are
single-use: the registry builds a fresh one for every conversion.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from ncomatic.models import GeneralMetadata, VariableMetadata


class Converter(ABC):
    """Abstract converter for one file-type tag.

    Args:
        general: User-supplied global attributes to write into the target.
        variables: User-supplied per-variable attributes.
    """

    #: ``True`` when :meth:`parse` collects metadata embedded in the file.
    extracts_metadata: ClassVar[bool] = False

    def __init__(
        self,
        *,
        general: GeneralMetadata | None = None,
        variables: VariableMetadata | None = None,
    ) -> None:
        self.general = general or GeneralMetadata()
        self.variables = variables or VariableMetadata()

    @abstractmethod
    def parse(self, source: Path) -> None:
        """Read and interpret *source*.

        Raises:
            FormatError: When the file structure is not recognised.
        """
        raise NotImplementedError

    @abstractmethod
    def convert(self, target: Path) -> Path:
        """Write the parsed content to *target* and return it."""
        raise NotImplementedError

    def extract_general_metadata(self) -> GeneralMetadata:
        """Return global metadata found by :meth:`parse` (empty by default)."""
        return GeneralMetadata()

    def extract_variable_metadata(self) -> VariableMetadata:
        """Return per-variable metadata found by :meth:`parse` (empty by default)."""
        return VariableMetadata()
