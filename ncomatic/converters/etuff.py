"""
Converter for the electronic Tag Universal File Format (eTUFF).

eTUFF is a tag/value text format for animal-borne telemetry.  A file holds

* comment lines starting with ``//``,
* global attribute lines of the form ``:key = value`` (value optionally
  double-quoted),
* a CSV data section whose header names at least ``DateTime``,
  ``VariableValue`` and ``VariableName`` (``VariableID`` and
  ``VariableUnits`` are optional)::

      // global attributes:
        :instrument_name = "159903_2012_117464"
        :manufacturer = "Wildlife Computers"
      DateTime,VariableID,VariableValue,VariableName,VariableUnits
      "2012-04-20 00:00:00",3,26.1,"sst","Degree Celsius"

:meth:`TagUniversalFileFormat.parse` pivots the long-form observations into
one column per variable along a time index; :meth:`convert` writes them as
netCDF4 with the file's attributes overlaid by any user metadata.
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pandas as pd
from netCDF4 import Dataset

from ncomatic.models import GeneralMetadata, VariableMetadata
from ncomatic.utils.errors import ConversionError, FileIOError, FormatError

from .base import Converter
from .registry import default_registry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
#: Tag the upload form sends for eTUFF files; the upper-case spelling is accepted too.
FILE_TYPE = "eTuff"
FILE_TYPE_ALIASES = ("eTUFF",)

_REQUIRED_COLUMNS = ("DateTime", "VariableValue", "VariableName")
_ATTR_RE = re.compile(r"^:\s*(?P<key>[^=]+?)\s*=\s*(?P<value>.*)$")
_NC_NAME_RE = re.compile(r"[^A-Za-z0-9_]+")
_EPOCH = pd.Timestamp("1970-01-01", tz="UTC")
_FILL_VALUE = -9999.0


def _nc_name(name: str) -> str:
    """Return a netCDF-safe variable name derived from *name*."""
    out = _NC_NAME_RE.sub("_", name.strip()).strip("_") or "var"
    return out if out[0].isalpha() else f"v_{out}"


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


class TagUniversalFileFormat(Converter):
    """Parse eTUFF files and write them as netCDF."""

    extracts_metadata = True

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._attributes: Dict[str, str] = {}
        self._units: Dict[str, str] = {}
        self._table: Optional[pd.DataFrame] = None

    # ------------------------------------------------------------------ #
    # parse
    # ------------------------------------------------------------------ #
    def parse(self, source: Path) -> None:
        try:
            text = Path(source).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise FileIOError(f"Cannot read {source}: {exc}", operation="etuff.parse") from exc

        attributes: Dict[str, str] = {}
        data_lines: list[str] = []
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("//"):
                continue
            if stripped.startswith(":"):
                m = _ATTR_RE.match(stripped)
                if not m:
                    raise FormatError(
                        f"Malformed attribute line {stripped!r}", operation="etuff.parse"
                    )
                attributes[m.group("key")] = _unquote(m.group("value"))
                continue
            data_lines.append(stripped)

        if not data_lines:
            raise FormatError(f"{Path(source).name} has no data section", operation="etuff.parse")

        try:
            frame = pd.read_csv(io.StringIO("\n".join(data_lines)), dtype=str, skipinitialspace=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise FormatError(f"Unreadable data section: {exc}", operation="etuff.parse") from exc

        frame.columns = [str(c).strip() for c in frame.columns]
        missing = [c for c in _REQUIRED_COLUMNS if c not in frame.columns]
        if missing:
            raise FormatError(
                f"Data section lacks column(s): {', '.join(missing)}", operation="etuff.parse"
            )

        frame["DateTime"] = pd.to_datetime(frame["DateTime"], errors="coerce", utc=True)
        if frame["DateTime"].isna().any():
            bad = int(frame["DateTime"].isna().sum())
            raise FormatError(f"{bad} row(s) with unparseable DateTime", operation="etuff.parse")
        frame["VariableValue"] = pd.to_numeric(frame["VariableValue"], errors="coerce")
        frame["VariableName"] = frame["VariableName"].str.strip()

        if "VariableUnits" in frame.columns:
            units = frame.dropna(subset=["VariableUnits"]).groupby("VariableName")["VariableUnits"].first()
            self._units = {str(k): str(v).strip() for k, v in units.items() if str(v).strip()}

        self._table = frame.pivot_table(
            index="DateTime",
            columns="VariableName",
            values="VariableValue",
            aggfunc="first",
            dropna=False,
        ).sort_index()
        self._attributes = attributes

    # ------------------------------------------------------------------ #
    # metadata
    # ------------------------------------------------------------------ #
    def extract_general_metadata(self) -> GeneralMetadata:
        return GeneralMetadata(attributes=dict(self._attributes))

    def extract_variable_metadata(self) -> VariableMetadata:
        return VariableMetadata(variables={name: {"units": u} for name, u in self._units.items()})

    # ------------------------------------------------------------------ #
    # convert
    # ------------------------------------------------------------------ #
    def convert(self, target: Path) -> Path:
        if self._table is None:
            raise ConversionError("parse() must run before convert()", operation="etuff.convert")

        table = self._table
        seconds = ((table.index - _EPOCH) / pd.Timedelta(seconds=1)).to_numpy(dtype="float64")
        global_attrs = self.extract_general_metadata().overlay(self.general).attributes
        user_vars = self.variables.variables

        with Dataset(str(target), "w", format="NETCDF4") as nc:
            nc.createDimension("obs", len(table))

            time = nc.createVariable("time", "f8", ("obs",))
            time.setncatts(
                {
                    "standard_name": "time",
                    "long_name": "time",
                    "units": "seconds since 1970-01-01T00:00:00Z",
                    "calendar": "standard",
                }
            )
            time[:] = seconds

            used: set[str] = {"time"}
            for column in table.columns:
                name = _nc_name(str(column))
                while name in used:
                    name = f"{name}_"
                used.add(name)

                var = nc.createVariable(name, "f8", ("obs",), fill_value=_FILL_VALUE)
                attrs = {"long_name": str(column)}
                if column in self._units:
                    attrs["units"] = self._units[column]
                attrs.update(
                    {k: v for k, v in user_vars.get(str(column), {}).items() if str(v).strip()}
                )
                var.setncatts(attrs)
                var[:] = np.ma.masked_invalid(table[column].to_numpy(dtype="float64"))

            nc.setncatts(global_attrs)

        return target


for _tag in (FILE_TYPE, *FILE_TYPE_ALIASES):
    default_registry.register(_tag, TagUniversalFileFormat)

__all__ = ["FILE_TYPE", "FILE_TYPE_ALIASES", "TagUniversalFileFormat"]
