"""Shared fixtures for the ncomatic test-suite."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from ncomatic.config import ConfigProperties, load_config
from ncomatic.converters import default_registry
from ncomatic.models import CUSTOM_FILE_TYPE, FileRole, SessionRecord, UploadedFile
from ncomatic.pipelines import WizardOrchestrator
from ncomatic.store import InMemoryMetadataStore, InMemorySessionStore

ETUFF_TEXT = """\
// global attributes:
  :instrument_name = "159903_2012_117464"
  :manufacturer = "Wildlife Computers"
  :owner_contact = "owner@example.org"
DateTime,VariableID,VariableValue,VariableName,VariableUnits
"2012-04-20 00:00:00",3,26.1,"sst","Degree Celsius"
"2012-04-20 00:00:00",4,12.5,"depth","m"
"2012-04-20 01:00:00",3,26.3,"sst","Degree Celsius"
"""

CSV_TEXT = "station,temp\nunits,C\nA,1.5\nB,2.5\n"


@pytest.fixture
def dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point every configured directory at *tmp_path*."""
    out = {
        "upload": tmp_path / "uploads",
        "download": tmp_path / "downloads",
        "store": tmp_path / "store",
    }
    monkeypatch.delenv("NCOMATIC_CONFIG", raising=False)
    monkeypatch.setenv("NCOMATIC_UPLOAD_DIR", str(out["upload"]))
    monkeypatch.setenv("NCOMATIC_DOWNLOAD_DIR", str(out["download"]))
    monkeypatch.setenv("NCOMATIC_STORE_DIR", str(out["store"]))
    monkeypatch.setenv("NCOMATIC_LOG_DIR", str(tmp_path / "logs"))
    return out


@pytest.fixture
def cfg(dirs):
    return load_config()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def metadata_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def wizard(cfg, session_store, metadata_store) -> WizardOrchestrator:
    return WizardOrchestrator(
        session_store, metadata_store, ConfigProperties(cfg), cfg, registry=default_registry
    )


@pytest.fixture
def custom_session(wizard) -> str:
    """A persisted custom-type session with a staged CSV data file."""
    sid = wizard.persist(SessionRecord(platform="Buoy", data_file_type=CUSTOM_FILE_TYPE))
    wizard.process_file_upload(
        sid, [UploadedFile(role=FileRole.DATA, name="obs.csv", content=CSV_TEXT.encode())]
    )
    return sid


@pytest.fixture
def etuff_session(wizard) -> str:
    """A persisted eTUFF session with a staged telemetry file."""
    sid = wizard.persist(SessionRecord(platform="Animal_Tag", data_file_type="eTuff"))
    wizard.process_file_upload(
        sid, [UploadedFile(role=FileRole.DATA, name="tag.txt", content=ETUFF_TEXT.encode())]
    )
    return sid


def zip_bytes(entries: dict[str, bytes]) -> bytes:
    """Return the bytes of a ZIP archive holding *entries*."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()
