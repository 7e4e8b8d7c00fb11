"""Disk-level staging helpers: uploads, parsing, archives, templates."""

from __future__ import annotations

import io
import json
import tarfile
import zipfile
from pathlib import Path

import pytest

from conftest import zip_bytes
from ncomatic.io import staging
from ncomatic.models import Template
from ncomatic.utils.errors import FileIOError, FormatError, ValidationError


# ---------------------------------------------------------------------------
# write_uploaded_file
# ---------------------------------------------------------------------------
def test_upload_written_under_session_dir(tmp_path: Path):
    name = staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"a,b\n")
    assert name == "data.csv"
    assert (tmp_path / "abc" / "data.csv").read_bytes() == b"a,b\n"


def test_identical_resubmission_writes_once(tmp_path: Path, monkeypatch):
    calls = []
    real = staging._atomic_write_bytes

    def counting(dest, content):
        calls.append(dest)
        real(dest, content)

    monkeypatch.setattr(staging, "_atomic_write_bytes", counting)
    first = staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"x")
    second = staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"x")
    assert first == second == "data.csv"
    assert len(calls) == 1


def test_different_bytes_get_disambiguated(tmp_path: Path):
    staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"one")
    second = staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"two")
    third = staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"three")
    assert (second, third) == ("data_1.csv", "data_2.csv")
    assert (tmp_path / "abc" / "data.csv").read_bytes() == b"one"


def test_archive_names_keep_compound_suffix(tmp_path: Path):
    staging.write_uploaded_file(tmp_path, "abc", "cruise.tar.gz", b"one")
    assert staging.write_uploaded_file(tmp_path, "abc", "cruise.tar.gz", b"two") == "cruise_1.tar.gz"


@pytest.mark.parametrize("name", ["../evil.csv", "sub/data.csv", "/etc/passwd", "", "  "])
def test_unsafe_names_rejected(tmp_path: Path, name: str):
    with pytest.raises(ValidationError):
        staging.write_uploaded_file(tmp_path, "abc", name, b"x")


def test_bad_session_id_rejected(tmp_path: Path):
    with pytest.raises(ValidationError):
        staging.write_uploaded_file(tmp_path, "../other", "data.csv", b"x")


def test_no_temporary_files_left(tmp_path: Path):
    staging.write_uploaded_file(tmp_path, "abc", "data.csv", b"x")
    assert [p.name for p in (tmp_path / "abc").iterdir()] == ["data.csv"]


def test_create_download_subdirectory(tmp_path: Path):
    d = staging.create_download_subdirectory(tmp_path / "dl", "abc")
    assert d == tmp_path / "dl" / "abc" and d.is_dir()


# ---------------------------------------------------------------------------
# parse_by_delimiter / parse_by_line
# ---------------------------------------------------------------------------
def test_parse_by_delimiter_skips_header_indices(tmp_path: Path):
    src = tmp_path / "f.csv"
    src.write_text("a,b\nc,d\n1,2\n")
    assert staging.parse_by_delimiter(src, {0, 1}, ",") == [["1", "2"]]


def test_parse_by_delimiter_whitespace_runs(tmp_path: Path):
    src = tmp_path / "f.txt"
    src.write_text("t  v\r\n1   2.5\r\n\n3 4\n")
    assert staging.parse_by_delimiter(src, [0], " ") == [["1", "2.5"], ["3", "4"]]


def test_parse_by_delimiter_requires_delimiter(tmp_path: Path):
    src = tmp_path / "f.csv"
    src.write_text("a\n")
    with pytest.raises(ValidationError):
        staging.parse_by_delimiter(src, [], "")


def test_parse_by_line_returns_json(tmp_path: Path):
    src = tmp_path / "f.csv"
    src.write_text("a,b\n1,2\n")
    assert json.loads(staging.parse_by_line(src)) == ["a,b", "1,2"]


def test_parse_by_line_missing_file(tmp_path: Path):
    with pytest.raises(FileIOError):
        staging.parse_by_line(tmp_path / "nope.csv")


# ---------------------------------------------------------------------------
# archives
# ---------------------------------------------------------------------------
def test_extract_zip_returns_archive_order(tmp_path: Path):
    (tmp_path / "abc").mkdir()
    (tmp_path / "abc" / "bundle.zip").write_bytes(
        zip_bytes({"data.csv": b"a,b\n", "meta/rosetta.template": b"{}"})
    )
    inventory = staging.extract_archive(tmp_path, "abc", "bundle.zip")
    assert inventory == ["data.csv", "meta/rosetta.template"]
    assert (tmp_path / "abc" / "meta" / "rosetta.template").read_bytes() == b"{}"


def test_extract_tar_gz(tmp_path: Path):
    session = tmp_path / "abc"
    session.mkdir()
    with tarfile.open(session / "bundle.tar.gz", "w:gz") as tf:
        payload = b"1,2\n"
        info = tarfile.TarInfo("data.csv")
        info.size = len(payload)
        tf.addfile(info, io.BytesIO(payload))
    assert staging.extract_archive(tmp_path, "abc", "bundle.tar.gz") == ["data.csv"]
    assert (session / "data.csv").read_bytes() == b"1,2\n"


def test_extract_rejects_escaping_entries(tmp_path: Path):
    (tmp_path / "abc").mkdir()
    (tmp_path / "abc" / "evil.zip").write_bytes(zip_bytes({"../escape.txt": b"x"}))
    with pytest.raises(FormatError):
        staging.extract_archive(tmp_path, "abc", "evil.zip")
    assert not (tmp_path / "escape.txt").exists()


def test_extract_checks_all_names_before_writing(tmp_path: Path):
    (tmp_path / "abc").mkdir()
    (tmp_path / "abc" / "mixed.zip").write_bytes(
        zip_bytes({"good.csv": b"1,2\n", "../escape.txt": b"x"})
    )
    with pytest.raises(FormatError):
        staging.extract_archive(tmp_path, "abc", "mixed.zip")
    assert sorted(p.name for p in (tmp_path / "abc").iterdir()) == ["mixed.zip"]


def test_extract_disambiguates_like_uploads(tmp_path: Path):
    session = tmp_path / "abc"
    session.mkdir()
    (session / "data.csv").write_bytes(b"earlier upload\n")
    (session / "same.csv").write_bytes(b"same\n")
    (session / "bundle.zip").write_bytes(
        zip_bytes({"data.csv": b"from archive\n", "same.csv": b"same\n"})
    )

    inventory = staging.extract_archive(tmp_path, "abc", "bundle.zip")

    assert inventory == ["data_1.csv", "same.csv"]
    assert (session / "data.csv").read_bytes() == b"earlier upload\n"
    assert (session / "data_1.csv").read_bytes() == b"from archive\n"


def test_extract_malformed_archive(tmp_path: Path):
    (tmp_path / "abc").mkdir()
    (tmp_path / "abc" / "broken.zip").write_bytes(b"not an archive at all")
    with pytest.raises(FormatError):
        staging.extract_archive(tmp_path, "abc", "broken.zip")


def test_extract_missing_archive(tmp_path: Path):
    with pytest.raises(FileIOError):
        staging.extract_archive(tmp_path, "abc", "missing.zip")


def test_compress_bundles_outputs(tmp_path: Path):
    (tmp_path / "obs.nc").write_bytes(b"nc")
    (tmp_path / "rosetta.template").write_text("{}")
    (tmp_path / "old.zip").write_bytes(b"zip")
    name = staging.compress(tmp_path, "obs.csv")
    assert name == "obs.zip"
    with zipfile.ZipFile(tmp_path / name) as zf:
        assert sorted(zf.namelist()) == ["obs.nc", "rosetta.template"]


def test_compress_explicit_members_only(tmp_path: Path):
    (tmp_path / "stale.nc").write_bytes(b"old run")
    (tmp_path / "rosetta.template").write_text("{}")
    name = staging.compress(tmp_path, "obs.csv", ["rosetta.template"])
    with zipfile.ZipFile(tmp_path / name) as zf:
        assert zf.namelist() == ["rosetta.template"]


def test_compress_missing_member_names_session(tmp_path: Path):
    with pytest.raises(FileIOError) as info:
        staging.compress(tmp_path, "obs.csv", ["missing.nc"], session_id="abc")
    assert info.value.session_id == "abc"
    assert info.value.operation == "compress"
    assert not (tmp_path / "obs.zip").exists()


def test_list_inventory_is_sorted_and_recursive(tmp_path: Path):
    (tmp_path / "b.csv").write_text("")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "a.csv").write_text("")
    (tmp_path / ".tmp_ncomatic_x").write_text("")
    assert staging.list_inventory(tmp_path) == ["b.csv", "sub/a.csv"]


def test_list_inventory_missing_dir(tmp_path: Path):
    with pytest.raises(FileIOError):
        staging.list_inventory(tmp_path / "nope")


# ---------------------------------------------------------------------------
# template artifact
# ---------------------------------------------------------------------------
def test_template_round_trip(tmp_path: Path):
    tpl = Template(
        data_file_type="Custom_File_Type",
        delimiter=",",
        header_line_numbers="1,0",
        general_metadata={"title": "Cruise"},
    )
    name = staging.write_template(tmp_path, tpl)
    assert name == "rosetta.template"
    loaded = staging.read_template(tmp_path / name)
    assert loaded == tpl
    assert loaded.header_line_numbers == (0, 1)


@pytest.mark.parametrize(
    "content",
    ["not json", json.dumps({"foo": "bar"}), json.dumps({"data_file_type": "x", "extra": 1})],
)
def test_read_template_rejects_foreign_documents(tmp_path: Path, content: str):
    path = tmp_path / "rosetta.template"
    path.write_text(content)
    with pytest.raises(FormatError):
        staging.read_template(path)
