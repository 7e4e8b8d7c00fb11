"""End-to-end runs of ``ncomatic-cli`` through click's test runner."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from conftest import CSV_TEXT
from ncomatic.cli import main


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()


@pytest.fixture
def runner(dirs) -> CliRunner:
    return CliRunner()


def _ok(runner: CliRunner, *args: str):
    result = runner.invoke(main, list(args), catch_exceptions=False)
    assert result.exit_code == 0, result.output
    return result


def _new_session(runner: CliRunner, *args: str) -> str:
    return _ok(runner, "new", *args).output.strip().splitlines()[-1]


def test_help_lists_commands(runner):
    result = _ok(runner, "--help")
    for name in ("new", "upload", "custom-attrs", "metadata", "convert", "next-step"):
        assert name in result.output


def test_custom_file_walkthrough(runner, dirs, tmp_path: Path):
    data = tmp_path / "obs.csv"
    data.write_text(CSV_TEXT)

    sid = _new_session(runner, "--platform", "Buoy", "--file-type", "Custom_File_Type")
    assert (dirs["store"] / "sessions" / f"{sid}.json").is_file()

    result = _ok(runner, "upload", sid, "--data", str(data))
    assert "customFileTypeAttributes" in result.output

    result = _ok(runner, "custom-attrs", sid, "--delimiter", "Comma", "--header-lines", "0,1")
    assert "variableMetadata" in result.output

    assert _ok(runner, "next-step", sid).output.strip() == "customFileTypeAttributes"
    assert _ok(runner, "previous-step", sid).output.strip() == "variableMetadata"

    result = _ok(runner, "metadata", sid, "--general", "title=Buoy A", "--variable", "temp:units=C")
    assert '"title": "Buoy A"' in result.output
    assert '"units": "C"' in result.output

    preview = _ok(runner, "preview", sid).output.strip().splitlines()[-1]
    assert json.loads(preview) == CSV_TEXT.splitlines()

    result = _ok(runner, "convert", sid, "--rows")
    assert '[["A", "1.5"], ["B", "2.5"]]' in result.output
    assert (dirs["download"] / sid / "obs.zip").is_file()

    result = _ok(runner, "show", sid)
    assert "Oceanic Science" in result.output
    assert "converted: yes" in result.output
    assert "staged: obs.csv" in result.output


def test_errors_are_reported_with_kind(runner):
    result = runner.invoke(main, ["show", "does-not-exist"])
    assert result.exit_code == 1
    assert "SessionNotFoundError" in result.output

    sid = _new_session(runner, "--file-type", "eTUFF")
    result = runner.invoke(main, ["custom-attrs", sid, "--delimiter", "Comma", "--header-lines", "0"])
    assert result.exit_code == 1
    assert "ValidationError" in result.output


def test_unknown_platform(runner):
    result = runner.invoke(main, ["new", "--platform", "Spaceship"])
    assert result.exit_code == 1
    assert "Unknown platform" in result.output


def test_metadata_pair_syntax(runner):
    sid = _new_session(runner)
    result = runner.invoke(main, ["metadata", sid, "--general", "no-equals-sign"])
    assert result.exit_code == 2


def test_clear_and_delete(runner, dirs, tmp_path: Path):
    data = tmp_path / "obs.csv"
    data.write_text(CSV_TEXT)
    sid = _new_session(runner, "--file-type", "Custom_File_Type")
    _ok(runner, "upload", sid, "--data", str(data))

    _ok(runner, "upload", sid, "--clear-data")
    assert "data_file_name: -" in _ok(runner, "show", sid).output

    _ok(runner, "delete", sid, "--yes")
    assert not (dirs["store"] / "sessions" / f"{sid}.json").exists()
    assert (dirs["upload"] / sid / "obs.csv").exists()


def test_bad_config_file(runner, tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("directories: [")
    result = runner.invoke(main, ["--config", str(bad), "show", "x"])
    assert result.exit_code == 1
    assert "ValidationError" in result.output
