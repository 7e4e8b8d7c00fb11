"""Logging setup: JSON log location and console quietness."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from ncomatic.cli import main
from ncomatic.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()


def test_json_log_goes_to_env_dir(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("NCOMATIC_LOG_DIR", str(tmp_path / "env-logs"))
    setup_logging(log_dir=tmp_path / "ignored")
    logging.getLogger("ncomatic.test").info("hello")
    assert (tmp_path / "env-logs" / "ncomatic.log").exists()
    assert not (tmp_path / "ignored").exists()


def test_json_log_falls_back_to_log_dir(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("NCOMATIC_LOG_DIR", raising=False)
    setup_logging(log_dir=tmp_path / "logs")
    assert (tmp_path / "logs" / "ncomatic.log").exists()


def test_plain_text_mirror(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("NCOMATIC_LOG_DIR", str(tmp_path))
    mirror = tmp_path / "mirror.txt"
    setup_logging(verbose=True, extra_text_log=mirror)
    logging.getLogger("ncomatic.test").info("mirrored line")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "[INFO] mirrored line" in mirror.read_text()


def test_quiet_commands_print_no_json_events(dirs):
    result = CliRunner().invoke(main, ["new", "--platform", "Buoy"])
    assert result.exit_code == 0, result.output
    assert '{"event":' not in result.output
    assert "wizard.session.created" not in result.output


def test_quiet_commands_still_write_json_events(dirs, tmp_path: Path):
    runner = CliRunner()
    sid = runner.invoke(main, ["new", "--platform", "Buoy"]).output.strip().splitlines()[-1]
    result = runner.invoke(main, ["delete", sid, "--yes"])
    assert result.exit_code == 0, result.output

    lines = (tmp_path / "logs" / "ncomatic.log").read_text().splitlines()
    events = [json.loads(line) for line in lines if line.startswith("{")]
    by_name = {e["event"]: e for e in events}
    assert by_name["wizard.session.created"]["session_id"] == sid
    assert by_name["wizard.session.deleted"]["session_id"] == sid
