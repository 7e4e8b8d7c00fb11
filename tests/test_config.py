"""Smoke tests for the config loader and its resource lookups."""

from __future__ import annotations

from importlib.resources import files
from pathlib import Path

import pytest
import yaml

from ncomatic import load_config
from ncomatic.config import ConfigProperties
from ncomatic.utils.errors import ValidationError


def test_default_yaml_loads(dirs):
    """Loading the built-in default YAML should succeed."""
    cfg = load_config()
    with files("ncomatic.resources").joinpath("default_config.yaml").open() as fh:
        expected = yaml.safe_load(fh)
    assert cfg.version == expected["version"]
    assert cfg.delimiters["Comma"] == ","
    assert any(p.name == "Argo Float" for p in cfg.platforms)


def test_env_overrides_directories(dirs):
    cfg = load_config()
    props = ConfigProperties(cfg)
    assert props.lookup_upload_directory() == dirs["upload"]
    assert props.lookup_download_directory() == dirs["download"]
    assert cfg.directories.store == dirs["store"]


def test_explicit_path_wins_over_env(tmp_path: Path, monkeypatch):
    env_cfg = tmp_path / "env.yaml"
    env_cfg.write_text("directories: {upload: /env/u, download: /env/d, store: /env/s}\n")
    explicit = tmp_path / "explicit.yaml"
    explicit.write_text(
        "directories: {upload: /x/u, download: /x/d, store: /x/s}\n"
        "platforms: [{name: Kite, community: Fun}]\n"
    )
    for var in ("NCOMATIC_UPLOAD_DIR", "NCOMATIC_DOWNLOAD_DIR", "NCOMATIC_STORE_DIR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NCOMATIC_CONFIG", str(env_cfg))

    assert load_config().directories.upload == Path("/env/u")
    cfg = load_config(explicit)
    assert cfg.directories.upload == Path("/x/u")
    assert cfg.community_for("Kite") == "Fun"


def test_invalid_yaml_raises(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("directories: [unclosed\n")
    with pytest.raises(ValidationError):
        load_config(bad)


def test_schema_violation_raises(tmp_path: Path, monkeypatch):
    for var in ("NCOMATIC_UPLOAD_DIR", "NCOMATIC_DOWNLOAD_DIR", "NCOMATIC_STORE_DIR"):
        monkeypatch.delenv(var, raising=False)
    bad = tmp_path / "bad.yaml"
    bad.write_text(
        "directories: {upload: /u, download: /d, store: /s}\n"
        "platforms: [{name: Buoy, community: A}, {name: buoy, community: B}]\n"
    )
    with pytest.raises(ValidationError):
        load_config(bad)


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(ValidationError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "platform, community",
    [
        ("Argo_Float", "Oceanic Science"),
        ("argo float", "Oceanic Science"),
        ("Surface_Weather_Station", "Atmospheric Science"),
        ("Spaceship", None),
    ],
)
def test_community_lookup(cfg, platform, community):
    assert cfg.community_for(platform) == community


@pytest.mark.parametrize(
    "given, symbol",
    [("Comma", ","), ("tab", "\t"), ("Whitespace", " "), (";", ";"), ("#", "#")],
)
def test_delimiter_symbol(cfg, given, symbol):
    assert cfg.delimiter_symbol(given) == symbol
