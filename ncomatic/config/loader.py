"""
YAML configuration loader.

This helper locates, reads, and validates the configuration document before
returning a :class:`ncomatic.config.schema.ConfigSchema` instance.

Search precedence (first match wins)
1. An explicit path argument (``--config`` on the CLI).
2. The file named by ``$NCOMATIC_CONFIG``.
3. The packaged default shipped inside the wheel.

Directory roots can then be overridden one by one with
``$NCOMATIC_UPLOAD_DIR``, ``$NCOMATIC_DOWNLOAD_DIR`` and
``$NCOMATIC_STORE_DIR``.  All resolution logic is concentrated here so the
rest of *ncomatic* treats configuration as an already-validated object.
"""

from __future__ import annotations

import os
from importlib.resources import as_file, files
from pathlib import Path
from typing import Optional

import yaml

from ncomatic.utils.errors import ValidationError

from .schema import ConfigSchema

# --------------------------------------------------------------------------- #
# Wheel-internal fallback                                                     #
# --------------------------------------------------------------------------- #
_DEFAULT_CONFIG = files("ncomatic.resources") / "default_config.yaml"

_ENV_CONFIG = "NCOMATIC_CONFIG"
_ENV_DIRS = {
    "upload": "NCOMATIC_UPLOAD_DIR",
    "download": "NCOMATIC_DOWNLOAD_DIR",
    "store": "NCOMATIC_STORE_DIR",
}


# --------------------------------------------------------------------------- #
# Helper functions                                                            #
# --------------------------------------------------------------------------- #
def _load_yaml(path: Path) -> dict:
    """Read a YAML file.

    Args:
        path: Location of the YAML document.

    Returns:
        Dictionary parsed from the file, or an empty dict if the file is empty.
    """
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def _resolve_path(explicit: Optional[Path]) -> Optional[Path]:
    """Return the user-supplied config path, or ``None`` for the packaged one."""
    if explicit is not None:
        return explicit
    env = os.environ.get(_ENV_CONFIG)
    return Path(env).expanduser().resolve() if env else None


def _apply_env_overrides(doc: dict) -> dict:
    """Replace directory roots with values taken from the environment."""
    dirs = dict(doc.get("directories") or {})
    for key, var in _ENV_DIRS.items():
        value = os.environ.get(var)
        if value:
            dirs[key] = value
    doc["directories"] = dirs
    return doc


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def load_config(path: Optional[str | Path] = None) -> ConfigSchema:
    """Return a fully validated :class:`ConfigSchema`.

    Args:
        path: Explicit configuration file.  ``None`` triggers the search
            sequence described in the module doc-string.

    Returns:
        A :class:`ConfigSchema` object ready for downstream use.

    Raises:
        ValidationError: When the file cannot be read or fails validation.
    """
    explicit = Path(path).expanduser().resolve() if path else None
    resolved = _resolve_path(explicit)

    try:
        if resolved is None:
            with as_file(_DEFAULT_CONFIG) as p:
                doc = _load_yaml(p)
        else:
            doc = _load_yaml(resolved)
    except (OSError, yaml.YAMLError) as exc:
        raise ValidationError(
            f"Cannot read configuration {resolved or _DEFAULT_CONFIG}: {exc}",
            operation="load_config",
        ) from exc

    doc = _apply_env_overrides(doc)

    try:
        return ConfigSchema(**doc)
    except Exception as exc:  # pydantic.ValidationError or type errors
        raise ValidationError(
            f"Invalid configuration – {exc}", operation="load_config"
        ) from exc
