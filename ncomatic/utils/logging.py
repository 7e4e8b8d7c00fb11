"""
Logging for the ncomatic CLI and library.

Three sinks are wired by :func:`setup_logging`:

* the console, through Rich for interactive use or a bare ``[LEVEL] message``
  stream for the progress-reporting commands (``upload``, ``convert``);
* a rotating JSON log ``ncomatic.log`` that keeps every wizard event, placed
  in ``$NCOMATIC_LOG_DIR`` when set, else in the *log_dir* handed in by the
  caller (the CLI uses ``<store>/logs``), else in a package-local ``logs/``;
* an optional plain-text mirror of the console (``--save-logfile``).

Library code logs through ``structlog.get_logger()`` with dotted event names
(``wizard.upload.staged``, ``convert.done``).  Values bound with
:func:`structlog.contextvars.bound_contextvars`, such as the ``session_id``
the CLI binds around each wizard call, are merged into every event.
"""

from __future__ import annotations

import atexit
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import structlog
from rich.logging import RichHandler
from structlog.dev import ConsoleRenderer
from structlog.stdlib import LoggerFactory

__all__ = ["setup_logging", "LOG_FILE_NAME"]

#: Name of the rotating JSON log inside the log directory.
LOG_FILE_NAME = "ncomatic.log"

_ROTATE_BYTES = 5_000_000
_ROTATE_KEEP = 3
_PLAIN_FORMAT = "[%(levelname)s] %(message)s"


# --------------------------------------------------------------------------- #
# Level and location resolution                                               #
# --------------------------------------------------------------------------- #
def _levels(verbose: bool, debug: bool, force_info: bool) -> Tuple[int, int]:
    """Return ``(console_level, file_level)`` for the CLI flags."""
    if debug:
        return logging.DEBUG, logging.DEBUG
    if verbose or force_info:
        return logging.INFO, logging.INFO
    return logging.WARNING, logging.INFO


def _log_directory(log_dir: Path | None) -> Path:
    env_dir = os.environ.get("NCOMATIC_LOG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    if log_dir is not None:
        return log_dir.expanduser()
    return Path(__file__).resolve().parents[1] / "logs"


# --------------------------------------------------------------------------- #
# Handlers                                                                    #
# --------------------------------------------------------------------------- #
def _console_handler(level: int, *, minimal: bool) -> logging.Handler:
    if minimal:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    else:
        handler = RichHandler(rich_tracebacks=True, tracebacks_show_locals=False, markup=False)
    handler.setLevel(level)
    return handler


def _json_file_handler(directory: Path, level: int) -> logging.Handler:
    """Return a rotating handler writing :data:`LOG_FILE_NAME` in *directory*."""
    directory.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=directory / LOG_FILE_NAME,
        maxBytes=_ROTATE_BYTES,
        backupCount=_ROTATE_KEEP,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _text_mirror(path: Optional[Path], level: int) -> Optional[logging.Handler]:
    """Plain-text copy of the console stream, or ``None`` without *path*."""
    if path is None:
        return None
    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8", mode="a")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    atexit.register(handler.close)
    return handler


def _processors(*, minimal: bool, human: bool) -> list:
    """structlog chain: context merge, optional stamps, then one renderer."""
    chain: list = [structlog.contextvars.merge_contextvars]
    if not minimal:
        chain += [structlog.processors.TimeStamper(fmt="iso"), structlog.processors.add_log_level]
    chain.append(ConsoleRenderer() if human else structlog.processors.JSONRenderer())
    return chain


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def setup_logging(
    *,
    log_dir: Path | None = None,
    verbose: bool = False,
    debug: bool = False,
    force_info: bool = False,
    extra_text_log: Optional[Path] = None,
) -> None:
    """Configure console, JSON file and optional plain-text logging.

    Args:
        log_dir: Directory for the rotating JSON log when
            ``NCOMATIC_LOG_DIR`` is unset.
        verbose: INFO-level console output.
        debug: DEBUG-level console and file output plus rich tracebacks.
        force_info: INFO-level console output through the bare stream
            handler, used by commands that report progress.
        extra_text_log: Path of a plain-text mirror of the console.
    """
    console_lvl, file_lvl = _levels(verbose, debug, force_info)
    minimal = force_info and not (verbose or debug)

    handlers: List[logging.Handler] = [
        _console_handler(console_lvl, minimal=minimal),
        _json_file_handler(_log_directory(log_dir), file_lvl),
    ]
    mirror = _text_mirror(extra_text_log, console_lvl)
    if mirror is not None:
        handlers.append(mirror)

    # Root stays at DEBUG; each handler filters for itself.
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, format="%(message)s", force=True)

    structlog.configure(
        processors=_processors(minimal=minimal, human=verbose or debug or force_info),
        wrapper_class=structlog.make_filtering_bound_logger(min(console_lvl, file_lvl)),
        logger_factory=LoggerFactory(),
    )
