"""
Logging configuration for the protobuild CLI.

main.py calls configure_cli_logging() once per invocation; library code
only ever does ``logger = logging.getLogger(__name__)``.

Console level, first match wins:
    --debug  >  --verbose  >  --quiet  >  PROTOBUILD_LOG_LEVEL  >  WARNING

A second, file-only destination is enabled by PROTOBUILD_LOG_FILE, with
its own threshold in PROTOBUILD_LOG_FILE_LEVEL. Console output always
goes to stderr: stdout carries watch directives and JSON that build
systems parse.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Mapping

ENV_LEVEL = "PROTOBUILD_LOG_LEVEL"
ENV_FILE = "PROTOBUILD_LOG_FILE"
ENV_FILE_LEVEL = "PROTOBUILD_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: compiler-style "warning: ..." lines
_FMT_MINIMAL = "%(levelname)s: %(message)s"

# INFO: one line per pipeline step, with the emitting module
_FMT_VERBOSE = "%(asctime)s %(name)s: %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG and file output: level and source line
_FMT_DETAIL = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%dT%H:%M:%S"

# grpc_tools pulls these in; they chatter below WARNING
_NOISY_LOGGERS = ("grpc", "grpc._cython", "asyncio")


class _LowercaseLevelFormatter(logging.Formatter):
    """Render ``WARNING`` as ``warning``, the way compilers report."""

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        record.levelname = original.lower()
        try:
            return super().format(record)
        finally:
            record.levelname = original


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(ENV_LEVEL) or "WARNING"


def configure_cli_logging(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Set up logging for one CLI run. Returns the console level name."""
    env = os.environ if environ is None else environ
    level = resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=env)
    setup_logging(
        level=level,
        log_file=env.get(ENV_FILE) or None,
        log_file_level=env.get(ENV_FILE_LEVEL) or None,
        quiet_third_party=not debug,
    )
    return level


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console handler and, optionally, a file handler.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path of a log file; its parent directory is created.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold the generator's runtime loggers at WARNING
            unless the console is at DEBUG.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        formatter = logging.Formatter(_FMT_DETAIL, datefmt=_DATEFMT_VERBOSE)
    elif numeric_level <= logging.INFO:
        formatter = logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_VERBOSE)
    else:
        formatter = _LowercaseLevelFormatter(_FMT_MINIMAL)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        root_level = min(root_level, file_level)

        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAIL, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(root_level)

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # a broken stderr must not fail the build
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
