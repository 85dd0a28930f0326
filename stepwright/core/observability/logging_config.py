"""
Logging configuration — one setup call for the CLI.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
what is configured here.  Diagnostics go to stderr so they never mix
with command output or ``--json`` documents on stdout.  Run progress
(steps, command output, captures) is not logged here; it lives in the
Run Log and on the run's event channel.

Levels are resolved in precedence order:
    --debug  >  --verbose  >  --quiet  >  STEPWRIGHT_LOG_LEVEL  >  WARNING

Optional file output via STEPWRIGHT_LOG_FILE / STEPWRIGHT_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "STEPWRIGHT_LOG_LEVEL"
LOG_FILE_ENV = "STEPWRIGHT_LOG_FILE"
LOG_FILE_LEVEL_ENV = "STEPWRIGHT_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

_FMT_CONSOLE = "%(message)s"
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_FMT_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_ENV, "WARNING")


def _console_formatter(numeric_level: int) -> logging.Formatter:
    if numeric_level <= logging.DEBUG:
        return logging.Formatter(_FMT_DETAILED, datefmt="%H:%M:%S")
    if numeric_level <= logging.INFO:
        return logging.Formatter(_FMT_VERBOSE, datefmt="%H:%M:%S")
    return logging.Formatter(_FMT_CONSOLE)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.  Falls back to
            ``STEPWRIGHT_LOG_FILE``.
        log_file_level: Optional separate level for the log file.
            Falls back to ``STEPWRIGHT_LOG_FILE_LEVEL``, then ``level``.
    """
    numeric_level = _parse_level(level)
    log_file = log_file or os.environ.get(LOG_FILE_ENV)
    log_file_level = log_file_level or os.environ.get(LOG_FILE_LEVEL_ENV)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_console_formatter(numeric_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(fh)

    root.setLevel(effective_level)

    # Writes to a closed stderr are dropped.
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
