"""Logging utilities for passbolt_sync.

Centralized, dual-channel logging:
- Console handler: INFO/WARNING/ERROR to stderr (human-friendly).
- File handler: level driven by environment (.env), written under ./logs by default,
  with filename pattern: <Kind>-<Action>-YYYY-MM-HH.log.

This module is idempotent: calling `setup_logging(...)` multiple times reconfigures
the root logger cleanly without duplicating handlers.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

# Default formats
DEF_CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DEF_FILE_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "[%(filename)s:%(lineno)d %(funcName)s] - %(message)s"
)


def _load_env() -> None:
    """Load environment variables from a .env file if present."""
    env_path = find_dotenv(usecwd=True) or ""
    if env_path:
        load_dotenv(env_path, override=True)


def _resolve_file_level() -> int:
    """Resolve the numeric level for the *file* handler from environment.

    Precedence:
        1) PASSBOLT_LOG_FILE_LEVEL
        2) PASSBOLT_LOG_LEVEL
        3) DEBUG
    """
    lvl_name = (
        os.getenv("PASSBOLT_LOG_FILE_LEVEL")
        or os.getenv("PASSBOLT_LOG_LEVEL")
        or "DEBUG"
    ).upper()
    return getattr(logging, lvl_name, logging.DEBUG)


def _ensure_logs_dir() -> Path:
    """Return the logs directory path, creating it if necessary."""
    base = os.getenv("PASSBOLT_LOG_DIR") or "./logs"
    p = Path(base)
    p.mkdir(parents=True, exist_ok=True)
    return p


def _build_log_filename(kind: str, action: str) -> str:
    """Build log file name: <Kind>-<Action>-YYYY-MM-HH.log"""
    ts = datetime.now().strftime("%Y-%m-%H")
    return f"{kind}-{action}-{ts}.log"


def setup_logging(
    *,
    kind: Optional[str] = None,
    action: Optional[str] = None,
) -> Optional[Path]:
    """Configure the root logger with console + optional file handlers.

    Args:
        kind: Entity kind for the log filename (e.g. ``folder``).
        action: CLI action for the log filename (e.g. ``create``).

    Returns:
        The log file path when a file handler was installed, else ``None``.

    Behavior:
        - Console: fixed at INFO (thus includes WARNING/ERROR/CRITICAL).
        - File: level comes from `.env` (PASSBOLT_LOG_FILE_LEVEL -> PASSBOLT_LOG_LEVEL -> DEBUG).
        - Root level is the lowest level among the installed handlers.
    """
    _load_env()
    logging.captureWarnings(True)

    console_level = logging.INFO
    file_level = _resolve_file_level()

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(DEF_CONSOLE_FORMAT))
    root.addHandler(console_handler)

    logfile: Optional[Path] = None
    if kind and action:
        logfile = _ensure_logs_dir() / _build_log_filename(kind, action)
        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(DEF_FILE_FORMAT))
        root.addHandler(file_handler)

    root.setLevel(min(console_level, file_level) if logfile else console_level)
    return logfile


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a child logger with the given name."""
    return logging.getLogger(name or "passbolt_sync")
