"""Harvester log routing and data directory helpers.

Every log line goes to stdout and to the active log file under
``config.LOG_DIR``. The web app writes to ``latest.log``; CLI runs switch to
their own ``harvest_<timestamp>.log`` through ``setup_run_logger``.
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from . import config

LOGGER = logging.getLogger("orgharvest")
LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOGGER_INITIALISED = False
_CURRENT_LOG_FILE: Path = config.LOG_FILE


def _detach_handlers() -> None:
    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue


def _handlers_for(log_path: Path) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_path, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _configure_logger(log_path: Path) -> None:
    """Send harvester log lines to stdout and ``log_path`` from now on."""

    global _LOGGER_INITIALISED, _CURRENT_LOG_FILE

    log_path.parent.mkdir(parents=True, exist_ok=True)
    _detach_handlers()
    for handler in _handlers_for(log_path):
        LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.INFO)
    LOGGER.propagate = False

    _CURRENT_LOG_FILE = log_path
    _LOGGER_INITIALISED = True


def setup_run_logger() -> Path:
    """Switch to a fresh timestamped log file for one harvest run."""

    stamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    log_path = config.LOG_DIR / f"harvest_{stamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Harvest log: %s", log_path)
    return log_path


def get_current_log_path() -> Path:
    if not _LOGGER_INITIALISED:
        _configure_logger(config.LOG_FILE)
    return _CURRENT_LOG_FILE


def ensure_dirs() -> None:
    """Create the data, log, snapshot and export directories."""

    for directory in (config.DATA_DIR, config.LOG_DIR, config.SNAPSHOT_DIR, config.EXPORTS_DIR):
        directory.mkdir(parents=True, exist_ok=True)


def log_line(message: str) -> None:
    if not _LOGGER_INITIALISED:
        _configure_logger(config.LOG_FILE)
    LOGGER.info(message)


__all__ = [
    "ensure_dirs",
    "get_current_log_path",
    "log_line",
    "setup_run_logger",
]
