# catalog_hub/logging_setup.py
"""
Logging for Catalog Hub.

Everything goes to a rotating ``catalog_hub.log`` under ``<CATALOG_DATA_ROOT>/logs``;
with ``LOG_TO_CONSOLE`` the same records are echoed to stderr for local runs.
"""
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path
from typing import List

LOG_FILE_NAME = "catalog_hub.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# uvicorn configures these with propagate=False
SERVER_LOGGERS = ("uvicorn", "uvicorn.access")


def _resolve_level(value) -> int:
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(log_path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8", delay=True
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    handler.set_name("catalog_hub.console")
    return handler


def _already_attached(logger: logging.Logger, handler: logging.Handler) -> bool:
    for existing in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            if getattr(existing, "baseFilename", None) == handler.baseFilename:
                return True
        elif handler.get_name() and existing.get_name() == handler.get_name():
            return True
    return False


def setup_logging(settings) -> Path:
    """Attach the catalog handlers to the root and server loggers; returns the log file path."""
    log_dir = Path(settings.CATALOG_DATA_ROOT).expanduser() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    level = _resolve_level(settings.LOG_LEVEL)

    handlers: List[logging.Handler] = [_file_handler(log_path, level)]
    if getattr(settings, "LOG_TO_CONSOLE", False):
        handlers.append(_console_handler(level))

    root = logging.getLogger()
    root.setLevel(level)
    for name in ("",) + SERVER_LOGGERS:
        logger = root if name == "" else logging.getLogger(name)
        logger.setLevel(level)
        for handler in handlers:
            if not _already_attached(logger, handler):
                logger.addHandler(handler)

    return log_path
