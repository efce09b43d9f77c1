"""
Logging for focuswatch.

Modules call get_logger(__name__); the CLI calls setup_logging_from_config()
once after the config is loaded. Records go to stderr and, unless log_file
is empty, to a log file as well.

EVENT (25) sits between INFO and WARNING and marks what a user scrolling the
log wants to find: the model becoming ready, each distraction, and the
session summary.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

EVENT = 25
logging.addLevelName(EVENT, "EVENT")


def _event(self, message, *args, **kwargs):
    if self.isEnabledFor(EVENT):
        self.log(EVENT, message, *args, **kwargs)


logging.Logger.event = _event

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "INFO"
DEFAULT_LOG_FILE = "logs/focuswatch.log"

# Set on every handler we install so a second setup call can find them
HANDLER_TAG = "focuswatch"


def _level_number(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def _installed_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if h.get_name() == HANDLER_TAG]


def setup_logging(level: str = DEFAULT_LEVEL, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Attach console (and file) handlers to the root logger, once."""
    root = logging.getLogger()
    root.setLevel(_level_number(level))
    if _installed_handlers():
        return

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    for handler in handlers:
        handler.set_name(HANDLER_TAG)
        handler.setFormatter(formatter)
        root.addHandler(handler)


def set_level(level: str) -> None:
    """Change the root level after startup (used by --log-level)."""
    logging.getLogger().setLevel(_level_number(level))


def setup_logging_from_config(config: dict[str, Any]) -> None:
    setup_logging(
        level=config.get("log_level", DEFAULT_LEVEL),
        log_file=config.get("log_file", DEFAULT_LOG_FILE),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
