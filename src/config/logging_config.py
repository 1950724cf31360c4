# src/config/logging_config.py

"""Per-run logging for the drink_picker service.

Every process start (server, one-shot sync, status print) opens its own
``logs/run_<timestamp>.log``.  The ``drink_picker`` logger tree writes
everything there at DEBUG, while the console only shows warnings unless
``LOG_LEVEL`` says otherwise.  Upstream access tokens must never reach a
handler unmasked; use :func:`mask_token` before logging one.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

ROOT_LOGGER_NAME = "drink_picker"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_level() -> int:
    """Console verbosity from ``LOG_LEVEL`` (default WARNING)."""
    name = os.getenv("LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def setup_logging() -> Path:
    """Attach file and console handlers to the ``drink_picker`` logger.

    Returns:
        The path of the log file for this run.  Repeated calls keep the
        handlers installed by the first call and return its log file.
    """
    Settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = Settings.LOGS_DIR / f"run_{stamp}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_console_level())
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    root_logger.info("Logging to %s", log_file)
    return log_file


def mask_token(token: str | None) -> str:
    """Render a token as ``abcd****wxyz(len=N)`` for log lines."""
    if not token:
        return "n/a"
    return f"{token[:4]}****{token[-4:]}(len={len(token)})"


def preview_text(text: str | None, limit: int = Settings.PREVIEW_LIMIT) -> str:
    """Collapse whitespace and truncate a response body for logging."""
    if not text:
        return ""
    one_line = " ".join(text.split())
    if len(one_line) > limit:
        return f"{one_line[:limit]}…(truncated)"
    return one_line
