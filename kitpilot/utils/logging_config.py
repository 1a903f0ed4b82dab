import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from kitpilot.core import config


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output."""

    blue = "\x1b[38;5;39m"
    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    format_str = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"

    FORMATS = {
        logging.DEBUG: cyan + format_str + reset,
        logging.INFO: green + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        # Handle cases where level might be outside standard range
        if not log_fmt:
            log_fmt = self.format_str
        formatter = logging.Formatter(log_fmt, datefmt="%H:%M:%S")
        return formatter.format(record)


def setup_logging(level=logging.INFO, log_dir: Optional[Path] = None):
    """
    Setup centralized logging configuration.

    The file handler writes under KITPILOT_HOME/logs, never under the
    project directory, so log files are never captured by a snapshot.
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to prevent duplicate logs
    if root_logger.handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    # 1. Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    # 2. File handler for persistence
    log_dir = log_dir or (config.KITPILOT_HOME / "logs")
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            log_dir / f"kitpilot_{datetime.now().strftime('%Y%m%d')}.log",
            encoding="utf-8",
        )
    except OSError as e:
        root_logger.warning("File logging disabled (%s)", e)
    else:
        file_fmt = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_fmt)
        root_logger.addHandler(file_handler)

    # Quiet the HTTP stack unless debugging
    for logger_name in ["httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(max(level, logging.WARNING))

    logging.getLogger("kitpilot").setLevel(level)
    root_logger.debug("Logging initialized (console + file).")
