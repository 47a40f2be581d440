"""
Logging for the breakout_bot logger tree. Times are UTC, like candle timestamps.

The console shows `level` and above. The log file, when configured, always records DEBUG,
so per-trade open/close lines are kept on disk even when the console is at INFO.
"""

from __future__ import annotations
import logging
import sys
import time
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP / exchange client loggers that are noisy at DEBUG
QUIET_LOGGERS = ("urllib3", "binance")


def _formatter() -> logging.Formatter:
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the "breakout_bot" logger and return it.
    Calling it again replaces the handlers from the previous call.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root = logging.getLogger("breakout_bot")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = False

    formatter = _formatter()
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir and log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        root.addHandler(fh)
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    return root
