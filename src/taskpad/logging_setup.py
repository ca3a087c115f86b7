"""Logging configuration for taskpad."""

import logging
import sys
from pathlib import Path

from taskpad.config import DATA_DIR

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the console to taskpad records; third-party logs only at ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taskpad" or record.name.startswith("taskpad."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = DATA_DIR,
    console: bool = True,
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> Path:
    """Configure the root logger with a log file and an optional stderr handler.

    The terminal UI passes console=False since stderr output would draw over
    the screen. Call this once, before the first log record.

    Returns:
        Path of the log file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskpad.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Drop handlers from an earlier call
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(fmt)
        ch.addFilter(_ConsoleNoiseFilter())
        root.addHandler(ch)

    logging.captureWarnings(True)
    return log_file
