# src/chore_tracker/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = __name__.split(".")[0]


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - allow our own logs, except the store's per-read DEBUG chatter
    - everything else (third-party, captured warnings) only at ERROR+
    """

    def __init__(self, package: str = PACKAGE_LOGGER) -> None:
        super().__init__()
        self._prefix = package + "."

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(self._prefix):
            if record.name.endswith(".chore_store"):
                return record.levelno >= logging.INFO
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    app_name: str = "chores",
    log_dir: str | Path = ".local/chores",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler "<log_dir>/<app_name>.log": full logs for debugging

    Call this ONCE, very early (before first logger.info).
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name}.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
