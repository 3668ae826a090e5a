"""Logging utilities.

We use Python's standard `logging` module with a JSON-ish structured format.

- Logs go to: `<log_dir>/<run_id>.log`
- Also prints to the console unless the live dashboard owns the terminal.
"""

from __future__ import annotations
import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(
    out_dir: str,
    run_id: str,
    log_dir: Optional[str] = None,
    console: bool = True,
    level: int = logging.INFO,
) -> str:
    """
    Setup logging configuration.

    Args:
        out_dir: Output directory, used when no log_dir is given
        run_id: Run identifier, names the log file
        log_dir: Global log directory (if None, uses out_dir/logs)
        console: Also log to stderr
        level: Root log level

    Returns:
        Path of the log file.
    """
    if log_dir is None:
        log_dir = os.path.join(out_dir, "logs")

    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, f"{run_id}.log")

    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    # File
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Console
    if console:
        ch = logging.StreamHandler()
        ch.setFormatter(fmt)
        root.addHandler(ch)

    return log_path
