"""
CHIP-8 VM - Logging Setup

Library modules only ever call logging.getLogger(__name__). The runner
(chip8run.py) calls setup_logging() once to hang handlers off the
package logger:

  - console: rich.logging.RichHandler, WARNING+ unless -v is given
  - file:    optional, everything at DEBUG, one timestamped file per run

Log files: ``<log_dir>/<name>_YYYYMMDD_HHMMSS.log``
"""

from __future__ import annotations
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    name: str = "chip8_vm",
    level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Configure and return the logger called *name*.

    Calling it twice is harmless: a logger that already has handlers is
    returned untouched.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(level)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"{name}_{ts}.log"
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(fh)

    ch = RichHandler(
        level=console_level,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    ch.setLevel(console_level)
    logger.addHandler(ch)

    logger.debug("Logger initialized: %s (console level %s)",
                 name, logging.getLevelName(console_level))
    return logger
