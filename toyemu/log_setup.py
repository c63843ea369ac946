"""
Logging setup for the toyvm front ends.

Library modules only call logging.getLogger(__name__); the command-line
front end calls setup_logging() once to configure the root logger:

  - console: rich.logging.RichHandler at console_level
  - file:    <log_dir>/<name>_YYYYMMDD_HHMMSS.log at DEBUG (only if log_dir given)

The per-instruction trace goes to the "toyemu.trace" logger at DEBUG, so it
shows on the console only with console_level=DEBUG.
"""

from __future__ import annotations
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler


def setup_logging(
    name: str = "toyvm",
    console_level: int = logging.WARNING,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure logging and return the front-end logger.

    Log files: ``<log_dir>/<name>_YYYYMMDD_HHMMSS.log``
    """
    handlers = []

    # ── Console handler ──
    ch = RichHandler(
        level=console_level,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    ch.setFormatter(logging.Formatter("%(message)s"))
    handlers.append(ch)

    # ── File handler: captures everything (DEBUG+) ──
    log_file = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"{name}_{ts}.log"
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handlers.append(fh)

    logging.basicConfig(
        level=logging.DEBUG if log_file is not None else console_level,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(name)
    if log_file is not None:
        logger.info("Log file: %s", log_file)
    return logger
