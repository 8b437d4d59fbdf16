"""Loguru-based logging setup."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FILENAME = "sysb.log"


def setup_logger(log_dir: Path | None = None, verbose: bool = False) -> None:
    """Configure loguru with console + rotating file output.

    The file sink rotates at 5 MiB; rotated files keep a timestamp suffix
    and are never pruned.
    """
    logger.remove()

    # Console
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format="<green>{time:HH:mm:ss}</green> | <level>{level:<7}</level> | {message}",
        colorize=True,
    )

    # File
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / LOG_FILENAME),
            level="DEBUG",
            format="[{time:YYYY-MM-DD HH:mm:ss}] {level:<7} | {message}",
            rotation="5 MiB",
            encoding="utf-8",
        )
