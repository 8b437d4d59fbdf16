"""Resource snapshot logged after a backup."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import psutil
from loguru import logger


@dataclass
class ResourceSnapshot:
    cpu_percent: float
    memory_percent: float
    disk_percent: float
    disk_path: str


def take_snapshot(disk_path: Path) -> ResourceSnapshot:
    return ResourceSnapshot(
        cpu_percent=psutil.cpu_percent(interval=0.1),
        memory_percent=psutil.virtual_memory().percent,
        disk_percent=psutil.disk_usage(str(disk_path)).percent,
        disk_path=str(disk_path),
    )


def log_resource_usage(disk_path: Path) -> None:
    """Log CPU, memory and destination disk usage. Never raises."""
    try:
        snap = take_snapshot(disk_path)
    except (OSError, psutil.Error) as e:
        logger.warning(f"Could not read resource usage: {e}")
        return
    logger.info("System resource usage:")
    logger.info(f"CPU: {snap.cpu_percent:.1f}% used")
    logger.info(f"Memory: {snap.memory_percent:.2f}%")
    logger.info(f"Disk space: {snap.disk_percent:.0f}% used on backup destination")
