"""In-flight registry — staging and temp dirs an interrupt must discard."""

from __future__ import annotations

import shutil
from pathlib import Path

from loguru import logger


class InFlightDirs:
    """Directories created by the running operation and not yet settled.

    Managers :meth:`track` a directory as soon as they create it and
    :meth:`release` it once it is either deleted or deliberately kept.
    The top-level interrupt handler calls :meth:`discard_all`.
    """

    def __init__(self) -> None:
        self._dirs: list[Path] = []

    def track(self, path: Path) -> None:
        if path not in self._dirs:
            self._dirs.append(path)

    def release(self, path: Path) -> None:
        if path in self._dirs:
            self._dirs.remove(path)

    @property
    def pending(self) -> list[Path]:
        return list(self._dirs)

    def discard_all(self) -> list[Path]:
        """Delete every tracked directory; return the ones removed."""
        removed: list[Path] = []
        while self._dirs:
            path = self._dirs.pop()
            if remove_tree(path):
                removed.append(path)
        return removed


def remove_tree(path: Path) -> bool:
    """Remove a directory tree, logging instead of raising on failure."""
    if not path.exists():
        return False
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning(f"Failed to remove {path}: {e}")
        return False
    logger.debug(f"Removed {path}")
    return True
