"""Error ledger — durable list of failures left unresolved by earlier runs."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

LEDGER_FILENAME = "sysb.error"


class ErrorLedger:
    """
    Plain-text ledger, one message per line.

    An empty (or missing) file means nothing is pending. Entries survive
    across process invocations until :meth:`clear` is called.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def record(self, message: str) -> None:
        """Append *message* to the ledger and log it."""
        message = " ".join(message.splitlines()).strip()
        logger.error(message)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(message + "\n")
        except OSError as e:
            logger.warning(f"Failed to write error ledger {self._path}: {e}")

    def list_pending(self) -> list[str]:
        if not self._path.exists():
            return []
        try:
            with open(self._path, encoding="utf-8") as f:
                return [line.rstrip("\n") for line in f if line.strip()]
        except OSError as e:
            logger.warning(f"Failed to read error ledger {self._path}: {e}")
            return []

    def has_pending(self) -> bool:
        return bool(self.list_pending())

    def clear(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text("", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to clear error ledger {self._path}: {e}")
            return
        logger.info("Error states cleared")
