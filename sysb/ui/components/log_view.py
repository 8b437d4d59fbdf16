"""Live log view — a read-only text box fed by a loguru sink."""

from __future__ import annotations

import contextlib

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QWidget
from qfluentwidgets import PlainTextEdit
from loguru import logger

# Keeps the widget responsive during a verbose rsync run
MAX_BLOCKS = 5000


def _remove_sink(handler_id: int) -> None:
    with contextlib.suppress(ValueError):
        logger.remove(handler_id)


class LogView(PlainTextEdit):
    """Shows every INFO+ log line as it is emitted, from any thread."""

    line_received = Signal(str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setMaximumBlockCount(MAX_BLOCKS)
        self.line_received.connect(self._append)

        # Signal emission is thread-safe; the slot runs on the GUI thread
        handler_id = logger.add(
            self.line_received.emit,
            level="INFO",
            format="{time:HH:mm:ss} | {message}",
            colorize=False,
        )
        # The widget is half torn down by then, so no bound method here
        self.destroyed.connect(lambda *_: _remove_sink(handler_id))

    def _append(self, text: str) -> None:
        self.appendPlainText(text.rstrip("\n"))
