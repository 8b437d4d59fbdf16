"""InfoBar notifications shown by the pages."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QWidget
from qfluentwidgets import InfoBar, InfoBarPosition

# Milliseconds; errors stay until the operator closes them
_DURATIONS = {"success": 3000, "warning": 4000, "error": -1}


def _notify(kind: str, parent: QWidget, title: str, content: str) -> None:
    create = getattr(InfoBar, kind)
    create(
        title=title,
        content=content,
        orient=Qt.Orientation.Vertical,
        isClosable=True,
        position=InfoBarPosition.TOP_RIGHT,
        duration=_DURATIONS[kind],
        parent=parent,
    )


def show_success(parent: QWidget, title: str, content: str = "") -> None:
    _notify("success", parent, title, content)


def show_warning(parent: QWidget, title: str, content: str = "") -> None:
    _notify("warning", parent, title, content)


def show_outcome(parent: QWidget, operation: str, ok: bool, detail: str = "") -> None:
    """Report how a backup or restore ended."""
    if ok:
        _notify("success", parent, f"{operation} completed", detail)
    else:
        _notify("error", parent, f"{operation} failed", detail)
