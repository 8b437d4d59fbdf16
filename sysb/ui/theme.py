"""Theme — Fluent theme setup and the colours of operation states."""

from __future__ import annotations

from PySide6.QtGui import QColor
from qfluentwidgets import Theme, setTheme, setThemeColor

ACCENT_COLOR = "#2B7A78"

# Light theme colour, dark theme colour
_SUCCEEDED = (QColor("#107C10"), QColor("#6CCB5F"))
_FAILED = (QColor("#C42B1C"), QColor("#FF99A4"))
_RUNNING = (QColor("#9D5D00"), QColor("#FCE100"))
_IDLE = (QColor(0, 0, 0), QColor(255, 255, 255))


def apply_theme(dark: bool = True) -> None:
    setTheme(Theme.DARK if dark else Theme.LIGHT)
    setThemeColor(ACCENT_COLOR)


def state_colors(state: str) -> tuple[QColor, QColor]:
    """Label colours for a backup/restore state value."""
    if state == "idle":
        return _IDLE
    if state == "succeeded":
        return _SUCCEEDED
    if state == "failed":
        return _FAILED
    return _RUNNING


def state_text(state: str) -> str:
    return state.replace("_", " ").capitalize()
