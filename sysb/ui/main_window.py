"""Main window — FluentWindow with backup, restore and settings pages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import QSize
from qfluentwidgets import FluentIcon as FIF
from qfluentwidgets import FluentWindow, MessageBox, NavigationItemPosition

from sysb.ui.pages.backup_page import BackupPage
from sysb.ui.pages.restore_page import RestorePage
from sysb.ui.pages.settings_page import SettingsPage
from sysb.ui.utils import show_warning

if TYPE_CHECKING:
    from sysb.context import AppContext


class MainWindow(FluentWindow):
    """Application main window with sidebar navigation."""

    def __init__(self, ctx: AppContext) -> None:
        super().__init__()
        self._ctx = ctx

        self.setWindowTitle("sysb - System Backup")
        self.setMinimumSize(QSize(900, 620))
        self.resize(1100, 760)

        self._init_pages()

    def _init_pages(self) -> None:
        self._backup_page = BackupPage(self._ctx, self)
        self.addSubInterface(self._backup_page, FIF.SAVE, "Backup")

        self._restore_page = RestorePage(self._ctx, self)
        self.addSubInterface(self._restore_page, FIF.HISTORY, "Restore")

        self._settings_page = SettingsPage(self._ctx, self)
        self.addSubInterface(
            self._settings_page,
            FIF.SETTING,
            "Settings",
            position=NavigationItemPosition.BOTTOM,
        )

        # One operation at a time across both pages
        self._backup_page.busy_changed.connect(self._restore_page.set_blocked)
        self._restore_page.busy_changed.connect(self._backup_page.set_blocked)

    @property
    def is_busy(self) -> bool:
        return self._backup_page.is_busy or self._restore_page.is_busy

    def wait_for_workers(self) -> None:
        self._backup_page.wait_for_worker()
        self._restore_page.wait_for_worker()

    def offer_recovery(self) -> None:
        """Show errors left by earlier runs and offer to clear them."""
        ledger = self._ctx.ledger
        if not ledger.has_pending():
            return
        msg = MessageBox(
            "Errors from previous run detected",
            "\n".join(ledger.list_pending()),
            self,
        )
        msg.yesButton.setText("Clear errors")
        msg.cancelButton.setText("Keep")
        if msg.exec():
            ledger.clear()

    def closeEvent(self, event) -> None:  # noqa: N802
        if self.is_busy:
            show_warning(self, "Operation in progress", "Wait for it to finish before closing")
            event.ignore()
            return
        super().closeEvent(event)
