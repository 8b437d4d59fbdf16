"""Restore page — pick an archive and restore it onto the target directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QHBoxLayout, QVBoxLayout, QWidget
from qfluentwidgets import (
    BodyLabel,
    ComboBox,
    IndeterminateProgressBar,
    MessageBox,
    PrimaryPushButton,
    PushButton,
    ScrollArea,
    StrongBodyLabel,
    SubtitleLabel,
)
from qfluentwidgets import FluentIcon as FIF

from sysb.ui.components.log_view import LogView
from sysb.ui.pages.backup_page import OperationWorker
from sysb.ui.theme import state_colors, state_text
from sysb.ui.utils import show_outcome, show_warning

if TYPE_CHECKING:
    from sysb.context import AppContext


class RestorePage(ScrollArea):
    """Restore page — archive selector, target, run button and live log."""

    state_changed = Signal(str)
    busy_changed = Signal(bool)

    def __init__(self, ctx: AppContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self._worker: OperationWorker | None = None
        self._blocked = False
        self.setObjectName("restorePage")
        self.setWidgetResizable(True)

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(24, 16, 24, 16)
        layout.setSpacing(12)

        layout.addWidget(SubtitleLabel("System restore", self))

        # Archive selector
        selector = QHBoxLayout()
        self._archive_combo = ComboBox(self)
        self._archive_combo.setMinimumWidth(420)
        self._archive_combo.currentIndexChanged.connect(self._on_archive_changed)
        selector.addWidget(self._archive_combo)

        self._refresh_btn = PushButton(FIF.SYNC, "Refresh", self)
        self._refresh_btn.clicked.connect(self.refresh)
        selector.addWidget(self._refresh_btn)
        selector.addStretch()
        layout.addLayout(selector)

        self._target_label = BodyLabel(self)
        layout.addWidget(self._target_label)

        # Toolbar
        toolbar = QHBoxLayout()
        self._state_label = StrongBodyLabel("Idle", self)
        toolbar.addWidget(self._state_label)
        toolbar.addStretch()

        self._restore_btn = PrimaryPushButton(FIF.DOWNLOAD, "Restore", self)
        self._restore_btn.clicked.connect(self._on_restore)
        toolbar.addWidget(self._restore_btn)
        layout.addLayout(toolbar)

        self._progress = IndeterminateProgressBar(self)
        self._progress.setVisible(False)
        layout.addWidget(self._progress)

        self._log_view = LogView(self)
        self._log_view.setMinimumHeight(320)
        layout.addWidget(self._log_view)

        self.setWidget(container)

        self.state_changed.connect(self._on_state_changed)
        ctx.restore_manager.add_state_listener(lambda state: self.state_changed.emit(state.value))
        self.refresh()

    @property
    def is_busy(self) -> bool:
        return self._worker is not None

    def set_blocked(self, blocked: bool) -> None:
        """Disable running while another page's operation is in progress."""
        self._blocked = blocked
        self._restore_btn.setEnabled(not blocked and self._worker is None)

    def wait_for_worker(self) -> None:
        """Block until the running worker, if any, has returned."""
        if self._worker is not None:
            self._worker.wait()

    def refresh(self) -> None:
        """Reload the archive list and target from settings."""
        settings = self._ctx.settings
        latest = settings.get("last_backup")
        selected = settings.get("restore_archive")

        self._archive_combo.blockSignals(True)
        self._archive_combo.clear()
        self._archive_combo.addItem(f"Latest backup ({latest or 'none'})", userData="")
        for archive in self._ctx.restore_manager.list_archives():
            self._archive_combo.addItem(archive.name, userData=str(archive))
        index = 0
        for i in range(self._archive_combo.count()):
            if selected and self._archive_combo.itemData(i) == selected:
                index = i
                break
        self._archive_combo.setCurrentIndex(index)
        self._archive_combo.blockSignals(False)

        self._target_label.setText(f"Restore into: {settings.get('restore_dir', '/')}")

    def showEvent(self, event) -> None:  # noqa: N802
        super().showEvent(event)
        if not self.is_busy:
            self.refresh()

    def _on_archive_changed(self, index: int) -> None:
        self._ctx.settings.set("restore_archive", self._archive_combo.itemData(index) or "")

    def _on_restore(self) -> None:
        if self._worker is not None or self._blocked:
            return
        target = self._ctx.settings.get("restore_dir", "/")
        msg = MessageBox(
            "Confirm restore",
            f"Files under {target} will be overwritten from the selected archive. Continue?",
            self.window(),
        )
        if not msg.exec():
            show_warning(self, "Restore cancelled")
            return
        if self._blocked:
            return

        self._restore_btn.setEnabled(False)
        self._progress.setVisible(True)
        self._progress.start()

        self._worker = OperationWorker(self._ctx.restore_manager.perform_restore, self)
        self._worker.done.connect(self._on_finished)
        self._worker.start()
        self.busy_changed.emit(True)

    def _on_state_changed(self, state: str) -> None:
        self._state_label.setText(state_text(state))
        self._state_label.setTextColor(*state_colors(state))

    def _on_finished(self, ok: bool) -> None:
        self._progress.stop()
        self._progress.setVisible(False)
        self._worker = None
        self._restore_btn.setEnabled(not self._blocked)
        self.busy_changed.emit(False)

        if ok:
            detail = self._ctx.settings.get("restore_dir", "/")
        else:
            entries = self._ctx.ledger.list_pending()
            detail = entries[-1] if entries else ""
        show_outcome(self, "Restore", ok, detail)
