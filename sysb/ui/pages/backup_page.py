"""Backup page — run a full-system backup and watch its progress live."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from PySide6.QtCore import QThread, Signal
from PySide6.QtWidgets import QHBoxLayout, QVBoxLayout, QWidget
from qfluentwidgets import (
    BodyLabel,
    IndeterminateProgressBar,
    PrimaryPushButton,
    ScrollArea,
    StrongBodyLabel,
    SubtitleLabel,
)
from qfluentwidgets import FluentIcon as FIF

from sysb.ui.components.log_view import LogView
from sysb.ui.theme import state_colors, state_text
from sysb.ui.utils import show_outcome

if TYPE_CHECKING:
    from sysb.context import AppContext


class OperationWorker(QThread):
    """Runs one blocking manager operation off the GUI thread."""

    done = Signal(bool)

    def __init__(self, operation: Callable[[], bool], parent=None) -> None:
        super().__init__(parent)
        self._operation = operation

    def run(self) -> None:
        self.done.emit(self._operation())


class BackupPage(ScrollArea):
    """Backup page — configured paths, run button, state and live log."""

    state_changed = Signal(str)
    busy_changed = Signal(bool)

    def __init__(self, ctx: AppContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self._worker: OperationWorker | None = None
        self._blocked = False
        self.setObjectName("backupPage")
        self.setWidgetResizable(True)

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(24, 16, 24, 16)
        layout.setSpacing(12)

        layout.addWidget(SubtitleLabel("System backup", self))

        self._source_label = BodyLabel(self)
        self._dest_label = BodyLabel(self)
        self._last_label = BodyLabel(self)
        for label in (self._source_label, self._dest_label, self._last_label):
            layout.addWidget(label)

        # Toolbar
        toolbar = QHBoxLayout()
        self._state_label = StrongBodyLabel("Idle", self)
        toolbar.addWidget(self._state_label)
        toolbar.addStretch()

        self._run_btn = PrimaryPushButton(FIF.SAVE, "Run backup", self)
        self._run_btn.clicked.connect(self._on_run)
        toolbar.addWidget(self._run_btn)
        layout.addLayout(toolbar)

        # Progress
        self._progress = IndeterminateProgressBar(self)
        self._progress.setVisible(False)
        layout.addWidget(self._progress)

        self._log_view = LogView(self)
        self._log_view.setMinimumHeight(360)
        layout.addWidget(self._log_view)

        self.setWidget(container)

        # Listener fires on the worker thread; the signal hops to the GUI thread
        self.state_changed.connect(self._on_state_changed)
        ctx.backup_manager.add_state_listener(lambda state: self.state_changed.emit(state.value))
        self.refresh()

    @property
    def is_busy(self) -> bool:
        return self._worker is not None

    def set_blocked(self, blocked: bool) -> None:
        """Disable running while another page's operation is in progress."""
        self._blocked = blocked
        self._run_btn.setEnabled(not blocked and self._worker is None)

    def wait_for_worker(self) -> None:
        """Block until the running worker, if any, has returned."""
        if self._worker is not None:
            self._worker.wait()

    def refresh(self) -> None:
        settings = self._ctx.settings
        self._source_label.setText(f"Source: {settings.get('source_dir', '(not set)')}")
        self._dest_label.setText(f"Destination: {settings.get('backup_dir', '(not set)')}")
        self._last_label.setText(f"Last backup: {settings.get('last_backup', '(none)')}")

    def showEvent(self, event) -> None:  # noqa: N802
        super().showEvent(event)
        self.refresh()

    def _on_run(self) -> None:
        if self._worker is not None or self._blocked:
            return
        self._run_btn.setEnabled(False)
        self._progress.setVisible(True)
        self._progress.start()

        self._worker = OperationWorker(self._ctx.backup_manager.perform_backup, self)
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
        self._run_btn.setEnabled(not self._blocked)
        self.busy_changed.emit(False)
        self.refresh()

        if ok:
            run = self._ctx.backup_manager.last_run
            detail = str(run.archive_path) if run else ""
        else:
            entries = self._ctx.ledger.list_pending()
            detail = entries[-1] if entries else ""
        show_outcome(self, "Backup", ok, detail)
