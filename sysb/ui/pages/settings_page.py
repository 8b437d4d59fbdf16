"""Settings page — backup / restore configuration and the error ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtWidgets import QFileDialog, QVBoxLayout, QWidget
from qfluentwidgets import (
    LineEdit,
    MessageBox,
    PushSettingCard,
    ScrollArea,
    SettingCardGroup,
    SpinBox,
    SwitchButton,
)
from qfluentwidgets import FluentIcon as FIF

from sysb.config import DEFAULT_COMPRESSION_LEVEL, split_exclude_dirs
from sysb.core.commands import STANDARD_EXCLUDES
from sysb.ui.utils import show_success

if TYPE_CHECKING:
    from sysb.context import AppContext


class _LineEditSettingCard(PushSettingCard):
    """Setting card with a LineEdit for text input instead of a browse button."""

    def __init__(self, icon, title: str, content: str, placeholder: str, parent=None) -> None:
        super().__init__("", icon, title, content, parent)
        self.button.hide()
        self._edit = LineEdit(self)
        self._edit.setPlaceholderText(placeholder)
        self._edit.setMinimumWidth(280)
        self._edit.setMaximumWidth(400)
        self.hBoxLayout.insertWidget(2, self._edit)

    @property
    def edit(self) -> LineEdit:
        return self._edit

    @property
    def text(self) -> str:
        return self._edit.text().strip()

    @text.setter
    def text(self, value: str) -> None:
        self._edit.setText(value)


class SettingsPage(ScrollArea):
    """Application settings page."""

    def __init__(self, ctx: AppContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self.setObjectName("settingsPage")
        self.setWidgetResizable(True)

        settings = ctx.settings

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        # ── Backup settings ──
        backup_group = SettingCardGroup("Backup", self)

        self._source_card = PushSettingCard(
            "Browse",
            FIF.FOLDER,
            "Source directory",
            settings.get("source_dir", "Not set"),
            backup_group,
        )
        self._source_card.clicked.connect(
            lambda: self._browse("source", "source_dir", self._source_card)
        )
        backup_group.addSettingCard(self._source_card)

        self._dest_card = PushSettingCard(
            "Browse",
            FIF.SAVE,
            "Backup directory",
            settings.get("backup_dir", "Not set"),
            backup_group,
        )
        self._dest_card.clicked.connect(
            lambda: self._browse("destination", "backup_dir", self._dest_card)
        )
        backup_group.addSettingCard(self._dest_card)

        self._exclude_card = _LineEditSettingCard(
            FIF.REMOVE_FROM,
            "Excluded directories",
            "Always excluded: " + " ".join(STANDARD_EXCLUDES),
            "/var/cache:/var/tmp",
            backup_group,
        )
        self._exclude_card.text = settings.get("exclude_dirs")
        self._exclude_card.edit.editingFinished.connect(self._save_excludes)
        backup_group.addSettingCard(self._exclude_card)

        self._level_card = PushSettingCard(
            "", FIF.ZIP_FOLDER, "Compression level", "1 = fastest, 9 = smallest", backup_group
        )
        self._level_card.button.hide()
        self._level_spin = SpinBox(self)
        self._level_spin.setRange(1, 9)
        self._level_spin.setValue(_int_or(settings.get("compression_level"), DEFAULT_COMPRESSION_LEVEL))
        self._level_spin.valueChanged.connect(
            lambda value: self._ctx.settings.set("compression_level", str(value))
        )
        self._level_card.hBoxLayout.insertWidget(2, self._level_spin)
        backup_group.addSettingCard(self._level_card)

        self._keep_card = PushSettingCard(
            "",
            FIF.FOLDER_ADD,
            "Keep staging directory",
            "Keep the synced tree after a successful backup (enables incremental linking)",
            backup_group,
        )
        self._keep_card.button.hide()
        self._keep_switch = SwitchButton(self)
        self._keep_switch.setChecked(settings.get("keep_temp", "0") == "1")
        self._keep_switch.checkedChanged.connect(
            lambda checked: self._ctx.settings.set("keep_temp", "1" if checked else "0")
        )
        self._keep_card.hBoxLayout.insertWidget(2, self._keep_switch)
        backup_group.addSettingCard(self._keep_card)

        layout.addWidget(backup_group)

        # ── Restore settings ──
        restore_group = SettingCardGroup("Restore", self)
        self._restore_card = PushSettingCard(
            "Browse",
            FIF.HISTORY,
            "Restore directory",
            settings.get("restore_dir", "/"),
            restore_group,
        )
        self._restore_card.clicked.connect(
            lambda: self._browse("restore", "restore_dir", self._restore_card)
        )
        restore_group.addSettingCard(self._restore_card)
        layout.addWidget(restore_group)

        # ── Error ledger ──
        error_group = SettingCardGroup("Errors", self)
        self._errors_card = PushSettingCard(
            "View", FIF.INFO, "Unresolved errors", "", error_group
        )
        self._errors_card.clicked.connect(self._on_view_errors)
        error_group.addSettingCard(self._errors_card)
        layout.addWidget(error_group)

        layout.addStretch(1)
        self.setWidget(container)
        self._refresh_error_count()

    def showEvent(self, event) -> None:  # noqa: N802
        super().showEvent(event)
        self._refresh_error_count()

    def _browse(self, role: str, key: str, card: PushSettingCard) -> None:
        start = self._ctx.settings.get(key)
        path = QFileDialog.getExistingDirectory(self, card.titleLabel.text(), start)
        if path:
            with self._ctx.settings.batch_update():
                self._ctx.settings.set(key, path)
                self._ctx.settings.append_to_history(role, path)
            card.setContent(path)

    def _save_excludes(self) -> None:
        value = ":".join(split_exclude_dirs(self._exclude_card.text))
        self._exclude_card.text = value
        self._ctx.settings.set("exclude_dirs", value)

    def _refresh_error_count(self) -> None:
        count = len(self._ctx.ledger.list_pending())
        self._errors_card.setContent(f"{count} pending" if count else "None")

    def _on_view_errors(self) -> None:
        entries = self._ctx.ledger.list_pending()
        if not entries:
            show_success(self, "No errors recorded")
            return
        msg = MessageBox("Unresolved errors", "\n".join(entries), self.window())
        msg.yesButton.setText("Clear")
        msg.cancelButton.setText("Keep")
        if msg.exec():
            self._ctx.ledger.clear()
        self._refresh_error_count()


def _int_or(raw: str, default: int) -> int:
    try:
        return int(raw)
    except ValueError:
        return default
