"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sysb.config import SettingsStore
    from sysb.core.backup import BackupManager
    from sysb.core.inflight import InFlightDirs
    from sysb.core.restore import RestoreManager
    from sysb.core.runner import CommandRunner
    from sysb.data.error_ledger import ErrorLedger


@dataclass
class AppContext:
    """
    Central service container.

    The menu, the desktop window and the one-shot commands all receive
    this, so each of them drives the same manager instances.
    """

    data_dir: Path
    settings: SettingsStore
    ledger: ErrorLedger
    runner: CommandRunner
    inflight: InFlightDirs

    backup_manager: BackupManager
    restore_manager: RestoreManager
