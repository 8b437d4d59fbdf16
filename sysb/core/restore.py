"""Restore manager — extract an archive to a temp dir, then rsync it into place."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable

from loguru import logger

from sysb.config import RestoreSettings, SettingsStore
from sysb.core.backup import check_destination_dir
from sysb.core.commands import RSYNC, TAR, rsync_args, tar_extract_args
from sysb.core.inflight import InFlightDirs, remove_tree
from sysb.core.runner import CommandRunner
from sysb.data.error_ledger import ErrorLedger
from sysb.errors import ConfigurationError, ExternalToolError, PathAccessError, SysbError
from sysb.models.run import RestoreRun, RestoreState

ARCHIVE_GLOB = "system_backup_*.tar.xz"

StateListener = Callable[[RestoreState], None]


class RestoreManager:
    """
    Restore a system archive onto a target tree.

    Uses a two-phase restore: the archive is fully extracted into a
    throwaway directory first, and only then synced onto the target with
    the same archive-preserving flags the backup used. The incremental
    chain (``last_backup_dir``) is never read or written here.
    """

    def __init__(
        self,
        settings: SettingsStore,
        ledger: ErrorLedger,
        runner: CommandRunner,
        inflight: InFlightDirs | None = None,
        temp_root: Path | None = None,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._runner = runner
        self._inflight = inflight or InFlightDirs()
        self._temp_root = temp_root
        self._listeners: list[StateListener] = []
        self.state = RestoreState.IDLE
        self.last_run: RestoreRun | None = None

    def add_state_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _enter(self, state: RestoreState, run: RestoreRun | None = None) -> None:
        self.state = state
        if run is not None:
            run.state = state
        for listener in self._listeners:
            listener(state)

    def list_archives(self, directory: Path | None = None) -> list[Path]:
        """Archives in *directory* (default: the backup dir), newest first."""
        if directory is None:
            raw = self._settings.get("backup_dir")
            if not raw:
                return []
            directory = Path(raw)
        if not directory.is_dir():
            return []
        return sorted(directory.glob(ARCHIVE_GLOB), key=lambda p: p.name, reverse=True)

    def perform_restore(self) -> bool:
        """Run a complete restore. Returns ``True`` only on full success."""
        self.last_run = None
        run: RestoreRun | None = None
        try:
            self._enter(RestoreState.VALIDATING)
            run = self._validate()
            self.last_run = run

            extract_dir = self._extract(run)
            self._sync(run, extract_dir)
            self._clean_up(run)
        except SysbError as e:
            self._fail(run, str(e))
            return False
        except OSError as e:
            if run is not None:
                self._discard_temp(run)
            self._fail(run, f"Restore failed: {e}")
            return False

        self._enter(RestoreState.SUCCEEDED, run)
        self._settings.append_to_history("restore", run.target)
        logger.success(f"Restore completed successfully: {run.archive_path} -> {run.target}")
        return True

    def _fail(self, run: RestoreRun | None, message: str) -> None:
        self._ledger.record(message)
        if run is not None:
            run.error = message
        self._enter(RestoreState.FAILED, run)

    # ── Steps ──

    def _validate(self) -> RestoreRun:
        config = RestoreSettings.load(self._settings)
        if not config.archive:
            raise ConfigurationError("No backup file selected")

        archive = Path(config.archive)
        if not archive.is_file():
            raise PathAccessError(f"Backup file {archive} does not exist")

        target = Path(config.restore_dir)
        check_destination_dir(target)
        return RestoreRun(archive_path=archive, target=target)

    def _extract(self, run: RestoreRun) -> Path:
        self._enter(RestoreState.EXTRACTING, run)
        logger.info(f"Starting restore from {run.archive_path} to {run.target}")

        try:
            extract_dir = Path(tempfile.mkdtemp(prefix="sysb_restore_", dir=self._temp_root))
        except OSError as e:
            raise PathAccessError(f"Could not create temporary directory: {e}") from e
        run.extract_dir = extract_dir
        self._inflight.track(extract_dir)

        logger.info("Extracting backup archive...")
        result = self._runner.run(TAR, tar_extract_args(run.archive_path, extract_dir))
        if not result.ok:
            self._discard_temp(run)
            raise ExternalToolError(
                f"Failed to extract backup archive (error code {result.exit_code})",
                TAR,
                result.exit_code,
            )
        return extract_dir

    def _sync(self, run: RestoreRun, extract_dir: Path) -> None:
        self._enter(RestoreState.SYNCING, run)
        logger.info("Syncing files to restore location...")
        result = self._runner.run(RSYNC, rsync_args(extract_dir, run.target))
        if not result.ok:
            self._discard_temp(run)
            raise ExternalToolError(
                f"Failed to sync files to restore location (error code {result.exit_code})",
                RSYNC,
                result.exit_code,
            )

    def _clean_up(self, run: RestoreRun) -> None:
        self._enter(RestoreState.CLEANING_UP, run)
        self._discard_temp(run)

    def _discard_temp(self, run: RestoreRun) -> None:
        if run.extract_dir is None:
            return
        remove_tree(run.extract_dir)
        self._inflight.release(run.extract_dir)
