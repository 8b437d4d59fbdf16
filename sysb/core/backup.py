"""Backup manager — rsync into a staging tree, compress with tar/xz, verify."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from loguru import logger

from sysb.config import BackupSettings, SettingsStore
from sysb.core.commands import (
    RSYNC,
    TAR,
    build_excludes,
    rsync_args,
    tar_create_args,
    xz_env,
)
from sysb.core.inflight import InFlightDirs, remove_tree
from sysb.core.resources import log_resource_usage
from sysb.core.runner import CommandRunner
from sysb.core.verifier import ArchiveVerifier
from sysb.data.error_ledger import ErrorLedger
from sysb.errors import (
    ConfigurationError,
    ExternalToolError,
    PathAccessError,
    SysbError,
    VerificationError,
)
from sysb.models.run import BackupRun, BackupState, RunId
from sysb.utils import format_size, is_readable_dir, is_writable_dir

StateListener = Callable[[BackupState], None]


def check_source_dir(path: Path) -> None:
    if not path.is_dir():
        raise PathAccessError(f"Directory {path} does not exist")
    if not is_readable_dir(path):
        raise PathAccessError(f"No read permission for {path}")


def check_destination_dir(path: Path) -> None:
    if not path.is_dir():
        raise PathAccessError(f"Directory {path} does not exist")
    if not is_writable_dir(path):
        raise PathAccessError(f"No write permission for {path}")


def _is_unexcluded_child(destination: Path, source: Path, excludes: list[str]) -> bool:
    """True if rsync would copy *destination* into itself."""
    try:
        rel = destination.resolve().relative_to(source.resolve())
    except ValueError:
        return False
    anchored = "/" + rel.as_posix()
    for pattern in excludes:
        prefix = pattern.rstrip("/")
        if anchored == prefix or anchored.startswith(prefix + "/"):
            return False
    return True


class BackupManager:
    """
    Drives one backup run through its states:

    validating → syncing → compressing → verifying → reporting → cleaning up.

    Every failure is recorded to the error ledger and reported to the caller
    as ``False``. The staging tree of a successful compress becomes the
    ``--link-dest`` base of the next run, so unchanged files are hard-linked
    instead of copied again.
    """

    def __init__(
        self,
        settings: SettingsStore,
        ledger: ErrorLedger,
        runner: CommandRunner,
        verifier: ArchiveVerifier | None = None,
        inflight: InFlightDirs | None = None,
        run_id_factory: Callable[[], RunId] = RunId.now,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._runner = runner
        self._verifier = verifier or ArchiveVerifier(runner)
        self._inflight = inflight or InFlightDirs()
        self._run_id_factory = run_id_factory
        self._listeners: list[StateListener] = []
        self.state = BackupState.IDLE
        self.last_run: BackupRun | None = None

    def add_state_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _enter(self, state: BackupState, run: BackupRun | None = None) -> None:
        self.state = state
        if run is not None:
            run.state = state
        for listener in self._listeners:
            listener(state)

    # ── Public entry point ──

    def perform_backup(self) -> bool:
        """Run a complete backup. Returns ``True`` only on full success."""
        self.last_run = None
        run: BackupRun | None = None
        try:
            self._enter(BackupState.VALIDATING)
            run = self._validate()
            self.last_run = run

            self._sync(run)
            self._compress(run)
            self._record_chain(run)
            self._verify(run)
            self._report(run)
            self._clean_up(run)
        except SysbError as e:
            self._fail(run, str(e))
            return False
        except OSError as e:
            if run is not None and run.staging_dir in self._inflight.pending:
                self._discard_staging(run)
            self._fail(run, f"Backup failed: {e}")
            return False

        self._enter(BackupState.SUCCEEDED, run)
        logger.success(f"Backup completed successfully: {run.archive_path}")
        return True

    def _fail(self, run: BackupRun | None, message: str) -> None:
        self._ledger.record(message)
        if run is not None:
            run.error = message
        self._enter(BackupState.FAILED, run)

    # ── Steps ──

    def _validate(self) -> BackupRun:
        config = BackupSettings.load(self._settings)
        if not config.is_configured:
            raise ConfigurationError("Source or destination directory not configured")

        source = Path(config.source_dir)
        destination = Path(config.backup_dir)
        check_source_dir(source)
        check_destination_dir(destination)

        excludes = build_excludes(config.exclude_dirs)
        if _is_unexcluded_child(destination, source, excludes):
            logger.warning(
                f"Destination {destination} lies inside the source tree and is not "
                f"excluded; add it to exclude_dirs"
            )

        run_id = self._run_id_factory()
        while (destination / run_id.staging_name).exists() or (
            destination / run_id.archive_name
        ).exists():
            run_id = run_id.bump()

        link_base: Path | None = None
        if config.last_backup_dir:
            previous = Path(config.last_backup_dir)
            if previous.is_dir():
                link_base = previous
            else:
                logger.info(f"Previous staging tree {previous} is gone, running a full sync")

        return BackupRun(
            run_id=run_id,
            source=source,
            destination=destination,
            staging_dir=destination / run_id.staging_name,
            archive_path=destination / run_id.archive_name,
            excludes=excludes,
            compression_level=config.compression_level,
            link_base=link_base,
            keep_temp=config.keep_temp,
        )

    def _sync(self, run: BackupRun) -> None:
        self._enter(BackupState.SYNCING, run)
        logger.info(f"[{run.run_id}] Starting backup from {run.source} to {run.destination}")

        try:
            run.staging_dir.mkdir(parents=True)
        except OSError as e:
            raise PathAccessError(f"Could not create staging directory {run.staging_dir}: {e}") from e
        self._inflight.track(run.staging_dir)

        if run.link_base is not None:
            logger.info(f"Using incremental backup from {run.link_base}")
        logger.info("Running rsync to sync files...")

        result = self._runner.run(
            RSYNC,
            rsync_args(run.source, run.staging_dir, run.excludes, run.link_base),
        )
        if not result.ok:
            self._discard_staging(run)
            raise ExternalToolError(
                f"rsync failed with error code {result.exit_code}", RSYNC, result.exit_code
            )

    def _compress(self, run: BackupRun) -> None:
        self._enter(BackupState.COMPRESSING, run)
        logger.info(
            f"Creating compressed archive {run.archive_path.name} "
            f"(compression level {run.compression_level})..."
        )
        result = self._runner.run(
            TAR,
            tar_create_args(run.archive_path, run.staging_dir),
            env=xz_env(run.compression_level),
        )
        if not result.ok:
            self._discard_staging(run)
            if run.archive_path.exists():
                run.archive_path.unlink(missing_ok=True)
                logger.info(f"Removed partial archive {run.archive_path}")
            raise ExternalToolError(
                f"tar compression failed with error code {result.exit_code}",
                TAR,
                result.exit_code,
            )

    def _record_chain(self, run: BackupRun) -> None:
        """Persist the chain pointers before verification can fail."""
        try:
            with self._settings.batch_update(strict=True):
                self._settings.set("last_backup_dir", str(run.staging_dir))
                self._settings.set("last_backup", str(run.archive_path))
                self._settings.append_to_history("source", run.source)
                self._settings.append_to_history("destination", run.destination)
        except PathAccessError as e:
            # An unrecorded staging tree can never serve as a link base
            self._discard_staging(run)
            raise PathAccessError(f"Could not save backup chain: {e}") from e

    def _verify(self, run: BackupRun) -> None:
        self._enter(BackupState.VERIFYING, run)
        result = self._verifier.verify(run.archive_path)
        if not result.ok:
            # Left on disk for inspection
            self._inflight.release(run.staging_dir)
            logger.warning(f"Temporary files preserved for troubleshooting at {run.staging_dir}")
            raise VerificationError(
                f"Backup verification failed for {run.archive_path}: {result.reason}"
            )

    def _report(self, run: BackupRun) -> None:
        self._enter(BackupState.REPORTING, run)
        try:
            size = run.archive_path.stat().st_size
        except OSError as e:
            logger.warning(f"Could not read archive size: {e}")
            return
        logger.info("Backup statistics:")
        logger.info(f"- Size: {format_size(size)}")
        logger.info(f"- Location: {run.archive_path}")

    def _clean_up(self, run: BackupRun) -> None:
        self._enter(BackupState.CLEANING_UP, run)
        if run.keep_temp:
            self._inflight.release(run.staging_dir)
            logger.info(f"Temporary files preserved at {run.staging_dir}")
        else:
            self._discard_staging(run)
            logger.info("Temporary files removed")
        log_resource_usage(run.destination)

    def _discard_staging(self, run: BackupRun) -> None:
        remove_tree(run.staging_dir)
        self._inflight.release(run.staging_dir)
