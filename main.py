"""Application entry point — wires services and launches the menu, GUI or a one-shot run."""

from __future__ import annotations

import argparse
import os
import signal
import sys
from pathlib import Path
from typing import Callable, Sequence

from loguru import logger

from sysb.config import SETTINGS_FILENAME, SettingsStore
from sysb.context import AppContext
from sysb.core.backup import BackupManager
from sysb.core.commands import missing_tools
from sysb.core.inflight import InFlightDirs
from sysb.core.restore import RestoreManager
from sysb.core.runner import ProcessRunner
from sysb.core.verifier import ArchiveVerifier
from sysb.data.error_ledger import LEDGER_FILENAME, ErrorLedger
from sysb.logger import setup_logger

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

SIGNAL_POLL_MS = 200


def default_data_dir() -> Path:
    env = os.environ.get("SYSB_HOME")
    return Path(env) if env else Path.home() / ".sysb"


def create_context(data_dir: Path) -> AppContext:
    """Wire all services and return an AppContext."""
    data_dir.mkdir(parents=True, exist_ok=True)

    settings = SettingsStore(data_dir / SETTINGS_FILENAME)
    ledger = ErrorLedger(data_dir / LEDGER_FILENAME)
    runner = ProcessRunner()
    inflight = InFlightDirs()

    backup_manager = BackupManager(
        settings,
        ledger,
        runner,
        verifier=ArchiveVerifier(runner),
        inflight=inflight,
    )
    restore_manager = RestoreManager(settings, ledger, runner, inflight=inflight)

    return AppContext(
        data_dir=data_dir,
        settings=settings,
        ledger=ledger,
        runner=runner,
        inflight=inflight,
        backup_manager=backup_manager,
        restore_manager=restore_manager,
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sysb",
        description="Full-system backup and restore with rsync and tar/xz.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=("menu", "backup", "restore"),
        default="menu",
        help="menu (default) for the interactive menu, or a one-shot backup/restore",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding sysb.ini, sysb.log and sysb.error (default: $SYSB_HOME or ~/.sysb)",
    )
    parser.add_argument("--gui", action="store_true", help="Launch the desktop window")
    parser.add_argument(
        "--clear-errors",
        action="store_true",
        help="Clear errors left by earlier runs before a one-shot backup/restore",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")
    return parser.parse_args(argv)


def check_dependencies(ctx: AppContext) -> bool:
    """Record every missing external tool. True if all are present."""
    missing = missing_tools()
    for tool in missing:
        ctx.ledger.record(f"{tool} could not be found. Please install it.")
    return not missing


def run_once(ctx: AppContext, command: str, clear_errors: bool) -> int:
    """Non-interactive backup or restore."""
    if ctx.ledger.has_pending():
        if not clear_errors:
            logger.error("Errors from previous run detected:")
            for entry in ctx.ledger.list_pending():
                logger.error(f"  - {entry}")
            logger.error("Resolve them and rerun with --clear-errors")
            return EXIT_FAILURE
        ctx.ledger.clear()

    if command == "backup":
        ok = ctx.backup_manager.perform_backup()
    else:
        ok = ctx.restore_manager.perform_restore()
    return EXIT_OK if ok else EXIT_FAILURE


def abort_operations(ctx: AppContext, wait_for_workers: Callable[[], None] | None = None) -> int:
    """Stop the running child, let workers return, then discard in-flight dirs."""
    ctx.runner.cancel()
    if wait_for_workers is not None:
        wait_for_workers()
    removed = ctx.inflight.discard_all()
    logger.info(f"In-flight directories removed: {len(removed)}")
    return len(removed)


def run_gui(ctx: AppContext) -> int:
    from PySide6.QtCore import QTimer
    from PySide6.QtWidgets import QApplication

    from sysb.ui.main_window import MainWindow
    from sysb.ui.theme import apply_theme

    app = QApplication(sys.argv)
    app.setApplicationName("sysb")
    app.setOrganizationName("sysb")

    apply_theme(dark=True)

    window = MainWindow(ctx)
    window.show()

    def on_signal(signum: int, _frame: object) -> None:
        logger.warning(f"Received signal {signum}, stopping")
        abort_operations(ctx, window.wait_for_workers)
        app.exit(EXIT_INTERRUPTED)

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    # Python handlers only run between bytecodes, so the Qt loop is woken periodically
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(SIGNAL_POLL_MS)

    try:
        window.offer_recovery()
        return app.exec()
    finally:
        wakeup.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _raise_interrupt(signum: int, _frame: object) -> None:
    raise KeyboardInterrupt(f"signal {signum}")


def main(argv: Sequence[str] | None = None) -> int:
    """Application entry point."""
    args = parse_args(argv)
    data_dir = args.data_dir or default_data_dir()

    setup_logger(data_dir, verbose=args.verbose)
    ctx = create_context(data_dir)

    if not check_dependencies(ctx):
        return EXIT_FAILURE

    previous_handler = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        if args.gui:
            return run_gui(ctx)
        if args.command == "menu":
            from sysb.cli.menu import Menu

            return Menu(ctx).run()
        return run_once(ctx, args.command, args.clear_errors)
    except KeyboardInterrupt:
        logger.warning("Interrupted, removing in-flight staging/temp directories")
        abort_operations(ctx)
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGTERM, previous_handler)


if __name__ == "__main__":
    sys.exit(main())
