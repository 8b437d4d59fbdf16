"""Interactive text menu — numbered choices over a swappable console."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Sequence

from loguru import logger

from sysb.config import DEFAULT_COMPRESSION_LEVEL, split_exclude_dirs
from sysb.core.commands import STANDARD_EXCLUDES

if TYPE_CHECKING:
    from sysb.context import AppContext


class Console(Protocol):
    """Input/output capability the menu is written against."""

    def ask(self, prompt: str) -> str: ...

    def say(self, text: str = "") -> None: ...


class StdConsole:
    """Console backed by ``input()`` / ``print()``."""

    def ask(self, prompt: str) -> str:
        return input(prompt)

    def say(self, text: str = "") -> None:
        print(text)


class MenuExit(Exception):
    """Raised when the operator leaves the menu (choice or end of input)."""


class Menu:
    """Main menu driving backup, restore, configuration and error recovery."""

    MAIN_OPTIONS = (
        "Run backup",
        "Run restore",
        "Configure backup",
        "Configure restore",
        "Show settings",
        "View errors",
        "Exit",
    )

    def __init__(self, ctx: AppContext, console: Console | None = None) -> None:
        self._ctx = ctx
        self._io = console or StdConsole()

    # ── Top level ──

    def run(self) -> int:
        """Loop until the operator exits. Returns the process exit code."""
        try:
            if not self.recover():
                return 0
            while True:
                choice = self.choose("sysb - System Backup", self.MAIN_OPTIONS)
                if choice == 0:
                    self.run_backup()
                elif choice == 1:
                    self.run_restore()
                elif choice == 2:
                    self.configure_backup()
                elif choice == 3:
                    self.configure_restore()
                elif choice == 4:
                    self.show_settings()
                elif choice == 5:
                    self.view_errors()
                else:
                    break
        except MenuExit:
            pass
        self._io.say("Goodbye.")
        return 0

    def recover(self) -> bool:
        """Offer recovery when earlier runs left errors. False means exit."""
        ledger = self._ctx.ledger
        if not ledger.has_pending():
            return True

        self._io.say("Errors from previous run detected:")
        for entry in ledger.list_pending():
            self._io.say(f"  - {entry}")
        choice = self.choose(
            "How do you want to proceed?",
            ("Clear errors and continue", "Continue without clearing", "Exit"),
        )
        if choice == 0:
            ledger.clear()
            return True
        return choice == 1

    # ── Prompt helpers ──

    def _ask(self, prompt: str) -> str:
        try:
            return self._io.ask(prompt).strip()
        except EOFError:
            raise MenuExit from None

    def choose(self, title: str, options: Sequence[str]) -> int:
        """Show numbered *options* and return the zero-based choice."""
        while True:
            self._io.say()
            self._io.say(title)
            for i, option in enumerate(options, start=1):
                self._io.say(f"  {i}. {option}")
            answer = self._ask(f"Select [1-{len(options)}]: ")
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return int(answer) - 1
            self._io.say(f"Invalid choice: {answer!r}")

    def confirm(self, prompt: str) -> bool:
        return self._ask(f"{prompt} [y/N]: ").lower() in ("y", "yes")

    # ── Operations ──

    def run_backup(self) -> bool:
        self._io.say("Starting backup...")
        ok = self._ctx.backup_manager.perform_backup()
        if ok:
            run = self._ctx.backup_manager.last_run
            self._io.say(f"Backup completed successfully: {run.archive_path if run else ''}")
        else:
            self._io.say("Backup failed.")
            if not self.recover():
                raise MenuExit
        return ok

    def run_restore(self) -> bool:
        settings = self._ctx.settings
        target = settings.get("restore_dir", "/")
        if not self.confirm(f"Restore will overwrite files under {target}. Continue?"):
            self._io.say("Restore cancelled.")
            return False
        self._io.say("Starting restore...")
        ok = self._ctx.restore_manager.perform_restore()
        if ok:
            self._io.say("Restore completed successfully.")
        else:
            self._io.say("Restore failed.")
            if not self.recover():
                raise MenuExit
        return ok

    # ── Configuration ──

    def configure_backup(self) -> None:
        options = (
            "Source directory",
            "Backup directory",
            "Excluded directories",
            "Compression level",
            "Keep temporary files",
            "Back",
        )
        while True:
            choice = self.choose("Configure backup", options)
            if choice == 0:
                self.select_directory("source", "source_dir", "Source directory")
            elif choice == 1:
                self.select_directory("destination", "backup_dir", "Backup directory")
            elif choice == 2:
                self._edit_excludes()
            elif choice == 3:
                self._edit_compression_level()
            elif choice == 4:
                self._edit_keep_temp()
            else:
                return

    def configure_restore(self) -> None:
        options = ("Backup archive", "Restore directory", "Back")
        while True:
            choice = self.choose("Configure restore", options)
            if choice == 0:
                self._select_archive()
            elif choice == 1:
                self.select_directory("restore", "restore_dir", "Restore directory")
            else:
                return

    def select_directory(self, role: str, key: str, title: str) -> str:
        """Pick a directory from the role's history or type a new one."""
        settings = self._ctx.settings
        history = settings.history(role)
        current = settings.get(key)
        self._io.say(f"Current {title.lower()}: {current or '(not set)'}")

        options = [*history, "Enter a new path", "Cancel"]
        choice = self.choose(title, options)
        if choice < len(history):
            directory = history[choice]
        elif choice == len(history):
            directory = self._ask("Path: ")
            if not directory:
                self._io.say("No path entered.")
                return current
        else:
            return current

        if not Path(directory).is_dir():
            self._io.say(f"Warning: {directory} is not an existing directory.")
        with settings.batch_update():
            settings.set(key, directory)
            settings.append_to_history(role, directory)
        logger.info(f"{title} set to {directory}")
        return directory

    def _edit_excludes(self) -> None:
        settings = self._ctx.settings
        current = settings.get("exclude_dirs")
        self._io.say(f"Always excluded: {' '.join(STANDARD_EXCLUDES)}")
        self._io.say(f"Current extra exclusions: {current or '(none)'}")
        raw = self._ask("Colon-separated directories to exclude (blank to keep, '-' to clear): ")
        if not raw:
            return
        value = "" if raw == "-" else ":".join(split_exclude_dirs(raw))
        settings.set("exclude_dirs", value)

    def _edit_compression_level(self) -> None:
        settings = self._ctx.settings
        current = settings.get("compression_level", str(DEFAULT_COMPRESSION_LEVEL))
        raw = self._ask(f"Compression level 1-9 (current {current}): ")
        if not raw:
            return
        if not raw.isdigit() or not 1 <= int(raw) <= 9:
            self._io.say(f"Invalid compression level: {raw!r}")
            return
        settings.set("compression_level", str(int(raw)))

    def _edit_keep_temp(self) -> None:
        settings = self._ctx.settings
        keep = self.confirm("Keep the staging directory after a successful backup?")
        settings.set("keep_temp", "1" if keep else "0")

    def _select_archive(self) -> None:
        settings = self._ctx.settings
        archives = self._ctx.restore_manager.list_archives()
        latest = settings.get("last_backup")
        options = [
            f"Latest backup ({latest or 'none'})",
            *[a.name for a in archives],
            "Enter a path",
            "Cancel",
        ]
        choice = self.choose("Backup archive", options)
        if choice == 0:
            settings.set("restore_archive", "")
        elif choice <= len(archives):
            settings.set("restore_archive", str(archives[choice - 1]))
        elif choice == len(archives) + 1:
            path = self._ask("Archive path: ")
            if path:
                settings.set("restore_archive", path)

    # ── Display ──

    def show_settings(self) -> None:
        settings = self._ctx.settings
        rows = (
            ("Source directory", settings.get("source_dir", "(not set)")),
            ("Backup directory", settings.get("backup_dir", "(not set)")),
            ("Excluded directories", settings.get("exclude_dirs", "(none)")),
            ("Compression level", settings.get("compression_level", str(DEFAULT_COMPRESSION_LEVEL))),
            ("Keep temporary files", settings.get("keep_temp", "0")),
            ("Last backup", settings.get("last_backup", "(none)")),
            ("Restore archive", settings.get("restore_archive", "(latest backup)")),
            ("Restore directory", settings.get("restore_dir", "/")),
        )
        self._io.say()
        for label, value in rows:
            self._io.say(f"{label:<22} {value}")

    def view_errors(self) -> None:
        ledger = self._ctx.ledger
        entries = ledger.list_pending()
        if not entries:
            self._io.say("No errors recorded.")
            return
        for entry in entries:
            self._io.say(f"  - {entry}")
        if self.confirm("Clear these errors?"):
            ledger.clear()
