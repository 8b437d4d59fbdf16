"""Tests for the interactive text menu, driven by a scripted console."""

from __future__ import annotations

from pathlib import Path

import pytest

from sysb.cli.menu import Menu
from sysb.config import SettingsStore
from sysb.context import AppContext
from sysb.core.backup import BackupManager
from sysb.core.inflight import InFlightDirs
from sysb.core.restore import RestoreManager
from sysb.data.error_ledger import ErrorLedger

from conftest import FakeRunner


class ScriptedConsole:
    """Feeds canned answers; raises EOFError once they run out."""

    def __init__(self, answers: list[str]) -> None:
        self._answers = list(answers)
        self.output: list[str] = []

    def ask(self, prompt: str) -> str:
        self.output.append(prompt)
        if not self._answers:
            raise EOFError
        return self._answers.pop(0)

    def say(self, text: str = "") -> None:
        self.output.append(text)

    @property
    def text(self) -> str:
        return "\n".join(self.output)


@pytest.fixture
def ctx(
    tmp_path: Path,
    configured: SettingsStore,
    ledger: ErrorLedger,
    backup_manager: BackupManager,
    restore_manager: RestoreManager,
    runner: FakeRunner,
    inflight: InFlightDirs,
) -> AppContext:
    return AppContext(
        data_dir=tmp_path / "data",
        settings=configured,
        ledger=ledger,
        runner=runner,
        inflight=inflight,
        backup_manager=backup_manager,
        restore_manager=restore_manager,
    )


EXIT = str(len(Menu.MAIN_OPTIONS))


class TestMainMenu:
    def test_exit(self, ctx: AppContext) -> None:
        console = ScriptedConsole([EXIT])
        assert Menu(ctx, console).run() == 0
        assert "Goodbye." in console.output

    def test_end_of_input_exits_cleanly(self, ctx: AppContext) -> None:
        assert Menu(ctx, ScriptedConsole([])).run() == 0

    def test_invalid_choice_reprompts(self, ctx: AppContext) -> None:
        console = ScriptedConsole(["42", "x", EXIT])
        Menu(ctx, console).run()
        assert "Invalid choice: '42'" in console.output
        assert "Invalid choice: 'x'" in console.output

    def test_run_backup(self, ctx: AppContext, runner: FakeRunner) -> None:
        console = ScriptedConsole(["1", EXIT])
        Menu(ctx, console).run()
        assert "rsync" in runner.steps()
        assert "Backup completed successfully" in console.text

    def test_failed_backup_offers_recovery(self, ctx: AppContext, runner: FakeRunner) -> None:
        runner.exit_codes["rsync"] = 23
        # run backup, then "Clear errors and continue", then exit
        console = ScriptedConsole(["1", "1", EXIT])
        Menu(ctx, console).run()
        assert "Backup failed." in console.output
        assert "  - rsync failed with error code 23" in console.output
        assert not ctx.ledger.has_pending()

    def test_exit_chosen_after_failed_backup_leaves_menu(
        self, ctx: AppContext, runner: FakeRunner
    ) -> None:
        runner.exit_codes["rsync"] = 23
        # run backup, "Exit" at recovery; the remaining answers must never be read
        console = ScriptedConsole(["1", "3", "1", "3", EXIT])
        assert Menu(ctx, console).run() == 0
        assert len(runner.calls_for("rsync")) == 1
        assert "Goodbye." in console.output
        assert ctx.ledger.has_pending()

    def test_exit_chosen_after_failed_restore_leaves_menu(
        self, ctx: AppContext, runner: FakeRunner
    ) -> None:
        # nothing to restore yet, so the restore fails validation
        console = ScriptedConsole(["2", "y", "3", "2", "y", EXIT])
        assert Menu(ctx, console).run() == 0
        assert console.output.count("Restore failed.") == 1
        assert ctx.ledger.list_pending() == ["No backup file selected"]

    def test_restore_requires_confirmation(self, ctx: AppContext, runner: FakeRunner) -> None:
        console = ScriptedConsole(["2", "n", EXIT])
        Menu(ctx, console).run()
        assert "Restore cancelled." in console.output
        assert runner.calls == []


class TestRecovery:
    def test_no_pending_errors(self, ctx: AppContext) -> None:
        console = ScriptedConsole([])
        assert Menu(ctx, console).recover() is True
        assert console.output == []

    def test_clear_and_continue(self, ctx: AppContext) -> None:
        ctx.ledger.record("rsync failed with error code 23")
        console = ScriptedConsole(["1"])
        assert Menu(ctx, console).recover() is True
        assert "Errors from previous run detected:" in console.output
        assert not ctx.ledger.has_pending()

    def test_continue_without_clearing(self, ctx: AppContext) -> None:
        ctx.ledger.record("boom")
        assert Menu(ctx, ScriptedConsole(["2"])).recover() is True
        assert ctx.ledger.has_pending()

    def test_exit_at_startup(self, ctx: AppContext, runner: FakeRunner) -> None:
        ctx.ledger.record("boom")
        assert Menu(ctx, ScriptedConsole(["3"])).run() == 0
        assert ctx.ledger.has_pending()
        assert runner.calls == []


class TestConfiguration:
    def test_select_new_directory(self, ctx: AppContext, tmp_path: Path) -> None:
        new_dir = tmp_path / "elsewhere"
        new_dir.mkdir()
        history = ctx.settings.history("restore")
        # "Enter a new path" comes right after the history entries
        console = ScriptedConsole([str(len(history) + 1), str(new_dir)])
        result = Menu(ctx, console).select_directory("restore", "restore_dir", "Restore directory")

        assert result == str(new_dir)
        assert ctx.settings.get("restore_dir") == str(new_dir)
        assert ctx.settings.history("restore") == [str(new_dir)]

    def test_select_from_history(self, ctx: AppContext) -> None:
        ctx.settings.append_to_history("source", "/")
        ctx.settings.append_to_history("source", "/home")
        console = ScriptedConsole(["2"])
        Menu(ctx, console).select_directory("source", "source_dir", "Source directory")
        assert ctx.settings.get("source_dir") == "/home"
        assert ctx.settings.history("source") == ["/", "/home"]

    def test_compression_level(self, ctx: AppContext) -> None:
        # Configure backup -> Compression level -> 5 -> Back -> Exit
        console = ScriptedConsole(["3", "4", "5", "6", EXIT])
        Menu(ctx, console).run()
        assert ctx.settings.get("compression_level") == "5"

    def test_invalid_compression_level_rejected(self, ctx: AppContext) -> None:
        console = ScriptedConsole(["3", "4", "12", "6", EXIT])
        Menu(ctx, console).run()
        assert ctx.settings.get("compression_level", "9") == "9"
        assert "Invalid compression level: '12'" in console.output

    def test_excludes_normalised(self, ctx: AppContext) -> None:
        console = ScriptedConsole(["3", "3", "/var/cache::/var/tmp:/var/cache", "6", EXIT])
        Menu(ctx, console).run()
        assert ctx.settings.get("exclude_dirs") == "/var/cache:/var/tmp"

    def test_keep_temp(self, ctx: AppContext) -> None:
        console = ScriptedConsole(["3", "5", "y", "6", EXIT])
        Menu(ctx, console).run()
        assert ctx.settings.get("keep_temp") == "1"

    def test_select_archive(self, ctx: AppContext, dest_dir: Path) -> None:
        archive = dest_dir / "system_backup_20260101_000000.tar.xz"
        archive.write_bytes(b"x")
        # Configure restore -> Backup archive -> first listed archive -> Back -> Exit
        console = ScriptedConsole(["4", "1", "2", "3", EXIT])
        Menu(ctx, console).run()
        assert ctx.settings.get("restore_archive") == str(archive)


class TestErrorsView:
    def test_view_and_clear(self, ctx: AppContext) -> None:
        ctx.ledger.record("boom")
        console = ScriptedConsole(["y"])
        Menu(ctx, console).view_errors()
        assert "  - boom" in console.output
        assert not ctx.ledger.has_pending()

    def test_nothing_recorded(self, ctx: AppContext) -> None:
        console = ScriptedConsole([])
        Menu(ctx, console).view_errors()
        assert console.output == ["No errors recorded."]
