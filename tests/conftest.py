"""Shared fixtures: a scripted stand-in for rsync / tar and wired managers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence

import pytest

from sysb.config import SettingsStore
from sysb.core.backup import BackupManager
from sysb.core.inflight import InFlightDirs
from sysb.core.restore import RestoreManager
from sysb.core.runner import CommandResult
from sysb.core.verifier import ArchiveVerifier
from sysb.data.error_ledger import ErrorLedger
from sysb.models.run import RunId

FIXED_START = datetime(2026, 3, 14, 15, 9, 26)


@dataclass
class Call:
    command: str
    args: list[str]
    env: dict[str, str] = field(default_factory=dict)

    @property
    def step(self) -> str:
        return classify(self.command, self.args)


def classify(command: str, args: Sequence[str]) -> str:
    if command == "rsync":
        return "rsync"
    flags = args[0] if args else ""
    if "c" in flags:
        return "tar-create"
    if "t" in flags:
        return "tar-list"
    return "tar-extract"


def _arg_after(args: Sequence[str], flag: str) -> str:
    return args[args.index(flag) + 1]


class FakeRunner:
    """
    Records invocations and simulates the artifacts rsync / tar would leave.

    Set ``exit_codes[step]`` to make a step fail, where step is one of
    ``rsync``, ``tar-create``, ``tar-list``, ``tar-extract``.
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self.exit_codes: dict[str, int] = {}
        self.partial_archive_on_failure = False
        self.cancelled = False

    def run(
        self,
        command: str,
        args: Sequence[str],
        sink=None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        call = Call(command, list(args), dict(env or {}))
        self.calls.append(call)
        step = call.step
        code = self.exit_codes.get(step, 0)

        if step == "tar-create" and (code == 0 or self.partial_archive_on_failure):
            Path(call.args[1]).write_bytes(b"\xfd7zXZ\x00fake-archive")
        elif code == 0 and step == "rsync":
            dest = Path(call.args[-1].rstrip("/"))
            (dest / "synced.txt").write_text("ok", encoding="utf-8")
        elif code == 0 and step == "tar-extract":
            target = Path(_arg_after(call.args, "-C"))
            (target / "etc").mkdir(parents=True, exist_ok=True)
            (target / "etc" / "hostname").write_text("host\n", encoding="utf-8")

        output = [f"{command} {' '.join(call.args)}"]
        if sink is not None:
            for line in output:
                sink(line)
        return CommandResult(command=command, args=call.args, exit_code=code, output=output)

    def cancel(self) -> None:
        self.cancelled = True

    def steps(self) -> list[str]:
        return [c.step for c in self.calls]

    def calls_for(self, step: str) -> list[Call]:
        return [c for c in self.calls if c.step == step]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def settings(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "data" / "sysb.ini")


@pytest.fixture
def ledger(tmp_path: Path) -> ErrorLedger:
    return ErrorLedger(tmp_path / "data" / "sysb.error")


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    d = tmp_path / "systemp"
    d.mkdir()
    return d


@pytest.fixture
def inflight() -> InFlightDirs:
    return InFlightDirs()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    d = tmp_path / "source"
    (d / "etc").mkdir(parents=True)
    (d / "etc" / "hostname").write_text("host\n", encoding="utf-8")
    return d


@pytest.fixture
def dest_dir(tmp_path: Path) -> Path:
    d = tmp_path / "backups"
    d.mkdir()
    return d


@pytest.fixture
def configured(settings: SettingsStore, source_dir: Path, dest_dir: Path) -> SettingsStore:
    with settings.batch_update():
        settings.set("source_dir", str(source_dir))
        settings.set("backup_dir", str(dest_dir))
    return settings


@pytest.fixture
def backup_manager(
    configured: SettingsStore,
    ledger: ErrorLedger,
    runner: FakeRunner,
    inflight: InFlightDirs,
    temp_root: Path,
) -> BackupManager:
    return BackupManager(
        configured,
        ledger,
        runner,
        verifier=ArchiveVerifier(runner, temp_root=temp_root),
        inflight=inflight,
        run_id_factory=lambda: RunId(FIXED_START),
    )


@pytest.fixture
def restore_manager(
    settings: SettingsStore,
    ledger: ErrorLedger,
    runner: FakeRunner,
    inflight: InFlightDirs,
    temp_root: Path,
) -> RestoreManager:
    return RestoreManager(settings, ledger, runner, inflight=inflight, temp_root=temp_root)
