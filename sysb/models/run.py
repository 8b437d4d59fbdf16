"""Run records — ephemeral state of a single backup or restore attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path

RUN_ID_FORMAT = "%Y%m%d_%H%M%S"


class BackupState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    SYNCING = "syncing"
    COMPRESSING = "compressing"
    VERIFYING = "verifying"
    REPORTING = "reporting"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RestoreState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    SYNCING = "syncing"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RunId:
    """Timestamp-derived identifier, captured once per run."""

    started_at: datetime
    suffix: int = 0

    @classmethod
    def now(cls) -> RunId:
        return cls(started_at=datetime.now())

    def bump(self) -> RunId:
        return RunId(started_at=self.started_at, suffix=self.suffix + 1)

    @property
    def value(self) -> str:
        stamp = self.started_at.strftime(RUN_ID_FORMAT)
        return f"{stamp}_{self.suffix}" if self.suffix else stamp

    @property
    def staging_name(self) -> str:
        return f"temp_backup_{self.value}"

    @property
    def archive_name(self) -> str:
        return f"system_backup_{self.value}.tar.xz"

    def __str__(self) -> str:
        return self.value


@dataclass
class BackupRun:
    """One backup attempt, from validation to its terminal state."""

    run_id: RunId
    source: Path
    destination: Path
    staging_dir: Path
    archive_path: Path
    excludes: list[str] = field(default_factory=list)
    compression_level: int = 9
    link_base: Path | None = None
    keep_temp: bool = False
    state: BackupState = BackupState.IDLE
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state == BackupState.SUCCEEDED


@dataclass
class RestoreRun:
    """One restore attempt."""

    archive_path: Path
    target: Path
    extract_dir: Path | None = None
    state: RestoreState = RestoreState.IDLE
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state == RestoreState.SUCCEEDED
