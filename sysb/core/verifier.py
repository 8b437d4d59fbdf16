"""Archive verifier — quick integrity and extractability probe."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from sysb.core.commands import PROBE_MEMBERS, TAR, tar_extract_args, tar_list_args
from sysb.core.runner import CommandRunner

REASON_CORRUPTED = "archive is corrupted"
REASON_PROBE_FAILED = "could not extract test files"
REASON_NO_TEMP_DIR = "could not create temporary directory"


@dataclass(frozen=True)
class VerifyResult:
    ok: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok


class ArchiveVerifier:
    """
    Smoke test for a freshly written archive.

    Lists the table of contents, then extracts a small probe set into a
    throwaway directory. This does not checksum the archive; a full
    re-read of a multi-gigabyte system backup is left to the operator.
    """

    def __init__(
        self,
        runner: CommandRunner,
        probe_members: tuple[str, ...] = PROBE_MEMBERS,
        temp_root: Path | None = None,
    ) -> None:
        self._runner = runner
        self._probe_members = probe_members
        self._temp_root = temp_root

    def verify(self, archive: Path) -> VerifyResult:
        logger.info(f"Verifying backup integrity: {archive}")

        # Listing output is not interesting, only the exit code
        listing = self._runner.run(TAR, tar_list_args(archive), sink=_discard)
        if not listing.ok:
            return VerifyResult(False, REASON_CORRUPTED)

        try:
            tmp_dir = tempfile.TemporaryDirectory(prefix="sysb_verify_", dir=self._temp_root)
        except OSError as e:
            return VerifyResult(False, f"{REASON_NO_TEMP_DIR}: {e}")

        with tmp_dir as tmp:
            probe = self._runner.run(
                TAR,
                tar_extract_args(archive, tmp, self._probe_members),
                sink=logger.debug,
            )
            if not probe.ok:
                return VerifyResult(False, REASON_PROBE_FAILED)

        logger.info(f"Backup verification passed: {archive}")
        return VerifyResult(True)


def _discard(_line: str) -> None:
    pass
