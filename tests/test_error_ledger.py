"""Tests for the ErrorLedger."""

from __future__ import annotations

from pathlib import Path

from sysb.data.error_ledger import ErrorLedger


class TestErrorLedger:
    def test_empty(self, tmp_path: Path) -> None:
        ledger = ErrorLedger(tmp_path / "sysb.error")
        assert not ledger.has_pending()
        assert ledger.list_pending() == []

    def test_record_and_list(self, tmp_path: Path) -> None:
        ledger = ErrorLedger(tmp_path / "sysb.error")
        ledger.record("rsync failed with error code 23")
        ledger.record("tar compression failed with error code 2")
        assert ledger.has_pending()
        assert ledger.list_pending() == [
            "rsync failed with error code 23",
            "tar compression failed with error code 2",
        ]

    def test_survives_new_instance(self, tmp_path: Path) -> None:
        ErrorLedger(tmp_path / "sysb.error").record("boom")
        assert ErrorLedger(tmp_path / "sysb.error").list_pending() == ["boom"]

    def test_multiline_message_kept_on_one_line(self, tmp_path: Path) -> None:
        ledger = ErrorLedger(tmp_path / "sysb.error")
        ledger.record("first\nsecond")
        assert ledger.list_pending() == ["first second"]

    def test_clear(self, tmp_path: Path) -> None:
        ledger = ErrorLedger(tmp_path / "sysb.error")
        ledger.record("boom")
        ledger.clear()
        assert not ledger.has_pending()
        assert ledger.path.exists()

    def test_unwritable_location_does_not_raise(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        ledger = ErrorLedger(blocker / "data" / "sysb.error")
        ledger.record("rsync failed with error code 23")
        assert ledger.list_pending() == []
