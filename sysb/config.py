"""Settings store — flat ``key="value"`` file with batch update support."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from loguru import logger

from sysb.errors import ConfigurationError, PathAccessError

SETTINGS_FILENAME = "sysb.ini"

# Directory history roles and the key each one is stored under
HISTORY_ROLES = ("source", "destination", "restore")
_HISTORY_SEPARATOR = ":"

DEFAULT_COMPRESSION_LEVEL = 9


class SettingsStore:
    """Persisted string settings plus per-role directory history.

    Values are opaque strings here; typed consumers parse them through
    :class:`BackupSettings` and :class:`RestoreSettings`.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()
        self._defer_save = False
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Load settings from disk. Unknown lines are skipped."""
        self._data = {}
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                for raw in f:
                    line = raw.rstrip("\n")
                    if not line.strip() or line.lstrip().startswith(("#", ";")):
                        continue
                    key, sep, value = line.partition("=")
                    if not sep:
                        logger.debug(f"Ignoring malformed settings line: {line!r}")
                        continue
                    self._data[key.strip()] = _unquote(value)
        except OSError as e:
            logger.warning(f"Failed to load settings, using defaults: {e}")

    def _save(self, strict: bool = False) -> None:
        """Persist settings to disk via temp file + replace.

        Write failures are logged; with *strict* they are raised as
        :class:`PathAccessError` instead.
        """
        if self._defer_save:
            return
        with self._lock:
            tmp_path = self._path.with_suffix(".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    for key, value in self._data.items():
                        f.write(f'{key}="{value}"\n')
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save settings: {e}")
                tmp_path.unlink(missing_ok=True)
                if strict:
                    raise PathAccessError(f"Failed to save settings to {self._path}: {e}") from e

    @contextmanager
    def batch_update(self, strict: bool = False) -> Iterator[None]:
        """Context manager for batching multiple changes into a single write."""
        self._defer_save = True
        try:
            yield
        finally:
            self._defer_save = False
        self._save(strict=strict)

    # ── Generic access ──

    def get(self, key: str, default: str = "") -> str:
        """Return the stored value, or *default* if absent or empty."""
        value = self._data.get(key, "")
        return value if value else default

    def set(self, key: str, value: str) -> None:
        """Create or overwrite *key*."""
        value = str(value)
        if "\n" in value or "\r" in value:
            raise ValueError(f"Setting {key!r} cannot contain a line break")
        if "=" in key or not key.strip():
            raise ValueError(f"Invalid setting name: {key!r}")
        self._data[key.strip()] = value
        self._save()

    def keys(self) -> list[str]:
        return list(self._data)

    # ── Directory history ──

    def history(self, role: str) -> list[str]:
        """Previously used directories for *role*, oldest first."""
        raw = self.get(_history_key(role))
        return [d for d in raw.split(_HISTORY_SEPARATOR) if d]

    def append_to_history(self, role: str, directory: str | Path) -> None:
        """Add *directory* to the role's history unless already present."""
        directory = str(directory)
        if not directory:
            return
        entries = self.history(role)
        if directory in entries:
            return
        entries.append(directory)
        self.set(_history_key(role), _HISTORY_SEPARATOR.join(entries))


def _history_key(role: str) -> str:
    if role not in HISTORY_ROLES:
        raise ValueError(f"Unknown history role: {role}")
    return f"{role}_history"


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _parse_flag(raw: str, key: str) -> bool:
    if raw in ("0", ""):
        return False
    if raw == "1":
        return True
    raise ConfigurationError(f"Invalid value for {key}: {raw!r} (expected 0 or 1)")


# ── Typed readers ──


@dataclass
class BackupSettings:
    """Typed view of the settings a backup run consumes."""

    source_dir: str = ""
    backup_dir: str = ""
    exclude_dirs: list[str] = field(default_factory=list)
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    keep_temp: bool = False
    last_backup_dir: str = ""

    @classmethod
    def load(cls, store: SettingsStore) -> BackupSettings:
        raw_level = store.get("compression_level", str(DEFAULT_COMPRESSION_LEVEL))
        try:
            level = int(raw_level)
        except ValueError:
            raise ConfigurationError(
                f"Invalid compression level: {raw_level!r} (expected 1-9)"
            ) from None
        if not 1 <= level <= 9:
            raise ConfigurationError(f"Invalid compression level: {level} (expected 1-9)")

        return cls(
            source_dir=store.get("source_dir"),
            backup_dir=store.get("backup_dir"),
            exclude_dirs=split_exclude_dirs(store.get("exclude_dirs")),
            compression_level=level,
            keep_temp=_parse_flag(store.get("keep_temp", "0"), "keep_temp"),
            last_backup_dir=store.get("last_backup_dir"),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.source_dir and self.backup_dir)


@dataclass
class RestoreSettings:
    """Typed view of the settings a restore run consumes."""

    archive: str = ""
    restore_dir: str = "/"

    @classmethod
    def load(cls, store: SettingsStore) -> RestoreSettings:
        return cls(
            archive=store.get("restore_archive") or store.get("last_backup"),
            restore_dir=store.get("restore_dir", "/"),
        )


def split_exclude_dirs(raw: str) -> list[str]:
    """Split a colon-separated exclusion list, dropping blanks and repeats."""
    result: list[str] = []
    for part in raw.split(":"):
        part = part.strip()
        if part and part not in result:
            result.append(part)
    return result
