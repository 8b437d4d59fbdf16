"""Argument builders for the external tools (rsync, tar + xz)."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterable, Sequence

RSYNC = "rsync"
TAR = "tar"
XZ = "xz"

REQUIRED_TOOLS: tuple[str, ...] = (RSYNC, TAR, XZ)

# Virtual, transient or self-referencing trees that are never copied
STANDARD_EXCLUDES: tuple[str, ...] = (
    "/proc",
    "/tmp",
    "/sys",
    "/dev",
    "/run",
    "/mnt",
    "/media",
    "/lost+found",
)

# Archive-preserving mode: permissions, ownership, ACLs, xattrs
RSYNC_BASE_FLAGS: tuple[str, ...] = ("-aAXv", "--info=progress2")

# Files near the root of any Linux tree, extracted to probe an archive.
# Members carry a leading "./" because archives are built with "-C <dir> .".
PROBE_MEMBERS: tuple[str, ...] = ("./etc/hostname", "./etc/os-release")


def missing_tools(tools: Iterable[str] = REQUIRED_TOOLS) -> list[str]:
    """Return the required tools not found on ``PATH``."""
    return [tool for tool in tools if shutil.which(tool) is None]


def build_excludes(user_excludes: Sequence[str]) -> list[str]:
    """User exclusions followed by the standard set, without repeats."""
    result: list[str] = []
    for pattern in [*user_excludes, *STANDARD_EXCLUDES]:
        if pattern and pattern not in result:
            result.append(pattern)
    return result


def _dir_arg(path: Path | str) -> str:
    """rsync copies a directory's *contents* when the path ends with '/'."""
    text = str(path)
    return text if text.endswith("/") else text + "/"


def rsync_args(
    source: Path | str,
    destination: Path | str,
    excludes: Sequence[str] = (),
    link_dest: Path | str | None = None,
) -> list[str]:
    args = list(RSYNC_BASE_FLAGS)
    if link_dest is not None:
        args.append(f"--link-dest={link_dest}")
    args.extend(f"--exclude={pattern}" for pattern in excludes)
    args.extend([_dir_arg(source), _dir_arg(destination)])
    return args


def tar_create_args(archive: Path | str, source_dir: Path | str) -> list[str]:
    return ["-cJf", str(archive), "-C", str(source_dir), "."]


def xz_env(compression_level: int) -> dict[str, str]:
    """Environment passing the compression level through to xz."""
    return {"XZ_OPT": f"-{compression_level}"}


def tar_list_args(archive: Path | str) -> list[str]:
    return ["-tJf", str(archive)]


def tar_extract_args(
    archive: Path | str,
    target_dir: Path | str,
    members: Sequence[str] = (),
) -> list[str]:
    return ["-xJf", str(archive), "-C", str(target_dir), *members]
