"""Error taxonomy for backup and restore runs.

Step methods raise these; the ``perform_*`` boundary of each manager
catches them, records the message to the error ledger and turns the run
into a plain ``False``.
"""

from __future__ import annotations


class SysbError(Exception):
    """Base class for every failure a run can record."""


class ConfigurationError(SysbError):
    """A required setting is missing or cannot be parsed."""


class PathAccessError(SysbError):
    """A configured path is missing, unreadable or unwritable."""


class ExternalToolError(SysbError):
    """rsync or tar exited non-zero."""

    def __init__(self, message: str, tool: str, exit_code: int) -> None:
        super().__init__(message)
        self.tool = tool
        self.exit_code = exit_code


class VerificationError(SysbError):
    """The archive failed the integrity / extractability probe."""
