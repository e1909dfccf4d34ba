"""Exception types shared across the datalog engine."""

from __future__ import annotations


class DatalogError(Exception):
    """Base class for every error raised by :mod:`dmelog`."""


class BackendError(DatalogError):
    """An acquisition or persistence backend rejected a command."""


class CsvParseError(DatalogError, ValueError):
    """CSV text is structurally unusable (no header plus data rows)."""


class ExportPreconditionError(DatalogError):
    """There is nothing to export (no samples, or no channel values)."""


class LogNotFoundError(DatalogError, LookupError):
    """A saved log id does not exist in the log store."""


class UnknownChannelError(DatalogError, KeyError):
    """A channel key is not part of the active profile's catalog."""

    def __init__(self, key: str, profile: str) -> None:
        super().__init__(key)
        self.key = key
        self.profile = profile

    def __str__(self) -> str:
        return f"Channel {self.key!r} is not available for DME profile {self.profile}"


__all__ = [
    "DatalogError",
    "BackendError",
    "CsvParseError",
    "ExportPreconditionError",
    "LogNotFoundError",
    "UnknownChannelError",
]
