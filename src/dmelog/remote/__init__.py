"""Collaborator contracts and implementations.

:mod:`backend` defines the acquisition/persistence protocols,
:mod:`simulator` provides a cable-free acquisition backend, and
:mod:`log_store` stores exported sessions on disk together with the
save/load workflows.
"""

from .backend import (
    AcquisitionBackend,
    LogMetadata,
    PersistenceBackend,
    SavedLogDownload,
    SavedLogSummary,
    filter_kdcan_ports,
    protocol_mode_label,
)
from .log_store import LocalLogStore, format_log_meta, load_saved_log, save_session_log
from .simulator import SimulatorBackend

__all__ = [
    "AcquisitionBackend",
    "LocalLogStore",
    "LogMetadata",
    "PersistenceBackend",
    "SavedLogDownload",
    "SavedLogSummary",
    "SimulatorBackend",
    "filter_kdcan_ports",
    "format_log_meta",
    "load_saved_log",
    "protocol_mode_label",
    "save_session_log",
]
