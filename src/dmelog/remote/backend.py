"""Contracts for the acquisition and persistence collaborators.

The engine never talks to cables or cloud storage directly. It drives an
:class:`AcquisitionBackend` (the process that owns the serial port and
decodes frames) and stores exported sessions through a
:class:`PersistenceBackend`. Both are structural protocols, so a test double
only has to provide the methods.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..core.models import ConnectionMode, DtcRecord, PollUpdate, PortInfo


class AcquisitionBackend(Protocol):
    """Hardware-facing backend; every method may raise ``BackendError``."""

    def start(
        self,
        connection_mode: ConnectionMode,
        port_name: Optional[str],
        baud_rate: int,
        channel_keys: Sequence[str],
    ) -> None:  # pragma: no cover - protocol
        ...

    def stop(self) -> None:  # pragma: no cover - protocol
        ...

    def poll(self, max_lines: int) -> PollUpdate:  # pragma: no cover - protocol
        ...

    def verify_port(self, port_name: str, baud_rate: int) -> None:  # pragma: no cover - protocol
        ...

    def list_ports(self) -> List[PortInfo]:  # pragma: no cover - protocol
        ...

    def read_dtcs(self) -> List[DtcRecord]:  # pragma: no cover - protocol
        ...

    def clear_dtcs(self) -> None:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class LogMetadata:
    storage_id: str
    file_name: str
    csv_byte_length: int
    sample_count: int
    total_bytes: int
    dme_profile: str
    connection_mode: str
    parameter_keys: Tuple[str, ...]
    started_at_ms: Optional[int]
    ended_at_ms: int
    duration_ms: int


@dataclass(frozen=True)
class SavedLogSummary:
    log_id: str
    created_at_iso: str
    dme_profile: str
    duration_ms: int
    file_name: str
    sample_count: int


@dataclass(frozen=True)
class SavedLogDownload:
    download_url: str
    file_name: str


class PersistenceBackend(Protocol):
    """Remote storage for exported sessions; methods may raise ``BackendError``."""

    def generate_upload_url(self) -> str:  # pragma: no cover - protocol
        ...

    def upload(self, upload_url: str, payload: bytes) -> str:  # pragma: no cover - protocol
        ...

    def save_log_metadata(self, metadata: LogMetadata) -> str:  # pragma: no cover - protocol
        ...

    def list_my_logs(self) -> List[SavedLogSummary]:  # pragma: no cover - protocol
        ...

    def get_log_download_url(self, log_id: str) -> SavedLogDownload:  # pragma: no cover - protocol
        ...

    def download(self, download_url: str) -> str:  # pragma: no cover - protocol
        ...


SIMULATOR_PORTS: Tuple[PortInfo, ...] = (
    PortInfo(port_name="SIM-N55-001", port_type="simulator"),
    PortInfo(port_name="SIM-N55-002", port_type="simulator"),
)

# USB serial bridges used by K+DCAN cables.
K_DCAN_PORT_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"usbserial",
        r"wchusbserial",
        r"slab_usbto_uart",
        r"ftdi",
        r"ch34",
        r"cu\.usb",
        r"tty\.usb",
    )
)

_PROTOCOL_MODE_LABELS = {
    "elm_obd": "ELM decoded",
    "elm+bmw": "ELM + BMW",
    "raw_fallback": "Raw fallback",
    "simulator": "Simulator",
    "elm_initializing": "Initializing adapter",
    "starting": "Starting",
}


def is_likely_kdcan_port(port_name: str) -> bool:
    return any(pattern.search(port_name) for pattern in K_DCAN_PORT_PATTERNS)


def filter_kdcan_ports(ports: Iterable[PortInfo]) -> List[PortInfo]:
    return [port for port in ports if is_likely_kdcan_port(port.port_name)]


def protocol_mode_label(mode: str) -> str:
    """Human-readable label for a backend protocol mode."""
    return _PROTOCOL_MODE_LABELS.get(mode, "Stopped")


__all__ = [
    "AcquisitionBackend",
    "K_DCAN_PORT_PATTERNS",
    "LogMetadata",
    "PersistenceBackend",
    "SIMULATOR_PORTS",
    "SavedLogDownload",
    "SavedLogSummary",
    "filter_kdcan_ports",
    "is_likely_kdcan_port",
    "protocol_mode_label",
]
