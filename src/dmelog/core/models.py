"""Shared dataclasses for datalog sessions, samples, and backend payloads."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..catalog.parameters import ChannelKey, DmeProfile


class ConnectionMode(str, Enum):
    SIMULATOR = "simulator"
    HARDWARE = "hardware"

    @classmethod
    def parse(cls, value: "ConnectionMode | str") -> "ConnectionMode":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class SessionState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    ERROR = "error"


def _coerce_value(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class DecodedSample:
    """One timestamped set of channel readings; immutable once created."""

    timestamp_ms: int
    values: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp_ms", int(self.timestamp_ms))
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DecodedSample":
        """Build from the backend wire shape; non-numeric values are dropped."""
        raw_values = data.get("values") or {}
        values: Dict[str, float] = {}
        if isinstance(raw_values, Mapping):
            for key, value in raw_values.items():
                number = _coerce_value(value)
                if number is not None:
                    values[str(key)] = number
        return cls(timestamp_ms=int(data.get("timestamp_ms", 0)), values=values)

    def to_mapping(self) -> Dict[str, Any]:
        return {"timestamp_ms": self.timestamp_ms, "values": dict(self.values)}

    def __reduce__(self):  # MappingProxyType cannot be pickled directly
        return (DecodedSample, (self.timestamp_ms, dict(self.values)))


@dataclass(frozen=True)
class PollUpdate:
    """Response of one ``poll`` call against the acquisition backend."""

    total_bytes: int = 0
    protocol_mode: str = "stopped"
    lines: Tuple[str, ...] = ()
    decoded_samples: Tuple[DecodedSample, ...] = ()
    last_error: Optional[str] = None
    is_logging: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PollUpdate":
        samples = tuple(
            item if isinstance(item, DecodedSample) else DecodedSample.from_mapping(item)
            for item in data.get("decoded_samples") or ()
        )
        last_error = data.get("last_error")
        return cls(
            total_bytes=int(data.get("total_bytes") or 0),
            protocol_mode=str(data.get("protocol_mode") or "stopped"),
            lines=tuple(str(line) for line in data.get("lines") or ()),
            decoded_samples=samples,
            last_error=str(last_error) if last_error else None,
            is_logging=bool(data.get("is_logging", True)),
        )


@dataclass(frozen=True)
class PortInfo:
    port_name: str
    port_type: str


@dataclass(frozen=True)
class DtcRecord:
    code: str
    description: str
    severity: str
    status: str
    timestamp: str


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a controller command: success (optionally carrying a value,
    e.g. a port list) or an error with a reason.
    """

    ok: bool
    error: Optional[str] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "CommandResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> "CommandResult":
        return cls(ok=False, error=str(reason))

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a CSV export or a save to the log store."""

    ok: bool
    path: Optional[Path] = None
    log_id: Optional[str] = None
    error: Optional[str] = None
    sample_count: int = 0

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class SessionConfig:
    """Everything :meth:`SessionController.start` needs to open a session."""

    channels: List[str]
    connection_mode: ConnectionMode = ConnectionMode.SIMULATOR
    profile: DmeProfile = DmeProfile.MEVD17_2
    port_name: Optional[str] = None
    baud_rate: int = 115200

    def summary(self) -> str:
        """Compact human-readable summary for logging."""
        port = self.port_name or "(none)"
        return (
            f"mode={ConnectionMode.parse(self.connection_mode).value} "
            f"profile={DmeProfile.parse(self.profile).value} port={port} "
            f"baud={self.baud_rate} channels={len(self.channels)}"
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Coherent read-only view of a session, taken under the store lock."""

    state: SessionState
    error_reason: Optional[str]
    total_bytes: int
    protocol_mode: str
    lines: Tuple[str, ...]
    samples: Tuple[DecodedSample, ...]
    latest_values: Mapping[str, float]
    last_decoded_timestamp_ms: Optional[int]
    started_at_ms: Optional[int]

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def is_logging(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def protocol_label(self) -> str:
        from ..remote.backend import protocol_mode_label

        return protocol_mode_label(self.protocol_mode)


@dataclass(frozen=True)
class SessionSummary:
    """Metadata describing a recorded session, used when saving a log."""

    profile: DmeProfile
    connection_mode: ConnectionMode
    parameter_keys: Tuple[ChannelKey, ...]
    sample_count: int
    total_bytes: int
    started_at_ms: int
    ended_at_ms: int

    @property
    def duration_ms(self) -> int:
        return max(0, self.ended_at_ms - self.started_at_ms)
