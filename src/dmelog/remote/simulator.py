"""In-process acquisition backend that synthesizes N55-like engine data.

The simulator mirrors what the hardware backend does: a producer thread
fills pending line/sample queues under a lock, and :meth:`poll` drains them.
It lets the whole engine run (and be tested) without a cable.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from ..core.models import ConnectionMode, DecodedSample, DtcRecord, PollUpdate, PortInfo
from ..errors import BackendError
from .backend import SIMULATOR_PORTS

logger = logging.getLogger(__name__)

MAX_PENDING_LINES = 1500
MAX_PENDING_SAMPLES = 500

_DEMO_DTCS = (
    DtcRecord(
        code="2C57",
        description="Charge-air pressure control: plausibility",
        severity="medium",
        status="active",
        timestamp="2026-02-17T15:10:00Z",
    ),
    DtcRecord(
        code="2AAF",
        description="Fuel pump plausibility",
        severity="high",
        status="stored",
        timestamp="2026-02-14T22:41:00Z",
    ),
    DtcRecord(
        code="2E8B",
        description="Intelligent battery sensor communication",
        severity="low",
        status="pending",
        timestamp="2026-02-10T09:27:00Z",
    ),
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def simulated_values(channel_keys: Sequence[str], sample_index: int) -> Dict[str, float]:
    """
    Deterministic readings for ``channel_keys`` at ``sample_index``.

    Channels the simulator has no model for are omitted; if none of the
    requested channels are modelled, engine RPM is reported instead.
    """
    i = int(sample_index)
    rpm = float(max(650, 750 + ((i % 220) - 110) * 8))
    map_kpa = 112.0 + ((i % 60) - 30) * 0.7
    boost = (map_kpa - 100.0) * 0.145038
    lam = 0.84 + ((i % 30) - 15) * 0.0015
    model = {
        "engine-rpm": rpm,
        "throttle-position": float(min(i % 100, 92)),
        "coolant-temp": 88.0 + ((i % 12) - 6) * 0.15,
        "iat": 38.0 + ((i % 20) - 10) * 0.2,
        "vehicle-speed": float(i % 145),
        "timing-avg": 8.0 + ((i % 16) - 8) * 0.25,
        "boost-actual": boost,
        "boost-target": boost,
        "afr-bank1": lam,
        "afr-bank2": lam,
        "oil-temp": 95.0 + ((i % 16) - 8) * 0.2,
    }
    values = {key: model[key] for key in channel_keys if key in model}
    if not values:
        values["engine-rpm"] = rpm
    return values


class SimulatorBackend:
    """
    :class:`~dmelog.remote.backend.AcquisitionBackend` backed by a thread.

    ``interval_s`` is the producer period. Pass ``threaded=False`` to drive
    production manually via :meth:`produce` (handy for deterministic tests).
    """

    def __init__(
        self,
        *,
        interval_s: float = 0.11,
        threaded: bool = True,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._interval_s = max(0.001, float(interval_s))
        self._threaded = threaded
        self._clock = clock
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._keys: List[str] = []
        self._sample_index = 0
        self._pending_lines: List[str] = []
        self._pending_samples: List[DecodedSample] = []
        self._total_bytes = 0
        self._protocol_mode = "stopped"
        self._dtcs: List[DtcRecord] = list(_DEMO_DTCS)

    # ------------------------------------------------------------------ session
    def start(
        self,
        connection_mode: ConnectionMode,
        port_name: Optional[str],
        baud_rate: int,
        channel_keys: Sequence[str],
    ) -> None:
        if ConnectionMode.parse(connection_mode) is not ConnectionMode.SIMULATOR:
            raise BackendError("Hardware mode requires a cable backend; the simulator only supports simulator mode.")
        self.stop()

        with self._lock:
            self._keys = list(channel_keys) or ["engine-rpm"]
            self._sample_index = 0
            self._pending_lines = []
            self._pending_samples = []
            self._total_bytes = 0
            self._protocol_mode = "simulator"
            self._running = True

        if self._threaded:
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                name="DmelogSimulator",
                daemon=True,
            )
            self._thread.start()
        logger.info("Simulator started with %d channels", len(self._keys))

    def stop(self) -> None:
        thread = self._thread
        self._stop_event.set()
        if thread is not None:
            thread.join(timeout=2.0)
        self._thread = None
        with self._lock:
            was_running = self._running
            self._running = False
        if was_running:
            logger.info("Simulator stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.produce()
            self._stop_event.wait(self._interval_s)

    def produce(self) -> DecodedSample:
        """Generate one sample plus its trace line and queue both."""
        with self._lock:
            self._sample_index += 1
            values = simulated_values(self._keys, self._sample_index)
            sample = DecodedSample(timestamp_ms=self._clock(), values=values)
            rendered = ", ".join(f"{key}={value:.3f}" for key, value in values.items())
            line = f"[{sample.timestamp_ms}] SIM {{{rendered}}}"
            self._total_bytes += len(line.encode("utf-8"))
            self._pending_lines.append(line)
            if len(self._pending_lines) > MAX_PENDING_LINES:
                del self._pending_lines[: len(self._pending_lines) - MAX_PENDING_LINES]
            self._pending_samples.append(sample)
            if len(self._pending_samples) > MAX_PENDING_SAMPLES:
                del self._pending_samples[: len(self._pending_samples) - MAX_PENDING_SAMPLES]
        return sample

    def poll(self, max_lines: int) -> PollUpdate:
        limit = max(1, int(max_lines))
        with self._lock:
            if not self._running:
                return PollUpdate(is_logging=False, protocol_mode="stopped")
            lines, self._pending_lines = self._pending_lines, []
            samples, self._pending_samples = self._pending_samples, []
            return PollUpdate(
                total_bytes=self._total_bytes,
                protocol_mode=self._protocol_mode,
                lines=tuple(lines[-limit:]),
                decoded_samples=tuple(samples),
                last_error=None,
                is_logging=True,
            )

    # ------------------------------------------------------------------ ports / DTCs
    def verify_port(self, port_name: str, baud_rate: int) -> None:
        if not any(port.port_name == port_name for port in SIMULATOR_PORTS):
            raise BackendError(f"Unable to open serial port: {port_name} not found")

    def list_ports(self) -> List[PortInfo]:
        return list(SIMULATOR_PORTS)

    def read_dtcs(self) -> List[DtcRecord]:
        with self._lock:
            return list(self._dtcs)

    def clear_dtcs(self) -> None:
        with self._lock:
            self._dtcs = []
