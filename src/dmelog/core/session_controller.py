"""Session state machine that polls the acquisition backend."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from PySide6.QtCore import QObject, QTimer, Qt, Signal

from ..catalog.parameters import ChannelKey, DmeProfile, is_elm_supported, validate_channel_key
from ..config.runtime import DatalogConfig
from ..dataio.csv_codec import EncodedCsv, encode_samples
from ..dataio.csv_writer import write_csv
from ..dataio.file_paths import export_path
from ..errors import ExportPreconditionError, UnknownChannelError
from ..remote.backend import (
    SIMULATOR_PORTS,
    AcquisitionBackend,
    PersistenceBackend,
    filter_kdcan_ports,
    protocol_mode_label,
)
from ..tools.debug import time_block
from .models import (
    CommandResult,
    ConnectionMode,
    DecodedSample,
    ExportResult,
    PollUpdate,
    SessionConfig,
    SessionSnapshot,
    SessionState,
    SessionSummary,
)
from .sample_store import SampleStore

logger = logging.getLogger(__name__)

POLL_FAILED_MESSAGE = "Failed to poll datalog stream."


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionController(QObject):
    """
    Non-visual controller owning one datalog session at a time.

    ``start`` opens a session on the backend and arms a ``QTimer`` that
    calls :meth:`poll_once` every ``poll_interval_ms``. Each poll response is
    applied to the :class:`SampleStore` in arrival order. A response carrying
    ``last_error``, or a poll that raises, ends the session; there is no
    retry. ``stop`` cancels the timer before anything else, and responses
    that arrive once the session has left ``ACTIVE`` are discarded.

    Commands return :class:`CommandResult`/:class:`ExportResult` values
    instead of raising on backend failures; user-facing failures are also
    emitted on ``error_reported``.
    """

    state_changed = Signal(object)
    update_applied = Signal(object)
    error_reported = Signal(str)
    session_started = Signal()
    session_stopped = Signal()

    def __init__(
        self,
        backend: AcquisitionBackend,
        config: DatalogConfig | None = None,
        *,
        clock: Callable[[], int] = _now_ms,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._backend = backend
        self._config = (config or DatalogConfig()).sanitized()
        self._clock = clock
        self._store = SampleStore(
            max_lines=self._config.max_log_lines,
            max_samples=self._config.max_samples,
        )

        self._state = SessionState.IDLE
        self._error_reason: Optional[str] = None
        self._total_bytes = 0
        self._protocol_mode = "stopped"
        self._last_decoded_timestamp_ms: Optional[int] = None
        self._started_at_ms: Optional[int] = None
        self._session_config: Optional[SessionConfig] = None
        self._channels: List[ChannelKey] = []

        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.PreciseTimer)
        self._timer.setInterval(self._config.poll_interval_ms)
        self._timer.timeout.connect(self._on_poll_timer)

    # --------------------------------------------------------------- properties
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error_reason(self) -> Optional[str]:
        return self._error_reason

    @property
    def config(self) -> DatalogConfig:
        return self._config

    @property
    def store(self) -> SampleStore:
        return self._store

    @property
    def is_logging(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    @property
    def protocol_mode(self) -> str:
        return self._protocol_mode

    @property
    def protocol_label(self) -> str:
        return protocol_mode_label(self._protocol_mode)

    @property
    def last_decoded_timestamp_ms(self) -> Optional[int]:
        return self._last_decoded_timestamp_ms

    @property
    def latest_values(self) -> Mapping[str, float]:
        return self._store.latest_values()

    @property
    def polling_active(self) -> bool:
        return self._timer.isActive()

    def set_poll_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(max(10, int(interval_ms)))

    # --------------------------------------------------------------- helpers
    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state
        self.state_changed.emit(state)

    def report_error(self, message: str) -> None:
        logger.error("SessionController error: %s", message)
        self.error_reported.emit(str(message))

    def _fail_session(self, reason: str) -> None:
        self._error_reason = reason
        self._set_state(SessionState.ERROR)
        self.report_error(reason)
        self.stop()

    def _validate_channels(self, profile: DmeProfile, keys: List[str]) -> List[ChannelKey]:
        channels: List[ChannelKey] = []
        for key in keys:
            channel = validate_channel_key(profile, key)
            if channel not in channels:
                channels.append(channel)
        return channels

    # --------------------------------------------------------------- start/stop
    def start(self, session: SessionConfig) -> CommandResult:
        """Open a session; valid only while idle."""
        if self._state is not SessionState.IDLE:
            return CommandResult.failure("A datalog session is already running.")

        try:
            profile = DmeProfile.parse(session.profile)
            mode = ConnectionMode.parse(session.connection_mode)
            channels = self._validate_channels(profile, list(session.channels))
        except (UnknownChannelError, ValueError) as exc:
            return CommandResult.failure(str(exc))
        if not channels:
            return CommandResult.failure("Select at least one parameter to log.")
        port_name = (session.port_name or "").strip() or None
        if mode is ConnectionMode.HARDWARE and port_name is None:
            return CommandResult.failure("Port name is required for hardware mode.")
        if mode is ConnectionMode.HARDWARE:
            bmw_only = [key for key in channels if not is_elm_supported(key)]
            if bmw_only:
                logger.warning(
                    "Channels without a standard OBD PID need the BMW channel table: %s",
                    ", ".join(bmw_only),
                )

        with self._store.lock:
            self._store.reset()
            self._total_bytes = 0
            self._protocol_mode = "starting"
            self._last_decoded_timestamp_ms = None
            self._error_reason = None
            self._session_config = session
            self._channels = channels
            self._started_at_ms = self._clock()
        self._set_state(SessionState.STARTING)
        logger.info("Starting datalog session: %s", session.summary())

        try:
            self._backend.start(
                mode,
                port_name if mode is ConnectionMode.HARDWARE else None,
                int(session.baud_rate or self._config.baud_rate),
                list(channels),
            )
        except Exception as exc:
            logger.error("Backend rejected session start", exc_info=True)
            self._protocol_mode = "stopped"
            self._set_state(SessionState.IDLE)
            message = f"Failed to start datalogging session: {exc}"
            self.report_error(message)
            return CommandResult.failure(message)

        self._set_state(SessionState.ACTIVE)
        self._timer.start()
        self.session_started.emit()
        return CommandResult.success()

    def stop(self) -> CommandResult:
        """End the session. Backend stop is best-effort; idle is a no-op."""
        if self._state is SessionState.IDLE:
            return CommandResult.success()

        self._timer.stop()
        self._set_state(SessionState.STOPPING)
        try:
            self._backend.stop()
        except Exception:
            logger.warning("Backend stop failed; continuing local shutdown", exc_info=True)
        with self._store.lock:
            self._protocol_mode = "stopped"
        self._set_state(SessionState.IDLE)
        logger.info(
            "Datalog session stopped (%d samples, %d bytes)",
            self._store.sample_count(),
            self._total_bytes,
        )
        self.session_stopped.emit()
        return CommandResult.success()

    def shutdown(self) -> None:
        """Unmount hook: make sure no poll runs after the owner goes away."""
        self.stop()

    # --------------------------------------------------------------- polling
    def _on_poll_timer(self) -> None:
        self.poll_once()

    def poll_once(self) -> CommandResult:
        """Poll the backend once and apply the response."""
        if self._state is not SessionState.ACTIVE:
            return CommandResult.failure("No active datalog session.")

        try:
            update = self._backend.poll(self._config.poll_max_lines)
        except Exception:
            logger.error("Datalog poll failed", exc_info=True)
            if self._state is SessionState.ACTIVE:
                self._fail_session(POLL_FAILED_MESSAGE)
            return CommandResult.failure(POLL_FAILED_MESSAGE)

        if self._state is not SessionState.ACTIVE:
            logger.warning("Dropping poll response received after session left ACTIVE")
            return CommandResult.failure("No active datalog session.")

        self.apply_update(update)
        if update.last_error:
            # A slot on update_applied may already have stopped the session.
            if self._state is SessionState.ACTIVE:
                self._fail_session(update.last_error)
            else:
                logger.warning("Backend error after session ended: %s", update.last_error)
            return CommandResult.failure(update.last_error)
        return CommandResult.success(update)

    def apply_update(self, update: PollUpdate) -> None:
        """Append one poll response to the store (arrival order is kept)."""
        if self._state is not SessionState.ACTIVE:
            logger.warning("Ignoring poll update while %s", self._state.value)
            return
        with time_block("apply_update"):
            with self._store.lock:
                self._total_bytes = int(update.total_bytes)
                self._protocol_mode = update.protocol_mode
                if update.lines:
                    self._store.append_lines(update.lines)
                if update.decoded_samples:
                    self._store.append_samples(update.decoded_samples)
                    self._last_decoded_timestamp_ms = int(update.decoded_samples[-1].timestamp_ms)
        self.update_applied.emit(update)

    # --------------------------------------------------------------- views
    def samples(self) -> List[DecodedSample]:
        return self._store.samples()

    def lines(self) -> List[str]:
        return self._store.lines()

    def snapshot(self) -> SessionSnapshot:
        with self._store.lock:
            latest = self._store.latest_sample()
            return SessionSnapshot(
                state=self._state,
                error_reason=self._error_reason,
                total_bytes=self._total_bytes,
                protocol_mode=self._protocol_mode,
                lines=tuple(self._store.lines()),
                samples=tuple(self._store.samples()),
                latest_values=dict(latest.values) if latest is not None else {},
                last_decoded_timestamp_ms=self._last_decoded_timestamp_ms,
                started_at_ms=self._started_at_ms,
            )

    def session_summary(self) -> SessionSummary:
        session = self._session_config
        ended = self._last_decoded_timestamp_ms
        if ended is None:
            ended = self._clock()
        started = self._started_at_ms if self._started_at_ms is not None else ended
        return SessionSummary(
            profile=DmeProfile.parse(session.profile) if session else DmeProfile.MEVD17_2,
            connection_mode=(
                ConnectionMode.parse(session.connection_mode) if session else ConnectionMode.SIMULATOR
            ),
            parameter_keys=tuple(self._channels),
            sample_count=self._store.sample_count(),
            total_bytes=self._total_bytes,
            started_at_ms=int(started),
            ended_at_ms=int(ended),
        )

    # --------------------------------------------------------------- export/save
    def encoded_csv(self) -> EncodedCsv:
        """Encode recorded samples; raises ExportPreconditionError when empty."""
        return encode_samples(self._store.samples())

    def export_csv(
        self,
        directory: Path | None = None,
        now: datetime | None = None,
    ) -> ExportResult:
        """
        Write recorded samples to ``<product>_datalog_<timestamp>.csv``.

        Nothing is written when there is nothing to export; the reason is
        returned for display as status text.
        """
        try:
            encoded = self.encoded_csv()
        except ExportPreconditionError as exc:
            logger.info("Export skipped: %s", exc)
            return ExportResult(ok=False, error=str(exc))

        target = export_path(self._config.product_name, now, base=directory)
        try:
            write_csv(target, encoded)
        except OSError as exc:
            message = f"Failed to write CSV export: {exc}"
            self.report_error(message)
            return ExportResult(ok=False, error=message)
        return ExportResult(ok=True, path=target, sample_count=encoded.sample_count)

    def save_log(
        self,
        store: PersistenceBackend,
        now: datetime | None = None,
    ) -> ExportResult:
        """Upload the recorded session to ``store`` with its metadata."""
        from ..remote.log_store import save_session_log

        try:
            encoded = self.encoded_csv()
        except ExportPreconditionError as exc:
            logger.info("Save skipped: %s", exc)
            return ExportResult(ok=False, error=str(exc))

        try:
            log_id = save_session_log(
                store,
                encoded,
                self.session_summary(),
                product=self._config.product_name,
                now=now,
            )
        except Exception as exc:
            message = str(exc) or "Failed to save log."
            self.report_error(message)
            return ExportResult(ok=False, error=message)
        logger.info("Saved session as log %s", log_id)
        return ExportResult(ok=True, log_id=log_id, sample_count=encoded.sample_count)

    # --------------------------------------------------------------- ports/DTCs
    def list_ports(self, connection_mode: ConnectionMode | str | None = None) -> CommandResult:
        mode = ConnectionMode.parse(connection_mode or self._config.connection_mode)
        if mode is ConnectionMode.SIMULATOR:
            return CommandResult.success(list(SIMULATOR_PORTS))
        try:
            ports = self._backend.list_ports()
        except Exception as exc:
            message = f"Failed to load serial ports: {exc}"
            self.report_error(message)
            return CommandResult.failure(message)
        return CommandResult.success(filter_kdcan_ports(ports))

    def verify_port(
        self,
        port_name: str,
        baud_rate: int | None = None,
        connection_mode: ConnectionMode | str | None = None,
    ) -> CommandResult:
        mode = ConnectionMode.parse(connection_mode or self._config.connection_mode)
        if mode is ConnectionMode.SIMULATOR:
            return CommandResult.success()
        try:
            self._backend.verify_port(port_name, int(baud_rate or self._config.baud_rate))
        except Exception as exc:
            message = f"Failed to open selected cable port: {exc}"
            self.report_error(message)
            return CommandResult.failure(message)
        return CommandResult.success()

    def read_dtcs(self) -> CommandResult:
        try:
            records = self._backend.read_dtcs()
        except Exception as exc:
            message = f"Failed to read DTCs: {exc}"
            self.report_error(message)
            return CommandResult.failure(message)
        return CommandResult.success(list(records))

    def clear_dtcs(self) -> CommandResult:
        try:
            self._backend.clear_dtcs()
        except Exception as exc:
            message = f"Failed to clear DTCs: {exc}"
            self.report_error(message)
            return CommandResult.failure(message)
        return CommandResult.success()
