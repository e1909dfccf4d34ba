"""Core session engine: bounded buffers, shared models, and the sample store.

The Qt-driven :class:`~dmelog.core.session_controller.SessionController`
lives in its own module (``dmelog.core.session_controller``) because it
pulls in PySide6 and the backend contracts; import it from there.
"""

from .models import (
    CommandResult,
    ConnectionMode,
    DecodedSample,
    DtcRecord,
    ExportResult,
    PollUpdate,
    PortInfo,
    SessionConfig,
    SessionSnapshot,
    SessionState,
    SessionSummary,
)
from .ringbuffer import RingBuffer
from .sample_store import MAX_LOG_LINES, MAX_SAMPLES, SampleStore

__all__ = [
    "RingBuffer",
    "SampleStore",
    "MAX_LOG_LINES",
    "MAX_SAMPLES",
    "CommandResult",
    "ConnectionMode",
    "DecodedSample",
    "DtcRecord",
    "ExportResult",
    "PollUpdate",
    "PortInfo",
    "SessionConfig",
    "SessionSnapshot",
    "SessionState",
    "SessionSummary",
]
