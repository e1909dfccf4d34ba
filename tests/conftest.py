from __future__ import annotations

from typing import List, Optional, Sequence

import pytest
from PySide6.QtCore import QCoreApplication

from dmelog.core.models import ConnectionMode, DtcRecord, PollUpdate, PortInfo


@pytest.fixture(scope="session")
def qapp() -> QCoreApplication:
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(["dmelog-tests"])
    return app


@pytest.fixture(autouse=True)
def _isolated_data_root(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DMELOG_DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.delenv("DMELOG_LOG_DIR", raising=False)
    monkeypatch.delenv("DMELOG_DEBUG", raising=False)


class FakeBackend:
    """Scripted acquisition backend: each poll pops the next queued response."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.responses: List[object] = []
        self.fail_start: Optional[Exception] = None
        self.fail_stop: Optional[Exception] = None
        self.ports: List[PortInfo] = []
        self.dtcs: List[DtcRecord] = []
        self.fail_commands: Optional[Exception] = None

    def queue(self, *responses: object) -> None:
        self.responses.extend(responses)

    def start(
        self,
        connection_mode: ConnectionMode,
        port_name: Optional[str],
        baud_rate: int,
        channel_keys: Sequence[str],
    ) -> None:
        self.calls.append(("start", connection_mode, port_name, baud_rate, list(channel_keys)))
        if self.fail_start is not None:
            raise self.fail_start

    def stop(self) -> None:
        self.calls.append(("stop",))
        if self.fail_stop is not None:
            raise self.fail_stop

    def poll(self, max_lines: int) -> PollUpdate:
        self.calls.append(("poll", max_lines))
        if not self.responses:
            return PollUpdate(protocol_mode="simulator")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def verify_port(self, port_name: str, baud_rate: int) -> None:
        self.calls.append(("verify_port", port_name, baud_rate))
        if self.fail_commands is not None:
            raise self.fail_commands

    def list_ports(self) -> List[PortInfo]:
        self.calls.append(("list_ports",))
        if self.fail_commands is not None:
            raise self.fail_commands
        return list(self.ports)

    def read_dtcs(self) -> List[DtcRecord]:
        self.calls.append(("read_dtcs",))
        if self.fail_commands is not None:
            raise self.fail_commands
        return list(self.dtcs)

    def clear_dtcs(self) -> None:
        self.calls.append(("clear_dtcs",))
        if self.fail_commands is not None:
            raise self.fail_commands
        self.dtcs = []

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()

