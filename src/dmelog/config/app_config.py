"""Default application paths."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DATA_ROOT = Path("~/.dmelog")


@dataclass
class AppPaths:
    """
    Commonly used paths for exports, saved logs, and application logs.

    ``DMELOG_DATA_ROOT`` and ``DMELOG_LOG_DIR`` override the default
    ``~/.dmelog`` tree so tests and packaged installs can store files
    elsewhere. An explicit ``data_root`` argument wins over both.
    """

    data_root: Path | None = None
    exports: Path = field(init=False)
    saved_logs: Path = field(init=False)
    logs: Path = field(init=False)
    config_file: Path = field(init=False)

    def __post_init__(self) -> None:
        if self.data_root is None:
            env_data_root = os.environ.get("DMELOG_DATA_ROOT")
            if env_data_root:
                self.data_root = Path(env_data_root).expanduser()
            else:
                self.data_root = DEFAULT_DATA_ROOT.expanduser()
        else:
            self.data_root = Path(self.data_root).expanduser()

        env_logs_dir = os.environ.get("DMELOG_LOG_DIR")
        if env_logs_dir:
            self.logs = Path(env_logs_dir).expanduser()
        else:
            self.logs = self.data_root / "logs"

        self.exports = self.data_root / "exports"
        self.saved_logs = self.data_root / "saved"
        self.config_file = self.data_root / "dmelog.yaml"

    def ensure(self) -> None:
        """Create directories if they do not yet exist."""
        for path in (self.data_root, self.exports, self.saved_logs, self.logs):
            path.mkdir(parents=True, exist_ok=True)
