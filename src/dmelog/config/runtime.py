"""Runtime configuration for datalog sessions, exports, and charting."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from ..catalog.parameters import DmeProfile


@dataclass(slots=True)
class DatalogConfig:
    """
    Tuning knobs for polling, buffering, and export naming.

    The poll interval and per-poll line cap default to the values the desktop
    app has always used (300 ms / 300 lines); neither is load-bearing, so both
    are exposed here instead of being hard-coded in the controller.
    """

    poll_interval_ms: int = 300
    poll_max_lines: int = 300
    max_log_lines: int = 1000
    max_samples: int = 20_000
    baud_rate: int = 115200

    product_name: str = "hofwerks"
    profile: str = DmeProfile.MEVD17_2.value
    connection_mode: str = "simulator"
    scale_mode: str = "per_parameter"

    simulator_interval_ms: int = 110

    def sanitized(self) -> DatalogConfig:
        """Return a copy with limits clamped to usable ranges."""
        product = str(self.product_name or "").strip() or "hofwerks"
        mode = str(self.connection_mode or "").strip().lower()
        if mode not in {"simulator", "hardware"}:
            mode = "simulator"
        scale = str(self.scale_mode or "").strip().lower()
        if scale not in {"shared", "per_parameter"}:
            scale = "per_parameter"
        try:
            profile = DmeProfile.parse(self.profile).value
        except ValueError:
            profile = DmeProfile.MEVD17_2.value
        return DatalogConfig(
            poll_interval_ms=max(10, int(self.poll_interval_ms)),
            poll_max_lines=max(1, int(self.poll_max_lines)),
            max_log_lines=max(1, int(self.max_log_lines)),
            max_samples=max(1, int(self.max_samples)),
            baud_rate=max(1, int(self.baud_rate)),
            product_name=product,
            profile=profile,
            connection_mode=mode,
            scale_mode=scale,
            simulator_interval_ms=max(1, int(self.simulator_interval_ms)),
        )


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`DatalogConfig`."""
    return {f.name for f in fields(DatalogConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten a top-level ``datalog:`` block into the root mapping."""
    if "datalog" in data and isinstance(data["datalog"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "datalog":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> DatalogConfig:
    """Build :class:`DatalogConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return DatalogConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return DatalogConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> DatalogConfig:
    """
    Load configuration from a YAML file at ``path``.

    Missing files fall back to default :class:`DatalogConfig`.
    """
    if path is None:
        return DatalogConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return DatalogConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


def save_config(path: str | Path, config: DatalogConfig) -> None:
    """Write ``config`` under a ``datalog:`` block, creating parent dirs."""
    cfg_path = Path(path)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"datalog": {f.name: getattr(config, f.name) for f in fields(DatalogConfig)}}
    with cfg_path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(payload, fh, default_flow_style=False, sort_keys=False)


__all__ = ["DatalogConfig", "config_from_mapping", "load_config", "save_config"]
