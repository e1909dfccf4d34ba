"""Shared vs. per-parameter scaling of chart points."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

RAW_VALUE_KEY_PREFIX = "__raw__"
NORMALIZED_SPAN = 100.0


class ScaleMode(str, Enum):
    SHARED = "shared"
    PER_PARAMETER = "per_parameter"

    @classmethod
    def parse(cls, value: "ScaleMode | str") -> "ScaleMode":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("-", "_")
        if text in {"per_parameter", "perparameter", "normalized"}:
            return cls.PER_PARAMETER
        return cls(text)


def raw_value_key(parameter: str) -> str:
    """Key under which a normalized point keeps the original value."""
    return f"{RAW_VALUE_KEY_PREFIX}{parameter}"


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.floating, np.integer)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def channel_range(points: Sequence[Mapping[str, Any]], parameter: str) -> Optional[Tuple[float, float]]:
    """
    Return the ``(min, max)`` used to scale ``parameter``.

    Only finite numbers count. A constant channel is widened to a band of
    +/-10% around its value (+/-1 when the value is smaller than 1 in
    magnitude) so the scale never collapses. ``None`` when the channel has no
    finite observations.
    """
    values = np.fromiter(
        (v for v in (_finite(point.get(parameter)) for point in points) if v is not None),
        dtype=np.float64,
    )
    if values.size == 0:
        return None
    low = float(np.min(values))
    high = float(np.max(values))
    if low == high:
        delta = 1.0 if abs(low) < 1.0 else abs(low) * 0.1
        return low - delta, high + delta
    return low, high


def normalize_chart_data(
    points: Sequence[Mapping[str, Any]],
    parameters: Sequence[str],
    mode: ScaleMode | str = ScaleMode.PER_PARAMETER,
) -> Sequence[Mapping[str, Any]]:
    """
    Prepare ``points`` for a chart showing ``parameters``.

    In shared mode the points are returned as they are. In per-parameter
    mode each selected channel is mapped onto 0..100 using its own range and
    the original value is kept under :func:`raw_value_key`. Input points are
    never mutated.
    """
    scale = ScaleMode.parse(mode)
    if scale is ScaleMode.SHARED or not parameters:
        return points

    ranges: Dict[str, Tuple[float, float]] = {}
    for parameter in parameters:
        bounds = channel_range(points, parameter)
        if bounds is not None:
            ranges[parameter] = bounds

    normalized: List[Dict[str, Any]] = []
    for point in points:
        next_point = dict(point)
        for parameter, (low, high) in ranges.items():
            raw = _finite(point.get(parameter))
            if raw is None:
                continue
            next_point[raw_value_key(parameter)] = raw
            next_point[parameter] = ((raw - low) / (high - low)) * NORMALIZED_SPAN
        normalized.append(next_point)
    return normalized


__all__ = [
    "RAW_VALUE_KEY_PREFIX",
    "ScaleMode",
    "channel_range",
    "normalize_chart_data",
    "raw_value_key",
]
