"""Turn decoded tables and live samples into chart-ready points."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..core.models import DecodedSample
from ..dataio.csv_codec import CsvTable, is_rpm_header
from ..dataio.log_loader import table_from_samples
from .normalize import ScaleMode, normalize_chart_data, raw_value_key

ChartPoint = Dict[str, Any]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_FALLBACK_COLOR = "hsl(214 90% 62%)"
_GOLDEN_ANGLE = 137.508


@dataclass(frozen=True)
class TooltipRow:
    color: str
    label: str
    value: str


def _date_from_ms(time_ms: float) -> Optional[datetime]:
    """Wall-clock date for ``time_ms``; ``None`` outside the datetime range."""
    try:
        return _EPOCH + timedelta(milliseconds=float(time_ms))
    except (OverflowError, ValueError):
        return None


def chart_points_from_table(table: CsvTable) -> List[ChartPoint]:
    """One point per row: ``date``, ``index``, ``timeMs`` plus numeric cells."""
    points: List[ChartPoint] = []
    for index, (row, time_ms) in enumerate(zip(table.rows, table.times_ms)):
        point: ChartPoint = {"date": _date_from_ms(time_ms), "index": index, "timeMs": time_ms}
        for header, cell in row.items():
            if isinstance(cell, float):
                point[header] = cell
        points.append(point)
    return points


def chart_points_from_samples(samples: Sequence[DecodedSample]) -> List[ChartPoint]:
    table = table_from_samples(samples)
    if table is None:
        return []
    return chart_points_from_table(table)


def default_selected_parameters(headers: Sequence[str]) -> List[str]:
    """Every RPM channel if there is one, otherwise the first channel."""
    rpm = [header for header in headers if is_rpm_header(header)]
    if rpm:
        return rpm
    return [headers[0]] if headers else []


def parameter_color(parameter: str, numeric_headers: Sequence[str]) -> str:
    """Stable per-channel colour: golden-angle hue steps by header position."""
    try:
        index = list(numeric_headers).index(parameter)
    except ValueError:
        return _FALLBACK_COLOR
    hue = (index * _GOLDEN_ANGLE) % 360
    return f"hsl({hue:g} 84% 62%)"


def selected_numeric_parameters(table: CsvTable, selected: Iterable[str]) -> List[str]:
    """Selected channels that the table can actually chart, in table order."""
    wanted = set(selected)
    return [header for header in table.numeric_headers if header in wanted]


def prepare_chart(
    table: CsvTable,
    selected: Iterable[str],
    mode: ScaleMode | str = ScaleMode.PER_PARAMETER,
) -> List[Mapping[str, Any]]:
    parameters = selected_numeric_parameters(table, selected)
    return list(normalize_chart_data(chart_points_from_table(table), parameters, mode))


def tooltip_rows(
    point: Mapping[str, Any],
    parameters: Sequence[str],
    numeric_headers: Sequence[str],
) -> List[TooltipRow]:
    """
    Tooltip lines for ``point``, showing true units where available.

    The raw value stored by per-parameter normalization wins over the
    normalized one; channels with neither are skipped.
    """
    rows: List[TooltipRow] = []
    for parameter in parameters:
        resolved = None
        for candidate in (point.get(raw_value_key(parameter)), point.get(parameter)):
            if isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
                if math.isfinite(candidate):
                    resolved = float(candidate)
                    break
        if resolved is None:
            continue
        rows.append(
            TooltipRow(
                color=parameter_color(parameter, numeric_headers),
                label=parameter,
                value=f"{resolved:.3f}",
            )
        )
    return rows


__all__ = [
    "ChartPoint",
    "TooltipRow",
    "chart_points_from_samples",
    "chart_points_from_table",
    "default_selected_parameters",
    "parameter_color",
    "prepare_chart",
    "selected_numeric_parameters",
    "tooltip_rows",
]
