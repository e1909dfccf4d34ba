"""Chart preparation utilities (scale normalization and point building).

Modules here operate on plain mappings and NumPy arrays and stay free of Qt
and I/O, so they serve the CLI, tests, and any front end alike.
"""

from .chart import (
    TooltipRow,
    chart_points_from_samples,
    chart_points_from_table,
    default_selected_parameters,
    parameter_color,
    prepare_chart,
    tooltip_rows,
)
from .normalize import ScaleMode, channel_range, normalize_chart_data, raw_value_key

__all__ = [
    "ScaleMode",
    "TooltipRow",
    "channel_range",
    "chart_points_from_samples",
    "chart_points_from_table",
    "default_selected_parameters",
    "normalize_chart_data",
    "parameter_color",
    "prepare_chart",
    "raw_value_key",
    "tooltip_rows",
]
