from __future__ import annotations

from datetime import datetime, timezone

import pytest

from dmelog.analysis.chart import (
    chart_points_from_samples,
    chart_points_from_table,
    default_selected_parameters,
    parameter_color,
    prepare_chart,
    selected_numeric_parameters,
    tooltip_rows,
)
from dmelog.analysis.normalize import ScaleMode, raw_value_key
from dmelog.core.models import DecodedSample
from dmelog.dataio.csv_codec import decode_csv
from dmelog.dataio.log_loader import load_csv, merge_tables, table_from_samples


CSV_TEXT = "timestamp_ms,iat,engine-rpm\n1000,30,800\n1100,31,1600\n1200,,2400\n"


def test_chart_points_carry_time_index_and_numeric_cells() -> None:
    table = decode_csv(CSV_TEXT)
    points = chart_points_from_table(table)

    assert len(points) == 3
    assert points[0]["index"] == 0
    assert points[0]["timeMs"] == 1000.0
    assert points[0]["date"] == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
    assert points[1]["engine-rpm"] == 1600.0
    assert "iat" not in points[2]


def test_out_of_range_times_chart_without_a_date() -> None:
    # Microsecond epochs overflow a millisecond datetime.
    table = decode_csv("time (ms),iat\n1700000000000000,20\n1700000000100000,21\n")
    points = prepare_chart(table, ["iat"])

    assert [point["date"] for point in points] == [None, None]
    assert [point["timeMs"] for point in points] == [1.7e15, 1.7000000001e15]
    assert points[0]["iat"] == 0.0
    assert points[1][raw_value_key("iat")] == 21.0


def test_default_selection_prefers_rpm_channels() -> None:
    assert default_selected_parameters(["iat", "engine-rpm", "Turbo RPM"]) == ["engine-rpm", "Turbo RPM"]
    assert default_selected_parameters(["iat", "boost"]) == ["iat"]
    assert default_selected_parameters([]) == []


def test_parameter_color_steps_by_golden_angle() -> None:
    headers = ["engine-rpm", "iat", "boost"]
    assert parameter_color("engine-rpm", headers) == "hsl(0 84% 62%)"
    assert parameter_color("iat", headers) == "hsl(137.508 84% 62%)"
    assert parameter_color("missing", headers) == "hsl(214 90% 62%)"


def test_prepare_chart_and_tooltips_show_raw_values() -> None:
    table = decode_csv(CSV_TEXT)
    assert selected_numeric_parameters(table, ["iat", "engine-rpm", "nope"]) == ["engine-rpm", "iat"]

    points = prepare_chart(table, ["engine-rpm"], ScaleMode.PER_PARAMETER)
    assert points[1]["engine-rpm"] == pytest.approx(50.0)
    assert points[1][raw_value_key("engine-rpm")] == 1600.0

    rows = tooltip_rows(points[1], ["engine-rpm", "iat"], table.numeric_headers)
    assert [(row.label, row.value) for row in rows] == [("engine-rpm", "1600.000"), ("iat", "31.000")]
    assert rows[0].color == "hsl(0 84% 62%)"

    # The third row has no iat reading, so it has no tooltip line for it.
    rows = tooltip_rows(points[2], ["engine-rpm", "iat"], table.numeric_headers)
    assert [row.label for row in rows] == ["engine-rpm"]


def test_live_samples_become_chart_points_without_time_pseudo_channel() -> None:
    samples = [
        DecodedSample(timestamp_ms=500, values={"time-ms": 500.0, "iat": 25.0}),
        DecodedSample(timestamp_ms=610, values={"engine-rpm": 900.0, "iat": 25.5}),
    ]
    table = table_from_samples(samples)
    assert table is not None
    assert table.file_name == "Current Session"
    assert table.numeric_headers == ["engine-rpm", "iat"]
    assert table_from_samples([]) is None

    points = chart_points_from_samples(samples)
    assert [p["timeMs"] for p in points] == [500.0, 610.0]
    assert "time-ms" not in points[0]
    assert chart_points_from_samples([]) == []


def test_load_and_merge_csv_files(tmp_path) -> None:
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    first.write_text("\ufefftimestamp_ms,iat\n0,20\n100,21\n", encoding="utf-8")
    second.write_text("timestamp_ms;engine-rpm\n200;900\n", encoding="utf-8")

    table_a = load_csv(first)
    assert table_a.file_name == "a.csv"
    assert table_a.headers == ["timestamp_ms", "iat"]

    merged = merge_tables([table_a, load_csv(second)], file_name="both")
    assert merged.row_count == 3
    assert merged.times_ms == [0.0, 100.0, 200.0]
    assert merged.numeric_headers == ["engine-rpm", "iat"]
    assert merged.value(2, "engine-rpm") == 900.0

    with pytest.raises(ValueError):
        merge_tables([])
