from __future__ import annotations

import pytest

from dmelog.analysis.normalize import ScaleMode, channel_range, normalize_chart_data, raw_value_key


def test_shared_mode_returns_points_unchanged() -> None:
    points = [{"timeMs": 0, "engine-rpm": 800.0}, {"timeMs": 100, "engine-rpm": 900.0}]
    assert normalize_chart_data(points, ["engine-rpm"], ScaleMode.SHARED) is points


def test_per_parameter_mode_scales_each_channel_to_0_100() -> None:
    points = [
        {"timeMs": 0, "engine-rpm": 1000.0, "iat": 20.0},
        {"timeMs": 100, "engine-rpm": 3000.0, "iat": 40.0},
        {"timeMs": 200, "engine-rpm": 2000.0, "iat": 30.0},
    ]
    result = normalize_chart_data(points, ["engine-rpm", "iat"], "per_parameter")

    assert [p["engine-rpm"] for p in result] == pytest.approx([0.0, 100.0, 50.0])
    assert [p["iat"] for p in result] == pytest.approx([0.0, 100.0, 50.0])
    assert result[1][raw_value_key("engine-rpm")] == 3000.0
    assert result[2]["timeMs"] == 200
    # Inputs are left untouched.
    assert points[1]["engine-rpm"] == 3000.0
    assert raw_value_key("engine-rpm") not in points[1]


def test_constant_channel_maps_to_midpoint_and_keeps_raw() -> None:
    points = [{"boost": 10.0}, {"boost": 10.0}]
    assert channel_range(points, "boost") == pytest.approx((9.0, 11.0))

    result = normalize_chart_data(points, ["boost"], ScaleMode.PER_PARAMETER)
    assert result[0]["boost"] == pytest.approx(50.0)
    assert result[0][raw_value_key("boost")] == 10.0


def test_small_constant_channel_widens_by_one() -> None:
    assert channel_range([{"lambda": 0.5}], "lambda") == pytest.approx((-0.5, 1.5))
    assert channel_range([{"zero": 0.0}], "zero") == pytest.approx((-1.0, 1.0))


def test_channels_without_finite_values_are_left_alone() -> None:
    points = [{"iat": None, "rpm": 1.0}, {"iat": float("nan"), "rpm": 2.0}, {"rpm": 3.0}]
    assert channel_range(points, "iat") is None

    result = normalize_chart_data(points, ["iat", "rpm"], ScaleMode.PER_PARAMETER)
    assert result[0]["iat"] is None
    assert raw_value_key("iat") not in result[0]
    assert "iat" not in result[2]
    assert result[2]["rpm"] == pytest.approx(100.0)


def test_scale_mode_parse_accepts_aliases() -> None:
    assert ScaleMode.parse("shared") is ScaleMode.SHARED
    assert ScaleMode.parse("per-parameter") is ScaleMode.PER_PARAMETER
    assert ScaleMode.parse("normalized") is ScaleMode.PER_PARAMETER
    with pytest.raises(ValueError):
        ScaleMode.parse("log")
