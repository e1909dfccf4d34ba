from __future__ import annotations

import pytest

from dmelog.catalog import (
    DmeProfile,
    ParameterSelection,
    available_keys,
    default_keys_for,
    find_parameter,
    is_elm_supported,
    parameters_for,
    validate_channel_key,
)
from dmelog.errors import UnknownChannelError


def test_catalog_sizes_and_profile_differences() -> None:
    assert len(parameters_for(DmeProfile.MEVD17_2)) == 21
    assert len(parameters_for("MEVD17.2.G")) == 21
    assert len(parameters_for("msd80/81")) == 22

    g_keys = set(available_keys(DmeProfile.MEVD17_2_G))
    assert {"iat", "oil-temp", "coolant-temp"}.isdisjoint(g_keys)
    msd_keys = set(available_keys(DmeProfile.MSD80_81))
    assert {"boost-target", "map-kpa"}.isdisjoint(msd_keys)

    rpm = find_parameter(DmeProfile.MEVD17_2, "engine-rpm")
    assert rpm is not None
    assert rpm.label == "Engine RPM"
    assert rpm.unit == "rpm"


def test_profile_parse_accepts_names_and_values() -> None:
    assert DmeProfile.parse("MEVD17_2_G") is DmeProfile.MEVD17_2_G
    assert DmeProfile.parse("mevd17.2") is DmeProfile.MEVD17_2
    with pytest.raises(ValueError):
        DmeProfile.parse("MSV70")


def test_validate_channel_key_rejects_keys_outside_profile() -> None:
    assert validate_channel_key(DmeProfile.MEVD17_2, "iat") == "iat"
    with pytest.raises(UnknownChannelError) as excinfo:
        validate_channel_key(DmeProfile.MEVD17_2_G, "iat")
    assert isinstance(excinfo.value, KeyError)
    assert "MEVD17.2.G" in str(excinfo.value)


def test_default_keys_are_filtered_to_profile() -> None:
    defaults = default_keys_for(DmeProfile.MEVD17_2)
    assert defaults[:2] == ["time-ms", "engine-rpm"]
    assert "fuel-trim-stft-b2" not in defaults
    assert set(defaults) <= set(available_keys(DmeProfile.MEVD17_2))
    assert "map-kpa" not in default_keys_for(DmeProfile.MSD80_81)


def test_selection_starts_from_defaults() -> None:
    selection = ParameterSelection()
    assert selection.profile is DmeProfile.MEVD17_2
    assert selection.keys() == default_keys_for(DmeProfile.MEVD17_2)


def test_toggle_twice_is_identity() -> None:
    selection = ParameterSelection(DmeProfile.MEVD17_2, keys=["engine-rpm", "iat"])
    before = selection.keys()

    assert selection.toggle("boost-actual") is True
    assert "boost-actual" in selection
    assert selection.toggle("boost-actual") is False
    assert selection.keys() == before

    assert selection.toggle("iat") is False
    assert selection.toggle("iat") is True
    assert set(selection) == set(before)


def test_selection_equality_ignores_order() -> None:
    a = ParameterSelection("MEVD17.2", keys=["iat", "engine-rpm"])
    b = ParameterSelection("MEVD17.2", keys=["engine-rpm", "iat"])
    c = ParameterSelection("MSD80/81", keys=["engine-rpm", "iat"])
    assert a == b
    assert a != c


def test_select_rejects_unknown_channel() -> None:
    selection = ParameterSelection(DmeProfile.MSD80_81, keys=[])
    with pytest.raises(UnknownChannelError):
        selection.select("map-kpa")
    assert len(selection) == 0


def test_switch_profile_keeps_intersection() -> None:
    selection = ParameterSelection(DmeProfile.MEVD17_2, keys=["engine-rpm", "iat"])
    assert selection.switch_profile(DmeProfile.MEVD17_2_G) == ["engine-rpm"]
    assert selection.profile is DmeProfile.MEVD17_2_G


def test_switch_profile_falls_back_to_defaults_when_nothing_survives() -> None:
    selection = ParameterSelection(DmeProfile.MEVD17_2, keys=["iat", "oil-temp"])
    keys = selection.switch_profile("MEVD17.2.G")
    assert keys == default_keys_for(DmeProfile.MEVD17_2_G)
    assert "iat" not in keys
    assert "coolant-temp" not in keys


def test_elm_supported_channels() -> None:
    assert is_elm_supported("engine-rpm")
    assert not is_elm_supported("hpfp-pressure")
