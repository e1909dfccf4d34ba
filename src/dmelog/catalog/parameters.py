"""Static per-DME channel catalog.

Each :class:`DmeProfile` exposes a fixed table of loggable channels. The
tables are pure data: nothing here holds state, so lookups are safe from any
thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, NewType, Tuple

from ..errors import UnknownChannelError

ChannelKey = NewType("ChannelKey", str)

TIME_PSEUDO_CHANNEL = "time-ms"


class DmeProfile(str, Enum):
    """Engine control unit variant; selects which channels exist."""

    MEVD17_2 = "MEVD17.2"
    MEVD17_2_G = "MEVD17.2.G"
    MSD80_81 = "MSD80/81"

    @classmethod
    def parse(cls, value: "DmeProfile | str") -> "DmeProfile":
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for profile in cls:
            if profile.value.lower() == text.lower() or profile.name.lower() == text.lower():
                return profile
        raise ValueError(f"Unknown DME profile: {value!r}")


@dataclass(frozen=True)
class LoggingParameter:
    key: str
    label: str
    unit: str
    description: str


def _p(key: str, label: str, unit: str, description: str) -> LoggingParameter:
    return LoggingParameter(key=key, label=label, unit=unit, description=description)


_TIME = _p("time-ms", "Time", "ms", "Sample timestamp in milliseconds.")
_RPM = _p("engine-rpm", "Engine RPM", "rpm", "Current engine speed.")
_THROTTLE = _p("throttle-position", "Throttle Position", "%", "Throttle plate angle percentage.")
_LOAD = _p("engine-load", "Engine Load", "%", "Calculated engine load.")
_SPEED = _p("vehicle-speed", "Vehicle Speed", "km/h", "Current road speed.")
_BOOST = _p("boost-actual", "Boost Actual", "psi", "Measured manifold boost pressure.")
_BOOST_TARGET = _p("boost-target", "Boost Target", "psi", "Requested boost target from DME.")
_MAP = _p("map-kpa", "MAP", "kPa", "Manifold absolute pressure raw.")
_TIMING = _p("timing-avg", "Ignition Timing Avg", "°", "Average ignition timing across cylinders.")
_MAF = _p("maf", "MAF", "g/s", "Mass airflow sensor reading.")
_KNOCK = _p("knock-retard-max", "Knock Retard Max", "°", "Maximum knock correction observed.")
_AFR_B1 = _p("afr-bank1", "AFR Bank 1", "λ", "Lambda reading for bank 1.")
_AFR_B2 = _p("afr-bank2", "AFR Bank 2", "λ", "Lambda reading for bank 2.")
_STFT_B1 = _p("fuel-trim-stft-b1", "STFT Bank 1", "%", "Short-term fuel trim bank 1.")
_LTFT_B1 = _p("fuel-trim-ltft-b1", "LTFT Bank 1", "%", "Long-term fuel trim bank 1.")
_STFT_B2 = _p("fuel-trim-stft-b2", "STFT Bank 2", "%", "Short-term fuel trim bank 2.")
_LTFT_B2 = _p("fuel-trim-ltft-b2", "LTFT Bank 2", "%", "Long-term fuel trim bank 2.")
_IAT = _p("iat", "Intake Air Temp", "°C", "Temperature at intake manifold.")
_OIL = _p("oil-temp", "Oil Temp", "°C", "Engine oil temperature.")
_COOLANT = _p("coolant-temp", "Coolant Temp", "°C", "Engine coolant temperature.")
_LPFP = _p("lpfp-pressure", "LPFP Pressure", "kPa", "Low-pressure fuel supply.")
_RAIL = _p("rail-pressure", "Rail Pressure", "kPa", "Fuel rail pressure (if supported).")
_HPFP = _p("hpfp-pressure", "HPFP Pressure", "kPa", "High-pressure fuel pump rail pressure.")
_FUEL_LEVEL = _p("fuel-level", "Fuel Level", "%", "Fuel tank level.")


PARAMETER_CATALOG: Dict[DmeProfile, Tuple[LoggingParameter, ...]] = {
    DmeProfile.MEVD17_2: (
        _TIME, _RPM, _THROTTLE, _LOAD, _SPEED, _BOOST, _BOOST_TARGET, _MAP,
        _TIMING, _MAF, _KNOCK, _AFR_B1, _STFT_B1, _LTFT_B1, _IAT, _OIL,
        _COOLANT, _LPFP, _RAIL, _HPFP, _FUEL_LEVEL,
    ),
    DmeProfile.MEVD17_2_G: (
        _TIME, _RPM, _THROTTLE, _LOAD, _SPEED, _BOOST, _BOOST_TARGET, _MAP,
        _TIMING, _MAF, _KNOCK, _AFR_B1, _AFR_B2, _STFT_B1, _LTFT_B1,
        _STFT_B2, _LTFT_B2, _LPFP, _RAIL, _HPFP, _FUEL_LEVEL,
    ),
    DmeProfile.MSD80_81: (
        _TIME, _RPM, _THROTTLE, _LOAD, _SPEED, _BOOST, _TIMING, _MAF, _KNOCK,
        _AFR_B1, _AFR_B2, _STFT_B1, _LTFT_B1, _STFT_B2, _LTFT_B2, _IAT, _OIL,
        _COOLANT, _LPFP, _RAIL, _HPFP, _FUEL_LEVEL,
    ),
}

_DEFAULT_KEYS: Tuple[str, ...] = (
    "time-ms",
    "engine-rpm",
    "throttle-position",
    "fuel-trim-stft-b1",
    "fuel-trim-ltft-b1",
    "fuel-trim-stft-b2",
    "fuel-trim-ltft-b2",
    "lpfp-pressure",
    "hpfp-pressure",
    "rail-pressure",
    "maf",
    "map-kpa",
    "boost-actual",
    "timing-avg",
    "iat",
    "coolant-temp",
    "vehicle-speed",
)

# Unfiltered; callers intersect with the profile catalog before use.
DEFAULT_SELECTED_PARAMETER_KEYS: Dict[DmeProfile, Tuple[str, ...]] = {
    profile: _DEFAULT_KEYS for profile in DmeProfile
}

# Channels decodable through standard OBD-II mode 01 PIDs on an ELM adapter.
# Everything else requires the BMW-specific channel table.
ELM_SUPPORTED_KEYS = frozenset(
    {
        "engine-rpm",
        "throttle-position",
        "coolant-temp",
        "iat",
        "vehicle-speed",
        "timing-avg",
        "boost-actual",
        "boost-target",
        "afr-bank1",
        "afr-bank2",
        "oil-temp",
    }
)


def parameters_for(profile: DmeProfile | str) -> Tuple[LoggingParameter, ...]:
    """Return the catalog rows for ``profile`` in display order."""
    return PARAMETER_CATALOG[DmeProfile.parse(profile)]


def available_keys(profile: DmeProfile | str) -> List[str]:
    return [param.key for param in parameters_for(profile)]


def find_parameter(profile: DmeProfile | str, key: str) -> LoggingParameter | None:
    for param in parameters_for(profile):
        if param.key == key:
            return param
    return None


def validate_channel_key(profile: DmeProfile | str, key: str) -> ChannelKey:
    """
    Check ``key`` against the catalog of ``profile``.

    Raises :class:`UnknownChannelError` for keys the profile does not log,
    e.g. a stale key carried over from a previously selected profile.
    """
    text = str(key).strip()
    if find_parameter(profile, text) is None:
        raise UnknownChannelError(text, DmeProfile.parse(profile).value)
    return ChannelKey(text)


def default_keys_for(profile: DmeProfile | str) -> List[ChannelKey]:
    """Default selection for ``profile``, filtered to what it actually offers."""
    resolved = DmeProfile.parse(profile)
    keys = set(available_keys(resolved))
    return [ChannelKey(k) for k in DEFAULT_SELECTED_PARAMETER_KEYS[resolved] if k in keys]


def is_elm_supported(key: str) -> bool:
    return key in ELM_SUPPORTED_KEYS
