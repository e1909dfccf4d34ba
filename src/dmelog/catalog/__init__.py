"""DME profiles, their channel catalogs, and channel selection.

Nothing in this package performs I/O; the catalog is a static table and
:class:`ParameterSelection` is a small in-memory set with profile-aware
validation.
"""

from .parameters import (
    DEFAULT_SELECTED_PARAMETER_KEYS,
    ELM_SUPPORTED_KEYS,
    PARAMETER_CATALOG,
    TIME_PSEUDO_CHANNEL,
    ChannelKey,
    DmeProfile,
    LoggingParameter,
    available_keys,
    default_keys_for,
    find_parameter,
    is_elm_supported,
    parameters_for,
    validate_channel_key,
)
from .selection import ParameterSelection

__all__ = [
    "DEFAULT_SELECTED_PARAMETER_KEYS",
    "ELM_SUPPORTED_KEYS",
    "PARAMETER_CATALOG",
    "TIME_PSEUDO_CHANNEL",
    "ChannelKey",
    "DmeProfile",
    "LoggingParameter",
    "ParameterSelection",
    "available_keys",
    "default_keys_for",
    "find_parameter",
    "is_elm_supported",
    "parameters_for",
    "validate_channel_key",
]
