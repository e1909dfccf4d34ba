"""Channel selection bookkeeping tied to the active DME profile."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from .parameters import (
    ChannelKey,
    DmeProfile,
    available_keys,
    default_keys_for,
    validate_channel_key,
)

logger = logging.getLogger(__name__)


class ParameterSelection:
    """
    Set of selected channel keys for one profile.

    Membership is what matters; insertion order is kept only so displays stay
    stable. Every key is validated against the profile catalog, so a key from
    a previous profile cannot survive a profile switch.
    """

    def __init__(
        self,
        profile: DmeProfile | str = DmeProfile.MEVD17_2,
        keys: Optional[Iterable[str]] = None,
    ) -> None:
        self._profile = DmeProfile.parse(profile)
        self._keys: List[ChannelKey] = []
        initial = default_keys_for(self._profile) if keys is None else keys
        for key in initial:
            self.select(key)

    # ------------------------------------------------------------------ query
    @property
    def profile(self) -> DmeProfile:
        return self._profile

    def keys(self) -> List[ChannelKey]:
        """Return the selected keys in the order they were added."""
        return list(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __iter__(self) -> Iterator[ChannelKey]:
        return iter(list(self._keys))

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterSelection):
            return self._profile == other._profile and set(self._keys) == set(other._keys)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ParameterSelection(profile={self._profile.value!r}, keys={self._keys!r})"

    # --------------------------------------------------------------- mutation
    def select(self, key: str) -> ChannelKey:
        channel = validate_channel_key(self._profile, key)
        if channel not in self._keys:
            self._keys.append(channel)
        return channel

    def deselect(self, key: str) -> None:
        channel = validate_channel_key(self._profile, key)
        if channel in self._keys:
            self._keys.remove(channel)

    def toggle(self, key: str) -> bool:
        """Flip membership of ``key``; return True if it is now selected."""
        channel = validate_channel_key(self._profile, key)
        if channel in self._keys:
            self._keys.remove(channel)
            return False
        self._keys.append(channel)
        return True

    def clear(self) -> None:
        self._keys.clear()

    def switch_profile(self, profile: DmeProfile | str) -> List[ChannelKey]:
        """
        Move the selection to ``profile``.

        Keys the new profile also offers are kept. When none survive, the
        selection falls back to the new profile's default set.
        """
        target = DmeProfile.parse(profile)
        offered = set(available_keys(target))
        kept = [ChannelKey(k) for k in self._keys if k in offered]
        if not kept:
            kept = default_keys_for(target)
            logger.debug(
                "No selected channels survive switch to %s; using defaults", target.value
            )
        self._profile = target
        self._keys = kept
        return self.keys()
