"""Bounded storage for raw trace lines and decoded samples of one session."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Dict, List, Mapping, Optional

from .models import DecodedSample
from .ringbuffer import RingBuffer

logger = logging.getLogger(__name__)

MAX_LOG_LINES = 1000
MAX_SAMPLES = 20_000


class SampleStore:
    """
    Two independent FIFO sequences with hard capacities.

    The session controller is the only writer. An RLock guards both buffers
    so snapshots taken from another thread never observe a half-applied
    poll response.
    """

    def __init__(
        self,
        *,
        max_lines: int = MAX_LOG_LINES,
        max_samples: int = MAX_SAMPLES,
    ) -> None:
        self._lines: RingBuffer[str] = RingBuffer(max_lines)
        self._samples: RingBuffer[DecodedSample] = RingBuffer(max_samples)
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def line_capacity(self) -> int:
        return self._lines.capacity

    @property
    def sample_capacity(self) -> int:
        return self._samples.capacity

    # ------------------------------------------------------------------ ingest
    def append_lines(self, lines: Iterable[str]) -> int:
        with self._lock:
            return self._lines.extend(str(line) for line in lines)

    def append_samples(self, samples: Iterable[DecodedSample]) -> int:
        """Append samples in order; return how many old samples were evicted."""
        with self._lock:
            dropped = self._samples.extend(samples)
        if dropped:
            logger.debug("Sample store full; evicted %d oldest samples", dropped)
        return dropped

    def reset(self) -> None:
        with self._lock:
            self._lines.clear()
            self._samples.clear()

    # ------------------------------------------------------------------- query
    def lines(self) -> List[str]:
        with self._lock:
            return self._lines.snapshot()

    def samples(self) -> List[DecodedSample]:
        with self._lock:
            return self._samples.snapshot()

    def latest_sample(self) -> Optional[DecodedSample]:
        with self._lock:
            return self._samples.latest()

    def latest_values(self) -> Mapping[str, float]:
        sample = self.latest_sample()
        if sample is None:
            return {}
        return dict(sample.values)

    def sample_count(self) -> int:
        with self._lock:
            return len(self._samples)

    def line_count(self) -> int:
        with self._lock:
            return len(self._lines)

    def evicted_counts(self) -> Dict[str, int]:
        with self._lock:
            return {"lines": self._lines.evicted, "samples": self._samples.evicted}

    def __len__(self) -> int:
        return self.sample_count()
