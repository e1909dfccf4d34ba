"""Opt-in timing instrumentation, enabled with ``DMELOG_DEBUG=1``."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Return True when lightweight instrumentation should run."""
    return os.getenv("DMELOG_DEBUG", "").strip().lower() in _TRUTHY


@contextmanager
def time_block(label: str) -> Iterator[None]:
    """
    Log the elapsed time of the wrapped block at DEBUG level.

    When instrumentation is disabled the block runs untouched.
    """
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("%s took %.3f ms", label, elapsed_ms)
