"""Write encoded datalog sessions to disk."""

from __future__ import annotations

import logging
from pathlib import Path

from .csv_codec import EncodedCsv

logger = logging.getLogger(__name__)


def write_csv(path: Path, encoded: EncodedCsv) -> Path:
    """
    Write ``encoded`` to ``path`` as UTF-8 text and return the path.

    Directories are created as needed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        fh.write(encoded.text)
        fh.write("\n")
    logger.info("Wrote %d samples (%d channels) to %s", encoded.sample_count, len(encoded.channels), path)
    return path
