"""Helpers for constructing export file names and paths."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from ..config.app_config import AppPaths

# Allow only alphanumerics, underscore, dot, and dash.
_PRODUCT_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def _sanitize_product_name(name: str) -> str:
    cleaned = _PRODUCT_NAME_RE.sub("_", name).strip("_")
    return cleaned or "datalog"


def iso_timestamp(now: datetime | None = None) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def export_file_name(product: str = "hofwerks", now: datetime | None = None) -> str:
    """
    Build the export file name for a session.

    Example: ``hofwerks_datalog_2026-10-18T14-03-27.512Z.csv``
    """
    stamp = iso_timestamp(now).replace(":", "-")
    return f"{_sanitize_product_name(product)}_datalog_{stamp}.csv"


def export_path(
    product: str = "hofwerks",
    now: datetime | None = None,
    base: Path | None = None,
) -> Path:
    root = base or AppPaths().exports
    return Path(root) / export_file_name(product, now)
