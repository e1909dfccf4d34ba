"""Utilities for loading recorded datalogs for review."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

from ..catalog.parameters import TIME_PSEUDO_CHANNEL
from ..core.models import DecodedSample
from .csv_codec import CellValue, CsvTable, decode_csv, sort_headers_with_rpm_first

CURRENT_SESSION_NAME = "Current Session"


def load_csv(path: Path) -> CsvTable:
    """
    Read and decode the CSV file at ``path``.

    Undecodable bytes are replaced rather than rejected; :func:`decode_csv`
    raises :class:`~dmelog.errors.CsvParseError` for structurally empty files.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    return decode_csv(text, file_name=path.name)


def table_from_samples(
    samples: Sequence[DecodedSample],
    file_name: str = CURRENT_SESSION_NAME,
) -> CsvTable | None:
    """
    View live samples as a :class:`CsvTable` without a CSV round trip.

    The ``time-ms`` pseudo-channel is dropped since the sample timestamp
    already carries it. Returns ``None`` when there are no samples.
    """
    if not samples:
        return None

    seen: Dict[str, None] = {}
    rows: List[Dict[str, CellValue]] = []
    times_ms: List[float] = []
    for sample in samples:
        row: Dict[str, CellValue] = {}
        for key, value in sample.values.items():
            if key == TIME_PSEUDO_CHANNEL:
                continue
            seen.setdefault(key, None)
            row[key] = float(value)
        rows.append(row)
        times_ms.append(float(sample.timestamp_ms))

    numeric_headers = sort_headers_with_rpm_first(seen)
    return CsvTable(
        file_name=file_name,
        headers=list(numeric_headers),
        rows=rows,
        times_ms=times_ms,
        numeric_headers=numeric_headers,
        time_column=None,
        delimiter=",",
    )


def merge_tables(tables: Sequence[CsvTable], file_name: str = "merged") -> CsvTable:
    """Concatenate rows of several tables, unioning their numeric channels."""
    if not tables:
        raise ValueError("merge_tables requires at least one table")

    headers: Dict[str, None] = {}
    numeric: Dict[str, None] = {}
    text_headers: Dict[str, None] = {}
    rows: List[Dict[str, CellValue]] = []
    times_ms: List[float] = []
    for table in tables:
        for header in table.headers:
            headers.setdefault(header, None)
        for header in table.numeric_headers:
            numeric.setdefault(header, None)
        for header in table.non_numeric_headers:
            text_headers.setdefault(header, None)
        rows.extend(dict(row) for row in table.rows)
        times_ms.extend(table.times_ms)

    return CsvTable(
        file_name=file_name,
        headers=list(headers),
        rows=rows,
        times_ms=times_ms,
        numeric_headers=sort_headers_with_rpm_first(numeric),
        time_column=tables[0].time_column,
        delimiter=tables[0].delimiter,
        non_numeric_headers=[h for h in text_headers if h not in numeric],
    )
