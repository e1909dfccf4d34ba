"""CSV encoding and decoding for datalog sessions.

Encoding is strict and simple: comma separated, ``timestamp_ms`` first, then
every channel key in first-seen order, with empty cells for channels a sample
did not report. Fields are quoted only when they contain a comma or quote.

Decoding is tolerant, because logs also come from spreadsheet exports and
other tools: the delimiter is inferred from the header line, fields may be
double-quoted, and numbers may use either ``.`` or ``,`` as the decimal
separator. Only structurally empty input is an error; a cell that does not
parse simply becomes a missing value.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from ..core.models import DecodedSample
from ..errors import CsvParseError, ExportPreconditionError
from ..tools.debug import time_block

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "timestamp_ms"
TIME_HEADER_ALIASES = frozenset({"time (ms)", "time(ms)", "timestamp_ms"})
DELIMITER_CANDIDATES = (",", ";", "\t")
SYNTHETIC_TIME_STEP_MS = 100

_DECIMAL_COMMA_FRACTION = re.compile(r"^\d{1,2}$")
# ASCII digits only; float() alone also takes "1_000" and non-Latin digits.
_PLAIN_NUMBER = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

CellValue = Union[float, str]


# ---------------------------------------------------------------------- encode
@dataclass(frozen=True)
class EncodedCsv:
    text: str
    headers: List[str]
    sample_count: int

    @property
    def channels(self) -> List[str]:
        return self.headers[1:]

    @property
    def byte_length(self) -> int:
        return len(self.text.encode("utf-8"))


def collect_channel_keys(samples: Iterable[DecodedSample]) -> List[str]:
    """Union of every sample's keys, in first-seen order."""
    seen: Dict[str, None] = {}
    for sample in samples:
        for key in sample.values:
            seen.setdefault(key, None)
    return list(seen)


def _format_value(value: float) -> str:
    number = float(value)
    if number.is_integer() and abs(number) < 1e15:
        return str(int(number))
    # repr() is the shortest string that parses back to the same float.
    return repr(number)


def encode_samples(samples: Sequence[DecodedSample]) -> EncodedCsv:
    """
    Render ``samples`` as CSV text.

    Raises :class:`ExportPreconditionError` when there is nothing to export:
    no samples at all, or samples that carry no channel values.
    """
    if not samples:
        raise ExportPreconditionError("No decoded samples to export yet.")

    channels = collect_channel_keys(samples)
    if not channels:
        raise ExportPreconditionError("No decoded parameter values found in session.")

    headers = [TIMESTAMP_HEADER, *channels]
    buf = io.StringIO()
    # Minimal quoting, so keys holding a comma or quote survive decode_csv.
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for sample in samples:
        cells = [str(int(sample.timestamp_ms))]
        for channel in channels:
            value = sample.values.get(channel)
            cells.append("" if value is None else _format_value(value))
        writer.writerow(cells)

    text = buf.getvalue()
    if text.endswith("\n"):
        text = text[:-1]
    return EncodedCsv(text=text, headers=headers, sample_count=len(samples))


# ---------------------------------------------------------------------- decode
def split_csv_line(line: str, delimiter: str) -> List[str]:
    """
    Split one line on ``delimiter`` honouring double quotes.

    A quote toggles quoting, a doubled quote inside quotes is a literal
    quote, and delimiters inside quotes are kept. Fields are trimmed.
    """
    values: List[str] = []
    current: List[str] = []
    quoted = False
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == '"':
            if quoted and index + 1 < length and line[index + 1] == '"':
                current.append('"')
                index += 2
                continue
            quoted = not quoted
        elif char == delimiter and not quoted:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    values.append("".join(current).strip())
    return values


def detect_delimiter(header_line: str) -> str:
    """Pick the candidate yielding the most header fields; ties go to the earlier one."""
    best = DELIMITER_CANDIDATES[0]
    best_score = -1
    for candidate in DELIMITER_CANDIDATES:
        score = len(split_csv_line(header_line, candidate))
        if score > best_score:
            best = candidate
            best_score = score
    return best


def parse_numeric_value(text: Optional[str]) -> Optional[float]:
    """
    Parse a number written with either decimal convention.

    - ``.`` and ``,`` both present: whichever appears last is the decimal
      point; the other is a thousands separator.
    - only ``,``: a decimal comma when there is exactly one comma followed by
      one or two digits (``68,00``), otherwise thousands separators
      (``6,800``).

    Returns ``None`` for empty, unparseable, or non-finite input.
    """
    if text is None:
        return None
    normalized = str(text).strip()
    if not normalized:
        return None

    has_comma = "," in normalized
    has_dot = "." in normalized
    if has_comma and has_dot:
        if normalized.rfind(",") > normalized.rfind("."):
            head, _, tail = normalized.replace(".", "").rpartition(",")
            normalized = head.replace(",", "") + "." + tail
        else:
            normalized = normalized.replace(",", "")
    elif has_comma:
        parts = normalized.split(",")
        if len(parts) == 2 and _DECIMAL_COMMA_FRACTION.match(parts[1].strip()):
            normalized = parts[0] + "." + parts[1]
        else:
            normalized = normalized.replace(",", "")

    normalized = normalized.replace(" ", "")
    if not _PLAIN_NUMBER.fullmatch(normalized):
        return None
    try:
        number = float(normalized)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def is_time_header(header: str) -> bool:
    return header.strip().lower() in TIME_HEADER_ALIASES


def is_rpm_header(header: str) -> bool:
    return "rpm" in header.strip().lower()


def sort_headers_with_rpm_first(headers: Iterable[str]) -> List[str]:
    """Stable partition: headers mentioning ``rpm`` first, the rest after."""
    rpm: List[str] = []
    other: List[str] = []
    for header in headers:
        (rpm if is_rpm_header(header) else other).append(header)
    return rpm + other


@dataclass
class CsvTable:
    """Decoded CSV content, ready for charting or re-export."""

    file_name: str
    headers: List[str]
    rows: List[Dict[str, CellValue]]
    times_ms: List[float]
    numeric_headers: List[str]
    time_column: Optional[str] = None
    delimiter: str = ","
    non_numeric_headers: List[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def value(self, row_index: int, header: str) -> Optional[float]:
        cell = self.rows[row_index].get(header)
        return cell if isinstance(cell, float) else None

    def column(self, header: str) -> np.ndarray:
        """Values of ``header`` as float64, NaN where the row has no number."""
        return np.fromiter(
            (
                cell if isinstance(cell, float) else np.nan
                for cell in (row.get(header) for row in self.rows)
            ),
            dtype=np.float64,
            count=len(self.rows),
        )

    def samples(self) -> List[DecodedSample]:
        """Rebuild decoded samples from the numeric channels of each row."""
        result: List[DecodedSample] = []
        for row, time_ms in zip(self.rows, self.times_ms):
            values = {
                header: row[header]
                for header in self.numeric_headers
                if isinstance(row.get(header), float)
            }
            result.append(DecodedSample(timestamp_ms=int(round(time_ms)), values=values))
        return result


def _split_lines(text: str) -> List[str]:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return [line for line in normalized.split("\n") if line.strip()]


def decode_csv(text: str, file_name: str = "") -> CsvTable:
    """
    Parse CSV ``text`` into a :class:`CsvTable`.

    Raises :class:`CsvParseError` when there is no header plus at least one
    data row. Individual cells that fail to parse become missing values.
    """
    with time_block(f"decode_csv({file_name or '<text>'})"):
        lines = _split_lines(text)
        if len(lines) < 2:
            raise CsvParseError("CSV must include a header row and at least one data row.")

        delimiter = detect_delimiter(lines[0])
        headers = split_csv_line(lines[0], delimiter)
        time_index = next((i for i, h in enumerate(headers) if is_time_header(h)), -1)
        time_column = headers[time_index] if time_index >= 0 else None

        raw_rows = [split_csv_line(line, delimiter) for line in lines[1:]]

        parsed_rows: List[List[Optional[float]]] = [
            [parse_numeric_value(cell) for cell in row] for row in raw_rows
        ]
        numeric_columns = set()
        for column_index, header in enumerate(headers):
            if not header:
                continue
            if any(
                column_index < len(row) and row[column_index] is not None
                for row in parsed_rows
            ):
                numeric_columns.add(column_index)

        rows: List[Dict[str, CellValue]] = []
        times_ms: List[float] = []
        for row_index, (raw, parsed) in enumerate(zip(raw_rows, parsed_rows)):
            row: Dict[str, CellValue] = {}
            for column_index, header in enumerate(headers):
                if not header or column_index >= len(raw):
                    continue
                if column_index in numeric_columns:
                    number = parsed[column_index]
                    if number is not None:
                        row[header] = number
                elif raw[column_index]:
                    row[header] = raw[column_index]
            time_value = parsed[time_index] if 0 <= time_index < len(parsed) else None
            times_ms.append(
                time_value if time_value is not None else float(row_index * SYNTHETIC_TIME_STEP_MS)
            )
            rows.append(row)

        numeric_headers = sort_headers_with_rpm_first(
            header
            for index, header in enumerate(headers)
            if index in numeric_columns and index != time_index
        )
        non_numeric = [
            header
            for index, header in enumerate(headers)
            if header and index not in numeric_columns and index != time_index
        ]

    logger.debug(
        "Decoded %s: %d rows, %d numeric channels, delimiter=%r",
        file_name or "<text>",
        len(rows),
        len(numeric_headers),
        delimiter,
    )
    return CsvTable(
        file_name=file_name,
        headers=headers,
        rows=rows,
        times_ms=times_ms,
        numeric_headers=numeric_headers,
        time_column=time_column,
        delimiter=delimiter,
        non_numeric_headers=non_numeric,
    )


__all__ = [
    "TIMESTAMP_HEADER",
    "CsvTable",
    "EncodedCsv",
    "collect_channel_keys",
    "decode_csv",
    "detect_delimiter",
    "encode_samples",
    "is_time_header",
    "parse_numeric_value",
    "sort_headers_with_rpm_first",
    "split_csv_line",
]
