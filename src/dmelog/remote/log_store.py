"""Saved-log storage and the save/load workflows built on it.

:class:`LocalLogStore` implements the persistence contract on a local
directory: CSV blobs under ``blobs/`` and a JSON index of metadata records.
The workflows at the bottom of the module only depend on the
:class:`~dmelog.remote.backend.PersistenceBackend` protocol.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from ..config.app_config import AppPaths
from ..core.models import SessionSummary
from ..dataio.csv_codec import CsvTable, EncodedCsv, decode_csv
from ..dataio.file_paths import export_file_name, iso_timestamp
from ..errors import BackendError, LogNotFoundError
from .backend import LogMetadata, PersistenceBackend, SavedLogDownload, SavedLogSummary

logger = logging.getLogger(__name__)

LIST_LIMIT = 100
_UPLOAD_SCHEME = "dmelog-upload"
_INDEX_FILE = "index.json"


class LocalLogStore:
    """Directory-backed :class:`PersistenceBackend`."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root) if root is not None else AppPaths().saved_logs
        self.blob_dir = self.root / "blobs"
        self._index_path = self.root / _INDEX_FILE
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ index
    def _read_index(self) -> List[Dict[str, Any]]:
        if not self._index_path.exists():
            return []
        try:
            with self._index_path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise BackendError(f"Saved log index is unreadable: {exc}") from exc
        if not isinstance(data, list):
            raise BackendError(f"Saved log index {self._index_path} is not a list")
        return data

    def _write_index(self, records: List[Dict[str, Any]]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        tmp_path = self._index_path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(records, fh, indent=2)
        tmp_path.replace(self._index_path)

    # ------------------------------------------------------------------ protocol
    def generate_upload_url(self) -> str:
        return f"{_UPLOAD_SCHEME}://{uuid.uuid4().hex}"

    def upload(self, upload_url: str, payload: bytes) -> str:
        parsed = urlparse(upload_url)
        if parsed.scheme != _UPLOAD_SCHEME or not parsed.netloc:
            raise BackendError(f"Invalid upload URL: {upload_url}")
        storage_id = parsed.netloc
        self.blob_dir.mkdir(parents=True, exist_ok=True)
        (self.blob_dir / f"{storage_id}.csv").write_bytes(payload)
        return storage_id

    def save_log_metadata(self, metadata: LogMetadata) -> str:
        if not (self.blob_dir / f"{metadata.storage_id}.csv").exists():
            raise BackendError(f"Unknown storage id: {metadata.storage_id}")
        now_ms = int(time.time() * 1000)
        created_iso = iso_timestamp(datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc))
        record = asdict(metadata)
        record["parameter_keys"] = list(metadata.parameter_keys)
        record.update(
            log_id=uuid.uuid4().hex,
            created_at_ms=now_ms,
            created_at_iso=created_iso,
            log_date=created_iso[:10],
        )
        with self._lock:
            records = self._read_index()
            records.append(record)
            self._write_index(records)
        logger.info("Saved log %s (%s)", record["log_id"], metadata.file_name)
        return record["log_id"]

    def list_my_logs(self) -> List[SavedLogSummary]:
        with self._lock:
            records = self._read_index()
        records.sort(key=lambda rec: int(rec.get("created_at_ms", 0)), reverse=True)
        return [
            SavedLogSummary(
                log_id=str(rec["log_id"]),
                created_at_iso=str(rec.get("created_at_iso", "")),
                dme_profile=str(rec.get("dme_profile", "")),
                duration_ms=int(rec.get("duration_ms", 0)),
                file_name=str(rec.get("file_name", "")),
                sample_count=int(rec.get("sample_count", 0)),
            )
            for rec in records[:LIST_LIMIT]
        ]

    def get_log_download_url(self, log_id: str) -> SavedLogDownload:
        with self._lock:
            records = self._read_index()
        record = next((rec for rec in records if rec.get("log_id") == log_id), None)
        if record is None:
            raise LogNotFoundError(f"Log not found: {log_id}")
        blob = self.blob_dir / f"{record['storage_id']}.csv"
        if not blob.exists():
            raise LogNotFoundError(f"Log file unavailable: {log_id}")
        return SavedLogDownload(download_url=blob.resolve().as_uri(), file_name=str(record["file_name"]))

    def download(self, download_url: str) -> str:
        parsed = urlparse(download_url)
        if parsed.scheme != "file":
            raise BackendError(f"Unsupported download URL: {download_url}")
        path = Path(unquote(parsed.path))
        try:
            return path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            raise BackendError(f"Failed to download saved log: {exc}") from exc


# ---------------------------------------------------------------------- workflows
def save_session_log(
    store: PersistenceBackend,
    encoded: EncodedCsv,
    summary: SessionSummary,
    *,
    product: str = "hofwerks",
    now: Optional[datetime] = None,
) -> str:
    """
    Upload ``encoded`` and record its metadata; return the new log id.

    Backend failures propagate as :class:`~dmelog.errors.BackendError`.
    """
    file_name = export_file_name(product, now)
    payload = encoded.text.encode("utf-8")
    upload_url = store.generate_upload_url()
    storage_id = store.upload(upload_url, payload)
    if not storage_id:
        raise BackendError("Upload completed without storage ID.")

    metadata = LogMetadata(
        storage_id=storage_id,
        file_name=file_name,
        csv_byte_length=len(payload),
        sample_count=summary.sample_count,
        total_bytes=summary.total_bytes,
        dme_profile=summary.profile.value,
        connection_mode=summary.connection_mode.value,
        parameter_keys=tuple(summary.parameter_keys),
        started_at_ms=summary.started_at_ms,
        ended_at_ms=summary.ended_at_ms,
        duration_ms=summary.duration_ms,
    )
    return store.save_log_metadata(metadata)


def load_saved_log(store: PersistenceBackend, log_id: str) -> CsvTable:
    """Download a saved log and decode it."""
    download = store.get_log_download_url(log_id)
    text = store.download(download.download_url)
    return decode_csv(text, file_name=download.file_name)


def format_log_meta(summary: SavedLogSummary) -> str:
    """One-line description for a saved-log picker."""
    try:
        created = datetime.fromisoformat(summary.created_at_iso.replace("Z", "+00:00"))
        created_text = created.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        created_text = summary.created_at_iso
    seconds = max(0, round(summary.duration_ms / 1000))
    return f"{summary.dme_profile} • {summary.sample_count} samples • {seconds}s • {created_text}"
