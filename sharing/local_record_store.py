import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path

from sharing.errors import DuplicateCode, NotFound, QuotaExhausted, StoreUnavailable
from sharing.models import ShareRecord, as_utc
from sharing.record_store import ShareRecordStore

logger = logging.getLogger(__name__)


class LocalRecordStore(ShareRecordStore):
    """
    Stores share records in a JSON file on this machine.

    JSON shape:
    {
        "MYCODE01": {"id": "...", "share_code": "MYCODE01", "file_data": "data:...",
                     "uploaded_at": "2024-01-15T10:30:00+00:00", ...},
        ...
    }

    Only processes on this machine can redeem these codes. Every operation is
    a read-modify-write under one lock, and the file is replaced atomically,
    so a single process never observes a half-written file.
    """

    def __init__(self, path: Path):
        self._path = Path(path).expanduser()
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # ShareRecordStore interface
    # ------------------------------------------------------------------

    def create(self, record: ShareRecord) -> None:
        with self._lock:
            records = self._read_records()
            if record.share_code in records:
                raise DuplicateCode(record.share_code)
            records[record.share_code] = record.to_dict()
            self._write_records(records)

    def get_by_code(self, code: str) -> ShareRecord:
        with self._lock:
            entry = self._read_records().get(code)
        if entry is None:
            raise NotFound(code)
        return _to_record(entry)

    def increment_download_count(self, code: str) -> int:
        with self._lock:
            records = self._read_records()
            entry = records.get(code)
            if entry is None:
                raise NotFound(code)
            record = _to_record(entry)
            if record.is_exhausted():
                raise QuotaExhausted(code)
            entry["download_count"] = record.download_count + 1
            self._write_records(records)
            return entry["download_count"]

    def delete(self, code: str) -> None:
        with self._lock:
            records = self._read_records()
            if records.pop(code, None) is not None:
                self._write_records(records)

    def list_all(self) -> list[ShareRecord]:
        with self._lock:
            entries = list(self._read_records().values())
        return [_to_record(entry) for entry in entries]

    def delete_expired(self, now: datetime) -> int:
        now = as_utc(now)
        with self._lock:
            records = self._read_records()
            expired = [
                code for code, entry in records.items()
                if _to_record(entry).expires_at <= now
            ]
            for code in expired:
                del records[code]
            if expired:
                self._write_records(records)
        return len(expired)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_records(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                records = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreUnavailable(f"Share file {self._path} is not valid JSON: {e}") from e
        except OSError as e:
            raise StoreUnavailable(f"Cannot read share file {self._path}: {e}") from e
        if not isinstance(records, dict):
            raise StoreUnavailable(f"Share file {self._path} does not hold a JSON object")
        return records

    def _write_records(self, records: dict) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreUnavailable(f"Cannot write share file {self._path}: {e}") from e
        logger.debug("Wrote %d share record(s) to %s", len(records), self._path)


def _to_record(entry: dict) -> ShareRecord:
    try:
        return ShareRecord.from_dict(entry)
    except (KeyError, TypeError, ValueError) as e:
        raise StoreUnavailable(f"Malformed share record: {e}") from e
