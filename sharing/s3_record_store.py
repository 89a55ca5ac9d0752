import logging
from contextlib import contextmanager
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError

from sharing.errors import DuplicateCode, NotFound, QuotaExhausted, StoreUnavailable
from sharing.models import ShareRecord, as_utc
from sharing.record_store import ShareRecordStore
from storage.s3_client import S3Client

logger = logging.getLogger(__name__)

# Stored at a reserved prefix that won't collide with user data in the bucket
_SHARES_PREFIX = "_system/shares/"
_CONFLICT_CODES = ("PreconditionFailed", "ConditionalRequestConflict", "412", "409")
_MAX_WRITE_ATTEMPTS = 5


class S3RecordStore(ShareRecordStore):
    """
    Stores each share as a JSON object at _system/shares/<CODE>.json.

    Writes use S3 conditional requests instead of a read-modify-write race:
    create only succeeds when no object exists for the code, and the download
    counter is only replaced when the object still has the ETag it was read
    with. A lost race is retried a few times before giving up.
    """

    def __init__(self, s3_client: S3Client):
        self._s3 = s3_client

    # ------------------------------------------------------------------
    # ShareRecordStore interface
    # ------------------------------------------------------------------

    def create(self, record: ShareRecord) -> None:
        with _s3_errors("creating a share"):
            try:
                self._s3.put_json(_key(record.share_code), record.to_dict(), if_none_match=True)
            except ClientError as e:
                if _is_conflict(e):
                    raise DuplicateCode(record.share_code) from e
                raise

    def get_by_code(self, code: str) -> ShareRecord:
        with _s3_errors("reading a share"):
            found = self._s3.get_json(_key(code))
        if found is None:
            raise NotFound(code)
        return _to_record(found[0])

    def increment_download_count(self, code: str) -> int:
        with _s3_errors("counting a download"):
            for attempt in range(1, _MAX_WRITE_ATTEMPTS + 1):
                found = self._s3.get_json(_key(code))
                if found is None:
                    raise NotFound(code)
                document, etag = found
                record = _to_record(document)
                if record.is_exhausted():
                    raise QuotaExhausted(code)

                document["download_count"] = record.download_count + 1
                try:
                    self._s3.put_json(_key(code), document, if_match=etag)
                    return document["download_count"]
                except ClientError as e:
                    if not _is_conflict(e):
                        raise
                    logger.debug("Download count for %s changed concurrently (attempt %d)", code, attempt)

        raise StoreUnavailable(
            f"Share {code} kept changing; gave up after {_MAX_WRITE_ATTEMPTS} attempts"
        )

    def delete(self, code: str) -> None:
        with _s3_errors("deleting a share"):
            self._s3.delete_object(_key(code))

    def list_all(self) -> list[ShareRecord]:
        records = []
        with _s3_errors("listing shares"):
            for key in self._s3.list_keys(_SHARES_PREFIX):
                found = self._s3.get_json(key)
                if found is not None:  # deleted between listing and reading
                    records.append(_to_record(found[0]))
        return records

    def delete_expired(self, now: datetime) -> int:
        now = as_utc(now)
        removed = 0
        for record in self.list_all():
            if record.expires_at <= now:
                self.delete(record.share_code)
                removed += 1
        return removed


@contextmanager
def _s3_errors(action: str):
    try:
        yield
    except ClientError as e:
        logger.error("S3 error while %s: %s", action, e.response["Error"].get("Message", e))
        raise StoreUnavailable(f"S3 error while {action}") from e
    except BotoCoreError as e:
        logger.error("S3 unreachable while %s: %s", action, e)
        raise StoreUnavailable(f"S3 unreachable while {action}") from e
    except ValueError as e:
        # Truncated or non-JSON object body
        logger.error("Unreadable share object while %s: %s", action, e)
        raise StoreUnavailable(f"Unreadable share object while {action}") from e


def _key(code: str) -> str:
    return f"{_SHARES_PREFIX}{code}.json"


def _is_conflict(error: ClientError) -> bool:
    return error.response["Error"]["Code"] in _CONFLICT_CODES


def _to_record(document: dict) -> ShareRecord:
    try:
        return ShareRecord.from_dict(document)
    except (KeyError, TypeError, ValueError) as e:
        raise StoreUnavailable(f"Malformed share object: {e}") from e
