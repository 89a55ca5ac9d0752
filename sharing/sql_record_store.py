import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from sharing.errors import DuplicateCode, NotFound, QuotaExhausted, StoreUnavailable
from sharing.models import UNLIMITED_DOWNLOADS, ShareRecord, as_utc
from sharing.record_store import ShareRecordStore
from storage.models import SharedFileRow

logger = logging.getLogger(__name__)


class SqlRecordStore(ShareRecordStore):
    """
    Stores share records in the relational `shared_files` table.

    Any database SQLAlchemy can reach works; records are visible to every
    device connected to the same database. The download counter is bumped
    with one conditional UPDATE, so concurrent redeemers cannot push it past
    max_downloads.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # ShareRecordStore interface
    # ------------------------------------------------------------------

    def create(self, record: ShareRecord) -> None:
        with _database_errors("creating a share"), self._session_factory() as db:
            db.add(_to_row(record))
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if _violates_share_code(e):
                    raise DuplicateCode(record.share_code) from e
                raise

    def get_by_code(self, code: str) -> ShareRecord:
        with _database_errors("reading a share"), self._session_factory() as db:
            row = db.query(SharedFileRow).filter(SharedFileRow.share_code == code).first()
            if row is None:
                raise NotFound(code)
            return _to_record(row)

    def increment_download_count(self, code: str) -> int:
        with _database_errors("counting a download"), self._session_factory() as db:
            updated = (
                db.query(SharedFileRow)
                .filter(
                    SharedFileRow.share_code == code,
                    or_(
                        SharedFileRow.max_downloads == UNLIMITED_DOWNLOADS,
                        SharedFileRow.download_count < SharedFileRow.max_downloads,
                    ),
                )
                .update(
                    {SharedFileRow.download_count: SharedFileRow.download_count + 1},
                    synchronize_session=False,
                )
            )
            if updated == 0:
                exists = (
                    db.query(SharedFileRow.id).filter(SharedFileRow.share_code == code).first()
                    is not None
                )
                db.rollback()
                if exists:
                    raise QuotaExhausted(code)
                raise NotFound(code)

            count = (
                db.query(SharedFileRow.download_count)
                .filter(SharedFileRow.share_code == code)
                .scalar()
            )
            db.commit()
            return count

    def delete(self, code: str) -> None:
        with _database_errors("deleting a share"), self._session_factory() as db:
            db.query(SharedFileRow).filter(SharedFileRow.share_code == code).delete(
                synchronize_session=False
            )
            db.commit()

    def list_all(self) -> list[ShareRecord]:
        with _database_errors("listing shares"), self._session_factory() as db:
            rows = db.query(SharedFileRow).order_by(SharedFileRow.created_at.desc()).all()
            return [_to_record(row) for row in rows]

    def delete_expired(self, now: datetime) -> int:
        with _database_errors("removing expired shares"), self._session_factory() as db:
            removed = (
                db.query(SharedFileRow)
                .filter(SharedFileRow.expires_at <= _to_db_time(now))
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed


@contextmanager
def _database_errors(action: str):
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error while %s: %s", action, e)
        raise StoreUnavailable(f"Database error while {action}") from e


def _violates_share_code(error: IntegrityError) -> bool:
    # Drivers name the column or its unique index in the message; other
    # violations (id collisions, check constraints) are not duplicate codes
    return "share_code" in str(error.orig)


def _to_db_time(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def _to_row(record: ShareRecord) -> SharedFileRow:
    return SharedFileRow(
        id=record.id,
        share_code=record.share_code,
        file_name=record.file_name,
        file_size=record.file_size,
        file_type=record.file_type,
        file_data=record.payload,
        password_hash=record.password_digest,
        has_password=record.has_password,
        uploaded_at=_to_db_time(record.uploaded_at),
        expires_at=_to_db_time(record.expires_at),
        download_count=record.download_count,
        max_downloads=record.max_downloads,
    )


def _to_record(row: SharedFileRow) -> ShareRecord:
    return ShareRecord(
        id=row.id,
        share_code=row.share_code,
        file_name=row.file_name,
        file_size=row.file_size,
        file_type=row.file_type,
        payload=row.file_data,
        has_password=row.has_password,
        password_digest=row.password_hash,
        uploaded_at=as_utc(row.uploaded_at),
        expires_at=as_utc(row.expires_at),
        download_count=row.download_count,
        max_downloads=row.max_downloads,
    )
