from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from config import get_setting, max_file_size_bytes
from sharing.errors import StoreUnavailable
from sharing.local_record_store import LocalRecordStore
from sharing.record_store import ShareRecordStore
from sharing.s3_record_store import S3RecordStore
from sharing.service import ShareService
from sharing.sql_record_store import SqlRecordStore
from storage.database import create_tables, make_engine, make_session_factory
from storage.s3_client import S3Client


def build_store(config: dict, s3_client: S3Client | None = None) -> ShareRecordStore:
    """Pick the store named by config["backend"]; the choice is made once, here."""
    backend = config["backend"]
    if backend == "local":
        return LocalRecordStore(Path(config["local_store_path"]))
    if backend == "sql":
        engine = make_engine(
            config["database_url"], timeout=float(get_setting(config, "store_timeout_seconds"))
        )
        try:
            create_tables(engine)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Cannot reach database: {e}") from e
        return SqlRecordStore(make_session_factory(engine))
    if backend == "s3":
        return S3RecordStore(s3_client or S3Client(config))
    raise ValueError(f"Unknown storage backend: {backend!r}")


def build_service(config: dict, store: ShareRecordStore | None = None) -> ShareService:
    return ShareService(store or build_store(config), max_file_size=max_file_size_bytes(config))
