import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Text

from storage.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class SharedFileRow(Base):
    __tablename__ = "shared_files"
    __table_args__ = (
        CheckConstraint("file_size >= 0", name="ck_shared_files_file_size"),
        CheckConstraint("download_count >= 0", name="ck_shared_files_download_count"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    share_code = Column(String(20), unique=True, index=True, nullable=False)
    file_name = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(Text, nullable=False)
    file_data = Column(Text, nullable=False)  # data URL payload
    password_hash = Column(Text, nullable=True)
    has_password = Column(Boolean, nullable=False, default=False)

    # Naive UTC timestamps
    uploaded_at = Column(DateTime, nullable=False, default=_utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    download_count = Column(Integer, nullable=False, default=0)
    max_downloads = Column(Integer, nullable=False, default=100)  # -1 for unlimited
