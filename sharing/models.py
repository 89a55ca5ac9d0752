import mimetypes
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sharing.errors import InvalidShareSettings

# max_downloads value meaning "no download limit"
UNLIMITED_DOWNLOADS = -1

DEFAULT_MAX_DOWNLOADS = 100
DEFAULT_FILE_TYPE = "application/octet-stream"

EXPIRY_PRESETS = {
    "1h": timedelta(hours=1),
    "1d": timedelta(days=1),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_EXPIRY_PRESET = "7d"

DOWNLOAD_LIMIT_PRESETS = (1, 5, 10, 25, 50, 100, UNLIMITED_DOWNLOADS)
MAX_CUSTOM_DOWNLOAD_LIMIT = 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_expiry(
    preset: str | None = None,
    custom: datetime | None = None,
    now: datetime | None = None,
) -> datetime:
    """
    Turn an expiry choice into an absolute deadline.

    Either a preset key from EXPIRY_PRESETS or a custom instant, which must be
    in the future. With neither, the 7-day default applies.
    """
    now = as_utc(now or utc_now())
    if custom is not None:
        custom = as_utc(custom)
        if custom <= now:
            raise InvalidShareSettings("Custom expiry must be in the future")
        return custom
    key = preset or DEFAULT_EXPIRY_PRESET
    if key not in EXPIRY_PRESETS:
        raise InvalidShareSettings(
            f"Unknown expiry preset {key!r}; choose one of {', '.join(EXPIRY_PRESETS)}"
        )
    return now + EXPIRY_PRESETS[key]


def validate_max_downloads(value: int) -> int:
    if value == UNLIMITED_DOWNLOADS or value >= 1:
        return value
    raise InvalidShareSettings("Download limit must be a positive number or unlimited")


@dataclass(frozen=True)
class FileUpload:
    """The file being shared: raw bytes plus the metadata the recipient sees."""

    name: str
    data: bytes
    file_type: str = DEFAULT_FILE_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "FileUpload":
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), file_type=guessed or DEFAULT_FILE_TYPE)


@dataclass(frozen=True)
class ShareSettings:
    expires_at: datetime
    max_downloads: int = DEFAULT_MAX_DOWNLOADS
    custom_code: str | None = None
    password: str | None = None
    custom_file_name: str | None = None


@dataclass(frozen=True)
class ShareRecord:
    id: str
    share_code: str
    file_name: str
    file_size: int
    file_type: str
    payload: str
    has_password: bool
    password_digest: str | None
    uploaded_at: datetime
    expires_at: datetime
    download_count: int = 0
    max_downloads: int = DEFAULT_MAX_DOWNLOADS

    @property
    def is_unlimited(self) -> bool:
        return self.max_downloads == UNLIMITED_DOWNLOADS

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) >= self.expires_at

    def is_exhausted(self) -> bool:
        return not self.is_unlimited and self.download_count >= self.max_downloads

    def with_download_count(self, count: int) -> "ShareRecord":
        return replace(self, download_count=count)

    def to_dict(self) -> dict:
        """Serialize for the JSON-backed stores; timestamps become ISO-8601 strings."""
        return {
            "id": self.id,
            "share_code": self.share_code,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "file_type": self.file_type,
            "file_data": self.payload,
            "password_hash": self.password_digest,
            "has_password": self.has_password,
            "uploaded_at": self.uploaded_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "download_count": self.download_count,
            "max_downloads": self.max_downloads,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShareRecord":
        return cls(
            id=data["id"],
            share_code=data["share_code"],
            file_name=data["file_name"],
            file_size=int(data["file_size"]),
            file_type=data.get("file_type") or DEFAULT_FILE_TYPE,
            payload=data["file_data"],
            has_password=bool(data.get("has_password", False)),
            password_digest=data.get("password_hash"),
            uploaded_at=as_utc(datetime.fromisoformat(data["uploaded_at"])),
            expires_at=as_utc(datetime.fromisoformat(data["expires_at"])),
            download_count=int(data.get("download_count", 0)),
            max_downloads=int(data.get("max_downloads", DEFAULT_MAX_DOWNLOADS)),
        )


@dataclass(frozen=True)
class SharedFile:
    """
    Caller-facing view of a share.

    `password` holds the plaintext only on the value returned by
    ShareService.create_share; views built from storage always carry None.
    """

    id: str
    share_code: str
    file_name: str
    file_size: int
    file_type: str
    has_password: bool
    uploaded_at: datetime
    expires_at: datetime
    download_count: int
    max_downloads: int
    password: str | None = field(default=None, repr=False)

    @property
    def is_unlimited(self) -> bool:
        return self.max_downloads == UNLIMITED_DOWNLOADS

    @property
    def remaining_downloads(self) -> int | None:
        if self.is_unlimited:
            return None
        return max(self.max_downloads - self.download_count, 0)

    @classmethod
    def from_record(cls, record: ShareRecord, password: str | None = None) -> "SharedFile":
        return cls(
            id=record.id,
            share_code=record.share_code,
            file_name=record.file_name,
            file_size=record.file_size,
            file_type=record.file_type,
            has_password=record.has_password,
            uploaded_at=record.uploaded_at,
            expires_at=record.expires_at,
            download_count=record.download_count,
            max_downloads=record.max_downloads,
            password=password,
        )


@dataclass(frozen=True)
class RedeemedFile:
    file_name: str
    file_type: str
    data: bytes
