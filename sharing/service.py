import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Optional

from sharing import code_generator, codec, hasher
from sharing.errors import (
    CodeSpaceExhausted,
    DuplicateCode,
    Expired,
    FileTooLarge,
    InvalidPassword,
    InvalidShareSettings,
    NotFound,
    PasswordRequired,
    QuotaExhausted,
    ShareError,
)
from sharing.models import (
    FileUpload,
    RedeemedFile,
    SharedFile,
    ShareRecord,
    ShareSettings,
    as_utc,
    utc_now,
    validate_max_downloads,
)
from sharing.record_store import ShareRecordStore

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


class ShareService:
    """
    Creates shares and redeems them against an injected ShareRecordStore.

    The service never locks across store calls: the store's conditional
    increment is what keeps concurrent redemptions within max_downloads.
    """

    def __init__(
        self,
        store: ShareRecordStore,
        max_file_size: int | None = None,
        clock: Callable[[], datetime] = utc_now,
        code_attempts: int = MAX_CODE_ATTEMPTS,
    ):
        self._store = store
        self._max_file_size = max_file_size
        self._clock = clock
        self._code_attempts = code_attempts
        self._latest_now: datetime | None = None
        self._clock_lock = threading.Lock()

    @property
    def store(self) -> ShareRecordStore:
        return self._store

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_share(
        self,
        upload: FileUpload,
        settings: ShareSettings,
        progress: Optional[Callable[[int], None]] = None,
    ) -> SharedFile:
        """
        Store `upload` under a new share code and return its view.

        The returned SharedFile is the only place the plaintext password is
        ever available again.
        """
        if self._max_file_size is not None and upload.size > self._max_file_size:
            raise FileTooLarge(upload.size, self._max_file_size)
        max_downloads = validate_max_downloads(settings.max_downloads)
        password = _clean_password(settings.password)
        if settings.password and not password:
            raise InvalidShareSettings("Password cannot be only whitespace")

        custom_code = None
        if settings.custom_code:
            custom_code = code_generator.validate_custom(settings.custom_code)
            if self._code_exists(custom_code):
                raise DuplicateCode(custom_code)

        payload = codec.encode(upload.data, upload.file_type, progress=progress)
        password_digest = hasher.digest(password) if password else None
        uploaded_at = self._now()

        def build(code: str) -> ShareRecord:
            return ShareRecord(
                id=str(uuid.uuid4()),
                share_code=code,
                file_name=(settings.custom_file_name or "").strip() or upload.name,
                file_size=upload.size,
                file_type=upload.file_type,
                payload=payload,
                has_password=password_digest is not None,
                password_digest=password_digest,
                uploaded_at=uploaded_at,
                expires_at=as_utc(settings.expires_at),
                download_count=0,
                max_downloads=max_downloads,
            )

        if custom_code is not None:
            record = build(custom_code)
            self._store.create(record)
        else:
            record = self._create_with_generated_code(build)

        logger.info(
            "Created share %s for %s (%d bytes, expires %s)",
            record.share_code, record.file_name, record.file_size, record.expires_at.isoformat(),
        )
        return SharedFile.from_record(record, password=password or None)

    def redeem(self, code: str, password: str | None = None) -> RedeemedFile:
        """
        Check a share code and return the file it unlocks.

        Checks run in a fixed order: existence, expiry, download quota, then
        password. A success counts as one download.
        """
        code = code_generator.normalize(code)
        if not code:
            raise NotFound(code)
        record = self._store.get_by_code(code)

        if record.is_expired(self._now()):
            logger.info("Refused expired share %s", code)
            raise Expired(code)
        if record.is_exhausted():
            logger.info("Refused exhausted share %s", code)
            raise QuotaExhausted(code)
        if record.has_password:
            password = _clean_password(password)
            if not password:
                raise PasswordRequired(code)
            if not hasher.verify(password, record.password_digest):
                logger.info("Refused share %s: wrong password", code)
                raise InvalidPassword(code)

        data = codec.decode(record.payload)
        count = self._store.increment_download_count(code)
        logger.info("Share %s downloaded (%d/%s)", code, count,
                    "unlimited" if record.is_unlimited else record.max_downloads)
        return RedeemedFile(file_name=record.file_name, file_type=record.file_type, data=data)

    def list_owned(self) -> list[SharedFile]:
        """Every live share, newest first. Expired records are swept beforehand."""
        self._try_sweep()
        records = sorted(self._store.list_all(), key=lambda r: r.uploaded_at, reverse=True)
        return [SharedFile.from_record(record) for record in records]

    def revoke(self, code: str) -> None:
        code = code_generator.normalize(code)
        if code:
            self._store.delete(code)
            logger.info("Revoked share %s", code)

    def sweep_expired(self, now: datetime | None = None) -> int:
        removed = self._store.delete_expired(as_utc(now) if now else self._now())
        if removed:
            logger.info("Removed %d expired share(s)", removed)
        return removed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        # Never let time run backwards: an expired share stays expired even if
        # the system clock is set back.
        now = as_utc(self._clock())
        with self._clock_lock:
            if self._latest_now is None or now > self._latest_now:
                self._latest_now = now
            return self._latest_now

    def _code_exists(self, code: str) -> bool:
        try:
            self._store.get_by_code(code)
        except NotFound:
            return False
        return True

    def _create_with_generated_code(self, build: Callable[[str], ShareRecord]) -> ShareRecord:
        for attempt in range(1, self._code_attempts + 1):
            record = build(code_generator.generate())
            try:
                self._store.create(record)
                return record
            except DuplicateCode:
                logger.debug("Generated code collided (attempt %d)", attempt)
        raise CodeSpaceExhausted(self._code_attempts)

    def _try_sweep(self) -> None:
        try:
            self.sweep_expired()
        except ShareError as e:
            logger.warning("Expired share sweep failed: %s", e)


def _clean_password(password: str | None) -> str:
    return password.strip() if password else ""
