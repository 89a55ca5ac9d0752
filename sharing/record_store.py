from abc import ABC, abstractmethod
from datetime import datetime

from sharing.models import ShareRecord


class ShareRecordStore(ABC):
    """
    Abstract interface for share record persistence.

    Swap implementations (local JSON file, SQL table, S3, etc.) by injecting a
    different concrete subclass; the share service only depends on this
    interface. Every write operation is atomic on its own.
    """

    @abstractmethod
    def create(self, record: ShareRecord) -> None:
        """Persist a new record. Raise DuplicateCode if its share code is taken."""
        ...

    @abstractmethod
    def get_by_code(self, code: str) -> ShareRecord:
        """Return the record for `code` or raise NotFound."""
        ...

    @abstractmethod
    def increment_download_count(self, code: str) -> int:
        """
        Add one download to `code` only while it is below its ceiling.

        Returns the new count. Raises NotFound for an unknown code and
        QuotaExhausted when the ceiling has already been reached.
        """
        ...

    @abstractmethod
    def delete(self, code: str) -> None:
        """Remove a record. Unknown codes are ignored."""
        ...

    @abstractmethod
    def list_all(self) -> list[ShareRecord]:
        ...

    @abstractmethod
    def delete_expired(self, now: datetime) -> int:
        """Remove every record with expires_at <= now and return how many went."""
        ...
