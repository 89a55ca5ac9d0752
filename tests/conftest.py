from datetime import datetime, timedelta, timezone

import pytest

from sharing import codec
from sharing.models import ShareRecord

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    """Factory for ShareRecord values with sensible defaults."""

    def _make(code: str = "ABC12345", **overrides) -> ShareRecord:
        fields = {
            "id": f"{code}-id",
            "share_code": code,
            "file_name": "notes.txt",
            "file_size": 5,
            "file_type": "text/plain",
            "payload": codec.encode(b"hello", "text/plain"),
            "has_password": False,
            "password_digest": None,
            "uploaded_at": NOW,
            "expires_at": NOW + timedelta(hours=1),
            "download_count": 0,
            "max_downloads": 100,
        }
        fields.update(overrides)
        return ShareRecord(**fields)

    return _make
