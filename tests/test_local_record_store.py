import json
import threading

import pytest

from sharing.errors import QuotaExhausted, StoreUnavailable
from sharing.local_record_store import LocalRecordStore


@pytest.fixture
def store(tmp_path):
    return LocalRecordStore(tmp_path / "shares.json")


def test_file_is_keyed_by_share_code_with_iso_timestamps(store, make_record):
    store.create(make_record("MYCODE01"))

    stored = json.loads(store.path.read_text())
    assert list(stored) == ["MYCODE01"]
    entry = stored["MYCODE01"]
    assert entry["uploaded_at"] == "2024-06-01T12:00:00+00:00"
    assert entry["file_data"].startswith("data:text/plain;base64,")
    assert entry["has_password"] is False
    assert entry["password_hash"] is None


def test_creates_parent_directory(tmp_path, make_record):
    store = LocalRecordStore(tmp_path / "nested" / "dir" / "shares.json")
    store.create(make_record())
    assert store.path.exists()


def test_missing_file_reads_as_empty(store):
    assert store.list_all() == []
    assert not store.path.exists()


def test_malformed_json_raises_store_unavailable(store):
    store.path.write_text("this is not valid json")
    with pytest.raises(StoreUnavailable):
        store.list_all()


def test_non_object_json_raises_store_unavailable(store):
    store.path.write_text("[1, 2, 3]")
    with pytest.raises(StoreUnavailable):
        store.get_by_code("ANY")


def test_malformed_entry_raises_store_unavailable(store):
    store.path.write_text(json.dumps({"BROKEN01": {"share_code": "BROKEN01"}}))
    with pytest.raises(StoreUnavailable):
        store.get_by_code("BROKEN01")


def test_failed_write_leaves_existing_file_intact(store, make_record, monkeypatch):
    store.create(make_record("KEEP0001"))
    before = store.path.read_text()

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("sharing.local_record_store.json.dump", boom)
    with pytest.raises(StoreUnavailable):
        store.create(make_record("LOST0001"))

    assert store.path.read_text() == before
    assert [p.name for p in store.path.parent.iterdir()] == ["shares.json"]


def test_concurrent_increments_never_pass_ceiling(store, make_record):
    store.create(make_record("RACE0001", max_downloads=5))
    successes = []
    refusals = []

    def redeem():
        try:
            successes.append(store.increment_download_count("RACE0001"))
        except QuotaExhausted:
            refusals.append(1)

    threads = [threading.Thread(target=redeem) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(successes) == [1, 2, 3, 4, 5]
    assert len(refusals) == 15
    assert store.get_by_code("RACE0001").download_count == 5
