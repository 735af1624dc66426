"""Tests for the capped report histories."""

import json
import threading
import time

import pytest

from solar_inspection.services.history_store import (
    ANALYSIS_HISTORY_KEY,
    MEGA_SOLAR_HISTORY_KEY,
    HistoryRepository,
    InMemoryStorage,
    SQLiteStorage,
    StorageError,
    create_analysis_history,
    create_mega_solar_history,
)


class SlowStorage(InMemoryStorage):
    """In-memory storage whose reads are slow enough to interleave writers."""

    def get_item(self, key):
        value = super().get_item(key)
        time.sleep(0.01)
        return value


class BrokenStorage:
    """Storage whose every operation fails."""

    def get_item(self, key):
        raise StorageError("disk unavailable")

    def set_item(self, key, value):
        raise StorageError("disk unavailable")

    def remove_item(self, key):
        raise StorageError("disk unavailable")


@pytest.fixture
def repository(memory_storage):
    return HistoryRepository(memory_storage, key="test-history", max_items=3, id_prefix="test")


def test_newest_first_and_capped(repository):
    items = [repository.add_to_history({"n": n}) for n in range(5)]
    history = repository.get_history()

    assert [item.data["n"] for item in history] == [4, 3, 2]
    assert history[0].id == items[-1].id


def test_mega_solar_history_keeps_twenty_newest(memory_storage):
    history = create_mega_solar_history(memory_storage)
    for n in range(25):
        history.add_to_history({"n": n})

    stored = history.get_history()
    assert len(stored) == 20
    assert [item.data["n"] for item in stored] == list(range(24, 4, -1))


def test_factory_caps_and_prefixes(memory_storage):
    analysis = create_analysis_history(memory_storage)
    mega = create_mega_solar_history(memory_storage)

    assert (analysis.key, analysis.max_items) == (ANALYSIS_HISTORY_KEY, 50)
    assert (mega.key, mega.max_items) == (MEGA_SOLAR_HISTORY_KEY, 20)
    assert analysis.add_to_history({}).id.startswith("analysis-")
    assert mega.add_to_history({}).id.startswith("mega-solar-")


def test_histories_do_not_share_entries(memory_storage):
    analysis = create_analysis_history(memory_storage)
    mega = create_mega_solar_history(memory_storage)
    analysis.add_to_history({"kind": "analysis"})

    assert mega.get_history() == []


def test_ids_are_unique(repository):
    ids = {repository.add_to_history({}).id for _ in range(3)}
    assert len(ids) == 3


def test_stored_entries_are_flat_json(repository, memory_storage):
    item = repository.add_to_history({"site": {"name": "Plant"}})
    entries = json.loads(memory_storage.get_item("test-history"))

    assert entries[0]["id"] == item.id
    assert entries[0]["site"] == {"name": "Plant"}
    assert "timestamp" in entries[0]


def test_get_history_item(repository):
    item = repository.add_to_history({"n": 1})

    assert repository.get_history_item(item.id).data == {"n": 1}
    assert repository.get_history_item("missing") is None


def test_delete_history_item(repository):
    keep = repository.add_to_history({"n": 1})
    drop = repository.add_to_history({"n": 2})

    assert repository.delete_history_item(drop.id) is True
    assert repository.delete_history_item(drop.id) is False
    assert [item.id for item in repository.get_history()] == [keep.id]


def test_clear_history(repository):
    repository.add_to_history({"n": 1})
    repository.clear_history()

    assert repository.get_history() == []


@pytest.mark.parametrize("stored", ["not json{", json.dumps({"id": "x"}), json.dumps("text")])
def test_unreadable_history_is_empty(memory_storage, repository, stored):
    memory_storage.set_item("test-history", stored)
    assert repository.get_history() == []


def test_malformed_entries_are_skipped(memory_storage, repository):
    memory_storage.set_item("test-history", json.dumps([
        {"id": "good", "timestamp": "2024-06-01T12:00:00Z", "n": 1},
        {"timestamp": "2024-06-01T12:00:00"},
        {"id": "bad-time", "timestamp": "yesterday"},
        "not an object",
    ]))

    history = repository.get_history()
    assert [item.id for item in history] == ["good"]
    assert history[0].data == {"n": 1}


def test_add_to_corrupt_history_starts_over(memory_storage, repository):
    memory_storage.set_item("test-history", "not json{")
    repository.add_to_history({"n": 1})

    assert len(repository.get_history()) == 1


def test_storage_failures_degrade():
    repository = HistoryRepository(BrokenStorage(), key="test-history", max_items=3, id_prefix="test")

    assert repository.get_history() == []
    item = repository.add_to_history({"n": 1})
    assert item.data == {"n": 1}
    assert repository.delete_history_item(item.id) is False
    repository.clear_history()


def test_cap_must_be_positive(memory_storage):
    with pytest.raises(ValueError):
        HistoryRepository(memory_storage, key="k", max_items=0, id_prefix="p")


def test_sqlite_history_survives_reopen(tmp_path):
    db_path = str(tmp_path / "history.db")
    item = create_analysis_history(SQLiteStorage(db_path)).add_to_history({"n": 7})

    reopened = create_analysis_history(SQLiteStorage(db_path))
    assert reopened.get_history_item(item.id).data == {"n": 7}


def test_sqlite_storage_operations(sqlite_storage):
    assert sqlite_storage.get_item("k") is None
    sqlite_storage.set_item("k", "v1")
    sqlite_storage.set_item("k", "v2")
    assert sqlite_storage.get_item("k") == "v2"
    sqlite_storage.remove_item("k")
    assert sqlite_storage.get_item("k") is None


def test_sqlite_storage_unusable_path(tmp_path):
    with pytest.raises(StorageError):
        SQLiteStorage(str(tmp_path / "missing" / "history.db"))


def test_in_memory_remove_missing_key():
    storage = InMemoryStorage()
    storage.remove_item("absent")
    assert storage.get_item("absent") is None


def test_concurrent_adds_keep_every_entry():
    repository = HistoryRepository(SlowStorage(), key="test-history", max_items=50, id_prefix="test")
    threads = [
        threading.Thread(target=repository.add_to_history, args=({"n": n},))
        for n in range(10)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert sorted(item.data["n"] for item in repository.get_history()) == list(range(10))


def test_concurrent_add_and_delete():
    repository = HistoryRepository(SlowStorage(), key="test-history", max_items=50, id_prefix="test")
    doomed = repository.add_to_history({"n": -1})

    threads = [threading.Thread(target=repository.delete_history_item, args=(doomed.id,))]
    threads += [
        threading.Thread(target=repository.add_to_history, args=({"n": n},))
        for n in range(5)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert sorted(item.data["n"] for item in repository.get_history()) == list(range(5))


@pytest.mark.parametrize("payload", [{"id": "mine"}, {"timestamp": "2024-06-01", "n": 1}])
def test_reserved_payload_keys_are_rejected(repository, payload):
    with pytest.raises(ValueError, match="reserved"):
        repository.add_to_history(payload)
    assert repository.get_history() == []
