import json
import os
import threading
import time

import pytest

from robin_sync.application.exceptions import StorageError
from robin_sync.infrastructure.document_store import JsonFileDocumentStore


def test_load_missing_document_persists_default(tmp_path):
    store = JsonFileDocumentStore(tmp_path)
    default = {"bearer": None, "refresh": None}

    assert store.load("tokens", default) == default
    with (tmp_path / "tokens.json").open("r", encoding="utf-8") as handle:
        assert json.load(handle) == default


def test_second_load_returns_persisted_default_not_new_one(tmp_path):
    store = JsonFileDocumentStore(tmp_path)

    first = store.load("tokens", {"bearer": None, "refresh": None})
    second = store.load("tokens", {"bearer": "other", "refresh": "other"})

    assert second == first == {"bearer": None, "refresh": None}


def test_save_then_load_round_trip(tmp_path):
    store = JsonFileDocumentStore(tmp_path)
    value = {"bearer": "B1", "refresh": "R2", "nested": [1, 2.5, None, True]}

    store.save("tokens", value)

    assert store.load("tokens", {}) == value


def test_documents_survive_a_new_store_instance(tmp_path):
    JsonFileDocumentStore(tmp_path).save("tokens", {"bearer": "B1", "refresh": "R1"})

    reopened = JsonFileDocumentStore(tmp_path)

    assert reopened.load("tokens", {"bearer": None, "refresh": None}) == {"bearer": "B1", "refresh": "R1"}


def test_malformed_document_raises_and_is_left_untouched(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileDocumentStore(tmp_path)

    with pytest.raises(StorageError) as excinfo:
        store.load("tokens", {"bearer": None})

    assert excinfo.value.path == str(path)
    assert path.read_text(encoding="utf-8") == "{not json"


def test_unreadable_location_raises_storage_error(tmp_path):
    (tmp_path / "tokens.json").mkdir()
    store = JsonFileDocumentStore(tmp_path)

    with pytest.raises(StorageError):
        store.load("tokens", {})


@pytest.mark.parametrize("name", ["", "../escape", "a/b", "..", "a\\b"])
def test_invalid_names_are_rejected(tmp_path, name):
    store = JsonFileDocumentStore(tmp_path)

    with pytest.raises(StorageError):
        store.save(name, {})


def test_unserializable_value_keeps_previous_document(tmp_path):
    store = JsonFileDocumentStore(tmp_path)
    store.save("tokens", {"bearer": "B1"})

    with pytest.raises(StorageError):
        store.save("tokens", {"bearer": object()})

    assert store.load("tokens", {}) == {"bearer": "B1"}
    assert not list(tmp_path.glob(".tokens.*.tmp"))


@pytest.mark.skipif(os.name == "nt", reason="POSIX file permissions only")
def test_documents_are_owner_only(tmp_path):
    store = JsonFileDocumentStore(tmp_path)

    store.save("tokens", {"bearer": "B1"})

    mode = (tmp_path / "tokens.json").stat().st_mode & 0o777
    assert mode == 0o600


def test_same_name_operations_never_overlap(tmp_path, monkeypatch):
    store = JsonFileDocumentStore(tmp_path)
    original_write = store._write
    active = 0
    max_active = 0
    counter_lock = threading.Lock()

    def slow_write(path, value):
        nonlocal active, max_active
        with counter_lock:
            active += 1
            max_active = max(max_active, active)
        time.sleep(0.01)
        original_write(path, value)
        with counter_lock:
            active -= 1

    monkeypatch.setattr(store, "_write", slow_write)

    values = [{"bearer": f"B{i}", "refresh": f"R{i}" * 50} for i in range(8)]
    threads = [threading.Thread(target=store.save, args=("tokens", value)) for value in values]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert max_active == 1
    assert store.load("tokens", {}) in values


def test_distinct_names_do_not_block_each_other(tmp_path):
    store = JsonFileDocumentStore(tmp_path)
    finished = threading.Event()

    def save_other():
        store.save("other", {"value": 1})
        finished.set()

    with store.lock_for("tokens"):
        worker = threading.Thread(target=save_other)
        worker.start()
        assert finished.wait(timeout=2), "save on a different name blocked behind the tokens lock"
    worker.join(timeout=2)

    assert store.load("other", {}) == {"value": 1}


def test_same_name_waits_for_lock_holder(tmp_path):
    store = JsonFileDocumentStore(tmp_path)
    finished = threading.Event()

    def save_tokens():
        store.save("tokens", {"bearer": "late"})
        finished.set()

    with store.lock_for("tokens"):
        worker = threading.Thread(target=save_tokens)
        worker.start()
        assert not finished.wait(timeout=0.2)
    worker.join(timeout=2)

    assert finished.is_set()
    assert store.load("tokens", {}) == {"bearer": "late"}


def test_lock_for_returns_the_same_lock_per_name(tmp_path):
    store = JsonFileDocumentStore(tmp_path)

    assert store.lock_for("tokens") is store.lock_for("tokens")
    assert store.lock_for("tokens") is not store.lock_for("other")


def test_same_document_is_locked_across_store_instances(tmp_path):
    first = JsonFileDocumentStore(tmp_path)
    second = JsonFileDocumentStore(str(tmp_path))
    finished = threading.Event()

    def save_through_second():
        second.save("tokens", {"bearer": "from-second"})
        finished.set()

    with first.lock_for("tokens"):
        worker = threading.Thread(target=save_through_second)
        worker.start()
        assert not finished.wait(timeout=0.2), "second store wrote while the first held the document lock"
    worker.join(timeout=2)

    assert finished.is_set()
    assert first.lock_for("tokens") is second.lock_for("tokens")
    assert first.load("tokens", {}) == {"bearer": "from-second"}
