from __future__ import annotations

from pathlib import Path

import pytest

from app.harvester.snapshot_store import JsonFileSnapshotStore, MemorySnapshotStore, SnapshotCorruptError


def test_json_store_save_load_remove(tmp_path: Path) -> None:
    store = JsonFileSnapshotStore(tmp_path / "snapshots")

    assert store.load("records") is None

    store.save("records", [{"name": "A"}, {"name": "B"}])
    assert store.load("records") == [{"name": "A"}, {"name": "B"}]
    assert store.path_for("records").exists()
    assert not store.path_for("records").with_suffix(".tmp").exists()

    store.remove("records")
    assert store.load("records") is None
    store.remove("records")


def test_json_store_overwrites(tmp_path: Path) -> None:
    store = JsonFileSnapshotStore(tmp_path)
    store.save("k", [1])
    store.save("k", [1, 2])
    assert store.load("k") == [1, 2]


def test_json_store_sanitises_keys(tmp_path: Path) -> None:
    store = JsonFileSnapshotStore(tmp_path)
    path = store.path_for("../escape/key")
    assert path.parent == tmp_path
    assert path.name == "escape_key.json"


def test_json_store_corrupt_file(tmp_path: Path) -> None:
    store = JsonFileSnapshotStore(tmp_path)
    store.path_for("records").write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotCorruptError) as excinfo:
        store.load("records")
    assert excinfo.value.key == "records"
    assert excinfo.value.error_code == "snapshot_corrupt"


def test_memory_store_round_trips_through_json() -> None:
    store = MemorySnapshotStore()
    value = [{"name": "A", "contact": None}]
    store.save("records", value)

    loaded = store.load("records")
    assert loaded == value
    assert loaded is not value

    store.put_raw("records", "garbage")
    with pytest.raises(SnapshotCorruptError):
        store.load("records")

    store.remove("records")
    assert store.load("records") is None
