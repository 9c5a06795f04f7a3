from __future__ import annotations

from pathlib import Path

import pytest

from app.harvester import persistence
from app.harvester.persistence import PersistenceBridge
from app.harvester.records import RawRecord, Record
from app.harvester.snapshot_store import JsonFileSnapshotStore, MemorySnapshotStore


def _records() -> list[Record]:
    return [
        Record.from_raw(RawRecord("Feeding America", "161 North Clark Street, Chicago, IL 60601",
                                  "https://www.feedingamerica.org", "info@feedingamerica.org")),
        Record.from_raw(RawRecord("No Address Org")),
    ]


def test_snapshot_then_restore(tmp_path: Path) -> None:
    bridge = PersistenceBridge(JsonFileSnapshotStore(tmp_path), "harvested_records")
    records = _records()

    assert bridge.snapshot(records) is True
    assert bridge.restore() == records


def test_restore_without_snapshot_returns_none() -> None:
    bridge = PersistenceBridge(MemorySnapshotStore(), "harvested_records")
    assert bridge.restore() is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        '{"name": "not a list"}',
        '[{"address": "missing name"}]',
        '[{"name": "A", "address": 12}]',
        '["just a string"]',
    ],
)
def test_corrupt_snapshot_is_discarded(raw: str, monkeypatch: pytest.MonkeyPatch) -> None:
    events: list[tuple[str, dict]] = []
    monkeypatch.setattr(persistence, "_harvest_event", lambda label, **fields: events.append((label, fields)))

    store = MemorySnapshotStore()
    store.put_raw("harvested_records", raw)
    bridge = PersistenceBridge(store, "harvested_records")

    assert bridge.restore() is None
    assert store.load("harvested_records") is None
    assert events and events[0][0] == "error"
    assert events[0][1]["error_code"] == "snapshot_corrupt"


def test_unreadable_snapshot_returns_none(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    events: list[tuple[str, dict]] = []
    monkeypatch.setattr(persistence, "_harvest_event", lambda label, **fields: events.append((label, fields)))

    store = JsonFileSnapshotStore(tmp_path)
    store.path_for("harvested_records").mkdir(parents=True)
    bridge = PersistenceBridge(store, "harvested_records")

    assert bridge.restore() is None
    assert store.path_for("harvested_records").is_dir()
    assert [label for label, _ in events] == ["error"]
    assert events[0][1]["phase"] == "restore"


def test_restore_accepts_legacy_field_names() -> None:
    store = MemorySnapshotStore()
    store.save(
        "harvested_records",
        [{"name": "Old", "address": "Austin, TX 73301", "website": "", "email": "a@b.org", "state": "TX"}],
    )

    restored = PersistenceBridge(store, "harvested_records").restore()

    assert restored == [Record(name="Old", address="Austin, TX 73301", website="", contact="a@b.org", region="TX")]


def test_restore_keeps_stored_region() -> None:
    store = MemorySnapshotStore()
    store.save("k", [{"name": "A", "address": "Chicago, IL 60601", "region": "Unknown"}])

    restored = PersistenceBridge(store, "k").restore()

    assert restored is not None
    assert restored[0].region == "Unknown"


def test_snapshot_failure_is_reported_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    class BrokenStore(MemorySnapshotStore):
        def save(self, key, value):  # noqa: ANN001
            raise OSError("disk full")

    events: list[str] = []
    monkeypatch.setattr(persistence, "_harvest_event", lambda label, **fields: events.append(label))

    bridge = PersistenceBridge(BrokenStore(), "k")
    assert bridge.snapshot(_records()) is False
    assert events == ["error"]


def test_clear_removes_snapshot() -> None:
    store = MemorySnapshotStore()
    bridge = PersistenceBridge(store, "k")
    bridge.snapshot(_records())

    bridge.clear()

    assert store.load("k") is None
