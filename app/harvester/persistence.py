"""Snapshot and restore of the record store."""
from __future__ import annotations

from typing import Any, Optional, Sequence

from .logging_utils import _harvest_event
from .records import Record
from .snapshot_store import SnapshotCorruptError
from .utils import log_line


class PersistenceBridge:
    """Saves the full record list under one key of a snapshot store.

    Only records are written. The region tally is always rederived from them
    on restore.
    """

    def __init__(self, store: Any, key: str) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def snapshot(self, records: Sequence[Record]) -> bool:
        """Best-effort save; returns ``False`` when the store rejected it."""

        try:
            self._store.save(self._key, [record.to_dict() for record in records])
        except (OSError, TypeError, ValueError) as exc:
            _harvest_event("error", phase="snapshot", key=self._key, records=len(records), error=str(exc))
            return False
        return True

    def restore(self) -> Optional[list[Record]]:
        """Return the stored records, or ``None`` when nothing usable exists.

        A corrupt snapshot is removed so the next start is clean. An unreadable
        one is left in place and the store starts empty.
        """

        try:
            payload = self._store.load(self._key)
            if payload is None:
                return None
            if not isinstance(payload, list):
                raise SnapshotCorruptError(
                    self._key, f"expected a list of records, got {type(payload).__name__}"
                )
            try:
                records = [Record.from_dict(item) for item in payload]
            except ValueError as exc:
                raise SnapshotCorruptError(self._key, str(exc)) from exc
        except OSError as exc:
            _harvest_event("error", phase="restore", key=self._key, error=str(exc))
            log_line(f"[SNAPSHOT] Could not read snapshot {self._key!r}: {exc}")
            return None
        except SnapshotCorruptError as exc:
            _harvest_event("error", phase="restore", key=self._key, error_code=exc.error_code, error=str(exc))
            log_line(f"[SNAPSHOT] Discarding unreadable snapshot {self._key!r}: {exc}")
            self.clear()
            return None

        log_line(f"[SNAPSHOT] Loaded {len(records)} records from {self._key!r}")
        return records

    def clear(self) -> None:
        try:
            self._store.remove(self._key)
        except OSError as exc:
            _harvest_event("error", phase="snapshot_clear", key=self._key, error=str(exc))


__all__ = ["PersistenceBridge"]
