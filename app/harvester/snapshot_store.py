"""Key/value snapshot stores used for crash recovery."""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Optional

from .error_codes import ErrorCode

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class SnapshotCorruptError(Exception):
    """Raised when a stored snapshot cannot be parsed."""

    error_code = ErrorCode.SNAPSHOT_CORRUPT

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key


class JsonFileSnapshotStore:
    """Stores each key as a JSON document under ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def path_for(self, key: str) -> Path:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key).strip("._") or "snapshot"
        return self._root / f"{safe_key}.json"

    def save(self, key: str, value: Any) -> None:
        """Persist ``value`` atomically."""

        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(value, handle, ensure_ascii=False, indent=2)
        tmp_path.replace(path)

    def load(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SnapshotCorruptError(key, f"Snapshot {path.name} is not valid JSON: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass


class MemorySnapshotStore:
    """In-process store; values round-trip through JSON like the file store."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def save(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value, ensure_ascii=False)

    def load(self, key: str) -> Optional[Any]:
        raw = self._values.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SnapshotCorruptError(key, f"Snapshot {key!r} is not valid JSON: {exc}") from exc

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def put_raw(self, key: str, raw: str) -> None:
        """Store ``raw`` text as-is."""

        self._values[key] = raw


__all__ = ["JsonFileSnapshotStore", "MemorySnapshotStore", "SnapshotCorruptError"]
