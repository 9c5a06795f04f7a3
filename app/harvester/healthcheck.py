from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional

from . import config
from .config_validation import validate_harvest_config
from .logging_utils import _harvest_event
from .snapshot_store import JsonFileSnapshotStore, SnapshotCorruptError
from .utils import ensure_dirs, log_line


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]


def run_health_checks(
    entrypoint: str = "cli", harvest_config: Optional[config.HarvestConfig] = None
) -> HealthResult:
    checks: dict[str, dict[str, Any]] = {}
    harvest_config = harvest_config or config.HarvestConfig.from_env()

    try:
        validate_harvest_config(harvest_config, entrypoint or "cli")
        checks["config"] = {"ok": True, "source": harvest_config.source_kind}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    try:
        ensure_dirs()
        fs_ok = os.access(config.DATA_DIR, os.W_OK)
        checks["filesystem"] = {"ok": fs_ok, "data_dir": str(config.DATA_DIR)}
    except OSError as exc:
        checks["filesystem"] = {"ok": False, "data_dir": str(config.DATA_DIR), "error": str(exc)}

    store = JsonFileSnapshotStore(harvest_config.snapshot_dir)
    try:
        payload = store.load(harvest_config.snapshot_key)
        checks["snapshot"] = {
            "ok": payload is None or isinstance(payload, list),
            "present": payload is not None,
            "records": len(payload) if isinstance(payload, list) else 0,
        }
    except (SnapshotCorruptError, OSError) as exc:
        checks["snapshot"] = {"ok": False, "present": True, "error": str(exc)}

    overall_ok = all(check.get("ok", False) for check in checks.values())

    _harvest_event(
        "state" if overall_ok else "error",
        phase="health",
        context="healthcheck",
        ok=overall_ok,
        checks=checks,
    )

    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks(entrypoint="cli")
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
