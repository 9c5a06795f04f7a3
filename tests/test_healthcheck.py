from __future__ import annotations

import pytest

from app.harvester import healthcheck
from app.harvester.config import HarvestConfig
from app.harvester.snapshot_store import JsonFileSnapshotStore


def _config(tmp_path, **overrides) -> HarvestConfig:  # noqa: ANN001
    return HarvestConfig(source_kind="demo", snapshot_dir=tmp_path / "snapshots", **overrides)


def test_run_health_checks_happy_path(tmp_path) -> None:  # noqa: ANN001
    harvest_config = _config(tmp_path)
    JsonFileSnapshotStore(harvest_config.snapshot_dir).save(
        harvest_config.snapshot_key, [{"name": "A", "address": "", "website": "", "contact": None, "region": "Unknown"}]
    )

    result = healthcheck.run_health_checks(entrypoint="ui", harvest_config=harvest_config)

    assert result.ok is True
    assert result.checks["config"]["ok"] is True
    assert result.checks["filesystem"]["ok"] is True
    assert result.checks["snapshot"] == {"ok": True, "present": True, "records": 1}


def test_run_health_checks_handles_invalid_config(tmp_path) -> None:  # noqa: ANN001
    result = healthcheck.run_health_checks(entrypoint="cli", harvest_config=_config(tmp_path, batch_limit=0))

    assert result.ok is False
    assert result.checks["config"]["ok"] is False
    assert result.checks["snapshot"]["present"] is False


def test_run_health_checks_flags_corrupt_snapshot(tmp_path) -> None:  # noqa: ANN001
    harvest_config = _config(tmp_path)
    path = JsonFileSnapshotStore(harvest_config.snapshot_dir).path_for(harvest_config.snapshot_key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{oops", encoding="utf-8")

    result = healthcheck.run_health_checks(entrypoint="cli", harvest_config=harvest_config)

    assert result.ok is False
    assert result.checks["snapshot"]["ok"] is False


def test_run_health_checks_emits_event(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    events: list[tuple[str, dict]] = []
    monkeypatch.setattr(healthcheck, "_harvest_event", lambda label, **fields: events.append((label, fields)))

    healthcheck.run_health_checks(entrypoint="cli", harvest_config=_config(tmp_path))

    assert events[-1][0] == "state"
    assert events[-1][1]["phase"] == "health"
