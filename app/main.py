from __future__ import annotations

import os
from dataclasses import replace
from typing import Any, Optional

from flask import Flask, Response, jsonify, request, send_file

from app.harvester import config
from app.harvester.config_validation import validate_harvest_config
from app.harvester.controller import IngestionController
from app.harvester.export_excel import export_records_to_excel
from app.harvester.exporter import EmptyExportError, export_filename
from app.harvester.healthcheck import run_health_checks
from app.harvester.logging_utils import _harvest_event
from app.harvester.scheduling import ThreadScheduler
from app.harvester.utils import ensure_dirs, get_current_log_path

app = Flask(__name__)

# Request fields that override the configured source for one run.
SOURCE_FIELDS = {
    "source_base_url": "base_url",
    "item_selector": "item_selector",
    "name_selector": "name_selector",
    "address_selector": "address_selector",
    "website_selector": "website_selector",
    "next_selector": "next_selector",
}

# Storage paths, the controller and its restored snapshot are set up on import
# so WSGI entrypoints get the same state as ``python main.py``. A bad
# configuration keeps the app up with starting disabled; the stored records
# stay readable through a controller built from the defaults.
ensure_dirs()
CONFIG_ERROR: Optional[str] = None
try:
    HARVEST_CONFIG = validate_harvest_config(config.HarvestConfig.from_env(), "ui")
    _controller_config = HARVEST_CONFIG
except ValueError as exc:
    HARVEST_CONFIG = config.HarvestConfig.from_env()
    CONFIG_ERROR = str(exc)
    _controller_config = config.HarvestConfig(
        snapshot_dir=HARVEST_CONFIG.snapshot_dir,
        snapshot_key=HARVEST_CONFIG.snapshot_key,
    )
CONTROLLER = IngestionController.from_config(_controller_config, scheduler=ThreadScheduler())
CONTROLLER.restore()


def get_controller() -> IngestionController:
    """Return the controller serving this process."""

    return app.config.get("HARVEST_CONTROLLER") or CONTROLLER


def _read_last_log_lines(limit: int = 150) -> list[str]:
    """Return the trailing ``limit`` log lines."""

    path = get_current_log_path()
    if not path.exists():
        return []

    with path.open("r", encoding="utf-8", errors="ignore") as handle:
        lines = handle.readlines()[-limit:]
    return [line.rstrip("\n") for line in lines]


def _status_response(ok: bool, status_code: int = 200, **extra: Any) -> Response:
    payload = {"ok": ok, **extra, **get_controller().status_payload()}
    return jsonify(payload), status_code


@app.get("/")
@app.get("/api/status")
def api_status() -> Response:
    """Return the ingestion state, region tally and recent activity."""

    return _status_response(True)


@app.post("/api/start")
def api_start() -> Response:
    """Start or resume harvesting in the background worker."""

    if CONFIG_ERROR:
        return jsonify({"ok": False, "error": "config_invalid", "details": CONFIG_ERROR}), 400

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    overrides: dict[str, Any] = {
        field: str(body[key]).strip() for key, field in SOURCE_FIELDS.items() if body.get(key) is not None
    }
    if "next_selector" in overrides:
        overrides["next_selector"] = overrides["next_selector"] or None
    controller = get_controller()
    if overrides:
        try:
            run_config = validate_harvest_config(
                HARVEST_CONFIG.with_overrides(source=replace(HARVEST_CONFIG.source, **overrides)), "ui"
            )
        except ValueError as exc:
            return jsonify({"ok": False, "error": "config_invalid", "details": str(exc)}), 400
        if not controller.reconfigure_source(run_config):
            return _status_response(False, 409, error="source_locked")

    started = controller.start()
    if not started:
        return _status_response(False, 409, error="start_rejected")
    return _status_response(True, 202)


@app.post("/api/pause")
def api_pause() -> Response:
    if not get_controller().pause():
        return _status_response(False, 409, error="not_running")
    return _status_response(True)


@app.post("/api/reset")
def api_reset() -> Response:
    """Clear all harvested records and the stored snapshot."""

    get_controller().reset()
    return _status_response(True)


@app.get("/api/records")
def api_records() -> Response:
    """Return harvested records in arrival order, optionally for one region."""

    region = (request.args.get("state") or "").strip()
    records = get_controller().records
    if region:
        records = [record for record in records if record.region == region]
    return jsonify({"count": len(records), "data": [record.to_dict() for record in records]})


@app.get("/api/logs")
def api_logs() -> Response:
    limit = max(1, min(request.args.get("limit", 150, type=int), 1000))
    return jsonify({"log_file": get_current_log_path().name, "lines": _read_last_log_lines(limit)})


@app.get("/api/health")
def api_health() -> Response:
    """Return a JSON health summary for configuration, filesystem and snapshot."""

    result = run_health_checks(entrypoint="ui", harvest_config=HARVEST_CONFIG)
    status = 200 if result.ok else 503
    return jsonify({"ok": result.ok, "checks": result.checks}), status


@app.get("/export/csv")
def export_csv() -> Response:
    """Provide the harvested records as a downloadable CSV file."""

    body = get_controller().export_csv()
    if body is None:
        return jsonify({"ok": False, "error": "nothing_to_export"}), 404
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export_filename()}"},
    )


@app.get("/export/xlsx")
def export_xlsx() -> Response:
    """Provide the harvested records as an Excel workbook with a sheet per state."""

    try:
        path = export_records_to_excel(get_controller().records)
    except EmptyExportError:
        return jsonify({"ok": False, "error": "nothing_to_export"}), 404
    _harvest_event("state", phase="export", kind="xlsx", path=path)
    return send_file(path, as_attachment=True, download_name=os.path.basename(path))


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8080)
