from __future__ import annotations

from dataclasses import replace
from typing import Literal

from . import config
from .logging_utils import _harvest_event
from .utils import log_line

Entrypoint = Literal["ui", "cli", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _harvest_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def validate_harvest_config(
    harvest_config: config.HarvestConfig, entrypoint: Entrypoint
) -> config.HarvestConfig:
    """Validate ``harvest_config`` for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Recoverable values are clamped, logged, and returned in a corrected copy.
    """

    if harvest_config.batch_limit < 1:
        _raise_config_error(
            "HARVEST_BATCH_LIMIT must be at least 1.",
            entrypoint=entrypoint,
            error="batch_limit_invalid",
        )

    if harvest_config.fetch_timeout_s <= 0:
        _raise_config_error(
            "HARVEST_FETCH_TIMEOUT_S must be greater than zero.",
            entrypoint=entrypoint,
            error="invalid_timeout",
        )

    if config.is_demo_source(harvest_config.source_kind):
        if harvest_config.demo_max_pages < 1:
            _raise_config_error(
                "HARVEST_DEMO_MAX_PAGES must be at least 1.",
                entrypoint=entrypoint,
                error="demo_max_pages_invalid",
            )
    elif harvest_config.source_kind != "html":
        _raise_config_error(
            f"Unknown HARVEST_SOURCE {harvest_config.source_kind!r}; use 'html' or 'demo'.",
            entrypoint=entrypoint,
            error="source_kind_invalid",
        )
    else:
        if not harvest_config.source.base_url.startswith(("http://", "https://")):
            _raise_config_error(
                "HARVEST_SOURCE_BASE_URL must be an http(s) URL.",
                entrypoint=entrypoint,
                error="base_url_invalid",
            )
        if not harvest_config.source.item_selector or not harvest_config.source.name_selector:
            _raise_config_error(
                "HARVEST_ITEM_SELECTOR and HARVEST_NAME_SELECTOR are required for the html source.",
                entrypoint=entrypoint,
                error="selectors_missing",
            )

    if harvest_config.pacing_interval_ms < 0:
        adjusted = config.DEFAULT_PACING_INTERVAL_MS
        _harvest_event(
            "state",
            phase="config",
            context="runtime_validation",
            kind="config_adjustment",
            field="HARVEST_PACING_INTERVAL_MS",
            value=harvest_config.pacing_interval_ms,
            adjusted=adjusted,
            entrypoint=entrypoint,
        )
        log_line(
            f"[CONFIG] HARVEST_PACING_INTERVAL_MS < 0; using the default of {adjusted} ms."
        )
        harvest_config = replace(harvest_config, pacing_interval_ms=adjusted)

    if harvest_config.enrichment_enabled and not harvest_config.hunter_api_key:
        log_line("[CONFIG] HUNTER_API_KEY not set; records without a contact stay empty.")

    return harvest_config


__all__ = ["validate_harvest_config", "Entrypoint"]
