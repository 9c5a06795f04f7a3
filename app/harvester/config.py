"""Configuration constants and runtime settings for the organization harvester."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

DATA_DIR: Path = Path(os.getenv("HARVEST_DATA_DIR", "/app/data"))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
SNAPSHOT_DIR: Path = DATA_DIR / "snapshots"
EXPORTS_DIR: Path = DATA_DIR / "exports"

SNAPSHOT_KEY: str = "harvested_records"

DEFAULT_SOURCE_BASE_URL: str = "https://www.charitynavigator.org/search?page="
DEFAULT_ITEM_SELECTOR: str = ".search-result"
DEFAULT_NAME_SELECTOR: str = "a.link-primary"
DEFAULT_ADDRESS_SELECTOR: str = ".cn-address"
DEFAULT_WEBSITE_SELECTOR: str = 'a[href^="http"]:not([href*="charitynavigator.org"])'

DEFAULT_BATCH_LIMIT: int = 1000
DEFAULT_PACING_INTERVAL_MS: int = 1000

SOURCE_KIND: str = os.getenv("HARVEST_SOURCE", "html").strip().lower() or "html"
DEMO_MAX_PAGES: int = int(os.getenv("HARVEST_DEMO_MAX_PAGES", "20"))

HUNTER_API_URL: str = "https://api.hunter.io/v2/domain-search"
HUNTER_API_KEY: str = os.getenv("HUNTER_API_KEY", "").strip()
ENRICHMENT_ENABLED: bool = os.getenv("HARVEST_ENRICHMENT", "1").strip().lower() not in {
    "0",
    "false",
}
ENRICHMENT_TIMEOUT_S: int = int(os.getenv("HARVEST_ENRICHMENT_TIMEOUT_S", "15"))

# Number of recent status lines kept for the UI activity log.
STATUS_MESSAGE_LIMIT: int = int(os.getenv("HARVEST_STATUS_MESSAGE_LIMIT", "200"))


def _parse_int(env_var: str, default: int) -> int:
    """Parse an integer from the environment, falling back on bad values."""

    try:
        return int(os.getenv(env_var, str(default)))
    except ValueError:
        return default


FETCH_TIMEOUT_S: int = _parse_int("HARVEST_FETCH_TIMEOUT_S", 30)

COMMON_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class SourceConfig:
    """Where and how the page source reads organization listings.

    The selectors are handed to the HTML source untouched; nothing else in the
    harvester interprets them.
    """

    base_url: str = DEFAULT_SOURCE_BASE_URL
    item_selector: str = DEFAULT_ITEM_SELECTOR
    name_selector: str = DEFAULT_NAME_SELECTOR
    address_selector: str = DEFAULT_ADDRESS_SELECTOR
    website_selector: str = DEFAULT_WEBSITE_SELECTOR
    next_selector: str | None = None

    def page_url(self, page_index: int) -> str:
        return f"{self.base_url}{page_index}"


@dataclass(frozen=True)
class HarvestConfig:
    """Settings for one controller instance."""

    source: SourceConfig = SourceConfig()
    source_kind: str = "html"
    batch_limit: int = DEFAULT_BATCH_LIMIT
    pacing_interval_ms: int = DEFAULT_PACING_INTERVAL_MS
    fetch_timeout_s: int = 30
    demo_max_pages: int = 20
    hunter_api_key: str = ""
    enrichment_enabled: bool = True
    snapshot_dir: Path = SNAPSHOT_DIR
    snapshot_key: str = SNAPSHOT_KEY

    @property
    def pacing_interval_seconds(self) -> float:
        return self.pacing_interval_ms / 1000.0

    def with_overrides(self, **changes: object) -> "HarvestConfig":
        """Return a copy with ``None`` values in ``changes`` ignored."""

        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls) -> "HarvestConfig":
        """Build a config from environment variables and module defaults."""

        next_selector = os.getenv("HARVEST_NEXT_SELECTOR", "").strip() or None
        source = SourceConfig(
            base_url=os.getenv("HARVEST_SOURCE_BASE_URL", DEFAULT_SOURCE_BASE_URL).strip(),
            item_selector=os.getenv("HARVEST_ITEM_SELECTOR", DEFAULT_ITEM_SELECTOR),
            name_selector=os.getenv("HARVEST_NAME_SELECTOR", DEFAULT_NAME_SELECTOR),
            address_selector=os.getenv("HARVEST_ADDRESS_SELECTOR", DEFAULT_ADDRESS_SELECTOR),
            website_selector=os.getenv("HARVEST_WEBSITE_SELECTOR", DEFAULT_WEBSITE_SELECTOR),
            next_selector=next_selector,
        )
        return cls(
            source=source,
            source_kind=SOURCE_KIND,
            batch_limit=_parse_int("HARVEST_BATCH_LIMIT", DEFAULT_BATCH_LIMIT),
            pacing_interval_ms=_parse_int("HARVEST_PACING_INTERVAL_MS", DEFAULT_PACING_INTERVAL_MS),
            fetch_timeout_s=FETCH_TIMEOUT_S,
            demo_max_pages=DEMO_MAX_PAGES,
            hunter_api_key=HUNTER_API_KEY,
            enrichment_enabled=ENRICHMENT_ENABLED,
            snapshot_dir=SNAPSHOT_DIR,
            snapshot_key=SNAPSHOT_KEY,
        )


def is_demo_source(kind: str) -> bool:
    """Return ``True`` when ``kind`` selects the deterministic demo source."""

    return str(kind).strip().lower() in {"demo", "mock"}
