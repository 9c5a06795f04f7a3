"""Page sources and the client the ingestion controller fetches through."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup

from . import config
from .error_codes import ErrorCode, classify_http_status
from .logging_utils import _harvest_event
from .records import RawRecord, Record


class SourceFetchError(Exception):
    def __init__(
        self,
        error_code: str,
        message: str,
        *,
        page_index: int | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.page_index = page_index
        self.http_status = http_status


@dataclass
class PageResult:
    """What a page source returns for one page index.

    An empty ``records`` list means the source is exhausted, whatever
    ``continuation`` says.
    """

    records: list[RawRecord] = field(default_factory=list)
    continuation: bool = False


@dataclass
class FetchedPage:
    page_index: int
    records: list[Record]
    continuation: bool


class HtmlPageSource:
    """Reads listings from ``base_url + page_index`` with CSS selectors."""

    def __init__(
        self,
        source_config: config.SourceConfig,
        *,
        session: Optional[Any] = None,
        timeout: int = config.FETCH_TIMEOUT_S,
    ) -> None:
        self._config = source_config
        self._session = session or requests.Session()
        self._timeout = timeout

    def fetch_page(self, page_index: int) -> PageResult:
        url = self._config.page_url(page_index)
        try:
            response = self._session.get(url, headers=config.COMMON_HEADERS, timeout=self._timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise SourceFetchError(
                ErrorCode.TIMEOUT, f"Timed out fetching {url}", page_index=page_index
            ) from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise SourceFetchError(
                classify_http_status(status),
                f"HTTP {status} fetching {url}",
                page_index=page_index,
                http_status=status,
            ) from exc
        except requests.RequestException as exc:
            raise SourceFetchError(
                ErrorCode.NETWORK, f"Request for {url} failed: {exc}", page_index=page_index
            ) from exc

        soup = BeautifulSoup(response.text, "html5lib")
        records = self._extract(soup)
        if self._config.next_selector:
            continuation = bool(records) and soup.select_one(self._config.next_selector) is not None
        else:
            continuation = bool(records)
        return PageResult(records=records, continuation=continuation)

    def parse(self, html_text: str) -> list[RawRecord]:
        """Extract one ``RawRecord`` per item element that carries a name."""

        return self._extract(BeautifulSoup(html_text, "html5lib"))

    def _extract(self, soup: BeautifulSoup) -> list[RawRecord]:
        results: list[RawRecord] = []
        for element in soup.select(self._config.item_selector):
            name_node = element.select_one(self._config.name_selector)
            name = name_node.get_text(strip=True) if name_node else ""
            if not name:
                continue

            address = ""
            if self._config.address_selector:
                address_node = element.select_one(self._config.address_selector)
                if address_node:
                    address = address_node.get_text(" ", strip=True)

            website = ""
            if self._config.website_selector:
                website_node = element.select_one(self._config.website_selector)
                if website_node:
                    website = str(website_node.get("href") or "").strip()

            results.append(RawRecord(name=name, address=address, website=website))
        return results


_SAMPLE_ORGANIZATIONS: tuple[RawRecord, ...] = (
    RawRecord("American Red Cross", "431 18th Street NW, Washington, DC 20006",
              "https://www.redcross.org", "info@redcross.org"),
    RawRecord("Feeding America", "161 North Clark Street, Chicago, IL 60601",
              "https://www.feedingamerica.org", "info@feedingamerica.org"),
    RawRecord("Habitat for Humanity", "285 Peachtree Center Ave NE, Atlanta, GA 30303",
              "https://www.habitat.org", "info@habitat.org"),
    RawRecord("St. Jude Children's Research Hospital", "262 Danny Thomas Place, Memphis, TN 38105",
              "https://www.stjude.org", "donors@stjude.org"),
    RawRecord("United Way Worldwide", "701 N Fairfax St, Alexandria, VA 22314",
              "https://www.unitedway.org", "info@unitedway.org"),
    RawRecord("Doctors Without Borders", "40 Rector St, New York, NY 10006",
              "https://www.doctorswithoutborders.org", "donations@doctorswithoutborders.org"),
    RawRecord("World Wildlife Fund", "1250 24th Street, N.W., Washington, DC 20037",
              "https://www.worldwildlife.org", "info@wwfus.org"),
    RawRecord("The Salvation Army", "615 Slaters Lane, Alexandria, VA 22313",
              "https://www.salvationarmyusa.org", "info@salvationarmy.org"),
    RawRecord("Boys & Girls Clubs of America", "1275 Peachtree St NE, Atlanta, GA 30309",
              "https://www.bgca.org", "info@bgca.org"),
    RawRecord("Make-A-Wish Foundation", "1702 E Highland Ave, Phoenix, AZ 85016",
              "https://www.wish.org", "info@wish.org"),
)

_DEMO_REGIONS = (
    "CA", "NY", "TX", "FL", "IL", "PA", "OH", "GA", "NC", "MI",
    "VA", "WA", "AZ", "MA", "TN", "IN", "MO", "MD", "WI", "CO",
)


def _site_stem(website: str) -> str:
    host = website.split("//", 1)[-1]
    if host.startswith("www."):
        host = host[4:]
    return host.split(".", 1)[0]


class DemoPageSource:
    """Deterministic stand-in for a live listing site.

    Page 1 returns ten well-known charities, pages 2..``max_pages`` return
    between five and ten generated ones, and later pages are empty.
    """

    def __init__(self, max_pages: int = 20) -> None:
        self.max_pages = max(1, max_pages)

    @staticmethod
    def page_size(page_index: int) -> int:
        return 5 + page_index % 6

    def fetch_page(self, page_index: int) -> PageResult:
        if page_index == 1:
            return PageResult(records=list(_SAMPLE_ORGANIZATIONS), continuation=self.max_pages > 1)
        if page_index < 1 or page_index > self.max_pages:
            return PageResult(records=[], continuation=False)

        count = self.page_size(page_index)
        base_index = (page_index - 1) * count
        records = []
        for offset in range(count):
            index = base_index + offset
            region = _DEMO_REGIONS[index % len(_DEMO_REGIONS)]
            template = _SAMPLE_ORGANIZATIONS[index % len(_SAMPLE_ORGANIZATIONS)]
            stem = _site_stem(template.website)
            records.append(
                RawRecord(
                    name=f"{template.name} {index + 1}",
                    address=f"{123 + index} Main St, City, {region} {10000 + index}",
                    website=f"https://{stem}{index}.org",
                    contact=f"info@{stem}{index}.org",
                )
            )
        return PageResult(records=records, continuation=page_index < self.max_pages)


class PageSourceClient:
    """Fetches one page and turns its listings into final ``Record`` values.

    Holds no state between calls. Any failure of the source comes out as
    ``SourceFetchError``; enrichment failures only leave the contact empty.
    """

    def __init__(self, source: Any, *, enricher: Optional[Any] = None) -> None:
        self._source = source
        self._enricher = enricher

    @property
    def enricher(self) -> Optional[Any]:
        return self._enricher

    def fetch(self, page_index: int) -> FetchedPage:
        try:
            result = self._source.fetch_page(page_index)
        except SourceFetchError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise SourceFetchError(
                ErrorCode.PARSE if isinstance(exc, ValueError) else ErrorCode.INTERNAL,
                f"Page source failed on page {page_index}: {exc}",
                page_index=page_index,
            ) from exc

        records = [
            self._finalise(raw)
            for raw in result.records
            if raw.name and raw.name.strip()
        ]
        return FetchedPage(page_index=page_index, records=records, continuation=bool(result.continuation))

    def _finalise(self, raw: RawRecord) -> Record:
        contact = raw.contact
        if contact is None and self._enricher is not None and raw.website:
            try:
                contact = self._enricher.lookup(raw.website)
            except Exception as exc:  # noqa: BLE001
                _harvest_event("error", phase="enrichment", website=raw.website, error=str(exc))
                contact = None
        return Record.from_raw(raw, contact=contact)


def build_page_source(harvest_config: config.HarvestConfig, *, session: Optional[Any] = None) -> Any:
    """Return the page source selected by ``harvest_config.source_kind``."""

    if config.is_demo_source(harvest_config.source_kind):
        return DemoPageSource(max_pages=harvest_config.demo_max_pages)
    return HtmlPageSource(
        harvest_config.source,
        session=session,
        timeout=harvest_config.fetch_timeout_s,
    )


__all__ = [
    "DemoPageSource",
    "FetchedPage",
    "HtmlPageSource",
    "PageResult",
    "PageSourceClient",
    "SourceFetchError",
    "build_page_source",
]
