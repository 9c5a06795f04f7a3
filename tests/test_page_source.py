from __future__ import annotations

import pytest
import requests

from app.harvester import config, page_source
from app.harvester.error_codes import ErrorCode
from app.harvester.page_source import (
    DemoPageSource,
    HtmlPageSource,
    PageResult,
    PageSourceClient,
    SourceFetchError,
    build_page_source,
)
from app.harvester.records import RawRecord

LISTING_HTML = """
<html><body>
  <div class="search-result">
    <a class="link-primary" href="/ein/1">  American Red Cross </a>
    <div class="cn-address">431 18th Street NW, <br>Washington, DC 20006</div>
    <a href="https://www.redcross.org">Website</a>
  </div>
  <div class="search-result">
    <a class="link-primary" href="/ein/2">Local Food Bank</a>
    <a href="https://www.charitynavigator.org/ein/2">Profile</a>
  </div>
  <div class="search-result">
    <div class="cn-address">No name here, Austin, TX 73301</div>
  </div>
  <a class="next" href="?page=2">Next</a>
</body></html>
"""


class _FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, exc: Exception | None = None) -> None:
        self.response = response
        self.exc = exc
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, **kwargs):  # noqa: ANN001
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_html_source_parses_items_with_selectors() -> None:
    session = _FakeSession(_FakeResponse(LISTING_HTML))
    source = HtmlPageSource(config.SourceConfig(base_url="https://example.org/search?page="), session=session, timeout=7)

    result = source.fetch_page(3)

    assert session.calls[0][0] == "https://example.org/search?page=3"
    assert session.calls[0][1]["timeout"] == 7
    assert result.continuation is True
    assert result.records == [
        RawRecord(
            name="American Red Cross",
            address="431 18th Street NW, Washington, DC 20006",
            website="https://www.redcross.org",
        ),
        RawRecord(name="Local Food Bank", address="", website=""),
    ]


def test_html_source_next_selector_controls_continuation() -> None:
    with_next = config.SourceConfig(next_selector="a.next")
    without_next = config.SourceConfig(next_selector="a.older")

    assert HtmlPageSource(with_next, session=_FakeSession(_FakeResponse(LISTING_HTML))).fetch_page(1).continuation
    assert not HtmlPageSource(without_next, session=_FakeSession(_FakeResponse(LISTING_HTML))).fetch_page(1).continuation


def test_html_source_empty_page_has_no_continuation() -> None:
    source = HtmlPageSource(config.SourceConfig(), session=_FakeSession(_FakeResponse("<html></html>")))
    result = source.fetch_page(9)
    assert result.records == []
    assert result.continuation is False


@pytest.mark.parametrize(
    "status, expected_code",
    [(404, ErrorCode.HTTP_404), (403, ErrorCode.HTTP_4XX), (429, ErrorCode.HTTP_429), (502, ErrorCode.HTTP_5XX)],
)
def test_html_source_http_errors(status: int, expected_code: str) -> None:
    source = HtmlPageSource(config.SourceConfig(), session=_FakeSession(_FakeResponse("", status)))

    with pytest.raises(SourceFetchError) as excinfo:
        source.fetch_page(4)

    assert excinfo.value.error_code == expected_code
    assert excinfo.value.http_status == status
    assert excinfo.value.page_index == 4


@pytest.mark.parametrize(
    "exc, expected_code",
    [
        (requests.Timeout("slow"), ErrorCode.TIMEOUT),
        (requests.ConnectionError("refused"), ErrorCode.NETWORK),
    ],
)
def test_html_source_transport_errors(exc: Exception, expected_code: str) -> None:
    source = HtmlPageSource(config.SourceConfig(), session=_FakeSession(exc=exc))
    with pytest.raises(SourceFetchError) as excinfo:
        source.fetch_page(2)
    assert excinfo.value.error_code == expected_code


def test_demo_source_is_deterministic() -> None:
    source = DemoPageSource(max_pages=4)

    first = source.fetch_page(1)
    assert len(first.records) == 10
    assert first.records[0].name == "American Red Cross"
    assert first.continuation is True

    page_two = source.fetch_page(2)
    assert page_two == source.fetch_page(2)
    assert len(page_two.records) == DemoPageSource.page_size(2)
    assert 5 <= len(page_two.records) <= 10
    assert page_two.continuation is True

    assert source.fetch_page(4).continuation is False
    assert source.fetch_page(5) == PageResult(records=[], continuation=False)


def test_demo_source_generated_addresses_carry_regions() -> None:
    client = PageSourceClient(DemoPageSource(max_pages=3))
    page = client.fetch(3)
    assert page.records
    assert all(record.region != "Unknown" for record in page.records)
    assert all(record.contact and record.contact.startswith("info@") for record in page.records)


class _Enricher:
    def __init__(self, result: str | None = "hello@found.org", exc: Exception | None = None) -> None:
        self.result = result
        self.exc = exc
        self.calls: list[str] = []

    def lookup(self, website: str) -> str | None:
        self.calls.append(website)
        if self.exc is not None:
            raise self.exc
        return self.result


class _StaticSource:
    def __init__(self, result: PageResult) -> None:
        self.result = result

    def fetch_page(self, page_index: int) -> PageResult:
        return self.result


def test_client_finalises_records_and_enriches_missing_contacts() -> None:
    enricher = _Enricher()
    source = _StaticSource(
        PageResult(
            records=[
                RawRecord("Has Contact", "Chicago, IL 60601", "https://a.org", "kept@a.org"),
                RawRecord("Needs Contact", "Austin, TX 73301", "https://b.org"),
                RawRecord("No Website", "Ohio"),
                RawRecord("   "),
            ],
            continuation=True,
        )
    )

    page = PageSourceClient(source, enricher=enricher).fetch(1)

    assert [r.name for r in page.records] == ["Has Contact", "Needs Contact", "No Website"]
    assert [r.contact for r in page.records] == ["kept@a.org", "hello@found.org", None]
    assert [r.region for r in page.records] == ["IL", "TX", "OH"]
    assert enricher.calls == ["https://b.org"]
    assert page.continuation is True


def test_client_enrichment_failure_leaves_contact_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(page_source, "_harvest_event", lambda *a, **k: None)
    source = _StaticSource(PageResult(records=[RawRecord("Org", "", "https://b.org")], continuation=False))

    page = PageSourceClient(source, enricher=_Enricher(exc=RuntimeError("quota"))).fetch(1)

    assert page.records[0].contact is None


def test_client_wraps_unexpected_source_errors() -> None:
    class Exploding:
        def fetch_page(self, page_index: int) -> PageResult:
            raise KeyError("boom")

    with pytest.raises(SourceFetchError) as excinfo:
        PageSourceClient(Exploding()).fetch(6)

    assert excinfo.value.error_code == ErrorCode.INTERNAL
    assert excinfo.value.page_index == 6


def test_build_page_source_selects_kind() -> None:
    demo = build_page_source(config.HarvestConfig(source_kind="demo", demo_max_pages=3))
    html = build_page_source(config.HarvestConfig(source_kind="html"))

    assert isinstance(demo, DemoPageSource)
    assert demo.max_pages == 3
    assert isinstance(html, HtmlPageSource)
