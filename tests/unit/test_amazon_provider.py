# ABOUTME: Unit tests for AmazonPublicProvider.
# ABOUTME: Covers keyword search with detail enrichment, ASIN lookups, and failure handling.

import threading
import time

import pytest

from lectern.metadata.amazon import AmazonPublicProvider
from lectern.metadata.http import MetadataFetchError
from lectern.metadata.provider import ProviderError
from lectern.metadata.types import MediaKind
from tests.fixtures.amazon_pages import (
    CAPTCHA_PAGE,
    GATSBY_DETAIL_PAGE,
    LEGACY_DETAIL_PAGE,
    NOT_A_BOOK_PAGE,
    SEARCH_PAGE,
)
from tests.fixtures.fakes import FakeHttpClient


def _search_page(asins: list[str]) -> str:
    rows = "".join(
        f"<div class='s-result-item' data-asin='{asin}'><h2><span>Book {asin}</span></h2></div>"
        for asin in asins
    )
    return f"<html><body><div class='s-main-slot'>{rows}</div></body></html>"


class InFlightHttpClient(FakeHttpClient):
    """Fake client that tracks how many detail pages are being fetched at once."""

    def __init__(self, responses: dict, delays: dict[str, float]) -> None:
        super().__init__(responses)
        self._delays = delays
        self._count_lock = threading.Lock()
        self.in_flight = 0
        self.peak = 0

    def get_text(self, url, params=None, headers=None) -> str:
        if "/dp/" not in url:
            return super().get_text(url, params, headers)
        with self._count_lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self._delays.get(url.rsplit("/", 1)[-1], 0.05))
            return super().get_text(url, params, headers)
        finally:
            with self._count_lock:
                self.in_flight -= 1


class TestAmazonSearch:
    def test_search_enriches_rows_from_detail_pages(self) -> None:
        client = FakeHttpClient(
            {
                "/dp/0743273567": GATSBY_DETAIL_PAGE,
                "/dp/B0CGX1QXYZ": NOT_A_BOOK_PAGE,
                "/s": SEARCH_PAGE,
            }
        )
        provider = AmazonPublicProvider(client)

        results = list(provider.search("great gatsby", MediaKind.EBOOK))

        assert [c.asin for c in results] == ["0743273567", "B0CGX1QXYZ"]
        gatsby = results[0]
        assert gatsby.isbn13 == "9780743273565"
        assert gatsby.description is not None
        # Detail page values win over the thumbnail from the search row.
        assert gatsby.cover_url == "https://m.media-amazon.com/images/I/gatsby-large.jpg"

    def test_failed_detail_fetch_falls_back_to_row(self) -> None:
        client = FakeHttpClient(
            {
                "/dp/0743273567": MetadataFetchError("HTTP 503"),
                "/dp/": NOT_A_BOOK_PAGE,
                "/s": SEARCH_PAGE,
            }
        )
        results = list(AmazonPublicProvider(client).search("gatsby", MediaKind.EBOOK))
        assert results[0].title == "The Great Gatsby"
        assert results[0].isbn13 is None
        assert results[0].cover_url == "https://m.media-amazon.com/images/I/gatsby.jpg"

    def test_search_request_shape(self) -> None:
        client = FakeHttpClient({"/s": "<html></html>"})
        provider = AmazonPublicProvider(client, marketplace="www.amazon.co.uk")

        assert list(provider.search("dune", MediaKind.AUDIOBOOK)) == []

        url, params, headers = client.requests[0]
        assert url == "https://www.amazon.co.uk/s"
        assert params == {"k": "dune", "i": "stripbooks-intl-ship"}
        assert "Mozilla" in headers["User-Agent"]

    def test_captcha_raises_provider_error(self) -> None:
        client = FakeHttpClient({"/s": CAPTCHA_PAGE})
        with pytest.raises(ProviderError, match="robot check"):
            list(AmazonPublicProvider(client).search("dune", MediaKind.EBOOK))

    def test_search_fetch_error_raises_provider_error(self) -> None:
        client = FakeHttpClient({"/s": MetadataFetchError("HTTP 500")})
        with pytest.raises(ProviderError, match="amazon"):
            list(AmazonPublicProvider(client).search("dune", MediaKind.EBOOK))

    def test_limit_caps_rows(self) -> None:
        client = FakeHttpClient({"/dp/": GATSBY_DETAIL_PAGE, "/s": SEARCH_PAGE})
        results = list(AmazonPublicProvider(client, limit=1).search("gatsby", MediaKind.EBOOK))
        assert len(results) == 1

    def test_detail_fetches_respect_concurrency_cap(self) -> None:
        asins = [f"B00000000{i}" for i in range(6)]
        # Earlier rows are slower, so completion order differs from row order.
        delays = {asin: 0.2 - i * 0.03 for i, asin in enumerate(asins)}
        client = InFlightHttpClient({"/dp/": NOT_A_BOOK_PAGE, "/s": _search_page(asins)}, delays)
        provider = AmazonPublicProvider(client, detail_concurrency=2)

        results = list(provider.search("books", MediaKind.EBOOK))

        assert [c.asin for c in results] == asins
        assert sum("/dp/" in url for url in client.urls) == 6
        assert client.peak == 2

    def test_default_detail_concurrency_is_four(self) -> None:
        asins = [f"B00000001{i}" for i in range(8)]
        client = InFlightHttpClient({"/dp/": NOT_A_BOOK_PAGE, "/s": _search_page(asins)}, {})

        results = list(AmazonPublicProvider(client).search("books", MediaKind.EBOOK))

        assert len(results) == 8
        assert 1 <= client.peak <= 4


class TestAmazonAsinLookup:
    def test_asin_query_fetches_product_page(self) -> None:
        client = FakeHttpClient({"/dp/0441013597": LEGACY_DETAIL_PAGE})
        results = list(AmazonPublicProvider(client).search("0441013597", MediaKind.EBOOK))

        assert len(results) == 1
        assert results[0].title == "Dune"
        assert client.urls == ["https://www.amazon.com/dp/0441013597"]

    def test_product_url_query(self) -> None:
        client = FakeHttpClient({"/dp/0441013597": LEGACY_DETAIL_PAGE})
        url = "https://www.amazon.com/Dune-Frank-Herbert/dp/0441013597/ref=sr_1_1"
        results = list(AmazonPublicProvider(client).search(url, MediaKind.EBOOK))
        assert results[0].asin == "0441013597"

    def test_unparseable_product_page_raises(self) -> None:
        client = FakeHttpClient({"/dp/": NOT_A_BOOK_PAGE})
        with pytest.raises(ProviderError):
            AmazonPublicProvider(client).get_by_asin("B000000000")
