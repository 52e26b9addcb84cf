# ABOUTME: Amazon public-storefront provider: scrapes search results, then product detail pages.
# ABOUTME: Detail fetches run with a small concurrency cap and are yielded lazily in result order.

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor

from lectern.metadata.amazon_parser import (
    SOURCE,
    AmazonParseError,
    is_captcha_page,
    parse_detail_page,
    parse_search_page,
    product_url,
)
from lectern.metadata.dedupe import merge_candidates
from lectern.metadata.http import HttpClient, MetadataFetchError
from lectern.metadata.identifiers import extract_asin
from lectern.metadata.provider import ProviderError
from lectern.metadata.types import Candidate, MediaKind

logger = logging.getLogger(__name__)

DEFAULT_MARKETPLACE = "www.amazon.com"
_DEFAULT_LIMIT = 10
_DEFAULT_DETAIL_CONCURRENCY = 4

# Amazon serves a stripped page (or a robot check) to non-browser agents.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


class AmazonPublicProvider:
    """Metadata provider that scrapes Amazon's public book search.

    Search rows only carry ASIN, title, authors and a thumbnail, so each
    row is enriched from its product page. Detail pages are fetched by at
    most ``detail_concurrency`` workers; a failed detail fetch falls back
    to the row data instead of failing the search.
    """

    def __init__(
        self,
        http_client: HttpClient,
        *,
        marketplace: str = DEFAULT_MARKETPLACE,
        limit: int = _DEFAULT_LIMIT,
        detail_concurrency: int = _DEFAULT_DETAIL_CONCURRENCY,
    ) -> None:
        self._http = http_client
        self._market = marketplace.strip() or DEFAULT_MARKETPLACE
        self._limit = limit if limit > 0 else _DEFAULT_LIMIT
        self._detail_concurrency = max(1, detail_concurrency)

    @property
    def name(self) -> str:
        return SOURCE

    def supports(self, kind: MediaKind) -> bool:
        return True

    def search(self, query: str, kind: MediaKind) -> Iterator[Candidate]:
        """Search by keyword, or fetch one product when the query is an ASIN or Amazon URL.

        Raises:
            ProviderError: When the search page cannot be fetched, is a robot
                check, or a directly requested product page has no book data.
        """
        query = query.strip()
        if not query:
            return

        asin = extract_asin(query)
        if asin:
            yield self.get_by_asin(asin)
            return

        rows = self.search_rows(query)
        yield from self._with_details(rows)

    def search_rows(self, query: str) -> list[Candidate]:
        """Fetch and parse the search results page without visiting detail pages."""
        url = f"https://{self._market}/s"
        params = {"k": query, "i": "stripbooks-intl-ship"}
        try:
            html = self._http.get_text(url, params=params, headers=BROWSER_HEADERS)
        except MetadataFetchError as exc:
            raise ProviderError(self.name, exc) from exc

        if is_captcha_page(html):
            raise ProviderError(self.name, "search blocked by robot check")

        rows = parse_search_page(html, marketplace=self._market, limit=self._limit)
        logger.debug("Amazon search returned %d row(s) for %r", len(rows), query)
        return rows

    def get_by_asin(self, asin: str) -> Candidate:
        """Fetch a single product page by ASIN."""
        try:
            return self._fetch_detail_page(asin)
        except (MetadataFetchError, AmazonParseError) as exc:
            raise ProviderError(self.name, exc) from exc

    def _fetch_detail_page(self, asin: str) -> Candidate:
        html = self._http.get_text(product_url(self._market, asin), headers=BROWSER_HEADERS)
        return parse_detail_page(html, asin=asin, marketplace=self._market)

    def _enrich(self, row: Candidate) -> Candidate:
        """Merge a row with its product page, keeping the row when the page fails."""
        try:
            detail = self._fetch_detail_page(row.asin or "")
        except (MetadataFetchError, AmazonParseError) as exc:
            logger.debug("Amazon detail fetch failed for %s, using search row: %s", row.asin, exc)
            return row
        return merge_candidates(detail, row)

    def _with_details(self, rows: list[Candidate]) -> Iterator[Candidate]:
        if not rows:
            return
        executor = ThreadPoolExecutor(
            max_workers=min(self._detail_concurrency, len(rows)),
            thread_name_prefix="amazon-detail",
        )
        try:
            futures = [executor.submit(self._enrich, row) for row in rows]
            for future in futures:
                yield future.result()
        finally:
            # Abandoned iteration (timeout or cancellation) drops queued fetches.
            executor.shutdown(wait=False, cancel_futures=True)
