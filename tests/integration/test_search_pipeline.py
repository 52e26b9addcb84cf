# ABOUTME: Integration tests for aggregated search across the real adapters.
# ABOUTME: Amazon, Readarr, and Open Library run against canned pages and JSON through fake HTTP clients.

from lectern.core.aggregator import Aggregator, AggregatorConfig
from lectern.metadata.amazon import AmazonPublicProvider
from lectern.metadata.http import MetadataFetchError
from lectern.metadata.openlibrary import OpenLibraryProvider
from lectern.metadata.readarr import ReadarrClient, ReadarrInstance, ReadarrProvider
from lectern.metadata.types import MediaKind
from tests.fixtures.amazon_pages import CAPTCHA_PAGE, GATSBY_DETAIL_PAGE, NOT_A_BOOK_PAGE, SEARCH_PAGE
from tests.fixtures.fakes import FakeHttpClient
from tests.fixtures.openlibrary_responses import SEARCH_RESPONSE
from tests.fixtures.readarr_responses import LOOKUP_RESPONSE


def _readarr(http: FakeHttpClient) -> ReadarrProvider:
    instance = ReadarrInstance(base_url="http://readarr.local:8787", api_key="secret")
    return ReadarrProvider({MediaKind.EBOOK: ReadarrClient(instance, http)})


class TestSearchPipeline:
    def test_gatsby_from_amazon_and_openlibrary_merge(self) -> None:
        amazon_http = FakeHttpClient(
            {"/dp/0743273567": GATSBY_DETAIL_PAGE, "/dp/": NOT_A_BOOK_PAGE, "/s": SEARCH_PAGE}
        )
        ol_http = FakeHttpClient({"/search.json": SEARCH_RESPONSE})
        aggregator = Aggregator([OpenLibraryProvider(ol_http), AmazonPublicProvider(amazon_http)])

        result = aggregator.search("the great gatsby", MediaKind.EBOOK)

        assert result.provider_results == {"amazon": 2, "openlibrary": 2}
        titles = [c.title for c in result.candidates]
        assert titles == [
            "The Great Gatsby",
            "The Great Gatsby Study Guide",
            "The Great Gatsby: A Graphic Novel",
        ]
        gatsby = result.candidates[0]
        assert gatsby.source == "amazon"
        assert gatsby.isbn13 == "9780743273565"
        # Amazon's description wins; Open Library only fills what Amazon lacks.
        assert gatsby.description.startswith("The story of")
        assert gatsby.source_url == "https://www.amazon.com/dp/0743273567"

    def test_readarr_results_carry_extensions(self) -> None:
        aggregator = Aggregator([_readarr(FakeHttpClient({"/book/lookup": LOOKUP_RESPONSE}))])

        result = aggregator.search("dune", MediaKind.EBOOK)

        assert [c.extensions["foreign_book_id"] for c in result.candidates] == ["234225", "44492285"]

    def test_blocked_amazon_degrades_to_other_sources(self) -> None:
        providers = [
            AmazonPublicProvider(FakeHttpClient({"/s": CAPTCHA_PAGE})),
            _readarr(FakeHttpClient({"/book/lookup": MetadataFetchError("HTTP 401")})),
            OpenLibraryProvider(FakeHttpClient({"/search.json": SEARCH_RESPONSE})),
        ]

        result = Aggregator(providers).search("gatsby", MediaKind.EBOOK)

        assert len(result.candidates) == 2
        assert result.provider_results == {"amazon": 0, "readarr": 0, "openlibrary": 2}
        assert set(result.errors) == {"amazon", "readarr"}

    def test_audiobook_search_skips_ebook_only_readarr(self) -> None:
        readarr_http = FakeHttpClient({"/book/lookup": LOOKUP_RESPONSE})
        providers = [
            _readarr(readarr_http),
            OpenLibraryProvider(FakeHttpClient({"/search.json": SEARCH_RESPONSE})),
        ]
        config = AggregatorConfig(enabled={"amazon": False})

        result = Aggregator(providers, config).search("gatsby", MediaKind.AUDIOBOOK)

        assert readarr_http.requests == []
        assert list(result.provider_results) == ["openlibrary"]
