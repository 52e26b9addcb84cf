# ABOUTME: Open Library metadata provider implementation.
# ABOUTME: Keyword search against openlibrary.org/search.json, mapped straight onto Candidates.

import logging
from collections.abc import Iterator

from lectern.metadata.http import HttpClient, MetadataFetchError
from lectern.metadata.openlibrary_parser import SOURCE, parse_search_results
from lectern.metadata.provider import ProviderError
from lectern.metadata.types import Candidate, MediaKind

logger = logging.getLogger(__name__)

_OL_BASE = "https://openlibrary.org"
_DEFAULT_LIMIT = 10


class OpenLibraryProvider:
    """Metadata provider backed by the Open Library search API.

    The cheapest and most reliable source, with the sparsest metadata.
    Serves both ebook and audiobook searches since Open Library does not
    distinguish them.
    """

    def __init__(self, http_client: HttpClient, *, limit: int = _DEFAULT_LIMIT) -> None:
        self._http = http_client
        self._limit = limit if limit > 0 else _DEFAULT_LIMIT

    @property
    def name(self) -> str:
        return SOURCE

    def supports(self, kind: MediaKind) -> bool:
        return True

    def search(self, query: str, kind: MediaKind) -> Iterator[Candidate]:
        """Search Open Library by keyword.

        Raises:
            ProviderError: When the request fails or returns an unusable body.
        """
        query = query.strip()
        if not query:
            return
        params = {"q": query, "limit": str(self._limit)}
        try:
            data = self._http.get(f"{_OL_BASE}/search.json", params=params)
        except MetadataFetchError as exc:
            raise ProviderError(self.name, exc) from exc
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected search response shape")

        candidates = parse_search_results(data)
        logger.debug("Open Library returned %d result(s) for %r", len(candidates), query)
        yield from candidates
