# ABOUTME: Readarr lookup provider: queries the ebook or audiobook instance chosen by media kind.
# ABOUTME: Results carry Readarr's foreign ids as opaque extensions for the downstream add flow.

import logging
import threading
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from lectern.metadata.http import HttpClient, MetadataFetchError
from lectern.metadata.identifiers import extract_asin
from lectern.metadata.provider import ProviderError
from lectern.metadata.readarr_parser import SOURCE, parse_lookup_response
from lectern.metadata.types import Candidate, MediaKind

logger = logging.getLogger(__name__)

API_VERSION_PREFIX = "/api/v1"
DEFAULT_LOOKUP_ENDPOINT = API_VERSION_PREFIX + "/book/lookup"
DEFAULT_CACHE_TTL = 3600.0


@dataclass(frozen=True)
class ReadarrInstance:
    """Connection settings for one Readarr instance."""

    base_url: str
    api_key: str
    lookup_endpoint: str = DEFAULT_LOOKUP_ENDPOINT
    verify_ssl: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url.strip() and self.api_key.strip())

    def normalized(self) -> "ReadarrInstance":
        """Strip trailing slashes and fall back to the default lookup endpoint."""
        endpoint = self.lookup_endpoint.strip()
        if API_VERSION_PREFIX not in endpoint:
            endpoint = DEFAULT_LOOKUP_ENDPOINT
        return ReadarrInstance(
            base_url=self.base_url.strip().rstrip("/"),
            api_key=self.api_key.strip(),
            lookup_endpoint=endpoint,
            verify_ssl=self.verify_ssl,
        )


class ReadarrClient:
    """Lookup client for a single Readarr instance, with a per-term result cache."""

    def __init__(
        self,
        instance: ReadarrInstance,
        http_client: HttpClient,
        *,
        cache_ttl: float = DEFAULT_CACHE_TTL,
    ) -> None:
        self._inst = instance.normalized()
        self._http = http_client
        self._cache_ttl = cache_ttl
        self._cache: dict[str, tuple[float, list[Candidate]]] = {}
        self._lock = threading.Lock()

    @property
    def instance(self) -> ReadarrInstance:
        return self._inst

    def lookup(self, term: str) -> list[Candidate]:
        """Run a book lookup for ``term``.

        Raises:
            MetadataFetchError: On transport or HTTP errors.
            ValueError: If the body is not a JSON array.
        """
        key = term.strip().lower()
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Readarr lookup cache hit for %r", term)
            return cached

        # The key goes in the query as well as the header; some reverse
        # proxies strip X-Api-Key.
        data = self._http.get(
            self._inst.base_url + self._inst.lookup_endpoint,
            params={"term": term, "apikey": self._inst.api_key},
            headers={"X-Api-Key": self._inst.api_key, "Accept": "application/json"},
        )
        candidates = parse_lookup_response(data, self._inst.base_url)
        self._cache_put(key, candidates)
        return candidates

    def ping(self) -> None:
        """Check connectivity and credentials with a throwaway lookup."""
        self._http.get(
            self._inst.base_url + self._inst.lookup_endpoint,
            params={"term": "test", "apikey": self._inst.api_key},
            headers={"X-Api-Key": self._inst.api_key, "Accept": "application/json"},
        )

    def _cache_get(self, key: str) -> list[Candidate] | None:
        if self._cache_ttl <= 0:
            return None
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            expires, candidates = entry
            if time.monotonic() >= expires:
                del self._cache[key]
                return None
            return list(candidates)

    def _cache_put(self, key: str, candidates: list[Candidate]) -> None:
        if self._cache_ttl <= 0:
            return
        now = time.monotonic()
        with self._lock:
            expired = [k for k, (expires, _) in self._cache.items() if now >= expires]
            for k in expired:
                del self._cache[k]
            self._cache[key] = (now + self._cache_ttl, list(candidates))


class ReadarrProvider:
    """Metadata provider and match catalog backed by Readarr's book lookup.

    Holds one client per media kind; a kind without a configured instance
    is not supported.
    """

    def __init__(self, clients: Mapping[MediaKind, ReadarrClient]) -> None:
        self._clients = dict(clients)

    @property
    def name(self) -> str:
        return SOURCE

    def supports(self, kind: MediaKind) -> bool:
        return kind in self._clients

    def search(self, query: str, kind: MediaKind) -> Iterator[Candidate]:
        """Search the instance for ``kind``; an ASIN or Amazon URL is looked up by ASIN."""
        query = query.strip()
        if not query:
            return
        term = extract_asin(query) or query
        yield from self.lookup(term, kind)

    def lookup(self, term: str, kind: MediaKind) -> list[Candidate]:
        """Eager catalog lookup used by the matcher.

        Raises:
            ProviderError: When no instance serves ``kind`` or the lookup fails.
        """
        client = self._client_for(kind)
        try:
            candidates = client.lookup(term)
        except (MetadataFetchError, ValueError) as exc:
            raise ProviderError(self.name, exc) from exc
        logger.debug("Readarr (%s) returned %d result(s) for %r", kind.value, len(candidates), term)
        return candidates

    def ping(self, kind: MediaKind) -> None:
        client = self._client_for(kind)
        try:
            client.ping()
        except MetadataFetchError as exc:
            raise ProviderError(self.name, exc) from exc

    def _client_for(self, kind: MediaKind) -> ReadarrClient:
        client = self._clients.get(kind)
        if client is None:
            raise ProviderError(self.name, f"no Readarr instance configured for {kind.value}")
        return client
