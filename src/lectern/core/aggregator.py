# ABOUTME: Search aggregator: fans a query out to the enabled providers and merges their results.
# ABOUTME: Bounds each provider by a timeout, tolerates failures, and deduplicates across sources.

import logging
import threading
import time
import unicodedata
from collections.abc import Mapping, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from lectern.metadata.dedupe import (
    DEFAULT_AUTHOR_THRESHOLD,
    DEFAULT_TITLE_THRESHOLD,
    deduplicate,
)
from lectern.metadata.provider import MetadataProvider, ProviderError
from lectern.metadata.types import Candidate, MediaKind

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 256
DEFAULT_SEARCH_TIMEOUT = 15.0

# Dedupe precedence: earlier sources win ties and keep their field values.
PROVIDER_ORDER = ("amazon", "readarr", "openlibrary")

# How often a waiting search re-checks its cancel event.
_CANCEL_POLL_INTERVAL = 0.05


class InvalidQueryError(ValueError):
    """Raised when a search query is empty or malformed."""


@dataclass(frozen=True)
class AggregatorConfig:
    """Explicit aggregator settings, passed in rather than read at call time.

    Attributes:
        enabled: ``{provider_name: enabled}``; providers missing here are enabled.
        provider_timeouts: Per-provider time budget in seconds.
        timeout: Overall time budget for one search, shared by all providers.
    """

    enabled: Mapping[str, bool] = field(default_factory=dict)
    provider_timeouts: Mapping[str, float] = field(default_factory=dict)
    timeout: float = DEFAULT_SEARCH_TIMEOUT
    title_threshold: float = DEFAULT_TITLE_THRESHOLD
    author_threshold: float = DEFAULT_AUTHOR_THRESHOLD

    def is_enabled(self, name: str) -> bool:
        return self.enabled.get(name, True)

    def timeout_for(self, name: str) -> float:
        return min(self.provider_timeouts.get(name, self.timeout), self.timeout)


@dataclass
class SearchResult:
    """Outcome of one aggregated search.

    Attributes:
        candidates: Merged, deduplicated candidates in discovery order.
        provider_results: Raw pre-dedupe count per dispatched provider;
            0 for providers that failed, timed out or were cancelled.
        errors: The failure recorded for each provider that contributed nothing.
        cancelled: Providers cut off because the caller cancelled the search.
    """

    candidates: list[Candidate] = field(default_factory=list)
    provider_results: dict[str, int] = field(default_factory=dict)
    errors: dict[str, ProviderError] = field(default_factory=dict)
    cancelled: set[str] = field(default_factory=set)

    @property
    def was_cancelled(self) -> bool:
        return bool(self.cancelled)


def validate_query(query: str | None) -> str:
    """Trim and check a search query, collapsing internal whitespace.

    Invisible format characters (bidi marks, soft hyphens, zero-width
    spaces) are dropped rather than rejected.

    Raises:
        InvalidQueryError: If the query is empty, too long, or contains
            control characters.
    """
    if query is None or not query.strip():
        raise InvalidQueryError("search query must not be empty")
    query = "".join(ch for ch in query if unicodedata.category(ch) != "Cf")
    query = " ".join(query.split())
    if not query:
        raise InvalidQueryError("search query must not be empty")
    if len(query) > MAX_QUERY_LENGTH:
        raise InvalidQueryError(f"search query longer than {MAX_QUERY_LENGTH} characters")
    if any(unicodedata.category(ch) == "Cc" for ch in query):
        raise InvalidQueryError("search query contains control characters")
    return query


def _order_key(provider: MetadataProvider, index: int) -> tuple[int, int]:
    try:
        return PROVIDER_ORDER.index(provider.name), index
    except ValueError:
        return len(PROVIDER_ORDER), index


def _collect(
    provider: MetadataProvider, query: str, kind: MediaKind, stop: threading.Event
) -> list[Candidate]:
    """Drain a provider's lazy results, stopping early once ``stop`` is set."""
    results: list[Candidate] = []
    iterator = iter(provider.search(query, kind))
    try:
        for candidate in iterator:
            if stop.is_set():
                break
            results.append(candidate)
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()
    return results


class Aggregator:
    """Fans a search out to metadata providers and merges the results.

    Providers run concurrently on a thread pool owned by each call, so no
    state is shared between searches. A provider that fails, exceeds its
    timeout, or is still running when the caller cancels contributes zero
    candidates; its error is logged and recorded, never raised.
    """

    def __init__(
        self,
        providers: Sequence[MetadataProvider],
        config: AggregatorConfig | None = None,
    ) -> None:
        self._config = config or AggregatorConfig()
        indexed = list(enumerate(providers))
        indexed.sort(key=lambda pair: _order_key(pair[1], pair[0]))
        self._providers = [provider for _, provider in indexed]

    @property
    def providers(self) -> list[MetadataProvider]:
        return list(self._providers)

    def active_providers(self, kind: MediaKind) -> list[MetadataProvider]:
        """Providers that are enabled and can serve ``kind``, in dedupe order."""
        return [
            p for p in self._providers if self._config.is_enabled(p.name) and p.supports(kind)
        ]

    def search(
        self,
        query: str,
        kind: MediaKind | str = MediaKind.EBOOK,
        cancel: threading.Event | None = None,
    ) -> SearchResult:
        """Search every active provider and return merged candidates.

        Args:
            query: Free-text query, ASIN, or Amazon product URL.
            kind: Media kind; selects which providers are dispatched.
            cancel: Optional event; once set, the search returns with
                whatever providers have already finished.

        Raises:
            InvalidQueryError: If the query is empty or malformed. Nothing
                is dispatched in that case.
        """
        query = validate_query(query)
        kind = MediaKind.parse(kind)
        providers = self.active_providers(kind)
        result = SearchResult(provider_results={p.name: 0 for p in providers})
        if not providers:
            logger.info("No providers enabled for %s search", kind.value)
            return result

        per_provider = self._run(providers, query, kind, cancel, result)

        ordered: list[Candidate] = []
        for provider in providers:
            ordered.extend(per_provider.get(provider.name, []))
        result.candidates = deduplicate(
            ordered,
            title_threshold=self._config.title_threshold,
            author_threshold=self._config.author_threshold,
        )
        logger.info(
            "Search %r (%s): %d raw, %d merged, counts=%s",
            query,
            kind.value,
            len(ordered),
            len(result.candidates),
            result.provider_results,
        )
        return result

    def _run(
        self,
        providers: list[MetadataProvider],
        query: str,
        kind: MediaKind,
        cancel: threading.Event | None,
        result: SearchResult,
    ) -> dict[str, list[Candidate]]:
        """Run providers concurrently until all finish, time out, or the caller cancels."""
        stop = threading.Event()
        start = time.monotonic()
        deadlines = {p.name: start + self._config.timeout_for(p.name) for p in providers}
        collected: dict[str, list[Candidate]] = {}

        # Not a context manager: leaving the with-block would wait for
        # threads that are stuck past their deadline.
        executor = ThreadPoolExecutor(max_workers=len(providers), thread_name_prefix="search")
        try:
            pending: dict[Future[list[Candidate]], str] = {
                executor.submit(_collect, p, query, kind, stop): p.name for p in providers
            }
            while pending:
                if cancel is not None and cancel.is_set():
                    # Providers that already finished keep their results.
                    finished = [f for f in pending if f.done()]
                    for future in finished:
                        self._harvest(future, pending.pop(future), collected, result)
                    for name in pending.values():
                        result.cancelled.add(name)
                        self._record_failure(result, name, ProviderError(name, "search cancelled"))
                    break

                now = time.monotonic()
                for future, name in list(pending.items()):
                    if now >= deadlines[name] and not future.done():
                        del pending[future]
                        future.cancel()
                        self._record_failure(result, name, ProviderError(name, "timed out"))
                if not pending:
                    break

                next_deadline = min(deadlines[name] for name in pending.values())
                wait_for = max(0.0, next_deadline - now)
                if cancel is not None:
                    wait_for = min(wait_for, _CANCEL_POLL_INTERVAL)
                done, _ = wait(list(pending), timeout=wait_for, return_when=FIRST_COMPLETED)

                for future in done:
                    self._harvest(future, pending.pop(future), collected, result)
        finally:
            stop.set()
            executor.shutdown(wait=False, cancel_futures=True)

        return collected

    def _harvest(
        self,
        future: Future[list[Candidate]],
        name: str,
        collected: dict[str, list[Candidate]],
        result: SearchResult,
    ) -> None:
        try:
            candidates = future.result()
        except ProviderError as exc:
            self._record_failure(result, name, exc)
            return
        except Exception as exc:
            self._record_failure(result, name, ProviderError(name, exc))
            return
        collected[name] = candidates
        result.provider_results[name] = len(candidates)

    @staticmethod
    def _record_failure(result: SearchResult, name: str, error: ProviderError) -> None:
        logger.warning("Provider %s contributed no results: %s", name, error)
        result.provider_results[name] = 0
        result.errors[name] = error
