# ABOUTME: Matches stored request identifiers to a Readarr catalog entry.
# ABOUTME: Tries ISBN-13, ISBN-10, ASIN, then fuzzy title+author, recording every lookup.

import enum
import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from lectern.metadata.identifiers import clean_asin, clean_isbn
from lectern.metadata.scoring import author_similarity, title_similarity
from lectern.metadata.types import Candidate, MediaKind

logger = logging.getLogger(__name__)

DEFAULT_MATCH_TITLE_THRESHOLD = 0.85
DEFAULT_MATCH_AUTHOR_THRESHOLD = 0.8


class MatchChannel(enum.Enum):
    """Lookup channels in priority order."""

    ISBN13 = "isbn13"
    ISBN10 = "isbn10"
    ASIN = "asin"
    TITLE = "title"

    @property
    def rank(self) -> int:
        return list(MatchChannel).index(self)


@runtime_checkable
class Catalog(Protocol):
    """Anything that can look a term up in a catalog (the Readarr adapter)."""

    def lookup(self, term: str, kind: MediaKind) -> list[Candidate]: ...


@dataclass(frozen=True)
class MatchQuery:
    """Identifiers a stored request carries; every field is optional."""

    isbn13: str | None = None
    isbn10: str | None = None
    asin: str | None = None
    title: str | None = None
    author: str | None = None


@dataclass(frozen=True)
class MatchAttempt:
    channel: MatchChannel
    term: str
    hit: bool


@dataclass
class MatchResult:
    """Outcome of a match; ``candidate`` is None when nothing matched."""

    candidate: Candidate | None = None
    channel: MatchChannel | None = None
    attempts: list[MatchAttempt] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.candidate is not None


class Matcher:
    """Finds the catalog entry for a request, most reliable identifier first.

    Catalog errors are not caught here; a ProviderError from the lookup
    reaches the caller unchanged.
    """

    def __init__(
        self,
        catalog: Catalog,
        title_threshold: float = DEFAULT_MATCH_TITLE_THRESHOLD,
        author_threshold: float = DEFAULT_MATCH_AUTHOR_THRESHOLD,
    ) -> None:
        self._catalog = catalog
        self._title_threshold = title_threshold
        self._author_threshold = author_threshold

    def match(self, identifiers: MatchQuery, kind: MediaKind | str = MediaKind.EBOOK) -> MatchResult:
        kind = MediaKind.parse(kind)
        result = MatchResult()

        exact_channels = (
            (MatchChannel.ISBN13, clean_isbn(identifiers.isbn13)),
            (MatchChannel.ISBN10, clean_isbn(identifiers.isbn10)),
            (MatchChannel.ASIN, clean_asin(identifiers.asin)),
        )
        for channel, term in exact_channels:
            if not term:
                continue
            found = self._exact(channel, term, kind)
            result.attempts.append(MatchAttempt(channel, term, found is not None))
            if found is not None:
                result.candidate, result.channel = found, channel
                logger.info("Matched %s %s to %r", channel.value, term, found.title)
                return result

        title = (identifiers.title or "").strip()
        author = (identifiers.author or "").strip()
        if title:
            term = f"{title} {author}".strip()
            found = self._fuzzy(term, title, author, kind)
            result.attempts.append(MatchAttempt(MatchChannel.TITLE, term, found is not None))
            if found is not None:
                result.candidate, result.channel = found, MatchChannel.TITLE
                logger.info("Matched title %r to %r", term, found.title)
                return result

        logger.info("No catalog match after %d lookup(s)", len(result.attempts))
        return result

    def _exact(self, channel: MatchChannel, term: str, kind: MediaKind) -> Candidate | None:
        """Return the first lookup result that carries the same identifier."""
        for candidate in self._catalog.lookup(term, kind):
            if channel is MatchChannel.ASIN:
                value = clean_asin(candidate.asin)
            else:
                value = clean_isbn(getattr(candidate, channel.value))
            if value == term:
                return candidate
        return None

    def _fuzzy(self, term: str, title: str, author: str, kind: MediaKind) -> Candidate | None:
        """Return the best result above both thresholds; ties keep lookup order."""
        best: Candidate | None = None
        best_score = -1.0
        for candidate in self._catalog.lookup(term, kind):
            t_score = title_similarity(title, candidate.title)
            if t_score < self._title_threshold:
                continue
            if author:
                a_score = author_similarity([author], candidate.authors)
                if a_score < self._author_threshold:
                    continue
            else:
                a_score = 0.0
            score = t_score + a_score
            if score > best_score:
                best, best_score = candidate, score
        return best
