# ABOUTME: Hydrates stored requests with a Readarr catalog selection before acquisition.
# ABOUTME: Never downgrades an existing selection that holds a stronger identifier than the discovery.

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from lectern.core.matcher import MatchChannel, Matcher, MatchQuery
from lectern.metadata.dedupe import merge_candidates
from lectern.metadata.readarr_parser import EXT_FOREIGN_BOOK_ID
from lectern.metadata.types import Candidate, MediaKind

logger = logging.getLogger(__name__)

STATUS_HYDRATED = "hydrated"

# Rank for a selection that holds no identifier and no title.
_RANK_NONE = len(MatchChannel)


class NoMatchError(Exception):
    """Raised when hydration finds no catalog entry for a request."""

    def __init__(self, request: "StoredRequest") -> None:
        self.request = request
        super().__init__(f"no catalog match for request {request.title!r}")


@dataclass(frozen=True)
class StoredRequest:
    """A book request as the request service stores it.

    Hydration never mutates one of these; it returns a replacement.
    """

    requester: str
    kind: MediaKind
    title: str
    authors: tuple[str, ...] = ()
    isbn13: str | None = None
    isbn10: str | None = None
    asin: str | None = None
    selection: Candidate | None = None
    status: str = "pending"

    def __post_init__(self) -> None:
        if not isinstance(self.authors, tuple):
            object.__setattr__(self, "authors", tuple(self.authors))
        if not isinstance(self.kind, MediaKind):
            object.__setattr__(self, "kind", MediaKind.parse(self.kind))

    def match_query(self) -> MatchQuery:
        """Identifiers for the matcher: stored ids first, then the selection's."""
        sel = self.selection
        return MatchQuery(
            isbn13=self.isbn13 or (sel.isbn13 if sel else None),
            isbn10=self.isbn10 or (sel.isbn10 if sel else None),
            asin=self.asin or (sel.asin if sel else None),
            title=self.title or (sel.title if sel else None),
            author=self.authors[0] if self.authors else (sel.authors[0] if sel and sel.authors else None),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "requester": self.requester,
            "kind": self.kind.value,
            "title": self.title,
            "authors": list(self.authors),
            "isbn13": self.isbn13,
            "isbn10": self.isbn10,
            "asin": self.asin,
            "selection": self.selection.to_dict() if self.selection else None,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoredRequest":
        """Build a request from its JSON form.

        Raises:
            ValueError: If ``kind`` is missing or unknown.
        """
        selection = data.get("selection")
        return cls(
            requester=data.get("requester") or "",
            kind=MediaKind.parse(data.get("kind") or ""),
            title=data.get("title") or "",
            authors=tuple(data.get("authors") or ()),
            isbn13=data.get("isbn13"),
            isbn10=data.get("isbn10"),
            asin=data.get("asin"),
            selection=Candidate.from_dict(selection) if selection else None,
            status=data.get("status") or "pending",
        )


@dataclass(frozen=True)
class HydrationResult:
    request: StoredRequest
    changed: bool
    channel: MatchChannel | None = None
    message: str = ""


def selection_rank(selection: Candidate | None) -> int:
    """Rank of the strongest identifier a selection holds (lower is stronger)."""
    if selection is None:
        return _RANK_NONE
    if selection.isbn13:
        return MatchChannel.ISBN13.rank
    if selection.isbn10:
        return MatchChannel.ISBN10.rank
    if selection.asin:
        return MatchChannel.ASIN.rank
    if selection.title:
        return MatchChannel.TITLE.rank
    return _RANK_NONE


def is_attached(request: StoredRequest) -> bool:
    sel = request.selection
    return sel is not None and bool(sel.extensions.get(EXT_FOREIGN_BOOK_ID))


class Hydrator:
    """Attaches catalog metadata to requests that lack a Readarr selection."""

    def __init__(self, matcher: Matcher) -> None:
        self._matcher = matcher

    def hydrate(self, request: StoredRequest) -> HydrationResult:
        """Match a request against the catalog and return an updated copy.

        Raises:
            NoMatchError: If no channel produced a match.
            ProviderError: If the catalog lookup failed.
        """
        if is_attached(request):
            return HydrationResult(request=request, changed=False, message="already attached")

        match = self._matcher.match(request.match_query(), request.kind)
        if not match.found:
            raise NoMatchError(request)

        discovered = match.candidate
        existing = request.selection
        if existing is not None and match.channel.rank > selection_rank(existing):
            # Discovery came through a weaker channel than the existing selection.
            selection = merge_candidates(existing, discovered)
            message = f"kept existing selection, backfilled from {match.channel.value} match"
        elif existing is not None:
            selection = merge_candidates(discovered, existing)
            message = f"replaced selection via {match.channel.value} match"
        else:
            selection = discovered
            message = f"attached selection via {match.channel.value} match"

        logger.info("Hydrated request %r: %s", request.title, message)
        hydrated = dataclasses.replace(
            request,
            isbn13=request.isbn13 or selection.isbn13,
            isbn10=request.isbn10 or selection.isbn10,
            asin=request.asin or selection.asin,
            selection=selection,
            status=STATUS_HYDRATED,
        )
        return HydrationResult(request=hydrated, changed=True, channel=match.channel, message=message)
