# ABOUTME: Core metadata data structures shared by every provider and the aggregator.
# ABOUTME: Candidate is the normalized search result; MediaKind selects ebook or audiobook.

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


class MediaKind(enum.Enum):
    """The kind of media a request is for."""

    EBOOK = "ebook"
    AUDIOBOOK = "audiobook"

    @classmethod
    def parse(cls, value: "str | MediaKind") -> "MediaKind":
        """Parse a kind from a case-insensitive string."""
        if isinstance(value, MediaKind):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            msg = f"unknown media kind {value!r} (expected 'ebook' or 'audiobook')"
            raise ValueError(msg) from None


@dataclass(frozen=True)
class Candidate:
    """A normalized book metadata record produced by one search result.

    Candidates are immutable. Providers create them, the aggregator merges
    them with dataclasses.replace, and nothing persists them on their own.
    No field, or combination of fields, is an identity: whether two
    candidates describe the same book is decided at dedupe time.

    ``extensions`` carries provider-specific values the aggregator does not
    interpret (Readarr's foreign ids, for example).
    """

    title: str
    authors: tuple[str, ...] = ()
    isbn10: str | None = None
    isbn13: str | None = None
    asin: str | None = None
    cover_url: str | None = None
    description: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    language: str | None = None
    source: str = ""
    source_url: str | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Accept lists from parsers but always store a tuple.
        if not isinstance(self.authors, tuple):
            object.__setattr__(self, "authors", tuple(self.authors))

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return ", ".join(self.authors) if self.authors else ""

    @property
    def has_identifiers(self) -> bool:
        return bool(self.isbn13 or self.isbn10 or self.asin)

    def identifiers(self) -> dict[str, str]:
        """Return the populated subset of isbn13, isbn10 and asin."""
        found: dict[str, str] = {}
        for name in ("isbn13", "isbn10", "asin"):
            value = getattr(self, name)
            if value:
                found[name] = value
        return found

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        return {
            "title": self.title,
            "authors": list(self.authors),
            "isbn10": self.isbn10,
            "isbn13": self.isbn13,
            "asin": self.asin,
            "cover_url": self.cover_url,
            "description": self.description,
            "published_date": self.published_date,
            "page_count": self.page_count,
            "language": self.language,
            "source": self.source,
            "source_url": self.source_url,
            "extensions": dict(self.extensions),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candidate":
        """Build a Candidate from the output of to_dict (unknown keys ignored)."""
        return cls(
            title=data.get("title") or "",
            authors=tuple(data.get("authors") or ()),
            isbn10=data.get("isbn10"),
            isbn13=data.get("isbn13"),
            asin=data.get("asin"),
            cover_url=data.get("cover_url"),
            description=data.get("description"),
            published_date=data.get("published_date"),
            page_count=data.get("page_count"),
            language=data.get("language"),
            source=data.get("source") or "",
            source_url=data.get("source_url"),
            extensions=dict(data.get("extensions") or {}),
        )
