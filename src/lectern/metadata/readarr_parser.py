# ABOUTME: Parsing functions for Readarr book lookup responses.
# ABOUTME: Maps lookup entries onto Candidates and builds the selection payload for adding books.

from typing import Any

from lectern.metadata.identifiers import clean_asin, clean_isbn, first_non_empty, parse_author_title
from lectern.metadata.types import Candidate

SOURCE = "readarr"

# Extension keys consumed verbatim by the add-to-Readarr flow.
EXT_FOREIGN_BOOK_ID = "foreign_book_id"
EXT_FOREIGN_EDITION_ID = "foreign_edition_id"
EXT_AUTHOR_ID = "author_id"
EXT_TITLE_SLUG = "title_slug"
EXT_AUTHOR = "author"


def resolve_author(book: dict[str, Any]) -> dict[str, Any] | None:
    """Pick the author object for a lookup entry.

    Readarr returns a single ``author`` object, an ``authors`` array, a bare
    ``authorId``, or only an ``authorTitle`` depending on version and
    endpoint; they are tried in that order.
    """
    author = book.get("author")
    if isinstance(author, dict) and author:
        return author
    authors = book.get("authors")
    if isinstance(authors, list) and authors and isinstance(authors[0], dict):
        return authors[0]
    author_id = book.get("authorId")
    if isinstance(author_id, int) and author_id > 0:
        return {"id": author_id}
    author_title = book.get("authorTitle")
    if isinstance(author_title, str) and author_title.strip():
        return {"name": parse_author_title(author_title, book.get("title"))}
    return None


def author_display_name(author: dict[str, Any] | None) -> str:
    if not author:
        return ""
    name = first_non_empty(author.get("authorName"), author.get("name"))
    return name.strip()


def resolve_cover(book: dict[str, Any], base_url: str = "") -> str | None:
    """Find the best cover URL, making proxy-relative paths absolute."""
    cover = first_non_empty(book.get("remoteCover"), book.get("remotePoster"), book.get("coverUrl"))
    if not cover:
        for image in book.get("images") or []:
            if not isinstance(image, dict):
                continue
            if str(image.get("coverType", "")).lower() in ("cover", "poster"):
                cover = first_non_empty(image.get("remoteUrl"), image.get("url"))
                if cover:
                    break
    if not cover:
        return None
    if cover.startswith("/") and base_url:
        cover = base_url.rstrip("/") + cover
    return cover


def parse_identifiers(book: dict[str, Any]) -> tuple[str | None, str | None, str | None]:
    """Collect (isbn10, isbn13, asin) from ``identifiers`` and then ``editions``."""
    isbn10 = isbn13 = asin = ""
    for ident in book.get("identifiers") or []:
        if not isinstance(ident, dict):
            continue
        kind = str(ident.get("identifierType", "")).upper()
        value = str(ident.get("value") or "")
        if kind == "ISBN13" and not isbn13:
            isbn13 = clean_isbn(value)
        elif kind == "ISBN10" and not isbn10:
            isbn10 = clean_isbn(value)
        elif kind == "ASIN" and not asin:
            asin = clean_asin(value)

    for edition in book.get("editions") or []:
        if not isinstance(edition, dict):
            continue
        if not isbn13:
            raw = clean_isbn(edition.get("isbn13"))
            if len(raw) == 13:
                isbn13 = raw
            elif len(raw) == 10 and not isbn10:
                isbn10 = raw
        if not asin and edition.get("asin"):
            asin = clean_asin(edition.get("asin"))

    return isbn10 or None, isbn13 or None, asin or None


def _foreign_edition_id(book: dict[str, Any]) -> str:
    edition_id = book.get("foreignEditionId")
    if edition_id:
        return str(edition_id)
    editions = [e for e in book.get("editions") or [] if isinstance(e, dict)]
    for edition in editions:
        if edition.get("monitored") and edition.get("foreignEditionId"):
            return str(edition["foreignEditionId"])
    for edition in editions:
        if edition.get("foreignEditionId"):
            return str(edition["foreignEditionId"])
    return ""


def parse_lookup_book(book: dict[str, Any], base_url: str = "") -> Candidate:
    """Map one Readarr lookup entry onto a Candidate.

    Readarr-internal ids are carried through ``extensions`` untouched.
    """
    author = resolve_author(book)
    name = author_display_name(author)
    isbn10, isbn13, asin = parse_identifiers(book)

    extensions: dict[str, Any] = {}
    if book.get("foreignBookId"):
        extensions[EXT_FOREIGN_BOOK_ID] = str(book["foreignBookId"])
    edition_id = _foreign_edition_id(book)
    if edition_id:
        extensions[EXT_FOREIGN_EDITION_ID] = edition_id
    author_id = book.get("authorId") or (author or {}).get("id")
    if isinstance(author_id, int) and author_id > 0:
        extensions[EXT_AUTHOR_ID] = author_id
    if book.get("titleSlug"):
        extensions[EXT_TITLE_SLUG] = book["titleSlug"]
    if author:
        extensions[EXT_AUTHOR] = author

    links = [link for link in book.get("links") or [] if isinstance(link, dict)]
    page_count = book.get("pageCount")

    return Candidate(
        title=(book.get("title") or "").strip(),
        authors=(name,) if name else (),
        isbn10=isbn10,
        isbn13=isbn13,
        asin=asin,
        cover_url=resolve_cover(book, base_url),
        description=(book.get("overview") or "").strip() or None,
        published_date=book.get("releaseDate") or None,
        page_count=page_count if isinstance(page_count, int) and page_count > 0 else None,
        language=None,
        source=SOURCE,
        source_url=links[0].get("url") if links else None,
        extensions=extensions,
    )


def parse_lookup_response(data: Any, base_url: str = "") -> list[Candidate]:
    """Parse the JSON array returned by ``/api/v1/book/lookup``.

    Raises:
        ValueError: If the body is not a JSON array.
    """
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array from book lookup, got {type(data).__name__}")
    return [parse_lookup_book(book, base_url) for book in data if isinstance(book, dict)]


def build_selection_payload(candidate: Candidate) -> dict[str, Any]:
    """Build the canonical Readarr book payload for a chosen candidate.

    The payload pins the single edition that was looked up so Readarr
    monitors exactly that rendition. The add flow fills quality profile,
    root folder and tags.
    """
    ext = candidate.extensions
    author = ext.get(EXT_AUTHOR)
    if not author:
        if ext.get(EXT_AUTHOR_ID):
            author = {"id": ext[EXT_AUTHOR_ID]}
        elif candidate.authors:
            author = {"name": candidate.authors[0]}

    edition_id = ext.get(EXT_FOREIGN_EDITION_ID) or ""
    payload: dict[str, Any] = {
        "title": candidate.title,
        "titleSlug": ext.get(EXT_TITLE_SLUG) or "",
        "author": author,
        "editions": [{"foreignEditionId": edition_id, "monitored": True}] if edition_id else [],
        "foreignBookId": ext.get(EXT_FOREIGN_BOOK_ID) or "",
        "foreignEditionId": edition_id,
        "monitored": True,
        "metadataProfileId": 1,
    }
    if ext.get(EXT_AUTHOR_ID):
        payload["authorId"] = ext[EXT_AUTHOR_ID]
    return payload
