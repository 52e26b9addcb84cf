# ABOUTME: Parsing functions for Open Library search API JSON responses.
# ABOUTME: Converts OL search docs into Candidate instances.

from typing import Any

from lectern.metadata.identifiers import clean_asin, split_isbns
from lectern.metadata.types import Candidate

SOURCE = "openlibrary"

_OL_BASE_URL = "https://openlibrary.org"
_COVERS_BASE_URL = "https://covers.openlibrary.org/b/id"


def build_cover_url(cover_id: int, size: str = "M") -> str:
    """Build an Open Library cover image URL for a cover id.

    Args:
        cover_id: The ``cover_i`` value from a search doc.
        size: Image size: "S" (small), "M" (medium), or "L" (large).
    """
    return f"{_COVERS_BASE_URL}/{cover_id}-{size}.jpg"


def _first_text(value: Any) -> str | None:
    """Return the first string of a list-or-string field, or None."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_search_doc(doc: dict[str, Any]) -> Candidate:
    """Map one Open Library search doc onto a Candidate."""
    isbn10, isbn13 = split_isbns(doc.get("isbn") or [])

    cover_id = doc.get("cover_i")
    cover_url = build_cover_url(cover_id) if cover_id else None

    year = doc.get("first_publish_year")
    pages = doc.get("number_of_pages_median")

    key = doc.get("key")
    source_url = f"{_OL_BASE_URL}{key}" if key else None

    return Candidate(
        title=(doc.get("title") or "").strip(),
        authors=tuple(doc.get("author_name") or ()),
        isbn10=isbn10,
        isbn13=isbn13,
        asin=clean_asin(_first_text(doc.get("id_amazon"))) or None,
        cover_url=cover_url,
        description=_first_text(doc.get("first_sentence")),
        published_date=str(year) if year else None,
        page_count=pages if isinstance(pages, int) and pages > 0 else None,
        language=_first_text(doc.get("language")),
        source=SOURCE,
        source_url=source_url,
    )


def parse_search_results(data: dict[str, Any]) -> list[Candidate]:
    """Parse an Open Library Search API response into Candidates.

    Docs without a title are skipped.
    """
    results: list[Candidate] = []
    for doc in data.get("docs") or []:
        if not isinstance(doc, dict):
            continue
        candidate = parse_search_doc(doc)
        if candidate.title:
            results.append(candidate)
    return results
