# ABOUTME: Unit tests for Readarr lookup response parsing and the selection payload.
# ABOUTME: Covers author resolution across response shapes, identifiers, covers, and extensions.

import pytest

from lectern.metadata.readarr_parser import (
    EXT_AUTHOR_ID,
    EXT_FOREIGN_BOOK_ID,
    EXT_FOREIGN_EDITION_ID,
    EXT_TITLE_SLUG,
    build_selection_payload,
    parse_identifiers,
    parse_lookup_book,
    parse_lookup_response,
    resolve_author,
    resolve_cover,
)
from lectern.metadata.types import Candidate
from tests.fixtures.readarr_responses import (
    AUTHOR_TITLE_BOOK,
    AUTHORS_ARRAY_BOOK,
    DUNE_BOOK,
    LOOKUP_RESPONSE,
    LOOKUP_RESPONSE_NOT_A_LIST,
)

BASE_URL = "http://readarr.local:8787"


class TestResolveAuthor:
    def test_author_object(self) -> None:
        assert resolve_author(DUNE_BOOK)["authorName"] == "Frank Herbert"

    def test_authors_array(self) -> None:
        assert resolve_author(AUTHORS_ARRAY_BOOK) == {"id": 3, "name": "Ilona Andrews"}

    def test_author_id_only(self) -> None:
        assert resolve_author({"title": "X", "authorId": 7}) == {"id": 7}

    def test_author_title_fallback(self) -> None:
        assert resolve_author(AUTHOR_TITLE_BOOK) == {"name": "Ilona Andrews"}

    def test_none_when_missing(self) -> None:
        assert resolve_author({"title": "Orphan"}) is None


class TestIdentifiersAndCover:
    def test_identifiers_then_editions(self) -> None:
        assert parse_identifiers(DUNE_BOOK) == ("0441013597", "9780441013593", "B00B7NPRY8")

    def test_ten_digit_edition_isbn_is_isbn10(self) -> None:
        isbn10, isbn13, _ = parse_identifiers(AUTHORS_ARRAY_BOOK)
        assert isbn10 == "0062289217"
        assert isbn13 is None

    def test_remote_cover(self) -> None:
        assert resolve_cover(DUNE_BOOK, BASE_URL) == "https://images.example.com/dune.jpg"

    def test_relative_image_made_absolute(self) -> None:
        assert resolve_cover(AUTHORS_ARRAY_BOOK, BASE_URL) == BASE_URL + "/MediaCover/Books/7/cover.jpg"

    def test_no_cover(self) -> None:
        assert resolve_cover({"title": "X"}) is None


class TestParseLookupBook:
    def test_full_entry(self) -> None:
        candidate = parse_lookup_book(DUNE_BOOK, BASE_URL)
        assert candidate.title == "Dune"
        assert candidate.authors == ("Frank Herbert",)
        assert candidate.isbn13 == "9780441013593"
        assert candidate.page_count == 604
        assert candidate.description == "Set on the desert planet Arrakis."
        assert candidate.source == "readarr"
        assert candidate.source_url == "https://www.goodreads.com/book/show/234225"
        assert candidate.extensions[EXT_FOREIGN_BOOK_ID] == "234225"
        assert candidate.extensions[EXT_FOREIGN_EDITION_ID] == "41010"
        assert candidate.extensions[EXT_AUTHOR_ID] == 12
        assert candidate.extensions[EXT_TITLE_SLUG] == "dune"

    def test_edition_id_from_editions(self) -> None:
        candidate = parse_lookup_book(AUTHORS_ARRAY_BOOK, BASE_URL)
        assert candidate.extensions[EXT_FOREIGN_EDITION_ID] == "900"
        assert candidate.extensions[EXT_AUTHOR_ID] == 3

    def test_author_title_entry(self) -> None:
        candidate = parse_lookup_book(AUTHOR_TITLE_BOOK)
        assert candidate.authors == ("Ilona Andrews",)
        assert EXT_AUTHOR_ID not in candidate.extensions

    def test_response_list(self) -> None:
        assert [c.title for c in parse_lookup_response(LOOKUP_RESPONSE)] == ["Dune", "Dune Messiah"]

    def test_response_not_a_list(self) -> None:
        with pytest.raises(ValueError, match="JSON array"):
            parse_lookup_response(LOOKUP_RESPONSE_NOT_A_LIST)


class TestSelectionPayload:
    def test_payload_pins_edition(self) -> None:
        payload = build_selection_payload(parse_lookup_book(DUNE_BOOK))
        assert payload["foreignBookId"] == "234225"
        assert payload["foreignEditionId"] == "41010"
        assert payload["editions"] == [{"foreignEditionId": "41010", "monitored": True}]
        assert payload["author"]["authorName"] == "Frank Herbert"
        assert payload["authorId"] == 12
        assert payload["titleSlug"] == "dune"
        assert payload["monitored"] is True

    def test_payload_from_plain_candidate(self) -> None:
        payload = build_selection_payload(Candidate(title="Dune", authors=("Frank Herbert",)))
        assert payload["author"] == {"name": "Frank Herbert"}
        assert payload["editions"] == []
        assert "authorId" not in payload
