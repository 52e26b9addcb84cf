# ABOUTME: Unit tests for the Candidate record and MediaKind enum.
# ABOUTME: Covers immutability, identifier helpers, and dict serialization.

import dataclasses

import pytest

from lectern.metadata.types import Candidate, MediaKind


class TestMediaKind:
    @pytest.mark.parametrize("raw", ["ebook", "EBOOK", " Ebook "])
    def test_parse_is_case_insensitive(self, raw: str) -> None:
        assert MediaKind.parse(raw) is MediaKind.EBOOK

    def test_parse_passes_enum_through(self) -> None:
        assert MediaKind.parse(MediaKind.AUDIOBOOK) is MediaKind.AUDIOBOOK

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="unknown media kind"):
            MediaKind.parse("magazine")


class TestCandidate:
    def test_is_frozen(self) -> None:
        candidate = Candidate(title="Dune")
        with pytest.raises(dataclasses.FrozenInstanceError):
            candidate.title = "Other"  # type: ignore[misc]

    def test_authors_list_is_stored_as_tuple(self) -> None:
        candidate = Candidate(title="Good Omens", authors=["Terry Pratchett", "Neil Gaiman"])
        assert candidate.authors == ("Terry Pratchett", "Neil Gaiman")
        assert candidate.author == "Terry Pratchett, Neil Gaiman"

    def test_author_empty_without_authors(self) -> None:
        assert Candidate(title="Anonymous").author == ""

    def test_identifiers_only_populated(self) -> None:
        candidate = Candidate(title="Dune", isbn13="9780441013593", asin="B00B7NPRY8")
        assert candidate.identifiers() == {"isbn13": "9780441013593", "asin": "B00B7NPRY8"}
        assert candidate.has_identifiers

    def test_has_identifiers_false_when_none(self) -> None:
        assert not Candidate(title="Dune", authors=("Frank Herbert",)).has_identifiers

    def test_dict_round_trip_keeps_extensions(self) -> None:
        candidate = Candidate(
            title="Dune",
            authors=("Frank Herbert",),
            isbn13="9780441013593",
            page_count=604,
            source="readarr",
            extensions={"foreign_book_id": "234225"},
        )
        restored = Candidate.from_dict(candidate.to_dict())
        assert restored == candidate

    def test_from_dict_ignores_unknown_keys(self) -> None:
        candidate = Candidate.from_dict({"title": "Dune", "rating": 5})
        assert candidate.title == "Dune"
        assert candidate.extensions == {}
