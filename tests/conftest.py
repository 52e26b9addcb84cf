# ABOUTME: Shared pytest fixtures for Lectern tests.
# ABOUTME: Provides sample candidates and a config file writer.

from pathlib import Path

import pytest

from lectern.metadata.readarr_parser import EXT_FOREIGN_BOOK_ID, EXT_FOREIGN_EDITION_ID
from lectern.metadata.types import Candidate


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def gatsby_amazon() -> Candidate:
    """Amazon's record for The Great Gatsby: ISBN-13 and ASIN, no description."""
    return Candidate(
        title="The Great Gatsby",
        authors=("F. Scott Fitzgerald",),
        isbn13="9780743273565",
        asin="0743273567",
        cover_url="https://m.media-amazon.com/images/I/gatsby.jpg",
        source="amazon",
    )


@pytest.fixture
def gatsby_openlibrary() -> Candidate:
    """Open Library's record for the same edition, with a description."""
    return Candidate(
        title="The Great Gatsby",
        authors=("F. Scott Fitzgerald",),
        isbn13="9780743273565",
        description="In my younger and more vulnerable years my father gave me some advice.",
        source="openlibrary",
    )


@pytest.fixture
def dune_readarr() -> Candidate:
    return Candidate(
        title="Dune",
        authors=("Frank Herbert",),
        isbn13="9780441013593",
        isbn10="0441013597",
        source="readarr",
        extensions={EXT_FOREIGN_BOOK_ID: "234225", EXT_FOREIGN_EDITION_ID: "41010"},
    )


@pytest.fixture
def dune_messiah_readarr() -> Candidate:
    return Candidate(
        title="Dune Messiah",
        authors=("Frank Herbert",),
        isbn13="9780593098233",
        source="readarr",
        extensions={EXT_FOREIGN_BOOK_ID: "44492285"},
    )


@pytest.fixture
def write_config(tmp_path: Path):
    """Return a function that writes YAML text to a config file and returns its path."""

    def _write(text: str) -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write
