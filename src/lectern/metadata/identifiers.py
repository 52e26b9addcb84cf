# ABOUTME: Identifier cleaning and small text helpers shared by providers and matching.
# ABOUTME: Normalizes ISBN-10/13 and ASIN values and pulls ASINs out of Amazon URLs.

import re

_ISBN_NON_DIGIT_RE = re.compile(r"[^0-9Xx]")
_ASIN_RE = re.compile(r"^[A-Z0-9]{10}$")
# Path segments that precede an ASIN in Amazon product URLs.
_AMAZON_PATH_RE = re.compile(r"/(?:dp|gp/product|gp/aw/d|exec/obidos/asin)/([A-Za-z0-9]{10})(?:[/?#]|$)")


def clean_isbn(value: str | None) -> str:
    """Strip everything but digits and X from an ISBN, upper-casing the check digit."""
    if not value:
        return ""
    return _ISBN_NON_DIGIT_RE.sub("", value).upper()


def clean_asin(value: str | None) -> str:
    if not value:
        return ""
    return value.strip().upper()


def split_isbns(values: list[str]) -> tuple[str | None, str | None]:
    """Pick the first ISBN-10 and the first ISBN-13 from a mixed list.

    Returns:
        (isbn10, isbn13) with None where no value of that length was present.
    """
    isbn10: str | None = None
    isbn13: str | None = None
    for raw in values:
        cleaned = clean_isbn(raw)
        if len(cleaned) == 13 and isbn13 is None and cleaned.isdigit():
            isbn13 = cleaned
        elif len(cleaned) == 10 and isbn10 is None:
            isbn10 = cleaned
    return isbn10, isbn13


def extract_isbn(text: str) -> str:
    """Pull the ISBN digits out of a labelled string like 'ISBN-13 : 978-0743273565'."""
    text = text.replace("ISBN-10", "").replace("ISBN-13", "")
    cleaned = clean_isbn(text)
    if len(cleaned) >= 13:
        return cleaned[:13]
    if len(cleaned) >= 10:
        return cleaned[:10]
    return cleaned


def extract_asin(value: str | None) -> str:
    """Return the ASIN referenced by a query, or an empty string.

    Accepts a bare 10-character ASIN or any Amazon product URL
    (``/dp/<asin>``, ``/gp/product/<asin>``). Bare values must contain a
    digit so ordinary ten-letter words are not mistaken for ASINs; print
    books use their ISBN-10 as ASIN, so all-digit values are accepted.
    """
    if not value:
        return ""
    value = value.strip()
    if "amazon." in value.lower():
        match = _AMAZON_PATH_RE.search(value)
        return match.group(1).upper() if match else ""
    candidate = value.upper()
    if _ASIN_RE.match(candidate) and any(ch.isdigit() for ch in candidate):
        return candidate
    return ""


def first_non_empty(*values: str | None) -> str:
    """Return the first value that is non-empty after trimming."""
    for value in values:
        if value and value.strip():
            return value
    return ""


def to_title_case(text: str) -> str:
    """Capitalize the first letter after a space, hyphen or apostrophe; lowercase the rest."""
    text = text.strip().lower()
    out: list[str] = []
    cap_next = True
    for ch in text:
        out.append(ch.upper() if cap_next else ch)
        cap_next = ch in " -'"
    return "".join(out)


def parse_author_title(author_title: str, book_title: str | None = None) -> str:
    """Recover a display author name from Readarr's ``authorTitle`` field.

    Readarr renders it as ``"<last>, <first> <book title>"`` in lower case,
    e.g. ``"andrews, ilona Burn for Me"``. When the book title is known it is
    removed from the end first so multi-word first names survive.
    """
    text = author_title.strip()
    if not text:
        return ""
    if book_title and text.lower().endswith(book_title.strip().lower()):
        text = text[: len(text) - len(book_title.strip())].strip()
        if "," in text:
            last, _, first = text.partition(",")
            return to_title_case(f"{first.strip()} {last.strip()}")
        return to_title_case(text)

    parts = text.split()
    if len(parts) >= 2 and parts[0].endswith(","):
        return to_title_case(f"{parts[1]} {parts[0].rstrip(',')}")
    return to_title_case(text)
