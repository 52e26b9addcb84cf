# ABOUTME: HTML scraping functions for Amazon's public search and product pages.
# ABOUTME: Turns search-result rows and /dp/ detail pages into Candidate instances.

import re

from bs4 import BeautifulSoup, Tag

from lectern.metadata.identifiers import extract_isbn
from lectern.metadata.types import Candidate

SOURCE = "amazon"

_MAX_ROW_AUTHORS = 3
# Amazon pads detail-bullet labels with bidi marks around the colon.
_BIDI_MARKS_RE = re.compile("[\u200e\u200f\u202a-\u202e]")
_PAGES_RE = re.compile(r"(\d[\d,]*)\s+pages", re.IGNORECASE)

_AUTHOR_SELECTORS = (
    "#bylineInfo span.author a, #bylineInfo a.contributorNameID, .author a.a-link-normal"
)
_IMAGE_SELECTORS = "#imgBlkFront, #ebooksImgBlkFront, #imgTagWrapperId img"


class AmazonParseError(Exception):
    """Raised when a product page carries no recognizable book information."""


def product_url(marketplace: str, asin: str) -> str:
    return f"https://{marketplace}/dp/{asin}"


def _clean(text: str) -> str:
    return " ".join(_BIDI_MARKS_RE.sub("", text).split())


def is_captcha_page(html: str) -> bool:
    """Detect Amazon's robot-check interstitial, which is served with HTTP 200."""
    soup = BeautifulSoup(html, "html.parser")
    return soup.select_one("form[action*='validateCaptcha']") is not None


def parse_search_page(html: str, *, marketplace: str, limit: int = 10) -> list[Candidate]:
    """Parse search-result rows into sparse Candidates.

    Rows without an ASIN or title are skipped; at most ``limit`` rows are
    returned. Only the fields visible in the result grid are filled here.
    """
    soup = BeautifulSoup(html, "html.parser")
    items: list[Candidate] = []

    for row in soup.select("div.s-result-item[data-asin]"):
        if len(items) >= limit:
            break
        asin = (row.get("data-asin") or "").strip().upper()
        if not asin:
            continue

        title_elem = row.select_one("h2 a span") or row.select_one("h2 span")
        title = _clean(title_elem.get_text()) if title_elem else ""
        if not title:
            continue

        image = row.select_one("img.s-image")
        cover = (image.get("src") or "").strip() if image else ""

        authors: list[str] = []
        for author_elem in row.select(".a-row .a-size-base"):
            name = _clean(author_elem.get_text())
            if name and name not in authors and len(authors) < _MAX_ROW_AUTHORS:
                authors.append(name)

        items.append(
            Candidate(
                title=title,
                authors=tuple(authors),
                asin=asin,
                cover_url=cover or None,
                source=SOURCE,
                source_url=product_url(marketplace, asin),
            )
        )

    return items


def _detail_bullets(soup: BeautifulSoup) -> dict[str, str]:
    """Collect ``label -> value`` pairs from the product detail bullet list."""
    details: dict[str, str] = {}
    for li in soup.select("#detailBullets_feature_div li"):
        label_elem = li.select_one("span.a-text-bold")
        if label_elem is None:
            continue
        raw_label = label_elem.get_text()
        label = _clean(raw_label).rstrip(":").strip().lower()
        value = _clean(li.get_text().replace(raw_label, "", 1))
        if label and value and label not in details:
            details[label] = value

    # Older layout: a table of "<b>ISBN-10:</b> 0743273567" list items.
    for li in soup.select("#productDetailsTable .content ul li"):
        text = _clean(li.get_text())
        label, sep, value = text.partition(":")
        label = label.strip().lower()
        if sep and label and label not in details:
            details[label] = value.strip()

    return details


def _first_attr(soup: BeautifulSoup, selector: str, attr: str) -> str:
    elem = soup.select_one(selector)
    if isinstance(elem, Tag):
        value = elem.get(attr)
        if isinstance(value, str):
            return value.strip()
    return ""


def parse_detail_page(html: str, *, asin: str, marketplace: str) -> Candidate:
    """Parse an Amazon product (``/dp/<asin>``) page into a Candidate.

    Raises:
        AmazonParseError: If the page has neither a title nor an ISBN.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_elem = soup.select_one("#productTitle")
    title = _clean(title_elem.get_text()) if title_elem else ""
    if not title:
        title = _clean(_first_attr(soup, "meta[property='og:title']", "content"))

    cover = _first_attr(soup, "meta[property='og:image']", "content")
    if not cover:
        cover = _first_attr(soup, _IMAGE_SELECTORS, "src")

    authors: list[str] = []
    for elem in soup.select(_AUTHOR_SELECTORS):
        name = _clean(elem.get_text())
        if name and name not in authors:
            authors.append(name)

    description_elem = soup.select_one("#bookDescription_feature_div") or soup.select_one(
        "#productDescription"
    )
    description = _clean(description_elem.get_text(" ")) if description_elem else ""
    if not description:
        description = _clean(_first_attr(soup, "meta[name='description']", "content"))

    details = _detail_bullets(soup)
    isbn10 = extract_isbn(details.get("isbn-10", ""))
    isbn13 = extract_isbn(details.get("isbn-13", ""))

    if not title and not isbn10 and not isbn13:
        raise AmazonParseError(f"no book info detected for {asin}")

    page_count = None
    pages_match = _PAGES_RE.search(details.get("print length", "") or details.get("paperback", ""))
    if pages_match:
        page_count = int(pages_match.group(1).replace(",", ""))

    return Candidate(
        title=title,
        authors=tuple(authors),
        isbn10=isbn10 if len(isbn10) == 10 else None,
        isbn13=isbn13 if len(isbn13) == 13 else None,
        asin=asin.upper(),
        cover_url=cover or None,
        description=description or None,
        published_date=details.get("publication date") or None,
        page_count=page_count,
        language=details.get("language") or None,
        source=SOURCE,
        source_url=product_url(marketplace, asin.upper()),
    )
