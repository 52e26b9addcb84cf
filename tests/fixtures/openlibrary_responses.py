# ABOUTME: Canned Open Library search API response fixtures for testing.
# ABOUTME: Provides realistic JSON dicts matching the search.json response shape.

SEARCH_RESPONSE = {
    "numFound": 2,
    "start": 0,
    "docs": [
        {
            "key": "/works/OL468431W",
            "title": "The Great Gatsby",
            "author_name": ["F. Scott Fitzgerald"],
            "first_publish_year": 1925,
            "isbn": ["0743273567", "9780743273565", "9780141182636"],
            "cover_i": 7222246,
            "number_of_pages_median": 180,
            "language": ["eng"],
            "first_sentence": ["In my younger and more vulnerable years my father gave me some advice."],
            "id_amazon": ["0743273567"],
        },
        {
            "key": "/works/OL17870990W",
            "title": "The Great Gatsby: A Graphic Novel",
            "author_name": ["F. Scott Fitzgerald", "Fred Fordham"],
            "first_publish_year": 2020,
        },
    ],
}

SEARCH_RESPONSE_EMPTY = {
    "numFound": 0,
    "start": 0,
    "docs": [],
}

SEARCH_RESPONSE_UNTITLED_DOC = {
    "numFound": 2,
    "docs": [
        {"key": "/works/OL1W", "author_name": ["Nobody"]},
        {"key": "/works/OL2W", "title": "Dune", "author_name": ["Frank Herbert"]},
    ],
}

SEARCH_RESPONSE_NO_IDENTIFIERS = {
    "numFound": 1,
    "docs": [
        {
            "key": "/works/OL893415W",
            "title": "Dune",
            "author_name": ["Frank Herbert"],
            "first_publish_year": 1965,
        },
    ],
}
