# ABOUTME: Identity rule and field-level merge for candidates from one aggregation pass.
# ABOUTME: Shared identifiers or (with none present) similar title+author mark two candidates as one book.

import dataclasses
from collections.abc import Iterable
from typing import Any

from lectern.metadata.identifiers import clean_asin, clean_isbn
from lectern.metadata.scoring import author_similarity, title_similarity
from lectern.metadata.types import Candidate

DEFAULT_TITLE_THRESHOLD = 0.9
DEFAULT_AUTHOR_THRESHOLD = 0.85

# Fields never filled from a duplicate: provenance stays with the winner,
# extensions are unioned separately.
_UNMERGED_FIELDS = frozenset({"source", "extensions"})


def _same(a: str | None, b: str | None, clean) -> bool:
    left, right = clean(a), clean(b)
    return bool(left) and left == right


def is_duplicate(
    a: Candidate,
    b: Candidate,
    *,
    title_threshold: float = DEFAULT_TITLE_THRESHOLD,
    author_threshold: float = DEFAULT_AUTHOR_THRESHOLD,
) -> bool:
    """Decide whether two candidates describe the same book.

    True when they share a non-empty ISBN-13, ISBN-10, or ASIN. When
    neither carries any identifier, falls back to normalized title and
    author similarity, both of which must clear their thresholds.
    Identical records are always duplicates of each other.
    """
    if a == b:
        return True
    if _same(a.isbn13, b.isbn13, clean_isbn):
        return True
    if _same(a.isbn10, b.isbn10, clean_isbn):
        return True
    if _same(a.asin, b.asin, clean_asin):
        return True
    if a.has_identifiers or b.has_identifiers:
        return False
    return (
        title_similarity(a.title, b.title) >= title_threshold
        and author_similarity(a.authors, b.authors) >= author_threshold
    )


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, tuple, list, dict)):
        return not value
    return False


def merge_candidates(winner: Candidate, duplicate: Candidate) -> Candidate:
    """Fill every empty field on ``winner`` from ``duplicate``.

    Non-empty winner fields are never overwritten. Extension maps are
    unioned with the winner's keys taking precedence. Returns ``winner``
    itself when nothing changes.
    """
    updates: dict[str, Any] = {}
    for f in dataclasses.fields(Candidate):
        if f.name in _UNMERGED_FIELDS:
            continue
        current = getattr(winner, f.name)
        incoming = getattr(duplicate, f.name)
        if _is_empty(current) and not _is_empty(incoming):
            updates[f.name] = incoming

    missing_ext = {k: v for k, v in duplicate.extensions.items() if k not in winner.extensions}
    if missing_ext:
        updates["extensions"] = {**winner.extensions, **missing_ext}

    if not updates:
        return winner
    return dataclasses.replace(winner, **updates)


def deduplicate(
    candidates: Iterable[Candidate],
    *,
    title_threshold: float = DEFAULT_TITLE_THRESHOLD,
    author_threshold: float = DEFAULT_AUTHOR_THRESHOLD,
) -> list[Candidate]:
    """Collapse duplicates, keeping the first occurrence as the winner.

    Input order decides precedence, so callers put the higher-quality
    source first. Each later duplicate is merged into the first winner it
    matches (compared against the winner as merged so far). The result keeps
    the discovery order of the winners.
    """
    thresholds = {"title_threshold": title_threshold, "author_threshold": author_threshold}
    winners: list[Candidate] = []
    for candidate in candidates:
        for index, winner in enumerate(winners):
            if is_duplicate(winner, candidate, **thresholds):
                winners[index] = merge_candidates(winner, candidate)
                _absorb_winners(winners, index, thresholds)
                break
        else:
            winners.append(candidate)
    return winners


def _absorb_winners(winners: list[Candidate], index: int, thresholds: dict[str, float]) -> None:
    """Fold any other winner that became a duplicate of winners[index] after a merge.

    A merge can give a winner identifiers it lacked, which may tie it to a
    winner that was distinct before. The earlier of the two survives.
    """
    changed = True
    while changed:
        changed = False
        for other, candidate in enumerate(winners):
            if other == index or not is_duplicate(winners[index], candidate, **thresholds):
                continue
            keep, drop = min(index, other), max(index, other)
            winners[keep] = merge_candidates(winners[keep], winners[drop])
            del winners[drop]
            index = keep
            changed = True
            break
