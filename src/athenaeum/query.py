"""Filtering and sorting of the catalogue for display.

All functions here are read-only: they build new lists and never modify
the books or the store they read from.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .models import BookRecord


class Availability(str, Enum):
    """Availability filter choices."""

    ALL = "All"
    AVAILABLE = "Available"
    ON_LOAN = "On Loan"


class SortOption(str, Enum):
    """Sort orders offered by the catalogue views."""

    TITLE_ASC = "Title (A-Z)"
    TITLE_DESC = "Title (Z-A)"
    AUTHOR_ASC = "Author (A-Z)"
    AUTHOR_DESC = "Author (Z-A)"
    YEAR_ASC = "Year (Oldest First)"
    YEAR_DESC = "Year (Newest First)"


# Sort option -> (key function, reverse)
_SORT_KEYS = {
    SortOption.TITLE_ASC: (lambda b: b.title.lower(), False),
    SortOption.TITLE_DESC: (lambda b: b.title.lower(), True),
    SortOption.AUTHOR_ASC: (lambda b: b.author.lower(), False),
    SortOption.AUTHOR_DESC: (lambda b: b.author.lower(), True),
    SortOption.YEAR_ASC: (lambda b: b.published_year, False),
    SortOption.YEAR_DESC: (lambda b: b.published_year, True),
}


@dataclass
class CatalogQuery:
    """Active filter and sort parameters.

    Attributes
    ----------
    text : str
        Case-insensitive substring matched against title or author. Empty
        matches everything.
    genre : str or None
        Category that must match (case-insensitive), or ``None`` for all.
    availability : Availability
        Availability filter.
    year_range : tuple of (int or None, int or None), or None
        Inclusive publication year bounds; a ``None`` bound is open.
    sort : SortOption
        Result order.
    """

    text: str = ""
    genre: Optional[str] = None
    availability: Availability = Availability.ALL
    year_range: Optional[tuple[Optional[int], Optional[int]]] = None
    sort: SortOption = SortOption.TITLE_ASC


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def _matches(book: BookRecord, query: CatalogQuery) -> bool:
    needle = query.text.strip().lower()
    if needle and needle not in book.title.lower() and needle not in book.author.lower():
        return False

    if query.genre and _norm(book.category) != _norm(query.genre):
        return False

    if query.availability == Availability.AVAILABLE and not book.is_available:
        return False
    if query.availability == Availability.ON_LOAN and book.is_available:
        return False

    if query.year_range is not None:
        start, end = query.year_range
        if start is not None and book.published_year < start:
            return False
        if end is not None and book.published_year > end:
            return False

    return True


def filter_books(books: Iterable[BookRecord], query: CatalogQuery) -> list[BookRecord]:
    """Return the books satisfying every filter in *query*, sorted.

    Ties keep their input order for every sort option, ascending or
    descending.

    Parameters
    ----------
    books : iterable of BookRecord
        Books in catalogue order.
    query : CatalogQuery
        Filters and sort order.

    Returns
    -------
    list of BookRecord
        The matching books; empty when nothing matches.
    """
    matched = [b for b in books if _matches(b, query)]
    key_fn, reverse = _SORT_KEYS[SortOption(query.sort)]
    # list.sort stays stable with reverse=True
    matched.sort(key=key_fn, reverse=reverse)
    return matched


def available_genres(books: Iterable[BookRecord]) -> list[str]:
    """Return the distinct non-empty categories, sorted alphabetically."""
    return sorted({b.category for b in books if b.category})


class CatalogQueryEngine:
    """Runs queries against a store's current collection.

    Nothing is cached; every call reads the store again.
    """

    def __init__(self, store) -> None:
        self._store = store

    def run(self, query: Optional[CatalogQuery] = None) -> list[BookRecord]:
        return filter_books(self._store.books, query or CatalogQuery())

    def genres(self) -> list[str]:
        return available_genres(self._store.books)
