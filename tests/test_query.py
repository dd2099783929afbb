from athenaeum.models import BookRecord
from athenaeum.query import (
    Availability,
    CatalogQuery,
    CatalogQueryEngine,
    SortOption,
    available_genres,
    filter_books,
)


def _book(book_id, title, author, category="", year=2000, copies=1):
    return BookRecord(
        book_id=book_id, title=title, author=author, category=category,
        published_year=year, copies=copies,
    )


def test_scifi_and_available(store):
    query = CatalogQuery(genre="SciFi", availability=Availability.AVAILABLE)
    result = CatalogQueryEngine(store).run(query)
    assert [b.title for b in result] == ["Dune"]


def test_genre_match_ignores_case(store):
    result = CatalogQueryEngine(store).run(CatalogQuery(genre="scifi"))
    assert sorted(b.book_id for b in result) == [1, 3]


def test_on_loan_filter(store):
    result = CatalogQueryEngine(store).run(CatalogQuery(availability=Availability.ON_LOAN))
    assert [b.title for b in result] == ["Neuromancer"]


def test_text_matches_title_or_author(store):
    engine = CatalogQueryEngine(store)
    assert [b.book_id for b in engine.run(CatalogQuery(text="HOBBIT"))] == [2]
    assert [b.book_id for b in engine.run(CatalogQuery(text="austen"))] == [4]
    assert engine.run(CatalogQuery(text="no such book")) == []


def test_year_range_is_inclusive_and_open_ended(store):
    engine = CatalogQueryEngine(store)
    years = lambda q: sorted(b.published_year for b in engine.run(q))

    assert years(CatalogQuery(year_range=(1937, 1965))) == [1937, 1965]
    assert years(CatalogQuery(year_range=(1950, None))) == [1965, 1984]
    assert years(CatalogQuery(year_range=(None, 1900))) == [1815]


def test_query_reads_current_store_state(store):
    engine = CatalogQueryEngine(store)
    store.update_copies(1, 0)
    query = CatalogQuery(genre="SciFi", availability=Availability.AVAILABLE)
    assert engine.run(query) == []


def test_sort_options(store):
    engine = CatalogQueryEngine(store)
    titles = lambda s: [b.title for b in engine.run(CatalogQuery(sort=s))]

    assert titles(SortOption.TITLE_ASC) == ["Dune", "Emma", "Neuromancer", "The Hobbit"]
    assert titles(SortOption.TITLE_DESC) == ["The Hobbit", "Neuromancer", "Emma", "Dune"]
    assert titles(SortOption.AUTHOR_ASC) == ["Dune", "The Hobbit", "Emma", "Neuromancer"]
    assert titles(SortOption.YEAR_ASC) == ["Emma", "The Hobbit", "Dune", "Neuromancer"]
    assert titles(SortOption.YEAR_DESC) == ["Neuromancer", "Dune", "The Hobbit", "Emma"]


def test_title_sort_ignores_case():
    books = [_book(1, "beta", "x"), _book(2, "Alpha", "y"), _book(3, "Gamma", "z")]
    result = filter_books(books, CatalogQuery(sort=SortOption.TITLE_ASC))
    assert [b.book_id for b in result] == [2, 1, 3]


def test_ties_keep_input_order_in_both_directions():
    books = [
        _book(1, "Same", "A", year=1990),
        _book(2, "Same", "B", year=1990),
        _book(3, "Other", "C", year=1990),
    ]
    asc = filter_books(books, CatalogQuery(sort=SortOption.TITLE_ASC))
    desc = filter_books(books, CatalogQuery(sort=SortOption.TITLE_DESC))
    by_year = filter_books(books, CatalogQuery(sort=SortOption.YEAR_DESC))

    assert [b.book_id for b in asc] == [3, 1, 2]
    assert [b.book_id for b in desc] == [1, 2, 3]
    assert [b.book_id for b in by_year] == [1, 2, 3]


def test_result_is_a_permutation_of_matches():
    books = [_book(i, f"T{i % 3}", f"A{i % 2}", year=2000 + i % 4) for i in range(20)]
    for option in SortOption:
        result = filter_books(books, CatalogQuery(sort=option))
        assert sorted(b.book_id for b in result) == list(range(20))


def test_filtering_does_not_modify_input():
    books = [_book(2, "B", "x"), _book(1, "A", "y")]
    filter_books(books, CatalogQuery())
    assert [b.book_id for b in books] == [2, 1]


def test_available_genres():
    books = [_book(1, "a", "x", "SciFi"), _book(2, "b", "y", "Fantasy"),
             _book(3, "c", "z", "SciFi"), _book(4, "d", "w", "")]
    assert available_genres(books) == ["Fantasy", "SciFi"]
