import pytest

from athenaeum.models import ReservationStatus
from athenaeum.parser import (
    BUNDLED_DATASET,
    CatalogParseError,
    format_books,
    load_dataset,
    parse_books,
    split_quoted,
    split_simple,
)

from conftest import HEADER, SAMPLE_CSV


def test_parse_dune_row():
    text = HEADER + "\n1,Dune,Frank Herbert,9780441013593,SciFi,English,Ace,1965,A1,Yes,Active,3\n"
    books = parse_books(text)

    assert len(books) == 1
    dune = books[0]
    assert dune.book_id == 1
    assert dune.title == "Dune"
    assert dune.author == "Frank Herbert"
    assert dune.isbn == "9780441013593"
    assert dune.category == "SciFi"
    assert dune.published_year == 1965
    assert dune.shelf_location == "A1"
    assert dune.status == "Active"
    assert dune.copies == 3
    assert dune.is_available is True
    assert dune.reservation_status == ReservationStatus.NOT_RESERVED
    assert dune.is_wishlisted is False


def test_preserves_row_order():
    books = parse_books(SAMPLE_CSV)
    assert [b.book_id for b in books] == [1, 2, 3, 4]


def test_row_with_wrong_field_count_is_dropped():
    text = (
        HEADER + "\n"
        "1,Dune,Frank Herbert,9780441013593,SciFi,English,Ace,1965,A1,Yes,Active\n"
        "2,Emma,Jane Austen,9780141439587,Romance,English,Penguin,1815,D2,Yes,Active,1\n"
    )
    books = parse_books(text)
    assert [b.book_id for b in books] == [2]


def test_unquoted_comma_shifts_fields_and_row_is_dropped():
    text = (
        HEADER + "\n"
        '5,"Sapiens, A Brief History",Yuval Harari,1,History,English,Harper,2011,H1,Yes,Active,2\n'
        "2,Emma,Jane Austen,9780141439587,Romance,English,Penguin,1815,D2,Yes,Active,1\n"
    )
    assert [b.book_id for b in parse_books(text)] == [2]


def test_quoted_dialect_keeps_commas_inside_quotes():
    text = (
        HEADER + "\n"
        '5,"Sapiens, A Brief History",Yuval Harari,1,History,English,Harper,2011,H1,Yes,Active,2\n'
    )
    books = parse_books(text, quoted=True)
    assert books[0].title == "Sapiens, A Brief History"


@pytest.mark.parametrize("bad_field, value", [
    ("book_id", "abc"),
    ("published_year", "nineteen"),
    ("copies", "two"),
    ("title", ""),
    ("author", ""),
    ("is_available", ""),
])
def test_row_with_bad_required_field_is_dropped(bad_field, value):
    columns = HEADER.split(",")
    row = dict(zip(columns, "9,Title,Author,1,Genre,English,Pub,2000,S1,Yes,Active,1".split(",")))
    row[bad_field] = value
    text = (
        HEADER + "\n"
        + ",".join(row[c] for c in columns) + "\n"
        + "2,Emma,Jane Austen,9780141439587,Romance,English,Penguin,1815,D2,Yes,Active,1\n"
    )
    assert [b.book_id for b in parse_books(text)] == [2]


def test_optional_fields_may_be_empty():
    text = HEADER + "\n7,Untitled,Anon,,,,,1999,,No,,0\n"
    book = parse_books(text)[0]
    assert book.isbn == ""
    assert book.category == ""
    assert book.copies == 0
    assert book.is_available is False


def test_header_is_matched_case_insensitively_and_in_any_order():
    text = (
        "Title,BOOK_ID,author,isbn,category,language,publisher,"
        "published_year,shelf_location,is_available,status,copies\n"
        "Dune,1,Frank Herbert,9780441013593,SciFi,English,Ace,1965,A1,Yes,Active,3\n"
    )
    book = parse_books(text)[0]
    assert book.book_id == 1
    assert book.title == "Dune"


def test_availability_follows_copies_not_the_column():
    text = HEADER + "\n1,Dune,Frank Herbert,1,SciFi,English,Ace,1965,A1,No,Active,2\n"
    assert parse_books(text)[0].is_available is True


def test_negative_copies_are_clamped():
    text = HEADER + "\n1,Dune,Frank Herbert,1,SciFi,English,Ace,1965,A1,No,Active,-4\n"
    assert parse_books(text)[0].copies == 0


def test_duplicate_book_id_keeps_first():
    text = (
        HEADER + "\n"
        "1,Dune,Frank Herbert,1,SciFi,English,Ace,1965,A1,Yes,Active,3\n"
        "1,Dune Messiah,Frank Herbert,2,SciFi,English,Ace,1969,A1,Yes,Active,1\n"
    )
    books = parse_books(text)
    assert len(books) == 1
    assert books[0].title == "Dune"


def test_blank_lines_are_ignored():
    text = "\n" + HEADER + "\n\n1,Dune,Frank Herbert,1,SciFi,English,Ace,1965,A1,Yes,Active,3\n\n"
    assert len(parse_books(text)) == 1


def test_empty_document_is_an_error():
    with pytest.raises(CatalogParseError):
        parse_books("")


def test_header_without_valid_rows_is_an_error():
    with pytest.raises(CatalogParseError, match="No valid books"):
        parse_books(HEADER + "\n1,Dune\n")


def test_missing_schema_column_is_an_error():
    header = HEADER.replace(",copies", "")
    with pytest.raises(CatalogParseError, match="copies"):
        parse_books(header + "\n1,Dune,Frank Herbert,1,SciFi,English,Ace,1965,A1,Yes,Active\n")


def test_split_helpers():
    assert split_simple('a,"b,c",d') == ["a", '"b', 'c"', "d"]
    assert split_quoted('a,"b,c",d') == ["a", "b,c", "d"]
    assert split_quoted("a,,b") == ["a", "", "b"]


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(CatalogParseError, match="Could not read"):
        load_dataset(tmp_path / "nope.csv")


def test_bundled_dataset_loads():
    books = load_dataset(BUNDLED_DATASET)
    assert len(books) == 16
    assert books[0].title == "Dune"


def test_format_books_reads_back_with_quoted_dialect():
    books = parse_books(SAMPLE_CSV)
    books[0].title = "Dune, Part One"
    again = parse_books(format_books(books), quoted=True)
    assert [b.title for b in again] == [b.title for b in books]
    assert [b.copies for b in again] == [b.copies for b in books]


def test_format_books_writes_embedded_double_quotes_as_single():
    books = parse_books(SAMPLE_CSV)
    books[0].title = 'The "Best", Book'
    text = format_books(books)

    again = parse_books(text, quoted=True)
    assert again[0].title == "The 'Best', Book"
    assert format_books(again) == text
