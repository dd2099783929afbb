"""Book dataset CSV parsing for Athenaeum catalogue.

Reads the delimited book dataset into ``BookRecord`` values. Columns are
matched by header name. Rows with the wrong number of fields, or with a
required field that is missing or not convertible, are dropped; only a
document that yields no books at all is an error.

Two line dialects are supported: a plain comma split, and a quote-aware
split used by dataset exports whose values contain commas.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

import pandas as pd

from .models import BookRecord

logger = logging.getLogger(__name__)

BUNDLED_DATASET = Path(__file__).parent / "data" / "books.csv"

SCHEMA = (
    "book_id",
    "title",
    "author",
    "isbn",
    "category",
    "language",
    "publisher",
    "published_year",
    "shelf_location",
    "is_available",
    "status",
    "copies",
)

REQUIRED_FIELDS = (
    "book_id",
    "title",
    "author",
    "published_year",
    "is_available",
    "copies",
)

_INT_FIELDS = ("book_id", "published_year", "copies")


class CatalogParseError(ValueError):
    """Raised when a dataset yields no usable book records."""


def split_simple(line: str) -> list[str]:
    """Split a line on every comma."""
    return line.split(",")


def split_quoted(line: str) -> list[str]:
    """Split a line on commas that are not inside double quotes.

    Each ``"`` toggles the inside-quotes state and is not copied into the
    field value.

    Parameters
    ----------
    line : str
        One line of the dataset.

    Returns
    -------
    list of str
        The field values, in order.
    """
    fields = []
    current = []
    inside_quotes = False
    for char in line:
        if char == '"':
            inside_quotes = not inside_quotes
        elif char == "," and not inside_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def _parse_str(value) -> str:
    """Return a stripped string, or ``""`` for a missing cell."""
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _parse_int(value: str) -> Optional[int]:
    """Parse an integer cell, returning ``None`` when it is not an integer."""
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def _parse_bool(value: str) -> bool:
    """Parse the ``is_available`` column: only ``yes`` (any case) is true."""
    return value.lower() == "yes"


def _tokenize(
    text: str, splitter: Callable[[str], list[str]]
) -> tuple[list[str], list[list[str]]]:
    """Split *text* into a normalised header and rows of matching width.

    Blank lines are ignored. Rows whose field count differs from the
    header are dropped here.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return [], []

    header = [name.strip().lower() for name in splitter(lines[0])]
    rows = []
    for line_no, line in enumerate(lines[1:], start=2):
        fields = [value.strip() for value in splitter(line)]
        if len(fields) != len(header):
            logger.debug(
                "Dropping line %d: %d fields, expected %d",
                line_no,
                len(fields),
                len(header),
            )
            continue
        rows.append(fields)
    return header, rows


def _row_to_book(row: pd.Series) -> Optional[BookRecord]:
    """Convert a DataFrame row to a ``BookRecord``.

    Returns ``None`` when a required field is empty or an integer field
    does not parse.
    """
    values = {name: _parse_str(row.get(name)) for name in SCHEMA}
    if any(not values[name] for name in REQUIRED_FIELDS):
        return None

    ints = {}
    for name in _INT_FIELDS:
        parsed = _parse_int(values[name])
        if parsed is None:
            return None
        ints[name] = parsed

    copies = max(0, ints["copies"])
    if _parse_bool(values["is_available"]) != (copies > 0):
        logger.debug(
            "Book %d: is_available=%r disagrees with copies=%d, using copies",
            ints["book_id"],
            values["is_available"],
            copies,
        )

    return BookRecord(
        book_id=ints["book_id"],
        title=values["title"],
        author=values["author"],
        isbn=values["isbn"],
        category=values["category"],
        language=values["language"],
        publisher=values["publisher"],
        published_year=ints["published_year"],
        shelf_location=values["shelf_location"],
        status=values["status"],
        copies=copies,
    )


def parse_books(text: str, quoted: bool = False) -> list[BookRecord]:
    """Parse dataset text into book records, preserving row order.

    Parameters
    ----------
    text : str
        The whole dataset; the first non-blank line is the header.
    quoted : bool, optional
        Use the quote-aware splitter instead of a plain comma split.

    Returns
    -------
    list of BookRecord
        One record per accepted row. A ``book_id`` seen earlier in the
        document is dropped.

    Raises
    ------
    CatalogParseError
        If the header lacks a schema column or no row is accepted.
    """
    splitter = split_quoted if quoted else split_simple
    header, rows = _tokenize(text, splitter)
    if not header:
        raise CatalogParseError("Dataset is empty")
    if len(set(header)) != len(header):
        raise CatalogParseError("Dataset header repeats a column name")
    missing = [name for name in SCHEMA if name not in header]
    if missing:
        raise CatalogParseError(f"Dataset header is missing: {', '.join(missing)}")

    df = pd.DataFrame(rows, columns=header, dtype=str)

    books = []
    seen_ids = set()
    dropped = 0
    for _, row in df.iterrows():
        book = _row_to_book(row)
        if book is None:
            dropped += 1
            continue
        if book.book_id in seen_ids:
            logger.debug("Dropping duplicate book_id %d", book.book_id)
            dropped += 1
            continue
        seen_ids.add(book.book_id)
        books.append(book)

    if not books:
        raise CatalogParseError("No valid books parsed from dataset")

    logger.info("Parsed %d books (%d rows dropped)", len(books), dropped)
    return books


def load_dataset(path: Optional[Path] = None, quoted: bool = False) -> list[BookRecord]:
    """Read and parse a dataset file.

    Parameters
    ----------
    path : Path, optional
        Dataset location. Defaults to the bundled ``data/books.csv``.
    quoted : bool, optional
        Use the quote-aware splitter.

    Returns
    -------
    list of BookRecord
        Parsed records.

    Raises
    ------
    CatalogParseError
        If the file cannot be read or yields no books.
    """
    path = path or BUNDLED_DATASET
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogParseError(f"Could not read dataset {path}: {e}") from e
    return parse_books(text, quoted=quoted)


def _format_value(value) -> str:
    text = str(value)
    if '"' in text:
        # the quoted dialect has no escape for a literal quote
        logger.warning("Replacing double quotes in %r with single quotes", text)
        text = text.replace('"', "'")
    if "," in text:
        return f'"{text}"'
    return text


def format_books(books: Iterable[BookRecord]) -> str:
    """Write records back in the dataset format.

    Values containing commas are wrapped in double quotes, so such output
    must be read back with ``quoted=True``. Double quotes inside a value
    cannot be represented and are written as single quotes.
    """
    lines = [",".join(SCHEMA)]
    for book in books:
        row = (
            book.book_id,
            book.title,
            book.author,
            book.isbn,
            book.category,
            book.language,
            book.publisher,
            book.published_year,
            book.shelf_location,
            "Yes" if book.is_available else "No",
            book.status,
            book.copies,
        )
        lines.append(",".join(_format_value(v) for v in row))
    return "\n".join(lines) + "\n"
