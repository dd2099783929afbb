"""Local snapshot persistence for Athenaeum catalogue.

The whole catalogue is stored as one JSON blob under a single key in a
small SQLite key/value table. Every save overwrites the blob wholesale.
The connection is created with ``check_same_thread=False`` for Textual
worker thread compatibility.
"""

import dataclasses
import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from .models import BookRecord, ReservationStatus

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "savedBooks"

DEFAULT_DB_PATH = Path.home() / ".athenaeum" / "data" / "athenaeum.db"


@dataclass
class SaveResult:
    """Outcome of a snapshot write.

    Attributes
    ----------
    ok : bool
        ``True`` when the snapshot was written.
    count : int
        Number of books in the written snapshot.
    error : str or None
        Error description when the write failed.
    """

    ok: bool
    count: int = 0
    error: Optional[str] = None


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open a SQLite connection, creating the database file if needed.

    Parameters
    ----------
    db_path : Path, optional
        Path to the database file. Defaults to ``DEFAULT_DB_PATH``.

    Returns
    -------
    sqlite3.Connection
        A connection with ``row_factory`` set to ``sqlite3.Row``.
    """
    path = db_path or DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create the key/value table if it does not exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)
    conn.commit()


def _book_to_dict(book: BookRecord) -> dict:
    """Convert a BookRecord to a JSON-serialisable dictionary.

    ``is_available`` is written for readability of the stored blob; it is
    ignored on load.
    """
    d = dataclasses.asdict(book)
    for key, value in d.items():
        if isinstance(value, date):
            d[key] = value.isoformat()
    d["reservation_status"] = book.reservation_status.value
    d["is_available"] = book.is_available
    return d


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)


def _dict_to_book(data: dict) -> BookRecord:
    """Rebuild a BookRecord from its stored form.

    Raises ``KeyError``, ``TypeError`` or ``ValueError`` on malformed data.
    """
    kwargs = dict(
        book_id=int(data["book_id"]),
        title=data["title"],
        author=data["author"],
        isbn=data.get("isbn", ""),
        category=data.get("category", ""),
        language=data.get("language", ""),
        publisher=data.get("publisher", ""),
        published_year=int(data.get("published_year", 0)),
        shelf_location=data.get("shelf_location", ""),
        status=data.get("status", ""),
        copies=max(0, int(data.get("copies", 0))),
        reservation_status=ReservationStatus(
            data.get("reservation_status", ReservationStatus.NOT_RESERVED.value)
        ),
        is_wishlisted=bool(data.get("is_wishlisted", False)),
        due_date=_parse_date(data.get("due_date")),
        release_date=_parse_date(data.get("release_date")),
    )
    if data.get("instance_id"):
        kwargs["instance_id"] = data["instance_id"]
    return BookRecord(**kwargs)


def save_snapshot(
    conn: sqlite3.Connection,
    books: Iterable[BookRecord],
    key: str = SNAPSHOT_KEY,
) -> SaveResult:
    """Serialise the whole catalogue and overwrite the stored snapshot.

    Parameters
    ----------
    conn : sqlite3.Connection
        An open database connection (``init_db`` already applied).
    books : iterable of BookRecord
        The complete catalogue.
    key : str, optional
        Storage key, by default ``savedBooks``.

    Returns
    -------
    SaveResult
        Success flag and error description. Failures are also logged.
    """
    books = list(books)
    try:
        blob = json.dumps([_book_to_dict(b) for b in books], ensure_ascii=False)
        conn.execute(
            "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, blob)
        )
        conn.commit()
    except (sqlite3.Error, TypeError, ValueError) as e:
        logger.error("Error saving books: %s", e)
        return SaveResult(ok=False, error=str(e))
    return SaveResult(ok=True, count=len(books))


def load_snapshot(
    conn: sqlite3.Connection, key: str = SNAPSHOT_KEY
) -> Optional[list[BookRecord]]:
    """Load the stored catalogue snapshot.

    Parameters
    ----------
    conn : sqlite3.Connection
        An open database connection.
    key : str, optional
        Storage key, by default ``savedBooks``.

    Returns
    -------
    list of BookRecord or None
        The stored books, or ``None`` when there is no snapshot or it
        cannot be deserialised.
    """
    try:
        row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
    except sqlite3.Error as e:
        logger.error("Error reading snapshot: %s", e)
        return None
    if row is None:
        return None

    try:
        data = json.loads(row["value"])
        if not isinstance(data, list):
            raise ValueError("snapshot is not a list")
        return [_dict_to_book(item) for item in data]
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Error loading books: %s", e)
        return None


def clear_snapshot(conn: sqlite3.Connection, key: str = SNAPSHOT_KEY) -> bool:
    """Delete the stored snapshot. Returns ``True`` if one existed."""
    cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
    conn.commit()
    return cursor.rowcount > 0
