"""In-memory catalogue store for Athenaeum.

``BookCatalogStore`` is the single holder of the book collection for a
session. It is created by the caller and handed to whoever needs it;
consumers either query it directly or ``subscribe`` to be told after each
mutation. Every successful mutation writes the full snapshot.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Callable, Iterator, Optional

from .models import BookRecord, ReservationStatus
from .parser import CatalogParseError, load_dataset
from .snapshot import SNAPSHOT_KEY, SaveResult, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)

Listener = Callable[["BookCatalogStore"], None]


class BookCatalogStore:
    """Authoritative book collection backed by a local snapshot.

    Parameters
    ----------
    conn : sqlite3.Connection
        Connection holding the snapshot key/value table.
    dataset_path : Path, optional
        Dataset parsed when no snapshot exists. Defaults to the bundled
        dataset.
    snapshot_key : str, optional
        Key of the snapshot blob.
    quoted : bool, optional
        Parse the dataset with the quote-aware splitter.

    Attributes
    ----------
    source : str
        Where the current collection came from: ``snapshot``, ``dataset``
        or ``empty``. Set by ``initialize``.
    error_message : str or None
        User-facing message when the dataset could not be loaded.
    last_save : SaveResult or None
        Result of the most recent snapshot write.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        dataset_path: Optional[Path] = None,
        snapshot_key: str = SNAPSHOT_KEY,
        quoted: bool = False,
    ) -> None:
        self._conn = conn
        self._dataset_path = dataset_path
        self._snapshot_key = snapshot_key
        self._quoted = quoted
        self._books: list[BookRecord] = []
        self._listeners: list[Listener] = []
        self.source = "empty"
        self.error_message: Optional[str] = None
        self.last_save: Optional[SaveResult] = None

    def initialize(self) -> list[BookRecord]:
        """Load the last snapshot, or parse the dataset if there is none.

        A dataset that cannot be parsed leaves the catalogue empty and sets
        ``error_message``. A freshly parsed dataset is saved as the first
        snapshot.

        Returns
        -------
        list of BookRecord
            The initial collection.
        """
        self.error_message = None
        saved = load_snapshot(self._conn, self._snapshot_key)
        if saved is not None:
            self._books = saved
            self.source = "snapshot"
            logger.info("Restored %d books from snapshot", len(saved))
            return list(self._books)

        try:
            self._books = load_dataset(self._dataset_path, quoted=self._quoted)
        except CatalogParseError as e:
            logger.warning("Could not load dataset: %s", e)
            self._books = []
            self.source = "empty"
            self.error_message = f"Failed to load the book catalog: {e}"
            return []

        self.source = "dataset"
        self.save()
        return list(self._books)

    def reload_dataset(self, path: Optional[Path] = None, quoted: Optional[bool] = None) -> int:
        """Replace the catalogue with a freshly parsed dataset.

        Reservation and wishlist state is discarded. The new collection is
        saved immediately.

        Raises
        ------
        CatalogParseError
            If the dataset yields no books; the current catalogue is kept.
        """
        use_quoted = self._quoted if quoted is None else quoted
        books = load_dataset(path or self._dataset_path, quoted=use_quoted)
        self._books = books
        self.source = "dataset"
        self.error_message = None
        self.save()
        self._notify()
        return len(books)

    @property
    def books(self) -> tuple[BookRecord, ...]:
        """The current collection in catalogue order."""
        return tuple(self._books)

    def __len__(self) -> int:
        return len(self._books)

    def __iter__(self) -> Iterator[BookRecord]:
        return iter(tuple(self._books))

    def get(self, book_id: int) -> Optional[BookRecord]:
        """Return the book with *book_id*, or ``None``."""
        for book in self._books:
            if book.book_id == book_id:
                return book
        return None

    def update_copies(self, book_id: int, new_copies: int) -> bool:
        """Set the available copy count, clamped at zero.

        Returns
        -------
        bool
            ``False`` if no book has *book_id*.
        """
        book = self.get(book_id)
        if book is None:
            return False
        book.copies = max(0, new_copies)
        self._changed()
        return True

    def update_reservation_status(self, book_id: int, new_status: ReservationStatus) -> bool:
        """Set the reservation status without validating the transition."""
        book = self.get(book_id)
        if book is None:
            return False
        book.reservation_status = ReservationStatus(new_status)
        self._changed()
        return True

    def update_reservation(
        self, book_id: int, new_status: ReservationStatus, new_copies: int
    ) -> bool:
        """Set status and copy count together, with one save and one notification."""
        book = self.get(book_id)
        if book is None:
            return False
        book.reservation_status = ReservationStatus(new_status)
        book.copies = max(0, new_copies)
        self._changed()
        return True

    def update_wishlist_status(self, book_id: int, is_wishlisted: bool) -> bool:
        """Set the wishlist flag."""
        book = self.get(book_id)
        if book is None:
            return False
        book.is_wishlisted = bool(is_wishlisted)
        self._changed()
        return True

    def save(self) -> SaveResult:
        """Write the full collection to the snapshot.

        A failed write is logged and returned; the in-memory collection is
        left as is, so memory and snapshot may differ until the next
        successful save.
        """
        result = save_snapshot(self._conn, self._books, self._snapshot_key)
        if not result.ok:
            logger.error("Snapshot write failed, in-memory catalog is ahead: %s", result.error)
        self.last_save = result
        return result

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* to be called after every mutation.

        Returns
        -------
        callable
            Call it to unsubscribe.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        self.save()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
