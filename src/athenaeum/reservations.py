"""Reservation workflow for catalogue books.

A book moves ``NOT_RESERVED -> PENDING -> APPROVED`` and returns to
``NOT_RESERVED`` on cancellation. Requesting a reservation takes one copy
off the shelf; cancelling does not put it back. Copies come back only
through ``restore_copy``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .activity_log import log_activity
from .models import ReservationStatus
from .store import BookCatalogStore

logger = logging.getLogger(__name__)


class ReservationEvent(str, Enum):
    REQUEST = "request"
    APPROVE = "approve"
    CANCEL = "cancel"


# Event -> states it may be applied in
_ALLOWED_FROM = {
    ReservationEvent.REQUEST: {ReservationStatus.NOT_RESERVED},
    ReservationEvent.APPROVE: {ReservationStatus.PENDING},
    ReservationEvent.CANCEL: set(ReservationStatus),
}

_TARGET = {
    ReservationEvent.REQUEST: ReservationStatus.PENDING,
    ReservationEvent.APPROVE: ReservationStatus.APPROVED,
    ReservationEvent.CANCEL: ReservationStatus.NOT_RESERVED,
}

_REJECT_REASON = {
    ReservationEvent.REQUEST: "already reserved",
    ReservationEvent.APPROVE: "not pending",
}


@dataclass
class TransitionResult:
    """Outcome of a reservation transition.

    Attributes
    ----------
    ok : bool
        ``True`` when the transition was applied.
    book_id : int
        The book the event was applied to.
    event : ReservationEvent
        The event that was attempted.
    previous : ReservationStatus or None
        Status before the event, ``None`` for an unknown book.
    current : ReservationStatus or None
        Status after the event (unchanged on failure).
    reason : str
        Why the transition was rejected; empty on success.
    """

    ok: bool
    book_id: int
    event: ReservationEvent
    previous: Optional[ReservationStatus] = None
    current: Optional[ReservationStatus] = None
    reason: str = ""


class ReservationWorkflow:
    """Applies reservation events to books in a ``BookCatalogStore``.

    Parameters
    ----------
    store : BookCatalogStore
        The catalogue to mutate.
    source : str, optional
        Activity log source tag (``cli`` or ``tui``).
    """

    def __init__(self, store: BookCatalogStore, source: str = "cli") -> None:
        self._store = store
        self._source = source

    def transition(self, book_id: int, event: ReservationEvent) -> TransitionResult:
        """Apply *event* to the book with *book_id*.

        Rejected events leave the book untouched and return a result with
        ``ok=False`` and a ``reason``.
        """
        event = ReservationEvent(event)
        book = self._store.get(book_id)
        if book is None:
            return TransitionResult(False, book_id, event, reason="unknown book")

        previous = book.reservation_status
        if previous not in _ALLOWED_FROM[event]:
            return TransitionResult(
                False, book_id, event, previous, previous, _REJECT_REASON[event]
            )
        if event == ReservationEvent.REQUEST and not book.is_available:
            return TransitionResult(False, book_id, event, previous, previous, "not available")

        target = _TARGET[event]
        if event == ReservationEvent.REQUEST:
            self._store.update_reservation(book_id, target, book.copies - 1)
        else:
            self._store.update_reservation_status(book_id, target)

        logger.info("Book %d: %s -> %s", book_id, previous.value, target.value)
        log_activity(
            event.value if event != ReservationEvent.REQUEST else "reserve",
            self._source,
            book_id=book_id,
            title=book.title,
            previous=previous.value,
            current=target.value,
        )
        return TransitionResult(True, book_id, event, previous, target)

    def request(self, book_id: int) -> TransitionResult:
        return self.transition(book_id, ReservationEvent.REQUEST)

    def approve(self, book_id: int) -> TransitionResult:
        return self.transition(book_id, ReservationEvent.APPROVE)

    def cancel(self, book_id: int) -> TransitionResult:
        return self.transition(book_id, ReservationEvent.CANCEL)

    def restore_copy(self, book_id: int, count: int = 1) -> bool:
        """Put *count* copies back on the shelf.

        This is the librarian's explicit return/restock operation and is
        independent of the reservation status.
        """
        book = self._store.get(book_id)
        if book is None:
            return False
        self._store.update_copies(book_id, book.copies + count)
        log_activity(
            "restore", self._source, book_id=book_id, title=book.title,
            copies=book.copies,
        )
        return True

    def toggle_wishlist(self, book_id: int) -> Optional[bool]:
        """Flip the wishlist flag. Returns the new value, or ``None``."""
        book = self._store.get(book_id)
        if book is None:
            return None
        self._store.update_wishlist_status(book_id, not book.is_wishlisted)
        log_activity(
            "wishlist", self._source, book_id=book_id, title=book.title,
            wishlisted=book.is_wishlisted,
        )
        return book.is_wishlisted
