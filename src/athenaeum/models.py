"""Data models for the Athenaeum library catalogue.

Defines the ``BookRecord`` dataclass held by the catalogue store, the
``ReservationStatus`` enum driving the reservation workflow, and the
read-only membership entities supplied by the remote backend.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class ReservationStatus(str, Enum):
    """Lifecycle state of a hold placed on a book."""

    NOT_RESERVED = "Not Reserved"
    PENDING = "Pending"
    APPROVED = "Approved"


def _new_instance_id() -> str:
    return uuid.uuid4().hex


@dataclass
class BookRecord:
    """A book in the catalogue.

    Descriptive fields are set once at ingestion. Operational fields are
    changed through ``BookCatalogStore`` only.

    Attributes
    ----------
    book_id : int
        Stable catalogue identifier, unique within the catalogue.
    title : str
        Main title of the book.
    author : str
        Author name as found in the dataset.
    isbn : str
        ISBN, may be empty.
    category : str
        Genre/category used by the genre filter.
    language : str
        Language of the book.
    publisher : str
        Publisher name.
    published_year : int
        Year of publication.
    shelf_location : str
        Shelf code where the physical copies are kept.
    status : str
        Circulation status column from the dataset (e.g. ``Active``).
    copies : int
        Number of physical copies currently available, never negative.
    reservation_status : ReservationStatus
        Current reservation state.
    is_wishlisted : bool
        Whether the viewer has wishlisted the book.
    due_date : date or None
        Due date for a borrowed copy.
    release_date : date or None
        Release date for upcoming titles.
    instance_id : str
        Opaque identifier of this record instance, used for list diffing.
    """

    book_id: int
    title: str
    author: str
    isbn: str = ""
    category: str = ""
    language: str = ""
    publisher: str = ""
    published_year: int = 0
    shelf_location: str = ""
    status: str = ""
    copies: int = 0
    reservation_status: ReservationStatus = ReservationStatus.NOT_RESERVED
    is_wishlisted: bool = False
    due_date: Optional[date] = None
    release_date: Optional[date] = None
    instance_id: str = field(default_factory=_new_instance_id, compare=False)

    @property
    def is_available(self) -> bool:
        """Return whether at least one copy is on the shelf."""
        return self.copies > 0

    def display_title(self, max_length: int = 50) -> str:
        """Return title truncated with ellipsis if needed.

        Parameters
        ----------
        max_length : int, optional
            Maximum character length before truncation, by default 50.

        Returns
        -------
        str
            The title, truncated with ``...`` if it exceeds *max_length*.
        """
        if len(self.title) <= max_length:
            return self.title
        return self.title[: max_length - 3] + "..."

    def display_author(self, max_length: int = 30) -> str:
        """Return author truncated with ellipsis if needed."""
        if len(self.author) <= max_length:
            return self.author
        return self.author[: max_length - 3] + "..."

    def share_text(self) -> str:
        """Return the plain-text summary used when sharing a book."""
        return (
            f"{self.title} by {self.author}\n"
            f"ISBN: {self.isbn}\n"
            f"Available Copies: {self.copies}\n"
            f"Shelf: {self.shelf_location}"
        )


@dataclass
class BorrowedBook:
    """A book currently issued to a member."""

    book_id: str
    title: str
    author: str


@dataclass
class Member:
    """A library member as read from the ``users`` collection.

    Attributes
    ----------
    uid : str
        Document id of the user in the backend.
    member_id : str
        Short display id (``M`` followed by the first 8 characters of
        *uid*).
    name : str
        Member name.
    joined_date : datetime
        When the membership started.
    expiry_date : datetime
        When the membership expires.
    status : str
        ``active`` or ``inactive``.
    borrowed_books : list of BorrowedBook
        Books with an open ``issued`` record.
    """

    uid: str
    member_id: str
    name: str
    joined_date: datetime
    expiry_date: datetime
    status: str = "active"
    borrowed_books: list[BorrowedBook] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class Announcement:
    """A library announcement or newsletter entry."""

    id: str
    title: str
    content: str
    date: datetime


@dataclass
class AuthUser:
    """The signed-in user as supplied by the authentication collaborator."""

    uid: str
    email: str = ""
    role: str = "Member"
