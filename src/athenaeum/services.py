"""Backend-facing library operations for members, librarians and admins.

Each function performs one request against the ``DocumentBackend`` and
returns a ``ServiceResult`` whose ``message`` is ready to show to the user.
Backend failures are reported, never retried; the caller re-runs the
operation when the user asks to.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .backend import AuthSession, BackendError, DocumentBackend
from .models import Announcement, BookRecord, BorrowedBook, Member

logger = logging.getLogger(__name__)

STAFF_ROLES = ("Librarian", "Admin")


@dataclass
class ServiceResult:
    """Outcome of a backend operation.

    Attributes
    ----------
    ok : bool
        ``True`` when the operation succeeded.
    message : str
        User-facing summary or error message.
    data : any
        Operation payload (members, counts, ids...), if any.
    """

    ok: bool
    message: str = ""
    data: Any = None


def _user_message(error: Exception, action: str) -> str:
    if "permission" in str(error).lower():
        return "Permission denied. Contact support."
    return f"Failed to {action}. Try again."


def _as_datetime(value, default: datetime) -> datetime:
    """Read a stored date as a naive datetime; aware values are converted to UTC."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return default
    if not isinstance(value, datetime):
        return default
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _add_one_year(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        # Feb 29 -> Feb 28
        return moment.replace(year=moment.year + 1, day=28)


def _book_document(book: BookRecord) -> dict:
    return {
        "bookId": book.book_id,
        "title": book.title,
        "author": book.author,
        "isbn": book.isbn,
        "category": book.category,
        "language": book.language,
        "publisher": book.publisher,
        "publicationYear": book.published_year,
        "shelfLocation": book.shelf_location,
        "status": book.status,
        "copies": book.copies,
        "available": book.is_available,
    }


def _document_book(doc_id: str, data: dict) -> BookRecord:
    return BookRecord(
        book_id=int(data.get("bookId", doc_id)),
        title=data["title"],
        author=data["author"],
        isbn=data.get("isbn") or "",
        category=data.get("category") or "",
        language=data.get("language") or "",
        publisher=data.get("publisher") or "",
        published_year=int(data.get("publicationYear") or 0),
        shelf_location=data.get("shelfLocation") or "",
        status=data.get("status") or "",
        copies=max(0, int(data.get("copies") or 0)),
    )


def sync_catalog(backend: DocumentBackend, books: Iterable[BookRecord]) -> ServiceResult:
    """Write every catalogue book into the ``books`` collection in one batch."""
    now = datetime.now()
    documents = {}
    for book in books:
        doc = _book_document(book)
        doc["createdAt"] = now
        documents[str(book.book_id)] = doc
    try:
        count = backend.batch_set("books", documents)
    except BackendError as e:
        logger.warning("Catalog sync failed: %s", e)
        return ServiceResult(False, f"Failed to sync {len(documents)} books: {e}")
    return ServiceResult(True, f"Synced {count} books", count)


def fetch_catalog(backend: DocumentBackend, auth: AuthSession) -> ServiceResult:
    """Read the remote ``books`` collection for the signed-in user.

    Documents that cannot be converted are skipped.
    """
    if not auth.is_signed_in:
        return ServiceResult(False, "Please sign in to view the catalog.", [])
    try:
        documents = backend.get_documents("books")
    except BackendError as e:
        logger.warning("Error fetching books: %s", e)
        return ServiceResult(False, f"Failed to load catalog: {e}", [])

    books = []
    for doc_id, data in documents:
        try:
            books.append(_document_book(doc_id, data))
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed book document %s", doc_id)
    if not books:
        return ServiceResult(False, "No books found in the catalog.", [])
    return ServiceResult(True, f"{len(books)} books", books)


def submit_reservation(
    backend: DocumentBackend, auth: AuthSession, book: BookRecord
) -> ServiceResult:
    """Record a pending reservation for the signed-in user."""
    user = auth.current_user
    if user is None:
        return ServiceResult(False, "Please log in to reserve this book")
    try:
        doc_id = backend.add_document("reservations", {
            "userId": user.uid,
            "bookId": book.book_id,
            "title": book.title,
            "author": book.author,
            "reservedAt": datetime.now(),
            "status": "pending",
        })
    except BackendError as e:
        logger.warning("Reservation failed for book %d: %s", book.book_id, e)
        return ServiceResult(False, f"Failed to reserve: {e}")
    return ServiceResult(True, "Book reserved successfully!", doc_id)


def issue_book(backend: DocumentBackend, auth: AuthSession, book: BookRecord) -> ServiceResult:
    """Mark *book* unavailable remotely and open an ``issuedBooks`` record."""
    user = auth.current_user
    if user is None:
        return ServiceResult(False, "No user logged in")

    doc = _book_document(book)
    doc["available"] = False
    doc["createdAt"] = datetime.now()
    try:
        backend.set_document("books", str(book.book_id), doc)
    except BackendError as e:
        logger.warning("Book update failed for %d: %s", book.book_id, e)
        return ServiceResult(False, f"Failed to issue book: {e}")

    try:
        issue_id = backend.add_document("issuedBooks", {
            "bookId": str(book.book_id),
            "userId": user.uid,
            "title": book.title,
            "author": book.author,
            "issueDate": datetime.now(),
            "status": "issued",
        })
    except BackendError as e:
        logger.warning("Issue record failed for %d: %s", book.book_id, e)
        return ServiceResult(False, f"Failed to record issue: {e}")
    return ServiceResult(True, f"Book '{book.title}' issued successfully", issue_id)


def _borrowed_books(backend: DocumentBackend, uid: str) -> list[BorrowedBook]:
    try:
        issued = backend.get_documents("issuedBooks", userId=uid, status="issued")
    except BackendError as e:
        logger.warning("Failed to fetch issued books for user %s: %s", uid, e)
        return []

    books = []
    for doc_id, data in issued:
        book_id, title, author = data.get("bookId"), data.get("title"), data.get("author")
        if book_id is None or not title or not author:
            logger.debug("Invalid issued book %s for user %s", doc_id, uid)
            continue
        books.append(BorrowedBook(book_id=str(book_id), title=title, author=author))
    return books


def fetch_members(backend: DocumentBackend, auth: AuthSession) -> ServiceResult:
    """List members with their borrowed books (librarians and admins only).

    User documents without a ``name`` are skipped. Members are sorted by
    name, case-insensitively.
    """
    if not auth.is_signed_in:
        return ServiceResult(False, "Please log in to view members", [])
    if auth.role not in STAFF_ROLES:
        return ServiceResult(False, "You do not have permission to view members", [])

    try:
        documents = backend.get_documents("users", role="Member")
    except BackendError as e:
        logger.warning("Member fetch failed: %s", e)
        return ServiceResult(False, _user_message(e, "fetch members"), [])

    now = datetime.now()
    members = []
    for uid, data in documents:
        name = data.get("name")
        if not isinstance(name, str) or not name:
            logger.debug("Skipping user %s: missing name", uid)
            continue
        members.append(Member(
            uid=uid,
            member_id=f"M{uid[:8]}",
            name=name,
            joined_date=_as_datetime(data.get("joinedDate"), now),
            expiry_date=_as_datetime(data.get("expiryDate"), now),
            status=data.get("status") or "active",
            borrowed_books=_borrowed_books(backend, uid),
        ))

    members.sort(key=lambda m: m.name.lower())
    if not members:
        return ServiceResult(
            False,
            "No valid members found. Ensure member documents have a 'name' field.",
            [],
        )
    return ServiceResult(True, f"{len(members)} members", members)


def extend_membership(backend: DocumentBackend, member: Member) -> ServiceResult:
    """Push an active member's expiry date one year further out."""
    if not member.is_active:
        return ServiceResult(
            False,
            f"Cannot extend membership. {member.name}'s membership is {member.status}.",
        )

    new_expiry = _add_one_year(member.expiry_date)
    try:
        backend.update_document("users", member.uid, {"expiryDate": new_expiry})
    except BackendError as e:
        logger.warning("Failed to extend membership for %s: %s", member.name, e)
        return ServiceResult(False, _user_message(e, "extend membership"))

    updated = dataclasses.replace(member, expiry_date=new_expiry)
    return ServiceResult(
        True,
        f"Membership extended for {member.name} until {new_expiry.date().isoformat()}",
        updated,
    )


def revoke_membership(
    backend: DocumentBackend, member: Member, now: Optional[datetime] = None
) -> ServiceResult:
    """End an active membership immediately.

    Members who still hold borrowed books cannot be revoked. Copies of
    their past reservations are not restored here; see
    ``ReservationWorkflow.restore_copy``.
    """
    if not member.is_active:
        return ServiceResult(
            False,
            f"Cannot revoke membership. {member.name}'s membership is already {member.status}.",
        )
    if member.borrowed_books:
        return ServiceResult(
            False,
            f"Cannot revoke membership. {member.name} has "
            f"{len(member.borrowed_books)} borrowed book(s).",
        )

    now = now or datetime.now()
    try:
        backend.update_document("users", member.uid, {"expiryDate": now, "status": "inactive"})
    except BackendError as e:
        logger.warning("Failed to revoke membership for %s: %s", member.name, e)
        return ServiceResult(False, _user_message(e, "revoke membership"))

    updated = dataclasses.replace(member, expiry_date=now, status="inactive")
    return ServiceResult(True, f"Membership revoked for {member.name}", updated)


def dashboard_counts(backend: DocumentBackend) -> ServiceResult:
    """Count users and books for the admin dashboard."""
    try:
        users = len(backend.get_documents("users"))
    except BackendError as e:
        return ServiceResult(False, f"Failed to fetch users: {e}")
    try:
        books = len(backend.get_documents("books"))
    except BackendError as e:
        return ServiceResult(False, f"Failed to fetch books: {e}", {"users": users, "books": 0})
    return ServiceResult(True, f"{users} users, {books} books", {"users": users, "books": books})


def latest_announcement(backend: DocumentBackend) -> ServiceResult:
    """Return the most recent announcement, or ``None`` when there is none."""
    try:
        documents = backend.get_documents("announcements")
    except BackendError as e:
        return ServiceResult(False, f"Failed to load announcements: {e}")

    announcements = []
    for doc_id, data in documents:
        if not data.get("title"):
            continue
        announcements.append(Announcement(
            id=doc_id,
            title=data["title"],
            content=data.get("content", ""),
            date=_as_datetime(data.get("date"), datetime.min),
        ))
    if not announcements:
        return ServiceResult(True, "No announcements", None)
    latest = max(announcements, key=lambda a: a.date)
    return ServiceResult(True, latest.title, latest)
