"""Document backend and authentication session for Athenaeum.

``DocumentBackend`` stores JSON documents in named collections (``users``,
``books``, ``issuedBooks``, ``reservations``, ``announcements``) in a SQLite
file. It offers whole-collection reads with field-equality filters,
per-document writes and a push-style change subscription per collection.
``AuthSession`` holds the signed-in user and role.
"""

import json
import logging
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Optional

from .models import AuthUser

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "books", "issuedBooks", "reservations", "announcements")

ChangeListener = Callable[[str, str], None]


class BackendError(RuntimeError):
    """Raised when a backend read or write fails."""


def _encode(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Cannot store {type(value).__name__} in a document")


def _decode(collection: str, doc_id: str, raw: str) -> dict:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise BackendError(f"Corrupt document {collection}/{doc_id}: {e}") from e


class DocumentBackend:
    """Collections of JSON documents stored in SQLite.

    Parameters
    ----------
    db_path : Path or str, optional
        SQLite file, or ``":memory:"`` (the default) for a throwaway store.
    """

    def __init__(self, db_path="") -> None:
        target = str(db_path) if db_path else ":memory:"
        if target != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(target, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                data TEXT NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
        """)
        self._conn.commit()
        self._listeners: dict[str, list[ChangeListener]] = {}

    def close(self) -> None:
        self._conn.close()

    def get_documents(self, collection: str, **where) -> list[tuple[str, dict]]:
        """Read a whole collection, keeping documents whose fields equal *where*.

        Returns
        -------
        list of (str, dict)
            ``(doc_id, data)`` pairs ordered by document id.

        Raises
        ------
        BackendError
            If the read fails.
        """
        try:
            rows = self._conn.execute(
                "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY doc_id",
                (collection,),
            ).fetchall()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to read {collection}: {e}") from e

        result = []
        for row in rows:
            data = _decode(collection, row["doc_id"], row["data"])
            if all(data.get(k) == v for k, v in where.items()):
                result.append((row["doc_id"], data))
        return result

    def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return one document, or ``None`` if it does not exist."""
        try:
            row = self._conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to read {collection}/{doc_id}: {e}") from e
        return _decode(collection, doc_id, row["data"]) if row else None

    def set_document(self, collection: str, doc_id: str, data: dict) -> None:
        """Create or overwrite a document."""
        self._write(collection, [(doc_id, data)])

    def add_document(self, collection: str, data: dict) -> str:
        """Create a document with a generated id and return the id."""
        doc_id = uuid.uuid4().hex[:20]
        self._write(collection, [(doc_id, data)])
        return doc_id

    def update_document(self, collection: str, doc_id: str, fields: dict) -> None:
        """Merge *fields* into an existing document.

        Raises
        ------
        BackendError
            If the document does not exist or the write fails.
        """
        current = self.get_document(collection, doc_id)
        if current is None:
            raise BackendError(f"No document {collection}/{doc_id}")
        current.update(json.loads(json.dumps(fields, default=_encode)))
        self._write(collection, [(doc_id, current)])

    def batch_set(self, collection: str, documents: dict[str, dict]) -> int:
        """Write several documents in one transaction. Returns the count."""
        self._write(collection, list(documents.items()))
        return len(documents)

    def subscribe(self, collection: str, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener(collection, doc_id)`` after each write to *collection*.

        Returns
        -------
        callable
            Call it to stop listening.
        """
        self._listeners.setdefault(collection, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(collection, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def _write(self, collection: str, documents: list[tuple[str, dict]]) -> None:
        try:
            rows = [
                (collection, doc_id, json.dumps(data, default=_encode))
                for doc_id, data in documents
            ]
            with self._conn:
                self._conn.executemany(
                    "INSERT OR REPLACE INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
                    rows,
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise BackendError(f"Failed to write {collection}: {e}") from e

        for doc_id, _ in documents:
            for listener in list(self._listeners.get(collection, [])):
                listener(collection, doc_id)


class AuthSession:
    """The authentication collaborator: who is signed in, and their role.

    Users are looked up in the backend's ``users`` collection by uid; a
    missing ``role`` field means ``Member``.
    """

    def __init__(self, backend: DocumentBackend) -> None:
        self._backend = backend
        self._user: Optional[AuthUser] = None

    def sign_in(self, uid: str) -> AuthUser:
        """Sign in as *uid*.

        Raises
        ------
        BackendError
            If no such user exists.
        """
        data = self._backend.get_document("users", uid)
        if data is None:
            raise BackendError(f"Unknown user: {uid}")
        self._user = AuthUser(
            uid=uid,
            email=data.get("email", ""),
            role=data.get("role", "Member"),
        )
        logger.info("Signed in %s as %s", uid, self._user.role)
        return self._user

    def sign_out(self) -> None:
        self._user = None

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def is_signed_in(self) -> bool:
        return self._user is not None

    @property
    def role(self) -> Optional[str]:
        return self._user.role if self._user else None
