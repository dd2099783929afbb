import json
from datetime import datetime

import pytest

from athenaeum.backend import AuthSession, DocumentBackend
from athenaeum.snapshot import get_connection, init_db
from athenaeum.store import BookCatalogStore

HEADER = (
    "book_id,title,author,isbn,category,language,publisher,"
    "published_year,shelf_location,is_available,status,copies"
)

SAMPLE_CSV = "\n".join([
    HEADER,
    "1,Dune,Frank Herbert,9780441013593,SciFi,English,Ace,1965,A1,Yes,Active,3",
    "2,The Hobbit,J.R.R. Tolkien,9780547928227,Fantasy,English,Houghton Mifflin,1937,B2,Yes,Active,2",
    "3,Neuromancer,William Gibson,9780441569595,SciFi,English,Ace,1984,A2,No,Active,0",
    "4,Emma,Jane Austen,9780141439587,Romance,English,Penguin,1815,D2,Yes,Active,1",
]) + "\n"


@pytest.fixture(autouse=True)
def activity_log_path(tmp_path, monkeypatch):
    """Keep activity log writes inside the test's temporary directory."""
    path = tmp_path / "activity.log"
    monkeypatch.setattr("athenaeum.activity_log._LOG_PATH", path)
    return path


@pytest.fixture
def sample_csv(tmp_path):
    path = tmp_path / "books.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


@pytest.fixture
def conn(tmp_path):
    connection = get_connection(tmp_path / "athenaeum.db")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture
def store(conn, sample_csv):
    catalog = BookCatalogStore(conn, dataset_path=sample_csv)
    catalog.initialize()
    return catalog


@pytest.fixture
def backend():
    db = DocumentBackend()
    db.set_document("users", "lib0001", {"name": "Lena Librarian", "role": "Librarian"})
    db.set_document("users", "adm0001", {"name": "Ada Admin", "role": "Admin"})
    db.set_document("users", "mem0001abc", {
        "name": "Zoe Reader",
        "role": "Member",
        "joinedDate": datetime(2023, 1, 10),
        "expiryDate": datetime(2025, 1, 10),
        "status": "active",
    })
    db.set_document("users", "mem0002xyz", {
        "name": "adam borrower",
        "role": "Member",
        "joinedDate": datetime(2022, 5, 1),
        "expiryDate": datetime(2024, 2, 29),
        "status": "active",
    })
    db.set_document("users", "mem0003", {"role": "Member", "email": "noname@example.org"})
    db.set_document("issuedBooks", "iss1", {
        "bookId": "2",
        "userId": "mem0002xyz",
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "status": "issued",
    })
    db.set_document("issuedBooks", "iss2", {
        "bookId": "1",
        "userId": "mem0002xyz",
        "title": "Dune",
        "author": "Frank Herbert",
        "status": "returned",
    })
    yield db
    db.close()


@pytest.fixture
def librarian(backend):
    auth = AuthSession(backend)
    auth.sign_in("lib0001")
    return auth


@pytest.fixture
def settings_file(tmp_path, sample_csv):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "db_path": str(tmp_path / "cli.db"),
        "dataset_path": str(sample_csv),
        "backend_path": str(tmp_path / "backend.db"),
    }))
    return path
