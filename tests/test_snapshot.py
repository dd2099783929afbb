import json
import sqlite3
from datetime import date

from athenaeum.models import BookRecord, ReservationStatus
from athenaeum.snapshot import clear_snapshot, load_snapshot, save_snapshot


def _book(**overrides):
    fields = dict(book_id=1, title="Dune", author="Frank Herbert", copies=3)
    fields.update(overrides)
    return BookRecord(**fields)


def test_load_without_snapshot_returns_none(conn):
    assert load_snapshot(conn) is None


def test_save_and_load_keeps_operational_state(conn):
    books = [
        _book(reservation_status=ReservationStatus.PENDING, is_wishlisted=True,
              due_date=date(2025, 3, 1)),
        _book(book_id=2, title="Emma", author="Jane Austen", copies=0),
    ]
    result = save_snapshot(conn, books)
    assert result.ok
    assert result.count == 2

    loaded = load_snapshot(conn)
    assert [b.book_id for b in loaded] == [1, 2]
    assert loaded[0].reservation_status == ReservationStatus.PENDING
    assert loaded[0].is_wishlisted is True
    assert loaded[0].due_date == date(2025, 3, 1)
    assert loaded[0].instance_id == books[0].instance_id
    assert loaded[1].is_available is False


def test_blob_uses_status_display_strings(conn):
    save_snapshot(conn, [_book(reservation_status=ReservationStatus.APPROVED)])
    raw = conn.execute("SELECT value FROM kv WHERE key = 'savedBooks'").fetchone()[0]
    assert json.loads(raw)[0]["reservation_status"] == "Approved"


def test_corrupt_snapshot_returns_none(conn):
    conn.execute("INSERT INTO kv (key, value) VALUES ('savedBooks', '{not json')")
    conn.commit()
    assert load_snapshot(conn) is None


def test_snapshot_with_wrong_shape_returns_none(conn):
    conn.execute("INSERT INTO kv (key, value) VALUES ('savedBooks', '{\"a\": 1}')")
    conn.commit()
    assert load_snapshot(conn) is None


def test_save_failure_is_reported(tmp_path):
    broken = sqlite3.connect(tmp_path / "no_table.db")
    result = save_snapshot(broken, [_book()])
    broken.close()
    assert not result.ok
    assert result.error


def test_custom_key_and_clear(conn):
    save_snapshot(conn, [_book()], key="other")
    assert load_snapshot(conn) is None
    assert len(load_snapshot(conn, key="other")) == 1
    assert clear_snapshot(conn, key="other") is True
    assert clear_snapshot(conn, key="other") is False
