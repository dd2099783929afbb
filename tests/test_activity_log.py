from athenaeum.activity_log import ActivityEntry, log_activity, read_recent_activity


def test_missing_log_reads_empty(activity_log_path):
    assert not activity_log_path.exists()
    assert read_recent_activity() == []


def test_entries_are_newest_first_and_limited():
    for book_id in (1, 2, 3):
        log_activity("wishlist", "cli", book_id=book_id, title=f"Book {book_id}", wishlisted=True)

    entries = read_recent_activity(limit=2)
    assert [e.book_id for e in entries] == [3, 2]


def test_filters():
    log_activity("reserve", "cli", book_id=1, previous="Not Reserved", current="Pending")
    log_activity("approve", "tui", book_id=1, previous="Pending", current="Approved")
    log_activity("import", "cli", file="books.csv", added_count=16)

    assert [e.action for e in read_recent_activity(action="approve")] == ["approve"]
    assert [e.action for e in read_recent_activity(source="cli")] == ["import", "reserve"]
    assert {e.action for e in read_recent_activity(book_id=1)} == {"reserve", "approve"}


def test_malformed_lines_are_skipped(activity_log_path):
    log_activity("copies", "cli", book_id=4, copies=2)
    with open(activity_log_path, "a", encoding="utf-8") as f:
        f.write("not json\n\n{\"unexpected\": 1}\n")

    entries = read_recent_activity()
    assert len(entries) == 1
    assert entries[0].details == {"copies": 2}


def test_summary_and_labels():
    entry = ActivityEntry(
        timestamp="2025-01-02T03:04:05.123456",
        action="reserve",
        source="tui",
        book_id=7,
        details={"previous": "Not Reserved", "current": "Pending"},
    )
    assert entry.time_label == "2025-01-02 03:04:05"
    assert entry.book_label == "7"
    assert entry.summary() == "Not Reserved → Pending"

    assert ActivityEntry("t", "wishlist", "cli", details={"wishlisted": False}).summary() == "removed"
    assert ActivityEntry("t", "import", "cli", details={"added_count": 3}).summary() == "3 books"
    assert ActivityEntry("t", "restore", "cli").summary() == "-"
    assert ActivityEntry("t", "restore", "cli").book_label == "-"
