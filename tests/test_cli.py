import json

import pytest
from click.testing import CliRunner

from athenaeum.activity_log import read_recent_activity
from athenaeum.backend import DocumentBackend
from athenaeum.cli import main

from conftest import HEADER


@pytest.fixture
def run(settings_file):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(main, ["--settings", str(settings_file), *args])

    return invoke


@pytest.fixture
def seeded_backend(tmp_path, settings_file):
    db = DocumentBackend(tmp_path / "backend.db")
    db.set_document("users", "lib0001", {"name": "Lena Librarian", "role": "Librarian"})
    db.set_document("users", "mem0001abc", {
        "name": "Zoe Reader",
        "role": "Member",
        "joinedDate": "2023-01-10T00:00:00",
        "expiryDate": "2025-01-10T00:00:00",
        "status": "active",
    })
    db.close()


def test_no_command_prints_help(run):
    result = run()
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_list_with_filters(run):
    result = run("list", "--genre", "SciFi", "--availability", "available")
    assert result.exit_code == 0
    assert "Dune" in result.output
    assert "Neuromancer" not in result.output


def test_list_no_matches(run):
    result = run("list", "--search", "zzz")
    assert result.exit_code == 0
    assert "No books match your search." in result.output


def test_genres(run):
    result = run("genres")
    assert result.output.split() == ["Fantasy", "Romance", "SciFi"]


def test_info_share(run):
    result = run("info", "1", "--share")
    assert result.exit_code == 0
    assert "Dune by Frank Herbert" in result.output
    assert "Available Copies: 3" in result.output


def test_info_unknown_book(run):
    result = run("info", "99")
    assert result.exit_code == 1
    assert "No book found with ID: 99" in result.output


def test_reserve_persists_between_invocations(run):
    result = run("reserve", "4")
    assert result.exit_code == 0

    again = run("reserve", "4")
    assert again.exit_code == 1
    assert "already reserved" in again.output

    info = run("info", "4", "--share")
    assert "Available Copies: 0" in info.output


def test_reserve_for_unknown_user_changes_nothing(run, seeded_backend):
    result = run("reserve", "1", "--user", "ghost")
    assert result.exit_code == 1

    assert "Available Copies: 3" in run("info", "1", "--share").output
    assert "Pending" not in run("stats").output
    assert read_recent_activity() == []


def test_approve_and_cancel(run):
    assert run("approve", "1").exit_code == 1
    run("reserve", "1")
    assert run("approve", "1").exit_code == 0
    assert run("cancel", "1").exit_code == 0

    actions = [e.action for e in read_recent_activity()]
    assert sorted(actions) == ["approve", "cancel", "reserve"]


def test_copies_and_restore(run):
    assert run("copies", "--", "1", "-2").exit_code == 0
    result = run("restore", "1", "--count", "2")
    assert "2 copies available" in result.output


def test_wishlist_toggle_and_set(run):
    assert "Added to wishlist" in run("wishlist", "2").output
    assert "Removed from wishlist" in run("wishlist", "2").output
    assert "Added to wishlist" in run("wishlist", "2", "--on").output
    assert "Added to wishlist" in run("wishlist", "2", "--on").output


def test_import_replaces_catalog(run, tmp_path):
    csv = tmp_path / "new.csv"
    csv.write_text(
        HEADER + "\n"
        '20,"Sapiens, A Brief History",Yuval Harari,1,History,English,Harper,2011,H1,Yes,Active,2\n'
    )
    result = run("import", str(csv), "--quoted")
    assert result.exit_code == 0
    assert "Imported 1 books" in result.output
    assert run("genres").output.split() == ["History"]


def test_import_simple_overrides_quoted_setting(run, settings_file, tmp_path):
    settings = json.loads(settings_file.read_text())
    settings["csv_dialect"] = "quoted"
    settings_file.write_text(json.dumps(settings))

    csv = tmp_path / "new.csv"
    csv.write_text(
        HEADER + "\n"
        '20,"Sapiens, A Brief History",Yuval Harari,1,History,English,Harper,2011,H1,Yes,Active,2\n'
        "21,Emma,Jane Austen,9780141439587,Romance,English,Penguin,1815,D2,Yes,Active,1\n"
    )
    result = run("import", str(csv), "--simple")
    assert result.exit_code == 0
    assert "Imported 1 books" in result.output
    assert run("genres").output.split() == ["Romance"]


def test_import_invalid_file(run, tmp_path):
    csv = tmp_path / "bad.csv"
    csv.write_text("nothing useful\n")
    result = run("import", str(csv))
    assert result.exit_code == 1
    assert run("info", "1").exit_code == 0


def test_stats(run):
    result = run("stats")
    assert result.exit_code == 0
    assert "4" in result.output
    assert "SciFi" in result.output


def test_sync_and_dashboard(run, seeded_backend):
    assert "Synced 4 books" in run("sync").output
    result = run("dashboard")
    assert result.exit_code == 0
    assert "Users: 2" in result.output
    assert "Books: 4" in result.output


def test_members_requires_staff(run, seeded_backend):
    result = run("members", "--as", "mem0001abc")
    assert result.exit_code == 1
    assert "permission" in result.output


def test_members_and_extend(run, seeded_backend):
    result = run("members", "--as", "lib0001")
    assert result.exit_code == 0
    assert "Zoe" in result.output

    result = run("extend", "Mmem0001a", "--as", "lib0001")
    assert result.exit_code == 0
    assert "until 2026-01-10" in result.output


def test_revoke(run, seeded_backend):
    result = run("revoke", "mem0001abc", "--as", "lib0001")
    assert result.exit_code == 0
    assert "Membership revoked for Zoe Reader" in result.output
    assert run("revoke", "mem0001abc", "--as", "lib0001").exit_code == 1


def test_activity_filters(run):
    run("reserve", "1")
    run("wishlist", "2")

    result = run("activity", "--action", "wishlist")
    assert result.exit_code == 0
    assert "Wishlist" in result.output
    assert "Reserve" not in result.output

    result = run("activity", "--book", "1")
    assert "Pending" in result.output
    assert "Wishlist" not in result.output


def test_activity_empty(run):
    assert "No activity recorded." in run("activity").output
