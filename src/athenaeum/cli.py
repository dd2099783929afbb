"""CLI entry point for Athenaeum library catalogue."""

import logging
from collections import Counter
from pathlib import Path
from typing import Optional

import click

from . import ui
from .activity_log import ACTIONS, log_activity, read_recent_activity
from .backend import AuthSession, BackendError, DocumentBackend
from .parser import CatalogParseError
from .query import Availability, CatalogQuery, CatalogQueryEngine, SortOption
from .reservations import ReservationWorkflow
from .services import (
    dashboard_counts,
    extend_membership,
    fetch_members,
    revoke_membership,
    submit_reservation,
    sync_catalog,
)
from .settings import Settings, load_settings
from .snapshot import get_connection, init_db
from .store import BookCatalogStore

_SORT_CHOICES = {
    "title": SortOption.TITLE_ASC,
    "title-desc": SortOption.TITLE_DESC,
    "author": SortOption.AUTHOR_ASC,
    "author-desc": SortOption.AUTHOR_DESC,
    "year": SortOption.YEAR_ASC,
    "year-desc": SortOption.YEAR_DESC,
}

_AVAILABILITY_CHOICES = {
    "all": Availability.ALL,
    "available": Availability.AVAILABLE,
    "on-loan": Availability.ON_LOAN,
}


class _Session:
    """Lazily opened store, workflow and backend for one CLI invocation."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._store: Optional[BookCatalogStore] = None
        self._backend: Optional[DocumentBackend] = None
        self._conn = None

    @property
    def store(self) -> BookCatalogStore:
        if self._store is None:
            self._conn = get_connection(self.settings.resolve_db_path())
            init_db(self._conn)
            self._store = BookCatalogStore(
                self._conn,
                dataset_path=self.settings.resolve_dataset_path(),
                snapshot_key=self.settings.snapshot_key,
                quoted=self.settings.quoted_csv,
            )
            self._store.initialize()
            if self._store.error_message:
                ui.print_error(self._store.error_message)
        return self._store

    @property
    def workflow(self) -> ReservationWorkflow:
        return ReservationWorkflow(self.store, source="cli")

    @property
    def backend(self) -> DocumentBackend:
        if self._backend is None:
            self._backend = DocumentBackend(self.settings.resolve_backend_path())
        return self._backend

    def auth_as(self, uid: str) -> AuthSession:
        auth = AuthSession(self.backend)
        try:
            auth.sign_in(uid)
        except BackendError as e:
            ui.print_error(str(e))
            raise click.exceptions.Exit(1)
        return auth

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
        if self._backend is not None:
            self._backend.close()


def _require_book(session: _Session, book_id: int):
    book = session.store.get(book_id)
    if book is None:
        ui.print_error(f"No book found with ID: {book_id}")
        raise click.exceptions.Exit(1)
    return book


@click.group(invoke_without_command=True)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="ATHENAEUM_SETTINGS",
    help="Settings file (default ~/.athenaeum/athenaeum-settings.json).",
)
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic logging.")
@click.pass_context
def main(ctx: click.Context, settings_path: Optional[Path], verbose: bool) -> None:
    """Athenaeum - library catalogue, reservations and members."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    session = _Session(load_settings(settings_path))
    ctx.obj = session
    ctx.call_on_close(session.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command("list")
@click.option("--search", "-s", default="", help="Match title or author.")
@click.option("--genre", "-g", help="Only this genre.")
@click.option(
    "--availability", "-a",
    type=click.Choice(list(_AVAILABILITY_CHOICES)), default="all", show_default=True,
)
@click.option("--from-year", type=int, help="Published in or after this year.")
@click.option("--to-year", type=int, help="Published in or before this year.")
@click.option(
    "--sort", "sort_key",
    type=click.Choice(list(_SORT_CHOICES)), default="title", show_default=True,
)
@click.option("--limit", default=50, show_default=True, help="Maximum rows shown.")
@click.pass_obj
def list_cmd(
    session: _Session,
    search: str,
    genre: Optional[str],
    availability: str,
    from_year: Optional[int],
    to_year: Optional[int],
    sort_key: str,
    limit: int,
) -> None:
    """List catalogue books with filters."""
    year_range = None
    if from_year is not None or to_year is not None:
        year_range = (from_year, to_year)
    query = CatalogQuery(
        text=search,
        genre=genre,
        availability=_AVAILABILITY_CHOICES[availability],
        year_range=year_range,
        sort=_SORT_CHOICES[sort_key],
    )
    books = CatalogQueryEngine(session.store).run(query)
    ui.display_book_table(books, max_rows=limit)


@main.command("genres")
@click.pass_obj
def genres_cmd(session: _Session) -> None:
    """List the genres present in the catalogue."""
    for genre in CatalogQueryEngine(session.store).genres():
        click.echo(genre)


@main.command("info")
@click.argument("book_id", type=int)
@click.option("--share", is_flag=True, help="Print the plain-text share summary.")
@click.pass_obj
def info_cmd(session: _Session, book_id: int, share: bool) -> None:
    """Show detailed info for a book."""
    book = _require_book(session, book_id)
    if share:
        click.echo(book.share_text())
    else:
        ui.display_book_info(book)


@main.command("stats")
@click.pass_obj
def stats_cmd(session: _Session) -> None:
    """Show catalogue statistics."""
    store = session.store
    books = store.books
    genre_counts = dict(Counter(b.category for b in books if b.category).most_common())
    status_counts = dict(Counter(b.reservation_status.value for b in books).most_common())
    available = sum(1 for b in books if b.is_available)
    ui.display_stats(len(books), available, genre_counts, status_counts, source=store.source)


@main.command("reserve")
@click.argument("book_id", type=int)
@click.option("--user", "uid", help="Also record the reservation for this backend user.")
@click.pass_obj
def reserve_cmd(session: _Session, book_id: int, uid: Optional[str]) -> None:
    """Request a reservation (takes one copy off the shelf)."""
    book = _require_book(session, book_id)
    auth = session.auth_as(uid) if uid else None
    result = session.workflow.request(book_id)
    ui.print_transition(result, book.title)
    if not result.ok:
        raise click.exceptions.Exit(1)
    if auth is not None:
        remote = submit_reservation(session.backend, auth, book)
        (ui.print_success if remote.ok else ui.print_error)(remote.message)


@main.command("approve")
@click.argument("book_id", type=int)
@click.pass_obj
def approve_cmd(session: _Session, book_id: int) -> None:
    """Approve a pending reservation."""
    book = _require_book(session, book_id)
    result = session.workflow.approve(book_id)
    ui.print_transition(result, book.title)
    if not result.ok:
        raise click.exceptions.Exit(1)


@main.command("cancel")
@click.argument("book_id", type=int)
@click.pass_obj
def cancel_cmd(session: _Session, book_id: int) -> None:
    """Cancel a reservation. Copies are not restored; use ``restore``."""
    book = _require_book(session, book_id)
    ui.print_transition(session.workflow.cancel(book_id), book.title)


@main.command("restore")
@click.argument("book_id", type=int)
@click.option("--count", default=1, show_default=True, help="Copies to put back.")
@click.pass_obj
def restore_cmd(session: _Session, book_id: int, count: int) -> None:
    """Put returned copies back on the shelf."""
    book = _require_book(session, book_id)
    session.workflow.restore_copy(book_id, count)
    ui.print_success(f"{book.title}: {book.copies} copies available")


@main.command("wishlist")
@click.argument("book_id", type=int)
@click.option("--on/--off", "state", default=None, help="Set instead of toggling.")
@click.pass_obj
def wishlist_cmd(session: _Session, book_id: int, state: Optional[bool]) -> None:
    """Toggle (or set) the wishlist flag of a book."""
    book = _require_book(session, book_id)
    if state is None:
        session.workflow.toggle_wishlist(book_id)
    else:
        session.store.update_wishlist_status(book_id, state)
        log_activity("wishlist", "cli", book_id=book_id, title=book.title, wishlisted=state)
    if book.is_wishlisted:
        ui.print_success(f"Added to wishlist: {book.title}")
    else:
        ui.print_skip(f"Removed from wishlist: {book.title}")


@main.command("copies")
@click.argument("book_id", type=int)
@click.argument("count", type=int)
@click.pass_obj
def copies_cmd(session: _Session, book_id: int, count: int) -> None:
    """Set the number of available copies (negative values become 0)."""
    book = _require_book(session, book_id)
    session.store.update_copies(book_id, count)
    log_activity("copies", "cli", book_id=book_id, title=book.title, copies=book.copies)
    ui.print_success(f"{book.title}: {book.copies} copies available")


@main.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--quoted/--simple",
    default=None,
    help="CSV dialect; defaults to the csv_dialect setting.",
)
@click.pass_obj
def import_cmd(session: _Session, csv_file: Path, quoted: Optional[bool]) -> None:
    """Replace the catalogue with a book dataset CSV."""
    with ui.create_spinner("Importing books..."):
        try:
            count = session.store.reload_dataset(csv_file, quoted=quoted)
        except CatalogParseError as e:
            ui.print_error(str(e))
            raise click.exceptions.Exit(1)
    log_activity("import", "cli", file=str(csv_file), added_count=count)
    ui.print_success(f"Imported {count} books")


@main.command("activity")
@click.option("--limit", default=20, show_default=True)
@click.option("--action", type=click.Choice(ACTIONS), help="Only this action.")
@click.option("--book", "book_id", type=int, help="Only entries about this book.")
def activity_cmd(limit: int, action: Optional[str], book_id: Optional[int]) -> None:
    """Show recent catalogue activity."""
    ui.display_activity(read_recent_activity(limit=limit, action=action, book_id=book_id))


@main.command("sync")
@click.pass_obj
def sync_cmd(session: _Session) -> None:
    """Push the local catalogue to the backend ``books`` collection."""
    result = sync_catalog(session.backend, session.store.books)
    (ui.print_success if result.ok else ui.print_error)(result.message)


@main.command("dashboard")
@click.pass_obj
def dashboard_cmd(session: _Session) -> None:
    """Show backend user and book counts."""
    result = dashboard_counts(session.backend)
    if not result.ok:
        ui.print_error(result.message)
        raise click.exceptions.Exit(1)
    ui.console.print(f"Users: [bold]{result.data['users']}[/bold]")
    ui.console.print(f"Books: [bold]{result.data['books']}[/bold]")


@main.command("members")
@click.option("--as", "staff_uid", required=True, help="Librarian or admin user id.")
@click.pass_obj
def members_cmd(session: _Session, staff_uid: str) -> None:
    """List members and their borrowed books."""
    result = fetch_members(session.backend, session.auth_as(staff_uid))
    if not result.ok:
        ui.print_error(result.message)
        raise click.exceptions.Exit(1)
    ui.display_members(result.data)


def _find_member(session: _Session, staff_uid: str, member_ref: str):
    result = fetch_members(session.backend, session.auth_as(staff_uid))
    if not result.ok:
        ui.print_error(result.message)
        raise click.exceptions.Exit(1)
    for member in result.data:
        if member_ref in (member.uid, member.member_id):
            return member
    ui.print_error(f"Member not found: {member_ref}")
    raise click.exceptions.Exit(1)


@main.command("extend")
@click.argument("member")
@click.option("--as", "staff_uid", required=True, help="Librarian or admin user id.")
@click.pass_obj
def extend_cmd(session: _Session, member: str, staff_uid: str) -> None:
    """Extend a membership by one year."""
    result = extend_membership(session.backend, _find_member(session, staff_uid, member))
    (ui.print_success if result.ok else ui.print_error)(result.message)
    if not result.ok:
        raise click.exceptions.Exit(1)


@main.command("revoke")
@click.argument("member")
@click.option("--as", "staff_uid", required=True, help="Librarian or admin user id.")
@click.pass_obj
def revoke_cmd(session: _Session, member: str, staff_uid: str) -> None:
    """Revoke a membership (members with borrowed books are refused)."""
    result = revoke_membership(session.backend, _find_member(session, staff_uid, member))
    (ui.print_success if result.ok else ui.print_error)(result.message)
    if not result.ok:
        raise click.exceptions.Exit(1)


if __name__ == "__main__":
    main()
