"""Main screen with stats, search, filters and the book table.

This is the default screen shown on launch. Keys: ``/`` search, ``r``
reset filters, ``m`` members, ``l`` activity log, ``a`` about, ``q`` quit,
Enter for book details.
"""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Input, Select

from .. import __version__
from ..query import Availability, CatalogQuery, CatalogQueryEngine, SortOption
from ..widgets.book_table import BookTable
from ..widgets.stats_panel import StatsPanel

_ALL_GENRES = "__all__"


class MainScreen(Screen):
    """Default screen showing stats, filters and the catalogue table.

    The table is re-derived from the store whenever a filter changes or
    the store reports a mutation.
    """

    BINDINGS = [
        Binding("slash", "focus_search", "Search", key_display="/"),
        Binding("r", "reset_filters", "Reset"),
        Binding("m", "members", "Members"),
        Binding("l", "activity", "Activity"),
        Binding("a", "about", "About"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._query = CatalogQuery()
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        """Build the screen layout: stats, filter bar, book table, footer."""
        yield StatsPanel()
        with Horizontal(id="filter-bar"):
            yield Input(placeholder="Search by title or author...", id="search-input")
            yield Select(
                [("All Genres", _ALL_GENRES)],
                value=_ALL_GENRES,
                allow_blank=False,
                id="genre-select",
            )
            yield Select(
                [(a.value, a) for a in Availability],
                value=Availability.ALL,
                allow_blank=False,
                id="availability-select",
            )
            yield Select(
                [(s.value, s) for s in SortOption],
                value=SortOption.TITLE_ASC,
                allow_blank=False,
                id="sort-select",
            )
        yield BookTable()
        yield Footer()

    def on_mount(self) -> None:
        """Populate filters and the table, and follow store changes."""
        genres = CatalogQueryEngine(self.app.store).genres()
        self.query_one("#genre-select", Select).set_options(
            [("All Genres", _ALL_GENRES)] + [(g, g) for g in genres]
        )
        self._unsubscribe = self.app.store.subscribe(lambda _store: self._refresh_data())
        self._refresh_data()
        self._focus_table()

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()

    def _focus_table(self) -> None:
        """Move keyboard focus to the inner ``DataTable``."""
        self.query_one(BookTable).query_one(DataTable).focus()

    def _refresh_data(self) -> None:
        """Re-run the current query and reload the table and stats."""
        store = self.app.store
        books = CatalogQueryEngine(store).run(self._query)
        book_table = self.query_one(BookTable)
        book_table.sort = self._query.sort
        book_table.load_books(books)

        user = self.app.auth.current_user
        self.query_one(StatsPanel).update_stats(
            __version__,
            store.source,
            len(books),
            len(store),
            sum(1 for b in store.books if b.is_available),
            user=f"{user.uid} ({user.role})" if user else None,
        )
        resume_id = getattr(self, "_resume_book_id", None)
        if resume_id is not None:
            book_table.select_book(resume_id)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search-input":
            self._query.text = event.value
            self._refresh_data()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search-input":
            self._focus_table()

    def on_select_changed(self, event: Select.Changed) -> None:
        """Apply genre, availability and sort selections."""
        if event.select.id == "genre-select":
            self._query.genre = None if event.value == _ALL_GENRES else event.value
        elif event.select.id == "availability-select":
            self._query.availability = Availability(event.value)
        elif event.select.id == "sort-select":
            self._query.sort = SortOption(event.value)
        else:
            return
        self._refresh_data()

    def on_book_table_sort_changed(self, event: BookTable.SortChanged) -> None:
        self.query_one("#sort-select", Select).value = event.sort

    def on_book_table_book_selected(self, event: BookTable.BookSelected) -> None:
        """Open the book detail screen for the selected book."""
        from .book_detail import BookDetailScreen
        self._resume_book_id = event.book_id
        self.app.push_screen(BookDetailScreen(book_id=event.book_id))

    def on_key(self, event) -> None:
        """Escape moves focus from search to table, or clears the search."""
        if event.key == "escape":
            focused = self.app.focused
            if isinstance(focused, Input):
                self._focus_table()
                event.prevent_default()
            elif isinstance(focused, DataTable):
                search_input = self.query_one("#search-input", Input)
                if search_input.value.strip():
                    search_input.value = ""
                    event.prevent_default()

    def action_focus_search(self) -> None:
        self.query_one("#search-input", Input).focus()

    def action_reset_filters(self) -> None:
        """Clear search text and reset every filter (bound to ``r``)."""
        self._query = CatalogQuery()
        self.query_one("#search-input", Input).value = ""
        self.query_one("#genre-select", Select).value = _ALL_GENRES
        self.query_one("#availability-select", Select).value = Availability.ALL
        self.query_one("#sort-select", Select).value = SortOption.TITLE_ASC
        self._refresh_data()

    def action_members(self) -> None:
        from .members import MembersScreen
        self.app.push_screen(MembersScreen())

    def action_activity(self) -> None:
        from .activity import ActivityScreen
        self.app.push_screen(ActivityScreen())

    def action_about(self) -> None:
        from .about import AboutScreen
        self.app.push_screen(AboutScreen())

    def action_quit(self) -> None:
        self.app.exit()
