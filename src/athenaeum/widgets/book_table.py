"""Book table widget with book-id tracking and sortable columns."""

from textual.message import Message
from textual.widgets import DataTable, Static

from ..models import BookRecord
from ..query import SortOption

# Column key -> (ascending, descending) sort options
_COLUMN_SORTS = {
    "title": (SortOption.TITLE_ASC, SortOption.TITLE_DESC),
    "author": (SortOption.AUTHOR_ASC, SortOption.AUTHOR_DESC),
    "year": (SortOption.YEAR_ASC, SortOption.YEAR_DESC),
}

# Column key -> (base label, sort shortcut key)
_COLUMNS = {
    "title": ("Title", "F1"),
    "author": ("Author", "F2"),
    "genre": ("Genre", ""),
    "year": ("Year", "F3"),
    "copies": ("Copies", ""),
    "status": ("Status", ""),
}

# Keyboard key -> column key
_KEY_TO_COLUMN = {info[1].lower(): col for col, info in _COLUMNS.items() if info[1]}


class BookTable(Static):
    """DataTable wrapper that tracks book ids per row.

    Rows are shown in the order given; sorting is requested from the
    owning screen through ``SortChanged``.
    """

    class BookSelected(Message):
        """Emitted when a book row is selected."""

        def __init__(self, book_id: int) -> None:
            self.book_id = book_id
            super().__init__()

    class SortChanged(Message):
        """Emitted when a column header or sort key asks for a new order."""

        def __init__(self, sort: SortOption) -> None:
            self.sort = sort
            super().__init__()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._id_map: dict = {}  # row_key -> book_id
        self._columns_added = False
        self.sort = SortOption.TITLE_ASC

    def compose(self):
        yield DataTable()

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"

    def _ensure_columns(self) -> None:
        """Add columns sized to the terminal width."""
        if self._columns_added:
            return
        self._columns_added = True
        table = self.query_one(DataTable)
        width = self.app.size.width - 2
        self._w_title = max(24, int(width * 0.35))
        self._w_author = max(16, int(width * 0.22))
        widths = {
            "title": self._w_title,
            "author": self._w_author,
            "genre": max(10, int(width * 0.15)),
            "year": 10,
            "copies": 10,
            "status": 14,
        }
        for col_key, col_width in widths.items():
            table.add_column(self._header(col_key), width=col_width, key=col_key)

    def _header(self, col_key: str) -> str:
        base, shortcut = _COLUMNS[col_key]
        label = f"{base} [{shortcut}]" if shortcut else base
        sorts = _COLUMN_SORTS.get(col_key)
        if sorts and self.sort in sorts:
            label += " ▲" if self.sort == sorts[0] else " ▼"
        return label

    def load_books(self, books: list[BookRecord]) -> None:
        """Replace the table rows with *books*, keeping their order."""
        table = self.query_one(DataTable)
        self._ensure_columns()
        table.clear()
        self._id_map.clear()

        for book in books:
            title = book.display_title(self._w_title)
            if book.is_wishlisted:
                title = "♥ " + book.display_title(self._w_title - 2)
            row_key = table.add_row(
                title,
                book.display_author(self._w_author),
                book.category,
                str(book.published_year),
                str(book.copies),
                book.reservation_status.value,
            )
            self._id_map[row_key] = book.book_id

        self._update_column_labels()

    def _update_column_labels(self) -> None:
        from rich.text import Text
        from textual.widgets._data_table import ColumnKey

        table = self.query_one(DataTable)
        for col_key in _COLUMNS:
            column = table.columns.get(ColumnKey(col_key))
            if column is not None:
                column.label = Text(self._header(col_key))
        table.refresh()

    def _sort_by(self, col_key: str) -> None:
        """Request sorting by *col_key*, toggling direction if already active."""
        ascending, descending = _COLUMN_SORTS[col_key]
        self.sort = descending if self.sort == ascending else ascending
        self.post_message(self.SortChanged(self.sort))

    def on_data_table_header_selected(self, event: DataTable.HeaderSelected) -> None:
        col_key = str(event.column_key)
        if col_key in _COLUMN_SORTS:
            self._sort_by(col_key)

    def on_key(self, event) -> None:
        """Handle F1-F3 sort shortcuts when the table has focus."""
        col_key = _KEY_TO_COLUMN.get(event.key)
        if col_key is not None:
            self._sort_by(col_key)
            event.prevent_default()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Forward row selection as BookSelected message."""
        book_id = self._id_map.get(event.row_key)
        if book_id is not None:
            self.post_message(self.BookSelected(book_id))

    def select_book(self, book_id: int) -> None:
        """Move the cursor to the row showing *book_id*."""
        table = self.query_one(DataTable)
        for idx, stored_id in enumerate(self._id_map.values()):
            if stored_id == book_id:
                table.move_cursor(row=idx)
                break
