"""Activity log screen.

Lists the newest audit entries and narrows them by action, source or
book id. Filters are applied by ``read_recent_activity`` on every change,
so entries written by a concurrent CLI show up on the next refresh.
"""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Input, Select, Static

from ..activity_log import ACTIONS, SOURCES, read_recent_activity

_ANY = "__any__"
_LIMIT = 200


def _choices(label: str, values, fmt=str.capitalize) -> list[tuple[str, str]]:
    return [(label, _ANY)] + [(fmt(v), v) for v in values]


class ActivityScreen(Screen):
    """Audit trail browser (``l`` on the main screen)."""

    BINDINGS = [
        Binding("escape", "go_back", "Back"),
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(self, book_id: Optional[int] = None) -> None:
        super().__init__()
        self._action: Optional[str] = None
        self._source: Optional[str] = None
        self._book_id = book_id

    def compose(self) -> ComposeResult:
        with Vertical(id="activity-container"):
            yield Static("[bold]Activity Log[/bold]", id="activity-title")
            with Horizontal(id="activity-filters"):
                yield Select(
                    _choices("All actions", ACTIONS),
                    value=_ANY,
                    allow_blank=False,
                    id="activity-action",
                )
                yield Select(
                    _choices("All sources", SOURCES, str.upper),
                    value=_ANY,
                    allow_blank=False,
                    id="activity-source",
                )
                yield Input(
                    value="" if self._book_id is None else str(self._book_id),
                    placeholder="Book id",
                    type="integer",
                    id="activity-book",
                )
            yield DataTable(id="activity-table", cursor_type="row")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#activity-table", DataTable)
        table.add_columns("Time", "Action", "Source", "Book", "Details")
        self._reload()

    def _reload(self) -> None:
        entries = read_recent_activity(
            limit=_LIMIT,
            action=self._action,
            source=self._source,
            book_id=self._book_id,
        )
        table = self.query_one("#activity-table", DataTable)
        table.clear()
        for entry in entries:
            book = entry.book_label
            table.add_row(
                entry.time_label,
                entry.action.capitalize(),
                entry.source.upper(),
                book if len(book) <= 35 else book[:32] + "...",
                entry.summary(),
            )
        self.query_one("#activity-title", Static).update(
            f"[bold]Activity Log[/bold]  [#8a7e6a]{len(entries)} entries[/#8a7e6a]"
        )

    def on_select_changed(self, event: Select.Changed) -> None:
        value = None if event.value == _ANY else event.value
        if event.select.id == "activity-action":
            self._action = value
        elif event.select.id == "activity-source":
            self._source = value
        else:
            return
        self._reload()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "activity-book":
            return
        try:
            self._book_id = int(event.value) if event.value.strip() else None
        except ValueError:
            return
        self._reload()

    def action_refresh(self) -> None:
        self._reload()
        self.notify("Activity log refreshed")

    def action_go_back(self) -> None:
        self.app.pop_screen()
