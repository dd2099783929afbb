"""Members screen for librarians: list, extend and revoke memberships.

Members are fetched from the backend in a worker thread. Results that
arrive after the screen was closed, or after a newer fetch started, are
dropped.
"""

from textual import work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import DataTable, Footer, LoadingIndicator, Static

from ..guard import RequestGuard
from ..models import Member
from ..services import (
    ServiceResult,
    dashboard_counts,
    extend_membership,
    fetch_members,
    revoke_membership,
)


class MembersScreen(Screen):
    """Librarian dashboard with the member table.

    Attributes
    ----------
    _members : list of Member
        Members currently shown, in table order.
    """

    BINDINGS = [
        Binding("e", "extend", "Extend"),
        Binding("x", "revoke", "Revoke"),
        Binding("r", "retry", "Retry"),
        Binding("escape", "go_back", "Back"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._members: list[Member] = []
        self._guard = RequestGuard()

    def compose(self) -> ComposeResult:
        with Vertical(id="members-container"):
            yield Static("[bold]Members[/bold]", id="members-title")
            yield Static("", id="members-status")
            yield LoadingIndicator(id="members-loading")
            yield DataTable(id="members-table", cursor_type="row")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#members-table", DataTable)
        table.add_columns("Member", "Name", "Joined", "Expires", "Status", "Borrowed")
        self._start_fetch()

    def on_unmount(self) -> None:
        self._guard.cancel()

    def _start_fetch(self) -> None:
        self.query_one("#members-loading").display = True
        self._fetch(self._guard.issue())

    @work(thread=True, exclusive=True, group="members")
    def _fetch(self, token: int) -> None:
        """Fetch members and dashboard counts in a background thread."""
        members = fetch_members(self.app.backend, self.app.auth)
        counts = dashboard_counts(self.app.backend)
        self.app.call_from_thread(self._guard.deliver, token, self._show, (members, counts))

    def _show(self, results: tuple[ServiceResult, ServiceResult]) -> None:
        members, counts = results
        self.query_one("#members-loading").display = False
        status = self.query_one("#members-status", Static)
        if not members.ok:
            status.update(f"[#c45a3a]{members.message}[/#c45a3a]  [#8a7e6a](r to retry)[/#8a7e6a]")
        elif counts.ok:
            status.update(
                f"[#8a7e6a]{counts.data['users']} users, {counts.data['books']} books[/#8a7e6a]"
            )
        self._members = members.data or []
        self._refresh_table()

    def _refresh_table(self) -> None:
        table = self.query_one("#members-table", DataTable)
        table.clear()
        for member in self._members:
            table.add_row(
                member.member_id,
                member.name,
                member.joined_date.date().isoformat(),
                member.expiry_date.date().isoformat(),
                member.status,
                str(len(member.borrowed_books)),
            )

    def _selected(self):
        table = self.query_one("#members-table", DataTable)
        row = table.cursor_row
        if row is None or not 0 <= row < len(self._members):
            return None
        return row, self._members[row]

    def _apply(self, result: ServiceResult, row: int) -> None:
        self.notify(result.message, severity="information" if result.ok else "error")
        if result.ok:
            self._members[row] = result.data
            self._refresh_table()

    def action_extend(self) -> None:
        selected = self._selected()
        if selected:
            row, member = selected
            self._apply(extend_membership(self.app.backend, member), row)

    def action_revoke(self) -> None:
        selected = self._selected()
        if selected:
            row, member = selected
            self._apply(revoke_membership(self.app.backend, member), row)

    def action_retry(self) -> None:
        self._start_fetch()

    def action_go_back(self) -> None:
        self.app.pop_screen()
