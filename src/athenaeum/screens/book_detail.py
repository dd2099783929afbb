"""Book detail screen with reservation and wishlist actions."""

from textual import work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Footer, Static

from ..guard import RequestGuard
from ..models import BookRecord, ReservationStatus
from ..services import ServiceResult, submit_reservation

_STATUS_COLOUR = {
    ReservationStatus.NOT_RESERVED: "#8a7e6a",
    ReservationStatus.PENDING: "#d4a04a",
    ReservationStatus.APPROVED: "#6a9a4a",
}


def _format_book_info(book: BookRecord) -> str:
    """Format full book info as Rich markup text."""
    lines = []

    lines.append(f"[bold]{book.title}[/bold]")
    lines.append(f"[#8a7e6a]by[/#8a7e6a] {book.author}")
    lines.append("")

    def add_field(label: str, value: str) -> None:
        if value:
            lines.append(f"[#8a7e6a]{label}:[/#8a7e6a] {value}")

    add_field("ISBN", book.isbn)
    add_field("Genre", book.category)
    add_field("Language", book.language)
    add_field("Publisher", book.publisher)
    add_field("Published", str(book.published_year))
    add_field("Shelf Location", book.shelf_location)
    add_field("Copies Available", str(book.copies))

    lines.append("")
    status = []
    if book.is_available:
        status.append("[#6a9a4a]Available[/#6a9a4a]")
    else:
        status.append("[#c45a3a]On Loan[/#c45a3a]")
    colour = _STATUS_COLOUR[book.reservation_status]
    status.append(f"[{colour}]{book.reservation_status.value}[/{colour}]")
    if book.is_wishlisted:
        status.append("[#c45a3a]♥ Wishlist[/#c45a3a]")
    lines.append(" | ".join(status))

    return "\n".join(lines)


class BookDetailScreen(Screen):
    """Full book information with reserve, approve, cancel and wishlist keys."""

    BINDINGS = [
        Binding("r", "reserve", "Reserve"),
        Binding("p", "approve", "Approve"),
        Binding("c", "cancel_reservation", "Cancel"),
        Binding("w", "wishlist", "Wishlist"),
        Binding("s", "share", "Share"),
        Binding("h", "history", "History"),
        Binding("escape", "go_back", "Back"),
    ]

    def __init__(self, book_id: int) -> None:
        super().__init__()
        self.book_id = book_id
        self._guard = RequestGuard()

    def compose(self) -> ComposeResult:
        yield Static("", id="detail-panel")
        yield Footer()

    def on_mount(self) -> None:
        self._render_book()

    def on_unmount(self) -> None:
        self._guard.cancel()

    def _render_book(self) -> None:
        book = self.app.store.get(self.book_id)
        panel = self.query_one("#detail-panel", Static)
        if book:
            panel.update(_format_book_info(book))
        else:
            panel.update(f"[#c45a3a]No book found with ID: {self.book_id}[/#c45a3a]")

    def action_reserve(self) -> None:
        result = self.app.workflow.request(self.book_id)
        if not result.ok:
            self.notify(f"Cannot reserve: {result.reason}", severity="warning")
            return
        self._render_book()
        self.notify("Your reservation request is pending. You will be notified when approved.")
        if self.app.auth.is_signed_in:
            self._submit_remote(self._guard.issue())

    @work(thread=True, exclusive=True, group="reservation")
    def _submit_remote(self, token: int) -> None:
        """Record the reservation in the backend from a worker thread."""
        book = self.app.store.get(self.book_id)
        result = submit_reservation(self.app.backend, self.app.auth, book)
        self.app.call_from_thread(self._guard.deliver, token, self._show_remote, result)

    def _show_remote(self, result: ServiceResult) -> None:
        self.notify(result.message, severity="information" if result.ok else "error")

    def action_approve(self) -> None:
        if self.app.auth.role not in ("Librarian", "Admin"):
            self.notify("Only librarians can approve reservations", severity="warning")
            return
        result = self.app.workflow.approve(self.book_id)
        if not result.ok:
            self.notify(f"Cannot approve: {result.reason}", severity="warning")
        self._render_book()

    def action_cancel_reservation(self) -> None:
        result = self.app.workflow.cancel(self.book_id)
        if not result.ok:
            self.notify(f"Cannot cancel: {result.reason}", severity="warning")
        self._render_book()

    def action_wishlist(self) -> None:
        wishlisted = self.app.workflow.toggle_wishlist(self.book_id)
        if wishlisted is not None:
            self.notify("Added to wishlist" if wishlisted else "Removed from wishlist")
        self._render_book()

    def action_share(self) -> None:
        book = self.app.store.get(self.book_id)
        if book:
            self.app.copy_to_clipboard(book.share_text())
            self.notify("Book details copied to clipboard")

    def action_history(self) -> None:
        from .activity import ActivityScreen
        self.app.push_screen(ActivityScreen(book_id=self.book_id))

    def action_go_back(self) -> None:
        self.app.pop_screen()
