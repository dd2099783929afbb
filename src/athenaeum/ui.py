"""Rich UI components for Athenaeum CLI."""

from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .activity_log import ActivityEntry
from .models import BookRecord, Member, ReservationStatus
from .reservations import TransitionResult

console = Console()

DETAIL_MAX_WIDTH = 80

_STATUS_STYLE = {
    ReservationStatus.NOT_RESERVED: "dim",
    ReservationStatus.PENDING: "yellow",
    ReservationStatus.APPROVED: "green",
}


def _detail_width() -> int:
    return min(console.width, DETAIL_MAX_WIDTH)


def print_success(message: str) -> None:
    """Print a success message with checkmark."""
    console.print(f"[green]✓[/green] {message}")


def print_skip(message: str) -> None:
    """Print a skip message with circle."""
    console.print(f"[dim]○[/dim] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def create_spinner(message: str):
    """Create a spinner context for long operations."""
    return console.status(f"[dim]{message}[/dim]", spinner="dots")


def availability_label(book: BookRecord) -> str:
    return "[green]Available[/green]" if book.is_available else "[red]On Loan[/red]"


def display_book_table(books: Iterable[BookRecord], max_rows: int = 50) -> None:
    """Display books in a table format."""
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Title", style="white", no_wrap=False, max_width=40)
    table.add_column("Author", style="dim", no_wrap=False, max_width=25)
    table.add_column("Genre", style="cyan", no_wrap=True)
    table.add_column("Year", justify="right")
    table.add_column("Copies", justify="right")
    table.add_column("Status", no_wrap=True)

    count = 0
    for book in books:
        status = book.reservation_status
        marker = " [red]♥[/red]" if book.is_wishlisted else ""
        table.add_row(
            str(book.book_id),
            book.display_title(40) + marker,
            book.display_author(25),
            book.category,
            str(book.published_year),
            str(book.copies),
            f"[{_STATUS_STYLE[status]}]{status.value}[/{_STATUS_STYLE[status]}]",
        )
        count += 1
        if count >= max_rows:
            break

    console.print(table)

    if count == 0:
        print_info("No books match your search.")
    elif count == max_rows:
        print_info(f"Showing first {max_rows} books. Use filters to narrow the list.")


def display_book_info(book: BookRecord) -> None:
    """Display detailed book information."""
    lines = []

    def add_field(label: str, value: str) -> None:
        if value:
            lines.append(f"[dim]{label}:[/dim] {value}")

    lines.append(f"[bold]{book.title}[/bold]")
    lines.append(f"[dim]by[/dim] {book.author}")
    lines.append("")

    add_field("Book ID", str(book.book_id))
    add_field("ISBN", book.isbn)
    add_field("Genre", book.category)
    add_field("Language", book.language)
    add_field("Publisher", book.publisher)
    add_field("Published", str(book.published_year))
    add_field("Shelf Location", book.shelf_location)
    if book.due_date:
        add_field("Due", book.due_date.isoformat())
    if book.release_date:
        add_field("Release", book.release_date.isoformat())

    lines.append("")
    status = [availability_label(book), f"Copies Available: {book.copies}"]
    style = _STATUS_STYLE[book.reservation_status]
    status.append(f"[{style}]{book.reservation_status.value}[/{style}]")
    if book.is_wishlisted:
        status.append("[red]Wishlist[/red]")
    lines.append(" | ".join(status))

    panel = Panel(
        "\n".join(lines),
        title="[dim]Book Details[/dim]",
        title_align="left",
        border_style="dim",
        width=_detail_width(),
        padding=(1, 2),
    )
    console.print(panel)


def display_stats(
    total: int,
    available: int,
    genre_counts: dict[str, int],
    status_counts: dict[str, int],
    source: Optional[str] = None,
) -> None:
    """Display catalogue statistics."""
    console.print(f"Catalog: [bold]{total}[/bold] books, {available} available\n")
    if source:
        print_info(f"Loaded from {source}")
        console.print()

    if genre_counts:
        console.print("[dim]By Genre:[/dim]")
        for genre, count in genre_counts.items():
            console.print(f"  {genre:<20} {count:>4}")
        console.print()

    if status_counts:
        console.print("[dim]By Reservation Status:[/dim]")
        for status, count in status_counts.items():
            console.print(f"  {status:<20} {count:>4}")


def print_transition(result: TransitionResult, title: str = "") -> None:
    """Report a reservation transition outcome."""
    label = title or f"book {result.book_id}"
    if result.ok:
        print_success(f"{label}: {result.previous.value} → {result.current.value}")
    else:
        print_error(f"Cannot {result.event.value} {label}: {result.reason}")


def display_members(members: Iterable[Member]) -> None:
    """Display members in a table format."""
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("Member", style="dim")
    table.add_column("Name", style="white")
    table.add_column("Joined")
    table.add_column("Expires")
    table.add_column("Status")
    table.add_column("Borrowed", justify="right")

    for member in members:
        status = "[green]active[/green]" if member.is_active else f"[red]{member.status}[/red]"
        table.add_row(
            member.member_id,
            member.name,
            member.joined_date.date().isoformat(),
            member.expiry_date.date().isoformat(),
            status,
            str(len(member.borrowed_books)),
        )
    console.print(table)


def display_activity(entries: Iterable[ActivityEntry]) -> None:
    """Display activity log entries, most recent first."""
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("Time", style="dim")
    table.add_column("Action")
    table.add_column("Source", style="dim")
    table.add_column("Book", max_width=35)
    table.add_column("Details", style="dim")

    count = 0
    for entry in entries:
        table.add_row(
            entry.time_label,
            entry.action.capitalize(),
            entry.source.upper(),
            entry.book_label,
            entry.summary(),
        )
        count += 1

    if count == 0:
        print_info("No activity recorded.")
        return
    console.print(table)
