"""About screen showing version, announcement and configuration path."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Footer, Static

from .. import __version__
from ..services import latest_announcement


class AboutScreen(Screen):
    """About dialog with version and the latest library announcement."""

    BINDINGS = [
        Binding("escape", "go_back", "Back"),
    ]

    def compose(self) -> ComposeResult:
        yield Static("", id="about-panel")
        yield Footer()

    def on_mount(self) -> None:
        result = latest_announcement(self.app.backend)
        if result.ok and result.data is not None:
            news = (
                f"[bold]{result.data.title}[/bold]\n"
                f"[#8a7e6a]{result.data.date.date().isoformat()}[/#8a7e6a]\n"
                f"{result.data.content}"
            )
        else:
            news = f"[#8a7e6a]{result.message}[/#8a7e6a]"
        self.query_one("#about-panel", Static).update(
            f"[bold #d4a04a]ATHENAEUM[/bold #d4a04a]\n\n"
            f"v. {__version__}    LIBRARY CATALOGUE\n\n"
            f"{news}\n\n"
            f"[#8a7e6a]Configuration file: ~/.athenaeum/athenaeum-settings.json[/#8a7e6a]"
        )

    def action_go_back(self) -> None:
        self.app.pop_screen()
