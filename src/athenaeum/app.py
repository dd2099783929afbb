"""Textual TUI application for Athenaeum library catalogue.

Defines the ``AthenaeumApp`` class (the Textual ``App`` subclass) and the
``main`` entry point used by the ``athenaeum-tui`` console script.
"""

from typing import Optional

from textual.app import App

from .backend import AuthSession, BackendError, DocumentBackend
from .reservations import ReservationWorkflow
from .settings import load_settings
from .snapshot import get_connection, init_db
from .store import BookCatalogStore


class AthenaeumApp(App):
    """Athenaeum Library Catalogue TUI.

    Owns the catalogue store, the reservation workflow and the backend
    session, and hands them to screens through ``self.app``.

    Attributes
    ----------
    store : BookCatalogStore
        The session's catalogue, available after mount.
    workflow : ReservationWorkflow
        Reservation state machine over ``store``.
    backend : DocumentBackend
        Document backend used by the members screen.
    auth : AuthSession
        Signed-in backend user.
    """

    TITLE = "Athenaeum"
    SUB_TITLE = "Library Catalogue"
    CSS_PATH = "athenaeum.tcss"

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, user: Optional[str] = None) -> None:
        super().__init__()
        self._user = user

    def on_mount(self) -> None:
        """Load settings, open the catalogue, and push the main screen."""
        self._settings = load_settings()
        self.db = get_connection(self._settings.resolve_db_path())
        init_db(self.db)
        self.store = BookCatalogStore(
            self.db,
            dataset_path=self._settings.resolve_dataset_path(),
            snapshot_key=self._settings.snapshot_key,
            quoted=self._settings.quoted_csv,
        )
        self.store.initialize()
        self.workflow = ReservationWorkflow(self.store, source="tui")

        self.backend = DocumentBackend(self._settings.resolve_backend_path())
        self.auth = AuthSession(self.backend)
        if self._user:
            try:
                self.auth.sign_in(self._user)
            except BackendError as e:
                self.notify(str(e), severity="error")

        from .screens.main import MainScreen
        self.push_screen(MainScreen())
        if self.store.error_message:
            self.notify(self.store.error_message, severity="error")

    def on_unmount(self) -> None:
        """Close the database connections when the app exits."""
        if hasattr(self, "db"):
            self.db.close()
        if hasattr(self, "backend"):
            self.backend.close()


def main() -> None:
    """Entry point for the ``athenaeum-tui`` console script."""
    import sys

    user = sys.argv[1] if len(sys.argv) > 1 else None
    app = AthenaeumApp(user=user)
    app.run()


if __name__ == "__main__":
    main()
