"""Stats panel widget displaying catalogue summary.

Shows the application version, where the catalogue was loaded from, the
number of books shown and available, and the signed-in user.
"""

from typing import Optional

from textual.widgets import Static


class StatsPanel(Static):
    """Single-line stats bar at the top of the main screen."""

    def update_stats(
        self,
        version: str,
        source: str,
        shown: int,
        total: int,
        available: int,
        user: Optional[str] = None,
    ) -> None:
        """Refresh the stats bar content.

        Parameters
        ----------
        version : str
            Application version string.
        source : str
            ``snapshot``, ``dataset`` or ``empty``.
        shown : int
            Number of books matching the current filters.
        total : int
            Number of books in the catalogue.
        available : int
            Number of books with at least one copy on the shelf.
        user : str, optional
            Signed-in user and role.
        """
        self.update(
            f"[bold]Athenaeum {version}[/bold]  |  {source}  |  "
            f"{shown} of {total} books, {available} available  |  "
            f"{user or 'not signed in'}"
        )
