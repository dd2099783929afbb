"""Audit trail of catalogue changes.

Every reservation transition, wishlist toggle, copy change and dataset
import made from the CLI or the TUI is appended to
``~/.athenaeum/data/activity.log``, one JSON object per line. Both front
ends may run at once, so every access holds an ``fcntl`` lock.
"""

import fcntl
import json
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, TextIO

_ATHENAEUM_DIR = Path.home() / ".athenaeum"
_LOG_PATH = _ATHENAEUM_DIR / "data" / "activity.log"

ACTIONS = ("reserve", "approve", "cancel", "restore", "wishlist", "copies", "import")
SOURCES = ("cli", "tui")

_TRANSITIONS = ("reserve", "approve", "cancel")


@dataclass
class ActivityEntry:
    """One line of the activity log.

    Attributes
    ----------
    timestamp : str
        ISO 8601 timestamp with microseconds.
    action : str
        One of ``ACTIONS``.
    source : str
        One of ``SOURCES``.
    book_id : int or None
        Catalogue id, absent for catalogue-wide actions such as ``import``.
    title : str or None
        Book title at the time of the change.
    details : dict
        Action-specific data: ``previous``/``current`` for transitions,
        ``copies`` for copy changes, ``wishlisted`` for the wishlist,
        ``file``/``added_count`` for imports.
    """

    timestamp: str
    action: str
    source: str
    book_id: Optional[int] = None
    title: Optional[str] = None
    details: dict = field(default_factory=dict)

    @property
    def time_label(self) -> str:
        """Timestamp without microseconds, date and time separated by a space."""
        return self.timestamp.split(".")[0].replace("T", " ")

    @property
    def book_label(self) -> str:
        if self.title:
            return self.title
        return str(self.book_id) if self.book_id is not None else "-"

    def summary(self) -> str:
        """Describe ``details`` in a few words, or ``-`` when there is nothing to say."""
        d = self.details
        if self.action in _TRANSITIONS and "previous" in d and "current" in d:
            return f"{d['previous']} → {d['current']}"
        if self.action in ("restore", "copies") and "copies" in d:
            return f"copies: {d['copies']}"
        if self.action == "wishlist" and "wishlisted" in d:
            return "added" if d["wishlisted"] else "removed"
        if self.action == "import" and "added_count" in d:
            return f"{d['added_count']} books"
        return "-"


def get_log_path() -> Path:
    """Return the path to the activity log file."""
    return _LOG_PATH


@contextmanager
def _locked(path: Path, mode: str) -> Iterator[TextIO]:
    """Open *path* holding an exclusive (write) or shared (read) lock."""
    lock = fcntl.LOCK_SH if mode == "r" else fcntl.LOCK_EX
    with open(path, mode, encoding="utf-8") as f:
        fcntl.flock(f.fileno(), lock)
        try:
            yield f
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def log_activity(
    action: str,
    source: str,
    book_id: Optional[int] = None,
    title: Optional[str] = None,
    **details,
) -> ActivityEntry:
    """Append an entry to the activity log and return it.

    Parameters
    ----------
    action : str
        One of ``ACTIONS``.
    source : str
        One of ``SOURCES``.
    book_id : int, optional
        Catalogue id of the affected book.
    title : str, optional
        Title of the affected book.
    **details
        Action-specific data stored under ``details``.
    """
    entry = ActivityEntry(
        timestamp=datetime.now().isoformat(),
        action=action,
        source=source,
        book_id=book_id,
        title=title,
        details=details,
    )
    log_path = get_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with _locked(log_path, "a") as f:
        f.write(json.dumps(asdict(entry), ensure_ascii=False) + "\n")
    return entry


def read_recent_activity(
    limit: int = 100,
    action: Optional[str] = None,
    source: Optional[str] = None,
    book_id: Optional[int] = None,
) -> list[ActivityEntry]:
    """Return the newest log entries, optionally filtered.

    Lines that are not valid entries are skipped.

    Parameters
    ----------
    limit : int
        Maximum number of entries returned, applied after filtering.
    action, source : str, optional
        Keep only entries with this action / source.
    book_id : int, optional
        Keep only entries about this book.

    Returns
    -------
    list of ActivityEntry
        Matching entries, most recent first.
    """
    log_path = get_log_path()
    if not log_path.exists():
        return []

    entries = []
    with _locked(log_path, "r") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                entry = ActivityEntry(**json.loads(line))
            except (json.JSONDecodeError, TypeError):
                continue
            if action and entry.action != action:
                continue
            if source and entry.source != source:
                continue
            if book_id is not None and entry.book_id != book_id:
                continue
            entries.append(entry)

    # the file is append-only, so equal timestamps keep newest first
    entries.reverse()
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    return entries[:limit]
