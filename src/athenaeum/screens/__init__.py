"""Athenaeum TUI screens."""

from .main import MainScreen
from .about import AboutScreen
from .activity import ActivityScreen
from .book_detail import BookDetailScreen
from .members import MembersScreen

__all__ = [
    "MainScreen",
    "AboutScreen",
    "ActivityScreen",
    "BookDetailScreen",
    "MembersScreen",
]
