"""Athenaeum - library catalogue with reservations and member management."""

__version__ = "0.1.0"
