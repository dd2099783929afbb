"""Athenaeum TUI widgets."""
