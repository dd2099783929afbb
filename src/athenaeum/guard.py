"""Guard against results that arrive after their screen moved on.

Backend calls run in worker threads. A screen issues a token before
starting a request and applies the result only if the token is still the
newest one and the screen has not been dismissed in the meantime.
"""

import threading
from typing import Callable, TypeVar

T = TypeVar("T")


class RequestGuard:
    """Hands out request tokens and tells whether a token is still current.

    Issuing a new token makes every older token stale; ``cancel`` makes all
    outstanding tokens stale.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._active = True

    def issue(self) -> int:
        """Start a request and return its token. Reactivates a cancelled guard."""
        with self._lock:
            self._generation += 1
            self._active = True
            return self._generation

    def cancel(self) -> None:
        """Mark every outstanding request stale (e.g. the screen was closed)."""
        with self._lock:
            self._generation += 1
            self._active = False

    def is_current(self, token: int) -> bool:
        with self._lock:
            return self._active and token == self._generation

    def deliver(self, token: int, apply: Callable[[T], None], result: T) -> bool:
        """Call ``apply(result)`` if *token* is current.

        Returns
        -------
        bool
            ``True`` if the result was applied, ``False`` if it was dropped.
        """
        if not self.is_current(token):
            return False
        apply(result)
        return True
