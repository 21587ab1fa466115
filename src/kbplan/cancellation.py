"""Cooperative cancellation for the blocking planner, gate and walker loops."""

from __future__ import annotations

import threading

from kbplan.errors import OperationCancelled


class CancellationToken:
    """Thread-safe flag checked between blocking steps."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason or "cancelled")


def check(token: CancellationToken | None) -> None:
    """Raise `OperationCancelled` if an optional token has been cancelled."""
    if token is not None:
        token.raise_if_cancelled()
