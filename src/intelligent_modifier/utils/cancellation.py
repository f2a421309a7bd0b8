"""Cooperative cancellation checked between discrete phases."""

import threading

from intelligent_modifier.agents.exceptions import ModificationCancelled


class CancellationToken:
    """Flag a caller can set from another thread to stop a request.

    Work checks the token only at phase boundaries (one file scanned,
    classification complete, one executor run), never inside a file edit.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, phase: str) -> None:
        if self._event.is_set():
            raise ModificationCancelled(f"Cancelled before {phase}")
