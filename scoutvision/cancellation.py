"""Cooperative cancellation for long similarity scans and clustering runs."""

from __future__ import annotations

import threading
import time
from typing import Optional


class OperationCancelled(RuntimeError):
    """Raised inside a loop once its cancellation token has fired."""


class CancellationToken:
    """Thread-safe flag checked by the engine between units of work.

    A ``timeout`` (seconds) makes the token fire on its own once elapsed.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        if self.cancelled:
            raise OperationCancelled(f"{operation} was cancelled")


def check(token: Optional[CancellationToken], operation: str) -> None:
    if token is not None:
        token.raise_if_cancelled(operation)
