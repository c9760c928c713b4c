"""Cooperative cancellation shared between the event loop and worker threads."""

from __future__ import annotations

import threading
from typing import Optional

from .types import GenerationCancelled


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled()


def check(token: Optional[CancellationToken]) -> None:
    """Raises GenerationCancelled when a token is present and tripped."""
    if token is not None:
        token.raise_if_cancelled()
