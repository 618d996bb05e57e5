from __future__ import annotations

import threading
from typing import Optional

from sqllink.common.errors import QueryCancelled


class CancellationToken:
    """Cooperative cancellation flag shared between a command and its canceller."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout=timeout)

    def check(self) -> None:
        if self._event.is_set():
            raise QueryCancelled("Statement was canceled or the session timed out")
