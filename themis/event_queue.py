"""Thread-safe queue of callbacks run by the polling thread."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], object]


class EventQueue:
    """Callbacks may be added from any thread and run on the next poll."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._immediate: deque[Callback] = deque()

    def add_immediate(self, callback: Callback) -> None:
        """Queue ``callback`` to be invoked on the next poll."""
        with self._lock:
            self._immediate.append(callback)

    def poll(self) -> bool:
        """Run queued callbacks until the queue is empty.

        Callbacks queued while polling run in the same poll. An exception in
        a callback is logged and does not stop the others. Returns True if
        any callback ran.
        """
        ran = False
        while True:
            with self._lock:
                if not self._immediate:
                    return ran
                callback = self._immediate.popleft()
            ran = True
            try:
                callback()
            except Exception:
                logger.warning(
                    "an uncaught exception happened in the event queue",
                    exc_info=True,
                )