"""A one-token park/unpark primitive for blocking a thread until woken."""

from __future__ import annotations

import threading


class Parker:
    """Blocks a thread in `park` until another thread calls `unpark`.

    An `unpark` that happens before `park` is remembered, so the next
    `park` returns at once. Several `unpark` calls collapse into one token.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._resumable = False

    def park(self) -> None:
        """Wait until unparked, then consume the wake-up token."""
        with self._condition:
            while not self._resumable:
                self._condition.wait()
            self._resumable = False

    def unpark(self) -> None:
        """Hand out the wake-up token and wake a parked thread."""
        with self._condition:
            self._resumable = True
            self._condition.notify()