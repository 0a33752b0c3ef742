"""Cancellation token shared by every task and network call in one run."""

from __future__ import annotations

import threading
import time


class CancellationToken:
    """Run-wide cancel flag with an optional deadline.

    The token is threaded through the worker and into every outbound call:
    network calls use :meth:`timeout` so none outlives the deadline, and the
    inter-chunk delay uses :meth:`wait` so a cancel wakes sleeping workers
    immediately.

    Parameters
    ----------
    deadline_seconds:
        Seconds from now after which the token counts as cancelled.
        ``None`` means no deadline.
    """

    def __init__(self, deadline_seconds: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + deadline_seconds if deadline_seconds is not None else None
        )

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

    def remaining(self) -> float | None:
        """Seconds until the deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def timeout(self, default: float) -> float:
        """Per-call network timeout: *default*, capped by the time remaining."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return max(0.001, min(default, remaining))

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; return ``True`` if cancelled meanwhile."""
        if seconds <= 0:
            return self.cancelled
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)
        return self.cancelled
