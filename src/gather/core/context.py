"""Cooperative cancellation and deadlines for gather calls.

A ``Context`` is passed down every gather call. Nothing here interrupts a
running thread: transports call ``check()`` (or poll ``cancelled``) at their
natural suspension points and stop when it fires.
"""

from __future__ import annotations

import threading
import time

from gather.core.errors import Cancelled, DeadlineExceeded


class Context:
    """Cancellation token with an optional monotonic deadline."""

    def __init__(
        self,
        *,
        deadline: float | None = None,
        parent: Context | None = None,
    ) -> None:
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline
        self._parent = parent
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._reason: str | None = None

    @classmethod
    def background(cls) -> Context:
        """A context that is never cancelled and has no deadline."""
        return cls()

    # ── Derivation ──────────────────────────────────────────────────

    def with_cancel(self) -> Context:
        return Context(parent=self)

    def with_deadline(self, deadline: float) -> Context:
        """Child context expiring at *deadline* (``time.monotonic()`` clock)."""
        return Context(deadline=deadline, parent=self)

    def with_timeout(self, seconds: float) -> Context:
        return self.with_deadline(time.monotonic() + seconds)

    # ── State ───────────────────────────────────────────────────────

    def cancel(self, reason: str | None = None) -> None:
        with self._lock:
            if not self._event.is_set():
                self._reason = reason
                self._event.set()

    @property
    def cancelled(self) -> bool:
        return self.error() is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def error(self) -> Cancelled | None:
        """Return the pending cancellation error, if any."""
        if self._event.is_set():
            with self._lock:
                reason = self._reason
            return Cancelled(reason or "context cancelled")
        if self._parent is not None:
            parent_err = self._parent.error()
            if parent_err is not None:
                return parent_err
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceeded("context deadline exceeded")
        return None

    def check(self) -> None:
        """Raise ``Cancelled``/``DeadlineExceeded`` if the context is done."""
        err = self.error()
        if err is not None:
            raise err

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to *timeout* seconds; return True once the context is done."""
        end = None if timeout is None else time.monotonic() + timeout
        while True:
            if self.cancelled:
                return True
            step = 0.05
            if end is not None:
                left = end - time.monotonic()
                if left <= 0:
                    return False
                step = min(step, left)
            remaining = self.remaining()
            if remaining is not None:
                step = min(step, remaining) or step
            self._event.wait(step)
