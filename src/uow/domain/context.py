"""Cancellation and deadline token passed to transaction begin."""

from __future__ import annotations

import threading
import time
from typing import Optional


class ContextError(Exception):
    """Base class for context termination errors."""
    pass


class ContextCancelled(ContextError):
    def __init__(self):
        super().__init__("context canceled")


class DeadlineExceeded(ContextError):
    def __init__(self):
        super().__init__("context deadline exceeded")


class Context:
    """
    Carries a cancellation flag and an optional deadline.

    Only the transaction-begin step honours a context. Commit and rollback
    run to completion regardless of the deadline.

    Args:
        timeout: seconds from now until the deadline
        deadline: absolute deadline on the ``time.monotonic()`` clock
    """

    def __init__(self, timeout: Optional[float] = None, deadline: Optional[float] = None):
        if timeout is not None:
            timeout_deadline = time.monotonic() + timeout
            deadline = timeout_deadline if deadline is None else min(deadline, timeout_deadline)
        self._deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> Context:
        return cls()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def cancel(self):
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_done(self):
        if self.cancelled:
            raise ContextCancelled()
        if self.expired:
            raise DeadlineExceeded()

    def __repr__(self):
        return f"Context(deadline={self._deadline}, cancelled={self.cancelled})"
