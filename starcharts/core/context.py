"""
Request context carrying a deadline and a cancellation signal.

A context is created by the caller of a top-level fetch and handed down to
every outbound request so cancelling it, or letting its deadline pass, stops
further network calls.
"""

import threading
import time
from typing import Optional

from starcharts.api.github_exceptions import RequestCancelledError


class RequestContext:
    """Deadline and cancellation flag shared by all requests of one fetch."""

    def __init__(self, timeout: Optional[float] = None):
        """Initialize the context.

        Args:
            timeout: Seconds from now until the deadline, or None for no deadline
        """
        self.deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Cancel every request that has not been sent yet."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise if the context was cancelled or its deadline passed.

        Raises:
            RequestCancelledError: When no further requests may be sent
        """
        if self.cancelled:
            raise RequestCancelledError("request cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise RequestCancelledError("request deadline exceeded")

    def timeout_for(self, default: float) -> float:
        """Timeout for one outbound request, bounded by the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)


def background() -> RequestContext:
    """A context that is never cancelled and has no deadline."""
    return RequestContext()
