"""
Cancellation primitives for cooperative cancellation.

The token is the mechanism; callers decide when to cancel. Loops check the
token at their boundaries, and sleeps wake up as soon as it is cancelled.
"""
import threading

from .errors import RequestCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag.

    Example:
        token = CancellationToken()
        for entry in entries:
            token.raise_if_cancelled()
            ...
    """

    def __init__(self):
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Safe to call more than once."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise RequestCancelledError("Request was cancelled")

    def sleep(self, seconds: float) -> None:
        """
        Sleep for `seconds`, waking early on cancellation.

        Raises:
            RequestCancelledError: If cancelled before or during the sleep
        """
        self.raise_if_cancelled()
        self._event.wait(timeout=max(0.0, seconds))
        self.raise_if_cancelled()
