"""
Observable values and a trailing-edge debouncer.

Subscribers are called synchronously, in registration order, on the thread
that publishes.
"""
import logging
import threading
from typing import Any, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger("pokedex.observable")

T = TypeVar("T")


class ObservableValue(Generic[T]):
    """
    Current value plus subscribers notified on every `set`.

    Usage:
        state = ObservableValue(ListState.idle())
        unsubscribe = state.subscribe(lambda s: print(s))
        state.set(ListState.loading(0, 151))
    """

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []
        self._lock = threading.RLock()

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register `callback`.

        Returns:
            Unsubscribe function
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set(self, value: T) -> None:
        """Store `value` and publish it to every subscriber."""
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
            for callback in subscribers:
                try:
                    callback(value)
                except Exception as e:
                    logger.error(f"Subscriber {getattr(callback, '__name__', callback)} failed: {e}")


class Debouncer:
    """
    Delays `callback(value)` until no new value arrived for `delay` seconds.

    Only the last submitted value is delivered.
    """

    def __init__(self, delay: float, callback: Callable[[Any], None]):
        self.delay = delay
        self._callback = callback
        self._timer: Optional[threading.Timer] = None
        self._pending: Any = None
        self._has_pending = False
        # Bumped on every submit so a superseded timer never delivers
        self._generation = 0
        self._lock = threading.Lock()

    def submit(self, value: Any) -> None:
        """Restart the quiet window with `value` as the pending value."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = value
            self._has_pending = True
            self._generation += 1
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        """Deliver the pending value now, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            generation = self._generation
        self._fire(generation)

    def cancel(self) -> None:
        """Drop the pending value without delivering it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._has_pending = False
            self._pending = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if not self._has_pending or generation != self._generation:
                return
            value = self._pending
            self._has_pending = False
            self._pending = None
            self._timer = None
        self._callback(value)
