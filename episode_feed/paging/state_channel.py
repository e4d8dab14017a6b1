"""Thread-safe, last-value-wins observable holder for load states."""

import threading
from typing import Callable, Generic, TypeVar

from episode_feed.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class StateChannel(Generic[T]):
    """Single-writer, multi-reader value channel.

    ``post`` swaps the current value under a lock and then notifies every
    subscriber outside the lock, so listeners may read ``value`` or post from
    any thread. New subscribers immediately receive the current value.
    """

    def __init__(self, initial: T, name: str = "state"):
        self.name = name
        self._value = initial
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def post(self, value: T) -> None:
        with self._lock:
            self._value = value
            listeners = list(self._listeners)

        logger.debug("%s -> %r", self.name, value)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Listener failed on %s channel", self.name)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""
        with self._lock:
            self._listeners.append(listener)
            current = self._value
        listener(current)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
