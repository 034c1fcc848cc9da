"""
Observable value used for every field of the snapshot store.

A Signal holds one value. Reading returns the current value; writing
replaces it wholesale and notifies every subscriber. Each Signal has its
own lock, so writers to unrelated fields never contend, and subscribers
are called outside the lock so a callback may read any signal freely.
"""

import logging
import threading
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Signal(Generic[T]):
    def __init__(self, initial: T, name: Optional[str] = None):
        self.name = name
        self._value = initial
        self._version = 0
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[T], None]] = []

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, {self._value!r})"

    @property
    def version(self) -> int:
        return self._version

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Replace the value and notify subscribers, even if it is unchanged."""
        with self._lock:
            self._value = value
            self._version += 1
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.error(f"Subscriber of signal {self.name} failed", exc_info=True)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe
