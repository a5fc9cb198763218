import threading
from collections import deque
from collections.abc import Iterable

from .constants import NOTIFICATION_CAPACITY
from .models import NotificationEvent


class NotificationLog:
    """A bounded, append-only log of notification events.

    Entries are kept in insertion order. When the log is full, appending evicts
    the oldest entry first. Appends from concurrent poll threads are serialised
    by `lock`; readers receive an immutable tuple copy.

    Writers that timestamp events hold `lock` across reading the clock and
    appending, so insertion order is also chronological order.

    Attributes:
        capacity (int): Maximum number of retained entries.
        lock (threading.RLock): Serialises writers and readers.
    """

    def __init__(self, capacity: int = NOTIFICATION_CAPACITY):
        """Initializes an empty log.

        Args:
            capacity (int): Maximum number of retained entries.

        Raises:
            ValueError: If `capacity` is negative.
        """
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self.capacity = capacity
        self._entries: deque[NotificationEvent] = deque(maxlen=capacity)
        self.lock = threading.RLock()

    def append(self, event: NotificationEvent) -> None:
        """Adds an event, evicting the oldest entry if the log is full."""
        with self.lock:
            self._entries.append(event)

    def extend(self, events: Iterable[NotificationEvent]) -> None:
        """Adds several events atomically, preserving their order."""
        with self.lock:
            self._entries.extend(events)

    def entries(self) -> tuple[NotificationEvent, ...]:
        """Returns the retained events, oldest first."""
        with self.lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)
