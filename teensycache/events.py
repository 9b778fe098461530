"""
Module with utilities for reporting changes to the cache across threads.

The cached storage service is used from multiple threads at once: a UI thread asking
for directories, a background thread indexing the whole storage, and so on. Instead of
callbacks, the service posts events to an optional central queue that whoever is
interested drains or waits upon. Every event carries a value, like the path of a
cached directory or the file records that were added.

Tests use the queue to assert that operations happen in the expected order:

def test_index():
    q = EventQueue()
    service = CachedStorageService(client, config, events=q)

    start_thread(service.cache_all, "/")

    q.expect(Event.INDEX_STARTED)
    q.expect(Event.INDEX_FINISHED)

Any deviation from this raises an exception, including exceptions posted by the
indexing thread itself.
"""

from __future__ import annotations

from enum import auto, Enum
import queue
from typing import Any, List, Tuple, Union


class Event(Enum):
    """Types of events."""

    # Cache lifecycle
    STORAGE_READY = auto()
    DIRECTORY_CACHED = auto()

    # File changes, with the affected file records as value
    FILES_ADDED = auto()
    FILES_CHANGED = auto()
    FILES_DELETED = auto()

    # Bulk indexing
    INDEX_STARTED = auto()
    INDEX_FINISHED = auto()

    EXCEPTION = auto()


class UnexpectedEvent(Exception):
    """Exception raised when an event occurs that is not being waited upon."""

    def __init__(
        self,
        message: str,
        expected_event: Event,
        actual_event: Event,
        actual_value: Any,
    ) -> None:
        """Instantiate the exception with a description of what happened."""
        super().__init__(message, expected_event, actual_event, actual_value)

        self.message = message

        self.expected_event = expected_event
        self.actual_event = actual_event
        self.actual_value = actual_value


class EventQueue:
    """Thread-safe queue of events that can be notified of and waited upon."""

    def __init__(self) -> None:
        """Instantiate a new EventQueue."""
        self._queue: queue.Queue[Tuple[Event, Any]] = queue.Queue()

    def notify(self, event: Event, value: Any = None) -> None:
        """Post an event and any associated value to the queue."""
        self._queue.put((event, value))

    def exception(self, exception: Union[Exception, str]) -> None:
        """Post an exception event to the queue."""
        if isinstance(exception, Exception):
            self.notify(Event.EXCEPTION, exception)
        else:
            self.notify(Event.EXCEPTION, RuntimeError(exception))

    def expect(self, expected_event: Event, timeout: float = None) -> Any:
        """Wait for the next event on the queue and check if it matches."""
        event, value = self._queue.get(timeout=timeout)

        if event == expected_event:
            return value
        elif event == Event.EXCEPTION:
            raise value
        else:
            raise UnexpectedEvent(
                f"expected {expected_event}, but got {event}",
                expected_event,
                event,
                value,
            )

    def drain(self) -> List[Tuple[Event, Any]]:
        """Remove and return all events currently on the queue without waiting."""
        events = []

        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
