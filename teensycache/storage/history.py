"""Back and forward navigation through previously launched files."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Iterable, List, Optional

from teensycache.models import FileRecord, FileType


@dataclass(frozen=True)
class HistoryEntry:
    """Launched file with its position in the sequence of launches."""

    index: int
    record: FileRecord


class LaunchHistory:
    """
    Sequence of launched files with a cursor, like the history of a web browser.

    Launching a file after going back discards the entries past the cursor, so the
    abandoned forward branch can no longer be reached. Navigation can be restricted to
    files of certain types, in which case entries of other types are skipped over but
    remain in the history.

    Entries are identified by a sequence index that is never reused, so the cursor
    stays valid when entries are removed. The oldest entries are dropped once there
    are more than max_entries of them.
    """

    def __init__(self, max_entries: int = 1000):
        """Instantiate an empty history."""
        self._max_entries = max_entries

        self._entries: List[HistoryEntry] = []
        self._next_index = 0
        self._cursor = -1
        self._current_is_new = False

        self._lock = threading.Lock()

    @property
    def entries(self) -> List[HistoryEntry]:
        """Return all entries in the order they were added."""
        with self._lock:
            return list(self._entries)

    @property
    def current(self) -> Optional[FileRecord]:
        """Return the file at the cursor, if any."""
        with self._lock:
            for entry in self._entries:
                if entry.index == self._cursor:
                    return entry.record

            return None

    @property
    def current_is_new(self) -> bool:
        """Return whether the file at the cursor was added rather than navigated to."""
        return self._current_is_new

    def add(self, record: FileRecord) -> None:
        """Append a launched file after the cursor and move the cursor to it."""
        with self._lock:
            self._entries = [e for e in self._entries if e.index <= self._cursor]
            self._entries.append(HistoryEntry(self._next_index, record))

            self._cursor = self._next_index
            self._next_index += 1
            self._current_is_new = True

            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._max_entries]

    def remove(self, record: FileRecord) -> None:
        """
        Remove the first entry of a file from the history.

        If the removed entry was at the cursor, the cursor moves back to the entry
        before it.
        """
        with self._lock:
            position = next(
                (i for i, e in enumerate(self._entries) if e.record.path == record.path),
                None,
            )

            if position is None:
                return

            removed = self._entries.pop(position)

            if removed.index == self._cursor:
                self._cursor = self._entries[position - 1].index if position > 0 else -1
                self._current_is_new = False

    def clear(self) -> None:
        """Remove all entries and reset the cursor."""
        with self._lock:
            self._entries = []
            self._cursor = -1
            self._current_is_new = False

    def get_previous(self, file_types: Iterable[Any] = ()) -> Optional[FileRecord]:
        """
        Move the cursor back to the closest earlier file of one of the given types.

        All types are allowed if none are given. None is returned and the cursor is
        left alone if there is no such file.
        """
        types = {FileType.parse(t) for t in file_types}

        with self._lock:
            for entry in reversed(self._entries):
                if entry.index < self._cursor and self._allowed(entry, types):
                    return self._move_to(entry)

            return None

    def get_next(self, file_types: Iterable[Any] = ()) -> Optional[FileRecord]:
        """
        Move the cursor forward to the closest later file of one of the given types.

        All types are allowed if none are given. None is returned and the cursor is
        left alone if there is no such file.
        """
        types = {FileType.parse(t) for t in file_types}

        with self._lock:
            for entry in self._entries:
                if entry.index > self._cursor and self._allowed(entry, types):
                    return self._move_to(entry)

            return None

    @staticmethod
    def _allowed(entry: HistoryEntry, types: set) -> bool:
        return not types or entry.record.file_type in types

    def _move_to(self, entry: HistoryEntry) -> FileRecord:
        self._cursor = entry.index
        self._current_is_new = False

        return entry.record
