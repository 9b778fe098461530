"""Data structures used by multiple storage caching components."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import threading
from typing import Dict, Iterable, Iterator, List, Optional

from teensycache.config import BanConfig
import teensycache.paths as paths


@dataclass
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class LockIndex:
    """
    Collection of mutexes that serialize work on the same device directory.

    Its use case is to let only one thread at a time fetch a directory that is missing
    from the cache, while the others wait and then find it cached. Paths are normalized
    and compared case-insensitively like the FAT file systems on the device, so "/Games"
    and "/games/" share a lock. A lock only exists while a thread holds it or waits for
    it.
    """

    def __init__(self) -> None:
        """Instantiate a LockIndex."""
        self._guard = threading.Lock()
        self._slots: Dict[str, _Slot] = {}

    @staticmethod
    def _key(path: str) -> str:
        return paths.normalize_directory(path).lower()

    @contextmanager
    def lock(self, path: str, timeout: Optional[float] = None) -> Iterator[bool]:
        """
        Hold the lock of a directory for the duration of the block.

        Yields whether the lock was acquired. Without a timeout this waits as long as
        it takes, and a timeout of zero or less only tries once.
        """
        key = self._key(path)

        with self._guard:
            slot = self._slots.setdefault(key, _Slot())
            slot.users += 1

        if timeout is None:
            acquired = slot.lock.acquire()
        elif timeout <= 0:
            acquired = slot.lock.acquire(blocking=False)
        else:
            acquired = slot.lock.acquire(timeout=timeout)

        try:
            yield acquired
        finally:
            if acquired:
                slot.lock.release()

            with self._guard:
                slot.users -= 1

                if slot.users == 0:
                    del self._slots[key]

    @property
    def lock_count(self) -> int:
        """Return the number of directories with a lock in use."""
        with self._guard:
            return len(self._slots)


class BanList:
    """
    Case-insensitive substring filter for directories and files that are never cached.

    Directory fragments are matched against the full directory path with its outer
    slashes removed, so a fragment like "Docs" bans "/Docs/", "/games/Docs/" and
    "/games/MyDocs/". The root directory can never be banned.
    """

    def __init__(self, directories: Iterable[str] = (), files: Iterable[str] = ()):
        """Instantiate a ban list from directory and file name fragments."""
        self._directories = self._fragments(directories)
        self._files = self._fragments(files)

    @staticmethod
    def from_config(config: BanConfig) -> BanList:
        """Create a ban list from the configured fragments."""
        return BanList(config.directories, config.files)

    @staticmethod
    def _fragments(values: Iterable[str]) -> List[str]:
        fragments = [paths.strip_slashes(v.strip()).lower() for v in values]
        return [f for f in fragments if f]

    def is_banned_directory(self, path: str) -> bool:
        """Check if a directory path contains any of the banned fragments."""
        if paths.is_root(path):
            return False

        haystack = paths.strip_slashes(paths.normalize_directory(path)).lower()
        return any(fragment in haystack for fragment in self._directories)

    def is_banned_file(self, name: str) -> bool:
        """Check if a file name contains any of the banned fragments."""
        haystack = name.lower()
        return any(fragment in haystack for fragment in self._files)
