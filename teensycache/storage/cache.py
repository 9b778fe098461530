"""Module that implements the in-memory directory tree mirroring the device storage."""

from __future__ import annotations

import collections
import threading
from typing import Dict, Iterable, List, Optional, Set

from teensycache.logger import log
from teensycache.models import CacheEntry, DirectoryRef, FileRecord
import teensycache.paths as paths
from teensycache.storage.common import BanList

# Fields that a favorite copy takes over from its source file
PARENT_METADATA = ("title", "creator", "description", "release_info", "metadata_source")


class StorageCache:
    """
    Mapping from normalized directory paths to the cached listing of that directory.

    The cache is designed around the idea that the device is very slow to talk to, so
    anything that was fetched once should be answerable locally from then on. Entries
    only reference their subdirectories by path and are looked up fresh in the mapping
    when needed, so there are no object references between entries at all.

    The tree maintains a few invariants on every insert:

    * Every entry is reachable from the root. Missing ancestors of an inserted path are
    materialized as empty entries and every parent references its children.
    * Nothing that matches the ban list is ever stored. Filtering is re-applied on every
    insert, so content that was cached before a ban list change only disappears when it
    is inserted again or the cache is cleared.
    * Files inside a favorites root are favorite copies. They are flagged as favorite
    and linked to their source file (through fav_parent_path), which in turn is flagged
    as favorite and linked back to its copy (through fav_child_path). Copies carry the
    metadata of their source.

    Linking needs to find sources by identity and copies by source path. Both lookups
    are served from indexes that are updated along with every stored record, so the
    cost of an insert does not grow with the size of the tree.

    All reads and writes happen under a single re-entrant lock, so readers never observe
    a partially applied mutation. Records handed out by the cache are copies, and
    records stored in the cache are never mutated in place but replaced, which makes it
    safe for snapshots to share them.
    """

    def __init__(
        self, ban_list: Optional[BanList] = None, favorite_roots: Iterable[str] = (),
    ):
        """Instantiate an empty cache that uses the given ban list and favorites roots."""
        self._ban_list = ban_list or BanList()
        self._favorite_roots = [paths.normalize_directory(r) for r in favorite_roots]

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        # File identity -> paths of non-favorite files with that identity
        self._sources: Dict[str, Set[str]] = collections.defaultdict(set)
        # Source path -> path of its linked favorite copy
        self._copies: Dict[str, str] = {}

    def __len__(self) -> int:
        """Return the number of cached directory entries."""
        with self._lock:
            return len(self._entries)

    def count(self) -> int:
        """Return the number of cached files."""
        with self._lock:
            return sum(len(e.files) for e in self._entries.values())

    @property
    def favorite_roots(self) -> List[str]:
        """Return the directories containing favorite copies."""
        return list(self._favorite_roots)

    def is_favorite_path(self, path: str) -> bool:
        """Check if a file or directory is located in one of the favorites roots."""
        return any(paths.is_within(path, root) for root in self._favorite_roots)

    def is_banned(self, path: str) -> bool:
        """Check if a directory path is excluded by the ban list."""
        return self._ban_list.is_banned_directory(path)

    def upsert_directory(self, path: str, entry: CacheEntry) -> Optional[CacheEntry]:
        """
        Store the listing of a directory, replacing any previously cached listing.

        Banned subdirectories and files are filtered out of the listing before it is
        stored and a banned directory is not stored at all. References to
        subdirectories that are cached themselves are kept even if the new listing
        lacks them, so that no cached entry becomes unreachable, unless they have been
        banned in the meantime.

        A copy of the stored entry is returned, or None if the directory is banned.
        """
        path = paths.normalize_directory(path)

        with self._lock:
            if self.is_banned(path):
                log.debug(f"not caching banned directory {path}")
                return None

            stored = self._clean_entry(path, entry)
            previous = self._entries.pop(path, None)

            if previous is not None:
                self._unindex(previous.files)

                for ref in previous.directories:
                    if ref.path in self._entries and not self.is_banned(ref.path):
                        stored.insert_subdirectory(ref)

            if self.is_favorite_path(path):
                stored.files = [self._link_favorite(f) for f in stored.files]
            else:
                stored.files = [self._link_source(f) for f in stored.files]

            self._entries[path] = stored
            self._index(stored.files)
            self._ensure_parents(path)

            return stored.copy(deep=True)

    def upsert_file(self, record: FileRecord) -> None:
        """
        Insert a file into the listing of its directory or replace the one with its name.

        The directory and its ancestors are materialized if they are not cached yet.
        Files with a banned name or in a banned directory are ignored.
        """
        path = paths.normalize_file(record.path)
        name = paths.file_name(path)
        directory = paths.parent_directory(path)

        with self._lock:
            if self._ban_list.is_banned_file(name) or self.is_banned(directory):
                log.debug(f"not caching banned file {path}")
                return

            record = record.copy(path=path, name=name)

            if self.is_favorite_path(directory):
                record = self._link_favorite(record)
            else:
                record = self._link_source(record)

            self._ensure_parents(directory)
            self._store_file(record)

    def ensure_parents(self, path: str) -> None:
        """
        Make sure that a directory and all of its ancestors have an entry.

        Missing entries are materialized and every parent is linked to its child. Banned
        paths are left alone.
        """
        path = paths.normalize_directory(path)

        with self._lock:
            if not self.is_banned(path):
                self._ensure_parents(path)

    def delete_directory(self, path: str) -> None:
        """Remove the entry of a single directory, leaving its descendants cached."""
        path = paths.normalize_directory(path)

        with self._lock:
            entry = self._entries.pop(path, None)

            if entry is not None:
                self._unindex(entry.files)

    def delete_directory_with_children(self, path: str) -> None:
        """Remove the entry of a directory and the entries of all cached descendants."""
        path = paths.normalize_directory(path)

        with self._lock:
            doomed = [p for p in self._entries if p.startswith(path)]

            for p in doomed:
                self._unindex(self._entries.pop(p).files)

            log.debug(f"removed {len(doomed)} cached directories under {path}")

    def delete_file(self, path: str) -> bool:
        """Remove a single file from the cache and return whether it was cached."""
        path = paths.normalize_file(path)

        with self._lock:
            entry = self._entries.get(paths.parent_directory(path))
            record = entry.find_file(path) if entry else None

            if record is None:
                return False

            self._unindex([record])

            return entry.delete_file(path)

    def clear_cache(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()
            self._sources.clear()
            self._copies.clear()

    def get_by_path(self, path: str) -> Optional[CacheEntry]:
        """Return a copy of the cached listing of a directory, if any."""
        path = paths.normalize_directory(path)

        with self._lock:
            if self.is_banned(path):
                return None

            entry = self._entries.get(path)

            return entry.copy(deep=True) if entry else None

    def get_file_by_path(self, path: str) -> Optional[FileRecord]:
        """Return a copy of the cached record of a file, if any."""
        with self._lock:
            record = self._find_file(path)

            return record.copy() if record else None

    def get_files_by_name(self, name: str) -> List[FileRecord]:
        """Return copies of all cached files with the given name, in any directory."""
        with self._lock:
            return [
                f.copy()
                for entry in self._entries.values()
                for f in entry.files
                if f.name == name
            ]

    def find_source_file(self, record: FileRecord) -> Optional[FileRecord]:
        """
        Find the source of a favorite copy by its identity (size and name).

        Only files outside of the favorites roots are considered.
        """
        with self._lock:
            source = self._find_source(record)

            return source.copy() if source else None

    def ensure_favorites(self) -> None:
        """
        Re-apply the favorite invariant to every cached favorite copy.

        Bulk indexing may cache favorite copies before their sources, in which case the
        links could not be established on insert.
        """
        with self._lock:
            linked = 0

            for path, entry in self._entries.items():
                if not self.is_favorite_path(path):
                    continue

                self._unindex(entry.files)
                entry.files = [self._link_favorite(f) for f in entry.files]
                self._index(entry.files)

                linked += sum(1 for f in entry.files if f.fav_parent_path)

            log.debug(f"linked {linked} favorite copies to their source files")

    def snapshot(self) -> Dict[str, CacheEntry]:
        """
        Return a consistent point-in-time copy of all entries.

        File records are shared with the cache, but since records are never mutated in
        place the snapshot is unaffected by later changes.
        """
        with self._lock:
            return {path: entry.copy() for path, entry in self._entries.items()}

    def load(self, entries: Dict[str, CacheEntry]) -> None:
        """Replace the whole tree with previously snapshotted entries."""
        with self._lock:
            self.clear_cache()

            for path, entry in entries.items():
                path = paths.normalize_directory(path)

                self._entries[path] = entry.copy(deep=True)
                self._index(self._entries[path].files)

    def _clean_entry(self, path: str, entry: CacheEntry) -> CacheEntry:
        """Create a sorted copy of a listing without banned or duplicate items."""
        directories: Dict[str, DirectoryRef] = {}

        for ref in entry.directories:
            ref_path = paths.normalize_directory(ref.path)

            if not self.is_banned(ref_path):
                directories[ref_path] = DirectoryRef.from_path(ref_path)

        files: Dict[str, FileRecord] = {}

        for record in entry.files:
            name = record.name or paths.file_name(record.path)

            if not self._ban_list.is_banned_file(name):
                files[name] = record.copy(path=paths.combine(path, name), name=name)

        return CacheEntry(
            path=path,
            directories=sorted(directories.values(), key=lambda d: d.name),
            files=sorted(files.values(), key=lambda f: f.name),
            materialized=False,
        )

    def _ensure_parents(self, path: str) -> None:
        """Materialize a directory and its ancestors and link them up to the root."""
        if path not in self._entries:
            self._entries[path] = CacheEntry(path=path, materialized=True)

        child = path
        parent = paths.parent_directory(child)

        while parent is not None:
            if parent not in self._entries:
                self._entries[parent] = CacheEntry(path=parent, materialized=True)

            self._entries[parent].insert_subdirectory(DirectoryRef.from_path(child))

            child = parent
            parent = paths.parent_directory(child)

    def _find_file(self, path: str) -> Optional[FileRecord]:
        """Look up the stored record of a file without copying it."""
        path = paths.normalize_file(path)
        entry = self._entries.get(paths.parent_directory(path))

        return entry.find_file(path) if entry else None

    def _find_source(self, record: FileRecord) -> Optional[FileRecord]:
        """Look up the stored non-favorite file with the identity of a record."""
        candidates = self._sources.get(record.id)

        if not candidates:
            return None

        return self._find_file(min(candidates))

    def _store_file(self, record: FileRecord) -> None:
        """Put a record into the already cached entry of its directory."""
        entry = self._entries[record.directory]
        previous = entry.find_file(record.path)

        if previous is not None:
            self._unindex([previous])

        entry.upsert_file(record)
        self._index([record])

    def _index(self, records: Iterable[FileRecord]) -> None:
        for record in records:
            if not self.is_favorite_path(record.directory):
                self._sources[record.id].add(record.path)
            elif record.fav_parent_path:
                self._copies[record.fav_parent_path] = record.path

    def _unindex(self, records: Iterable[FileRecord]) -> None:
        for record in records:
            if not self.is_favorite_path(record.directory):
                candidates = self._sources.get(record.id)

                if candidates is not None:
                    candidates.discard(record.path)

                    if not candidates:
                        del self._sources[record.id]
            elif self._copies.get(record.fav_parent_path) == record.path:
                del self._copies[record.fav_parent_path]

    def _link_favorite(self, record: FileRecord) -> FileRecord:
        """
        Flag a file in a favorites root as favorite and link it with its source.

        The source is resolved through an existing fav_parent_path first and by identity
        otherwise. The source record is replaced to point back at the copy and the copy
        takes over the metadata of the source.
        """
        record = record.copy(is_favorite=True)
        source = None

        if record.fav_parent_path:
            source = self._find_file(record.fav_parent_path)

        if source is None:
            source = self._find_source(record)

        if source is None:
            log.debug(f"no source file cached for favorite {record.path}")
            return record

        self._store_file(source.copy(is_favorite=True, fav_child_path=record.path))

        metadata = {name: getattr(source, name) for name in PARENT_METADATA}

        return record.copy(fav_parent_path=source.path, **metadata)

    def _link_source(self, record: FileRecord) -> FileRecord:
        """Link a file outside the favorites roots to its cached favorite copy, if any."""
        copy_path = self._copies.get(record.path)

        if copy_path is None:
            return record

        return record.copy(is_favorite=True, fav_child_path=copy_path)
