"""Module with the service that answers storage requests from the cache where possible."""

from contextlib import closing
import threading
from typing import Callable, Iterable, List, Optional, Tuple

from teensycache.config import Config
from teensycache.constants import PLAYLIST_PATH
from teensycache.device import DeviceClient
from teensycache.events import Event, EventQueue
from teensycache.logger import log, Stopwatch, summarize
from teensycache.models import (
    CacheEntry,
    DirectoryContent,
    FileRecord,
    StorageScope,
)
import teensycache.paths as paths
from teensycache.storage.cache import StorageCache
from teensycache.storage.common import BanList, LockIndex
from teensycache.storage.persistence import CacheStore
import teensycache.storage.search as search
import teensycache.storage.selection as selection

# Hook that decorates freshly fetched files with metadata like titles and creators
Enricher = Callable[[List[FileRecord]], List[FileRecord]]


class CachedStorageService:
    """
    Storage operations of a device backed by a local cache of its directory tree.

    Every round-trip to the device costs hundreds of milliseconds, so directories are
    fetched once and answered from the cache from then on. Search and random selection
    never talk to the device at all: they only consider what has been cached, either by
    browsing or by indexing the whole storage with cache_all().

    Workflows that change the storage, like saving a favorite, first perform the change
    on the device and only update the cache once the device reports success. Device
    failures reported as a False result are logged and leave the cache untouched.
    Exceptions raised by the device client propagate, and while indexing they are also
    posted as EXCEPTION event.

    The cache is persisted to the snapshot store (if any) after every change, so that a
    later session can start from where this one left off.
    """

    def __init__(
        self,
        client: DeviceClient,
        config: Config,
        cache: Optional[StorageCache] = None,
        store: Optional[CacheStore] = None,
        events: Optional[EventQueue] = None,
        enricher: Optional[Enricher] = None,
    ):
        """Instantiate the service for the storage behind the given device client."""
        self._client = client
        self._config = config
        self._ban_list = BanList.from_config(config.bans)
        self._cache = cache or StorageCache(self._ban_list, config.favorites.roots)
        self._store = store
        self._events = events
        self._enricher = enricher

        self._fetch_locks = LockIndex()

    @property
    def cache(self) -> StorageCache:
        """Return the underlying cache."""
        return self._cache

    def _notify(self, event: Event, value=None) -> None:
        if self._events:
            self._events.notify(event, value)

    def _persist(self) -> None:
        if self._store:
            self._store.save(self._cache.snapshot())

    def load(self) -> int:
        """Initialize the cache from the snapshot store and return its file count."""
        entries = self._store.load() if self._store else {}
        self._cache.load(entries)

        count = self._cache.count()
        log.info(f"loaded {count} cached files in {len(entries)} directories")
        self._notify(Event.STORAGE_READY, count)

        return count

    def save(self) -> None:
        """Write the cache to the snapshot store."""
        self._persist()

    def cache_size(self) -> int:
        """Return the number of cached files."""
        return self._cache.count()

    def _prepare(self, content: DirectoryContent) -> CacheEntry:
        """Turn a fetched listing into a cache entry without banned items."""
        path = paths.normalize_directory(content.path)

        directories = [
            d for d in content.directories if not self._ban_list.is_banned_directory(d.path)
        ]
        files = [f for f in content.files if not self._ban_list.is_banned_file(f.name)]

        if self._enricher and files:
            files = list(self._enricher(files))

        return CacheEntry(path=path, directories=directories, files=files)

    def get_directory(self, path: str) -> Optional[CacheEntry]:
        """
        Return the listing of a directory from the cache or fetch it from the device.

        Entries that were only materialized as the ancestor of another path are
        incomplete and are fetched like missing ones. Concurrent requests for the same
        missing directory fetch it only once. None is returned if the directory is
        banned or does not exist on the device.
        """
        path = paths.normalize_directory(path)

        entry = self._cache.get_by_path(path)

        if entry is not None and not entry.materialized:
            log.debug(f"cache hit for {path}")
            return entry

        with self._fetch_locks.lock(path):
            # Another thread may have fetched it while we were waiting
            entry = self._cache.get_by_path(path)

            if entry is not None and not entry.materialized:
                return entry

            if self._cache.is_banned(path):
                log.debug(f"not fetching banned directory {path}")
                return None

            log.debug(f"cache miss for {path}")

            with Stopwatch() as stopwatch:
                content = self._client.fetch_directory(path)

            log.debug(f"fetched {path} in {stopwatch.elapsed:.3f}s")

            if content is None:
                return None

            entry = self._cache.upsert_directory(path, self._prepare(content))

        self._persist()
        self._notify(Event.DIRECTORY_CACHED, path)

        return entry

    def _exclude_paths(self, scope_path: Optional[str] = None) -> List[str]:
        """
        Return the directories whose files only duplicate files elsewhere.

        A directory that contains the scope path itself is not excluded, so that
        shuffling within the favorites still works.
        """
        excluded = [*self._cache.favorite_roots, PLAYLIST_PATH]

        if scope_path is None:
            return excluded

        return [p for p in excluded if not paths.is_within(scope_path, p)]

    def search(self, text: str, file_types: Iterable = ()) -> List[FileRecord]:
        """Search the cached files, excluding favorite copies and playlists."""
        results = search.search(
            self._cache.snapshot(),
            text,
            weights=self._config.search.weights,
            stop_words=self._config.search.stop_words,
            file_types=file_types,
            exclude_paths=self._exclude_paths(),
        )

        log.debug(f"search for {summarize(text, 64)!r} found {len(results)} files")

        return results

    def get_random_file(
        self, scope: StorageScope, scope_path: str = "/", file_types: Iterable = (),
    ) -> Optional[FileRecord]:
        """
        Pick a random cached file within a scope.

        None is returned if nothing in scope has been cached, in which case the caller
        should index the storage first.
        """
        record = selection.get_random_file(
            self._cache.snapshot(),
            scope,
            scope_path,
            file_types=file_types,
            exclude_paths=self._exclude_paths(scope_path),
        )

        if record is None:
            log.info(f"no cached files to pick from in {scope_path} ({scope.name})")

        return record

    def _store_copy(self, source: FileRecord, target: str) -> FileRecord:
        """
        Cache the copy of a file that was just created on the device.

        Copies into a favorites root become favorites linked with their source.
        """
        if self._cache.get_file_by_path(source.path) is None:
            self._cache.upsert_file(source)

        copy = source.copy(
            path=target,
            name=paths.file_name(target),
            is_favorite=False,
            fav_parent_path="",
            fav_child_path="",
        )

        if self._cache.is_favorite_path(target):
            copy = copy.copy(fav_parent_path=source.path)

        self._cache.upsert_file(copy)

        return self._cache.get_file_by_path(target) or copy

    def save_favorite(self, record: FileRecord) -> Optional[FileRecord]:
        """
        Copy a file into the favorites directory for its type and return the copy.

        None is returned if the device failed to copy the file.
        """
        source = self._cache.get_file_by_path(record.path) or record

        if self._cache.is_favorite_path(source.path):
            log.debug(f"{source.path} is already a favorite")
            return source

        if source.fav_child_path:
            existing = self._cache.get_file_by_path(source.fav_child_path)

            if existing is not None:
                return existing

        target = paths.combine(
            self._config.favorites.path_for(source.file_type), source.name
        )

        if not self._client.copy_file(source.path, target):
            log.error(f"failed to save {source.path} as favorite")
            return None

        favorite = self._store_copy(source, target)

        self._persist()
        self._notify(Event.FILES_ADDED, [favorite])
        log.info(f"saved {source.path} as favorite {target}")

        return favorite

    def _favorite_pair(
        self, record: FileRecord
    ) -> Tuple[Optional[FileRecord], Optional[FileRecord]]:
        """Look up the cached source and favorite copy of a file, from either side."""
        current = self._cache.get_file_by_path(record.path) or record

        if self._cache.is_favorite_path(current.path):
            copy = current

            if copy.fav_parent_path:
                source = self._cache.get_file_by_path(copy.fav_parent_path)
            else:
                source = self._cache.find_source_file(copy)

            return source, copy

        source = current
        copy = None

        if source.fav_child_path:
            copy = self._cache.get_file_by_path(source.fav_child_path)

        if copy is None:
            copy = self._cache.get_file_by_path(
                paths.combine(
                    self._config.favorites.path_for(source.file_type), source.name
                )
            )

        return source, copy

    def remove_favorite(self, record: FileRecord) -> Optional[FileRecord]:
        """
        Delete the favorite copy of a file and unflag its source.

        Either the source or the copy may be given. The updated source is returned, or
        None if the device failed to delete the copy or no source is cached.
        """
        source, copy = self._favorite_pair(record)

        if copy is not None:
            if not self._client.delete_file(copy.path):
                log.error(f"failed to remove favorite {copy.path}")
                return None

            self._cache.delete_file(copy.path)
        else:
            log.warning(f"no favorite copy of {record.path} is cached")

        if source is not None:
            source = source.copy(is_favorite=False, fav_child_path="")
            self._cache.upsert_file(source)

        self._persist()

        if copy is not None:
            self._notify(Event.FILES_DELETED, [copy])
        if source is not None:
            self._notify(Event.FILES_CHANGED, [source])

        return source

    def mark_incompatible(self, record: FileRecord) -> Optional[FileRecord]:
        """Flag a file, and its favorite counterpart, as not launchable on the device."""
        source, copy = self._favorite_pair(record)
        changed = []

        for r in (source, copy):
            if r is not None and self._cache.get_file_by_path(r.path) is not None:
                self._cache.upsert_file(r.copy(is_compatible=False))
                changed.append(self._cache.get_file_by_path(r.path))

        if not changed:
            log.warning(f"cannot mark {record.path} as incompatible, it is not cached")
            return None

        self._persist()
        self._notify(Event.FILES_CHANGED, changed)

        return self._cache.get_file_by_path(record.path)

    def copy_files(self, items: Iterable[Tuple[FileRecord, str]]) -> List[FileRecord]:
        """
        Copy files into target directories on the device and cache the copies.

        Files that the device failed to copy are skipped. The cached copies are
        returned.
        """
        copies = []

        for record, target_directory in items:
            target = paths.combine(target_directory, record.name)

            if not self._client.copy_file(record.path, target):
                log.error(f"failed to copy {record.path} to {target}")
                continue

            copies.append(self._store_copy(record, target))

        if copies:
            self._persist()
            self._notify(Event.FILES_ADDED, copies)

        return copies

    def delete_file(self, record: FileRecord) -> bool:
        """
        Delete a file on the device and from the cache.

        Deleting a favorite copy unflags its source and deleting a source unlinks its
        favorite copy.
        """
        source, copy = self._favorite_pair(record)

        if not self._client.delete_file(record.path):
            log.error(f"failed to delete {record.path}")
            return False

        self._cache.delete_file(record.path)
        changed = []

        if copy is not None and copy.path == record.path and source is not None:
            self._cache.upsert_file(source.copy(is_favorite=False, fav_child_path=""))
            changed.append(source.path)
        elif copy is not None and copy.path != record.path:
            self._cache.upsert_file(copy.copy(fav_parent_path=""))
            changed.append(copy.path)

        self._persist()
        self._notify(Event.FILES_DELETED, [record])

        if changed:
            self._notify(
                Event.FILES_CHANGED, [self._cache.get_file_by_path(p) for p in changed]
            )

        return True

    def clear_cache(self, path: Optional[str] = None) -> None:
        """Drop the whole cache and its snapshot, or only the subtree at a path."""
        if path is None or paths.is_root(path):
            self._cache.clear_cache()

            if self._store:
                self._store.delete()

            log.info("cleared storage cache")
        else:
            self._cache.delete_directory_with_children(path)
            self._persist()

            log.info(f"cleared storage cache for {paths.normalize_directory(path)}")

    def cache_all(
        self, path: str = "/", cancel: Optional[threading.Event] = None
    ) -> int:
        """
        Index a directory and all of its descendants and return the cached file count.

        The subtree is cleared first and then stored one directory at a time, so the
        cache stays responsive and valid throughout. Setting the cancel event stops
        indexing before the next directory and closes the walk over the device. If
        fetching fails, the directories stored up to that point remain cached and the
        exception is propagated.
        """
        path = paths.normalize_directory(path)

        self._cache.delete_directory_with_children(path)
        self._notify(Event.INDEX_STARTED, path)

        log.info(f"indexing {path}")

        stopwatch = Stopwatch()
        directories = 0

        try:
            with closing(self._client.fetch_directory_recursive(path)) as walk:
                for content in walk:
                    if cancel is not None and cancel.is_set():
                        log.info(f"indexing of {path} cancelled")
                        break

                    if self._cache.is_banned(content.path):
                        continue

                    entry = self._prepare(content)
                    self._cache.upsert_directory(entry.path, entry)

                    directories += 1
        except Exception as e:
            log.error(f"failed to index {path}: {e}")

            self._persist()

            if self._events:
                self._events.exception(e)

            raise

        self._cache.ensure_favorites()
        self._persist()

        count = self._cache.count()

        log.info(
            f"indexed {directories} directories in {stopwatch.elapsed:.1f}s,"
            f" {count} files cached"
        )
        self._notify(Event.INDEX_FINISHED, count)

        return count
