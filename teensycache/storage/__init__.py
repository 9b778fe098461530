"""
Modules that take care of caching and querying the directory tree of a device.

The cache tree in 'cache' is the single source of truth and the only thing that is
mutated. Search and random selection work on point-in-time snapshots of it, so they
never block indexing for longer than it takes to copy the entries, and never observe a
half-applied change. The service in 'service' fetches from the device on cache misses
and drives the workflows that change the storage, like saving favorites.
"""

from .cache import StorageCache
from .history import LaunchHistory
from .persistence import CacheStore
from .service import CachedStorageService

__all__ = [
    "CachedStorageService",
    "CacheStore",
    "LaunchHistory",
    "StorageCache",
]
