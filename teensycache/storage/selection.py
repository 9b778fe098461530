"""Random selection of cached files within a scope of the storage."""

import random
from typing import Any, Dict, Iterable, List, Optional

from teensycache.models import CacheEntry, FileRecord, resolve_file_types, StorageScope
import teensycache.paths as paths


def _in_scope(directory: str, scope: StorageScope, scope_path: str) -> bool:
    """Check if files in a directory are eligible for selection within a scope."""
    if scope == StorageScope.STORAGE:
        return True
    elif scope == StorageScope.DIR_DEEP:
        return paths.is_within(directory, scope_path)
    elif scope == StorageScope.DIR_SHALLOW:
        if not paths.is_within(directory, scope_path):
            return False

        # Either the scope directory itself or one of its immediate subdirectories
        parent = paths.parent_directory(directory)
        return paths.is_within(scope_path, directory) or (
            parent is not None and paths.is_within(scope_path, parent)
        )
    else:
        raise ValueError(f"unknown storage scope {scope}")


def select_candidates(
    entries: Dict[str, CacheEntry],
    scope: StorageScope,
    scope_path: str,
    file_types: Iterable[Any] = (),
    exclude_paths: Iterable[str] = (),
) -> List[FileRecord]:
    """
    Collect the cached files that random selection can pick from.

    The whole storage scope ignores the scope path. The shallow scope covers the files
    directly in the scope path and in its immediate subdirectories, while the deep scope
    covers the scope path and all of its descendants.
    """
    scope_path = paths.normalize_directory(scope_path)
    types = resolve_file_types(file_types)
    exclude_paths = list(exclude_paths)

    candidates = []

    for path, entry in entries.items():
        if not _in_scope(path, scope, scope_path):
            continue

        if any(paths.is_within(path, excluded) for excluded in exclude_paths):
            continue

        candidates.extend(f for f in entry.files if f.file_type in types)

    return candidates


def get_random_file(
    entries: Dict[str, CacheEntry],
    scope: StorageScope,
    scope_path: str,
    file_types: Iterable[Any] = (),
    exclude_paths: Iterable[str] = (),
    rng: Optional[random.Random] = None,
) -> Optional[FileRecord]:
    """
    Pick a uniformly random cached file within a scope.

    Only what is cached is considered. None is returned if there are no candidates, in
    which case it is up to the caller to index the storage first.
    """
    candidates = select_candidates(entries, scope, scope_path, file_types, exclude_paths)

    if not candidates:
        return None

    return (rng or random).choice(candidates).copy()
