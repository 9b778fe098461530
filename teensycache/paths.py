"""
Pure functions for the Unix-style paths used on the device storage.

Directory paths always start and end with a slash ("/games/crt/"), except for the root
which is just "/". File paths start with a slash and never end with one. Paths coming
from the device or from configuration may use backslashes, lack the leading slash or
contain repeated slashes, so every path that ends up as a cache key passes through
normalize_directory() or normalize_file() first.
"""

from typing import List, Optional

from teensycache.constants import ROOT_PATH


def _segments(path: str) -> List[str]:
    """Split a path into its non-empty components."""
    if path is None or not path.strip():
        raise ValueError("path must not be empty")

    return [s for s in path.replace("\\", "/").split("/") if s]


def normalize_directory(path: str) -> str:
    """Normalize a directory path to the "/dir/subdir/" form."""
    segments = _segments(path)

    if not segments:
        return ROOT_PATH

    return "/" + "/".join(segments) + "/"


def normalize_file(path: str) -> str:
    """Normalize a file path to the "/dir/file.ext" form."""
    segments = _segments(path)

    if not segments:
        raise ValueError(f"'{path}' does not name a file")

    return "/" + "/".join(segments)


def combine(base: str, *parts: str) -> str:
    """
    Combine path components into a single normalized path.

    The result is a directory path if the last component ends with a slash (or there
    are no components to add), and a file path otherwise.
    """
    last = parts[-1] if parts else base
    combined = "/".join([base, *parts])

    if last.replace("\\", "/").endswith("/") or not _segments(combined):
        return normalize_directory(combined)
    else:
        return normalize_file(combined)


def is_root(path: str) -> bool:
    """Return whether the path refers to the storage root."""
    return not _segments(path)


def parent_directory(path: str) -> Optional[str]:
    """
    Return the directory containing a file or directory path.

    The root has no parent, so None is returned for it.
    """
    segments = _segments(path)

    if not segments:
        return None
    elif len(segments) == 1:
        return ROOT_PATH
    else:
        return "/" + "/".join(segments[:-1]) + "/"


def file_name(path: str) -> str:
    """Return the last component of a path."""
    segments = _segments(path)
    return segments[-1] if segments else ""


def directory_name(path: str) -> str:
    """Return the name of a directory, which is "/" for the root."""
    segments = _segments(path)
    return segments[-1] if segments else ROOT_PATH


def file_extension(path: str) -> str:
    """Return the lower case extension of a path including the dot, if any."""
    name = file_name(path)
    dot = name.rfind(".")

    if dot <= 0:
        return ""

    return name[dot:].lower()


def is_within(path: str, root: str) -> bool:
    """
    Check if a path is the root path itself or located somewhere below it.

    Containment is decided on component boundaries and ignores case, since the FAT
    file systems used on the device are case-insensitive. In other words, "/games2/"
    is not within "/games/", but "/GAMES/crt/" is.
    """
    path_segments = [s.lower() for s in _segments(path)]
    root_segments = [s.lower() for s in _segments(root)]

    return path_segments[: len(root_segments)] == root_segments


def strip_slashes(path: str) -> str:
    """Remove a single leading and trailing slash, e.g. for substring matching."""
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]

    return path
