"""Data structures shared by the cache, the query engine and the device clients."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import auto, Enum
from typing import Any, FrozenSet, Iterable, List, Optional, Union

from teensycache.constants import ROOT_PATH
import teensycache.paths as paths


class FileType(Enum):
    """Types of files known to the device, identified by their extension."""

    SID = ".sid"
    CRT = ".crt"
    PRG = ".prg"
    P00 = ".p00"
    D64 = ".d64"
    HEX = ".hex"
    KLA = ".kla"
    KOA = ".koa"
    ART = ".art"
    AAS = ".aas"
    HPI = ".hpi"
    SEQ = ".seq"
    TXT = ".txt"
    NFO = ".nfo"
    ZIP = ".zip"
    UNKNOWN = ""

    @staticmethod
    def from_path(path: str) -> FileType:
        """Determine the file type from the extension of a path."""
        try:
            return FileType(paths.file_extension(path))
        except ValueError:
            return FileType.UNKNOWN

    @staticmethod
    def parse(tag: Union[FileType, str]) -> FileType:
        """
        Turn a file type tag like "sid" or ".SID" into a FileType.

        Undefined tags are a programming error rather than an expected condition, so
        they raise a ValueError instead of mapping to UNKNOWN.
        """
        if isinstance(tag, FileType):
            return tag

        if isinstance(tag, str):
            try:
                return FileType[tag.strip().lstrip(".").upper()]
            except KeyError:
                pass

        raise ValueError(f"undefined file type {tag!r}")

    @property
    def is_launchable(self) -> bool:
        """Return whether files of this type can be launched on the device."""
        return self not in (FileType.HEX, FileType.ZIP, FileType.UNKNOWN)


def launchable_file_types() -> FrozenSet[FileType]:
    """Return all file types that can be launched on the device."""
    return frozenset(t for t in FileType if t.is_launchable)


def resolve_file_types(file_types: Iterable[Any]) -> FrozenSet[FileType]:
    """Parse a file type filter, where an empty filter means all launchable types."""
    resolved = frozenset(FileType.parse(t) for t in file_types)
    return resolved or launchable_file_types()


class StorageType(Enum):
    """Storage media of the device. Each has its own cache."""

    SD = "sd"
    USB = "usb"


class StorageScope(Enum):
    """Subset of the cached tree that random selection picks from."""

    # Every cached file on the storage.
    STORAGE = auto()

    # Files in the scope directory and its direct subdirectories.
    DIR_SHALLOW = auto()

    # Files in the scope directory and all of its descendants.
    DIR_DEEP = auto()


@dataclass
class FileRecord:
    """
    Cached information about a single file on the device.

    The favorite relationship between a file and its copy in a favorites directory is
    stored as two one-directional path references: the source points at its copy
    through fav_child_path and the copy points back at its source through
    fav_parent_path. Both are looked up in the cache when needed, so the records
    never hold references to each other.

    Title, creator, description, tags and release info are filled in by metadata
    enrichment and are what free-text search matches against, along with the name.
    """

    path: str
    name: str = ""
    size: int = 0
    file_type: FileType = FileType.UNKNOWN

    is_favorite: bool = False
    fav_parent_path: str = ""
    fav_child_path: str = ""
    is_compatible: bool = True

    title: str = ""
    creator: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)
    release_info: str = ""
    metadata_source: str = ""

    @staticmethod
    def from_path(path: str, size: int = 0, **fields: Any) -> FileRecord:
        """Create a record for a file path, deriving its name, type and title."""
        path = paths.normalize_file(path)
        name = paths.file_name(path)

        stem = name[: name.rfind(".")] if name.rfind(".") > 0 else name
        fields.setdefault("title", stem)

        return FileRecord(
            path=path,
            name=name,
            size=size,
            file_type=FileType.from_path(path),
            **fields,
        )

    @property
    def id(self) -> str:
        """Identity used to match a favorite copy with its source file."""
        return f"{self.size}{self.name}"

    @property
    def directory(self) -> str:
        """Return the directory containing this file."""
        return paths.parent_directory(self.path) or ROOT_PATH

    def copy(self, **changes: Any) -> FileRecord:
        """Copy the record, optionally with some fields changed."""
        return dataclasses.replace(self, **{"tags": list(self.tags), **changes})


@dataclass
class DirectoryRef:
    """Reference to a child directory by name and path."""

    name: str
    path: str

    @staticmethod
    def from_path(path: str) -> DirectoryRef:
        """Create a reference to the directory at the given path."""
        path = paths.normalize_directory(path)
        return DirectoryRef(name=paths.directory_name(path), path=path)


@dataclass
class CacheEntry:
    """
    Cached listing of a single directory on the device.

    Subdirectories are referenced by path rather than by their own cache entries,
    which are looked up fresh in the cache when needed. Both subdirectories and files
    are kept ordered by name.

    An entry is materialized if it was created because it is the ancestor of a cached
    path, rather than fetched from the device. Its listing is incomplete.
    """

    path: str
    directories: List[DirectoryRef] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)
    materialized: bool = False

    def copy(self, deep: bool = False) -> CacheEntry:
        """
        Copy the entry and its listings.

        File records are shared with the original entry unless a deep copy is made.
        """
        return CacheEntry(
            path=self.path,
            directories=list(self.directories),
            files=[f.copy() for f in self.files] if deep else list(self.files),
            materialized=self.materialized,
        )

    def find_file(self, path: str) -> Optional[FileRecord]:
        """Find a file in this directory by its path."""
        for record in self.files:
            if record.path == path:
                return record

        return None

    def upsert_file(self, record: FileRecord) -> None:
        """Insert a file or replace the one with the same name."""
        self.files = [f for f in self.files if f.name != record.name]
        self.files.append(record)
        self.files.sort(key=lambda f: f.name)

    def delete_file(self, path: str) -> bool:
        """Remove a file from this directory and return whether it was present."""
        count = len(self.files)
        self.files = [f for f in self.files if f.path != path]

        return len(self.files) != count

    def insert_subdirectory(self, ref: DirectoryRef) -> None:
        """Add a subdirectory reference unless it is already present."""
        if any(d.path == ref.path for d in self.directories):
            return

        self.directories.append(ref)
        self.directories.sort(key=lambda d: d.name)


@dataclass
class DirectoryContent:
    """Raw listing of a directory as returned by the device."""

    path: str
    files: List[FileRecord] = field(default_factory=list)
    directories: List[DirectoryRef] = field(default_factory=list)
