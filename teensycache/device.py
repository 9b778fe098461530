"""
Module with the interface to the device storage that the cache is filled from.

The serial protocol that talks to an actual TeensyROM lives elsewhere. The cache only
needs to list directories and to copy and delete files, so DeviceClient captures just
that. LocalStorageDevice implements it on top of a local directory, like a mounted SD
card or a mirror of one.
"""

from abc import ABC, abstractmethod
import hashlib
import os
import shutil
from typing import Generator, Optional

import teensycache.constants as constants
from teensycache.logger import log
from teensycache.models import DirectoryContent, DirectoryRef, FileRecord
import teensycache.paths as paths


class DeviceClient(ABC):
    """Storage operations of a device, one instance per device and storage type."""

    @abstractmethod
    def fetch_directory(self, path: str) -> Optional[DirectoryContent]:
        """List a single directory, or return None if it does not exist."""

    @abstractmethod
    def fetch_directory_recursive(
        self, path: str
    ) -> Generator[DirectoryContent, None, None]:
        """
        List a directory and all of its descendants, one directory at a time.

        Callers close the generator when they stop early, so a client that streams
        listings from the device can release its transport in a finally block.
        """

    @abstractmethod
    def copy_file(self, source: str, target: str) -> bool:
        """Copy a file on the device and return whether it succeeded."""

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """Delete a file on the device and return whether it succeeded."""


class LocalStorageDevice(DeviceClient):
    """Device storage backed by a directory on the local file system."""

    def __init__(self, root: str):
        """Instantiate a device that exposes the given directory as its storage."""
        self._root = os.path.abspath(root)

    @property
    def device_id(self) -> str:
        """Derive a stable identifier for the storage from the location of its root."""
        return hashlib.sha256(self._root.encode() + constants.APP_ID).hexdigest()[:32]

    def _local_path(self, path: str) -> str:
        """Translate a device path into a path on the local file system."""
        relative = paths.strip_slashes(paths.combine(path))
        return os.path.join(self._root, *relative.split("/")) if relative else self._root

    def _list(self, path: str, local_path: str) -> DirectoryContent:
        """Read the listing of a local directory into device form."""
        content = DirectoryContent(path=path)

        with os.scandir(local_path) as it:
            for dirent in it:
                if dirent.is_dir():
                    content.directories.append(
                        DirectoryRef.from_path(paths.combine(path, dirent.name + "/"))
                    )
                elif dirent.is_file():
                    content.files.append(
                        FileRecord.from_path(
                            paths.combine(path, dirent.name),
                            size=dirent.stat().st_size,
                        )
                    )

        content.directories.sort(key=lambda d: d.name)
        content.files.sort(key=lambda f: f.name)

        return content

    def fetch_directory(self, path: str) -> Optional[DirectoryContent]:
        """List a single directory, or return None if it does not exist."""
        path = paths.normalize_directory(path)
        local_path = self._local_path(path)

        if not os.path.isdir(local_path):
            log.debug(f"no directory at {path} on {self._root}")
            return None

        return self._list(path, local_path)

    def fetch_directory_recursive(
        self, path: str
    ) -> Generator[DirectoryContent, None, None]:
        """List a directory and all of its descendants, parents before children."""
        path = paths.normalize_directory(path)
        local_root = self._local_path(path)

        for dirpath, dirnames, _ in os.walk(local_root):
            dirnames.sort()

            relative = os.path.relpath(dirpath, local_root)
            parts = [] if relative == "." else relative.split(os.sep)
            device_path = paths.normalize_directory("/".join([path, *parts]))

            yield self._list(device_path, dirpath)

    def copy_file(self, source: str, target: str) -> bool:
        """Copy a file, creating the target directory if needed."""
        local_target = self._local_path(target)

        try:
            os.makedirs(os.path.dirname(local_target), exist_ok=True)
            shutil.copy2(self._local_path(source), local_target)
        except OSError as e:
            log.warning(f"failed to copy {source} to {target}: {e}")
            return False

        return True

    def delete_file(self, path: str) -> bool:
        """Delete a file."""
        try:
            os.remove(self._local_path(path))
        except OSError as e:
            log.warning(f"failed to delete {path}: {e}")
            return False

        return True
