"""Module that persists snapshots of a storage cache to disk between sessions."""

import os
from typing import Dict
import uuid

import fasteners
import lz4.frame
from semver import VersionInfo

import teensycache.constants as constants
from teensycache.encoding import Encoding
from teensycache.logger import log
from teensycache.models import CacheEntry, StorageType


class CacheStore:
    """
    Snapshot file of the cache of a single device and storage type.

    Snapshots are serialized with MessagePack and compressed with LZ4, because a fully
    indexed SD card easily holds tens of thousands of files and the snapshot is read on
    every connection to the device.

    The snapshot file is guarded by an inter-process lock, since multiple processes may
    talk to the same device over time, and it is written to a temporary file first and
    then moved into place so that it is never observed half-written.

    Snapshots carry the format version that wrote them. A snapshot with a different
    major version is discarded, which simply means the storage is indexed again.
    """

    def __init__(self, base_path: str, device_id: str, storage_type: StorageType):
        """Instantiate a store for the given device and storage type."""
        self._base_path = base_path
        self._device_id = device_id
        self._storage_type = storage_type

        self._encoding = Encoding(CacheEntry)

    @property
    def path(self) -> str:
        """Return the path to the snapshot file."""
        return os.path.join(
            self._base_path, f"{self._storage_type.value}-{self._device_id}.cache"
        )

    @property
    def _lock_path(self) -> str:
        """Return the path to the snapshot file lock."""
        return f"{self.path}.lock"

    def load(self) -> Dict[str, CacheEntry]:
        """
        Read the entries of the snapshot.

        A missing, unreadable or incompatible snapshot is not a fatal error since the
        storage can always be indexed again, so an empty mapping is returned instead.
        """
        if not os.path.exists(self.path):
            log.debug(f"no cache snapshot at {self.path}")
            return {}

        try:
            with fasteners.InterProcessLock(self._lock_path):
                with open(self.path, "rb") as f:
                    snapshot = self._encoding.unpack(lz4.frame.decompress(f.read()))

            version = VersionInfo.parse(snapshot["version"])
            entries = snapshot["entries"]
        except Exception as e:
            log.error(f"failed to read cache snapshot {self.path}: {e}")
            return {}

        if version.major != VersionInfo.parse(constants.SNAPSHOT_VERSION).major:
            log.warning(
                f"discarding incompatible cache snapshot"
                f" ({version} != {constants.SNAPSHOT_VERSION})"
            )
            return {}

        log.debug(f"loaded {len(entries)} cached directories from {self.path}")

        return entries

    def save(self, entries: Dict[str, CacheEntry]) -> None:
        """Write the entries to the snapshot, replacing the previous one."""
        os.makedirs(self._base_path, exist_ok=True)

        data = lz4.frame.compress(
            self._encoding.pack(
                {"version": constants.SNAPSHOT_VERSION, "entries": entries}
            )
        )

        temp_path = os.path.join(self._base_path, f".{uuid.uuid4().hex}.tmp")

        with fasteners.InterProcessLock(self._lock_path):
            try:
                with open(temp_path, "wb") as f:
                    f.write(data)

                os.replace(temp_path, self.path)
            finally:
                if os.path.exists(temp_path):
                    os.remove(temp_path)

        log.debug(f"saved {len(entries)} cached directories to {self.path}")

    def delete(self) -> None:
        """Remove the snapshot, if there is one."""
        with fasteners.InterProcessLock(self._lock_path):
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass
