"""Module defining various global constants."""

# teensycache version
VERSION = "1.0.0"

# Snapshot format version
# The major version must be identical between the writer and the reader of a cache
# snapshot, otherwise the snapshot is discarded and the device is indexed again.
SNAPSHOT_VERSION = "1.0.0"

# Root of the device storage.
ROOT_PATH = "/"

# Directories on the device that the TeensyROM firmware and UI manage themselves.
FAVORITES_PATH = "/favorites/"
PLAYLIST_PATH = "/playlists/"
FIRMWARE_PATH = "/firmware/"

# Application ID used to derive stable identifiers for local storage devices
APP_ID = b"\x3c\x91\x0e\x5b\x72\xd4\x48\x16\xa9\x2f\x6d\x83\xe1\x07\xb5\xc8"
