"""
Local mirror of the storage of a TeensyROM cartridge.

A TeensyROM exposes its SD card and USB stick over a serial link where every request
costs hundreds of milliseconds. Browsing a large collection of games and music that
way is slow and searching it is impossible, so teensycache keeps a local copy of the
directory tree. Directories are fetched once and answered locally from then on, and
the whole storage can be indexed in one go to enable free-text search and shuffling.

The package is made up of the following parts:

* paths: normalization of the Unix-style paths used on the device
* models: file records, directory listings and the enums describing them
* storage: the cache tree, search, random selection, launch history, and the service
that ties them to a device
* device: the interface to the device storage, with a local directory implementation
* config, logger, encoding, events: configuration, logging, serialization and change
notifications shared by all of the above
"""
