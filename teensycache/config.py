"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field
import os
from typing import Dict, List

from teensycache.constants import FAVORITES_PATH, FIRMWARE_PATH
from teensycache.logger import log
from teensycache.models import FileType
import teensycache.paths as paths


def _parse_list(value: str) -> List[str]:
    """Parse a comma or newline separated list of values from a config file."""
    items = value.replace("\n", ",").split(",")
    return [item.strip() for item in items if item.strip()]


@dataclass
class CacheConfig:
    """Configuration variables related to cache snapshots on disk."""

    path: str = os.path.expanduser("~/.teensycache/cache")

    @staticmethod
    def load(section: SectionProxy) -> CacheConfig:
        """Load overridden variables from a section within a config file."""
        config = CacheConfig()

        config.path = os.path.expanduser(section.get("path", fallback=config.path))

        return config


@dataclass
class BanConfig:
    """
    Directories and files that are never cached.

    Entries are matched as case-insensitive substrings of directory paths and file
    names, respectively.
    """

    directories: List[str] = field(
        default_factory=lambda: [
            "System Volume Information",
            "FOUND.000",
            "integration-test-files",
            "integration-tests",
            "AlternativeFormats",
            "Dumps",
            "Docs",
        ]
    )
    files: List[str] = field(default_factory=list)

    @staticmethod
    def load(section: SectionProxy) -> BanConfig:
        """Load overridden variables from a section within a config file."""
        config = BanConfig()

        if "directories" in section:
            config.directories = _parse_list(section["directories"])
        if "files" in section:
            config.files = _parse_list(section["files"])

        return config


@dataclass
class SearchWeights:
    """Score that a search clause contributes for each field it is found in."""

    title: int = 5
    creator: int = 4
    name: int = 3
    tags: int = 2
    description: int = 1
    release_info: int = 1


@dataclass
class SearchConfig:
    """Configuration variables related to free-text search."""

    stop_words: List[str] = field(
        default_factory=lambda: [
            "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if",
            "in", "is", "it", "no", "not", "of", "on", "or", "that", "the", "to",
            "was", "with",
        ]
    )
    weights: SearchWeights = field(default_factory=SearchWeights)

    @staticmethod
    def load(section: SectionProxy) -> SearchConfig:
        """Load overridden variables from a section within a config file."""
        config = SearchConfig()

        if "stop_words" in section:
            config.stop_words = [w.lower() for w in _parse_list(section["stop_words"])]

        for name in config.weights.__dict__:
            value = section.getint(f"weight_{name}", fallback=None)

            if value is not None:
                setattr(config.weights, name, value)

        return config


def _default_favorite_paths() -> Dict[FileType, str]:
    games = paths.combine(FAVORITES_PATH, "games/")
    images = paths.combine(FAVORITES_PATH, "images/")
    text = paths.combine(FAVORITES_PATH, "text/")

    return {
        FileType.SID: paths.combine(FAVORITES_PATH, "music/"),
        FileType.CRT: games,
        FileType.PRG: games,
        FileType.P00: games,
        FileType.D64: games,
        FileType.KLA: images,
        FileType.KOA: images,
        FileType.ART: images,
        FileType.AAS: images,
        FileType.HPI: images,
        FileType.SEQ: images,
        FileType.TXT: text,
        FileType.NFO: text,
        FileType.HEX: FIRMWARE_PATH,
    }


@dataclass
class FavoritesConfig:
    """Directories on the device that favorite copies are placed in, per file type."""

    directories: Dict[FileType, str] = field(default_factory=_default_favorite_paths)
    fallback: str = paths.combine(FAVORITES_PATH, "unknown/")

    def path_for(self, file_type: FileType) -> str:
        """Return the favorites directory for files of the given type."""
        return self.directories.get(file_type, self.fallback)

    @property
    def roots(self) -> List[str]:
        """
        Return all distinct favorites directories.

        The firmware directory is where favorited firmware files end up, but it is
        not a favorites root: files in there are not copies of anything.
        """
        roots = {p for p in self.directories.values() if p != FIRMWARE_PATH}
        roots.add(self.fallback)

        return sorted(roots)

    @staticmethod
    def load(section: SectionProxy) -> FavoritesConfig:
        """Load overridden variables from a section within a config file."""
        config = FavoritesConfig()

        for key, value in section.items():
            file_type = FileType.parse(key)
            config.directories[file_type] = paths.normalize_directory(value)

        return config


@dataclass
class Config:
    """Configuration variables."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    bans: BanConfig = field(default_factory=BanConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    favorites: FavoritesConfig = field(default_factory=FavoritesConfig)

    @staticmethod
    def load(filename: str) -> Config:
        """Load overridden configuration variables from a config file."""
        parser = ConfigParser()

        config = Config()

        try:
            with open(filename, "r") as f:
                parser.read_string(f.read(), filename)

            if "cache" in parser:
                config.cache = CacheConfig.load(parser["cache"])
            if "bans" in parser:
                config.bans = BanConfig.load(parser["bans"])
            if "search" in parser:
                config.search = SearchConfig.load(parser["search"])
            if "favorites" in parser:
                config.favorites = FavoritesConfig.load(parser["favorites"])
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
        else:
            log.info(f"loaded config: {config}")

        return config
