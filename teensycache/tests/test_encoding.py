from dataclasses import dataclass
import io
from typing import Dict, List, Optional

import pytest

from teensycache.encoding import Encoding
from teensycache.models import CacheEntry, DirectoryRef, FileRecord, FileType


@dataclass
class Inner:
    value: int


@dataclass
class Outer:
    inners: List[Inner]
    lookup: Dict[str, Inner]
    maybe: Optional[FileType] = None


def test_discover_nested_types():
    encoding = Encoding(CacheEntry)

    assert set(encoding._dataclasses) == {"CacheEntry", "DirectoryRef", "FileRecord"}
    assert set(encoding._enums) == {"FileType"}


def test_discover_container_types():
    encoding = Encoding(Outer)

    assert set(encoding._dataclasses) == {"Outer", "Inner"}
    assert set(encoding._enums) == {"FileType"}


def test_pack_cache_entry():
    encoding = Encoding(CacheEntry)

    entry = CacheEntry(
        "/games/",
        directories=[DirectoryRef.from_path("/games/crt/")],
        files=[FileRecord.from_path("/games/A.crt", size=1, tags=["arcade"])],
    )

    assert encoding.unpack(encoding.pack({"/games/": entry})) == {"/games/": entry}


def test_json_cache_entry():
    encoding = Encoding(CacheEntry)

    entry = CacheEntry("/", files=[FileRecord.from_path("/A.sid", is_favorite=True)])

    f = io.StringIO()
    encoding.dump_json([entry], f)
    f.seek(0)

    assert encoding.load_json(f) == [entry]


def test_serialize_set():
    encoding = Encoding()

    assert encoding.unpack(encoding.pack({"b", "a"})) == ["a", "b"]


def test_serialize_unregistered():
    encoding = Encoding()

    with pytest.raises(ValueError):
        encoding.pack(Inner(1))


def test_deserialize_unknown_dataclass():
    encoding = Encoding(Inner)
    data = encoding.pack(Inner(1))

    with pytest.raises(TypeError):
        Encoding().unpack(data)


def test_deserialize_unknown_enum_member():
    encoding = Encoding(FileType)
    data = encoding.pack({"__enum__": {"type": "FileType", "name": "CASSETTE"}})

    with pytest.raises(TypeError):
        encoding.unpack(data)


def test_deserialize_bad_fields():
    encoding = Encoding(Inner)
    data = encoding.pack({"__data__": {"type": "Inner", "data": {"bogus": 1}}})

    with pytest.raises(TypeError):
        encoding.unpack(data)
