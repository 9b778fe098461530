"""
Serialization of cache data structures based on MessagePack and JSON.

Cache snapshots consist of nested dataclasses (entries containing file records and
directory references) with enums like FileType inside of them. Both are turned into
tagged dicts so they can be faithfully recreated on load:

* Dataclasses become {"__data__": {"type": "FileRecord", "data": {...}}}
* Enums become {"__enum__": {"type": "FileType", "name": "SID"}}

Only types that were registered up front can be deserialized. Registering a type also
registers every dataclass and enum used within its fields, so registering the top
level type of a snapshot is enough.
"""

from dataclasses import is_dataclass
from enum import Enum
import json
import typing
from typing import Any, Dict, IO, List

import msgpack


class Encoding:
    """
    Serialization and deserialization of objects using JSON or MessagePack.

    MessagePack serialization is used for compact cache snapshots and JSON
    serialization for human readable exports.
    """

    def __init__(self, *types: type):
        """Initialize a (de)serializer with support for the given types."""
        self._dataclasses: Dict[str, type] = {}
        self._enums: Dict[str, type] = {}

        for typ in types:
            self.register_types(typ)

    def register_types(self, seed_type: type) -> None:
        """
        Register all dataclass and enum types used within the specified type.

        This includes the class itself, its class members, nested dataclasses, and
        container types like List and Optional.
        """
        for typ in self._discover_types(seed_type):
            if is_dataclass(typ):
                self._dataclasses[typ.__qualname__] = typ
            else:
                self._enums[typ.__qualname__] = typ

    def pack(self, obj: Any) -> bytes:
        """Serialize an object using MessagePack."""
        return msgpack.packb(obj, default=self.serialize_obj)

    def unpack(self, data: bytes) -> Any:
        """Deserialize an object using MessagePack."""
        return msgpack.unpackb(data, object_hook=self.deserialize_obj)

    def dump_json(self, obj: Any, fp: IO[str]) -> None:
        """Serialize an object to JSON."""
        json.dump(obj, fp, default=self.serialize_obj)

    def load_json(self, fp: IO[str]) -> Any:
        """Deserialize an object from JSON."""
        return json.load(fp, object_hook=self.deserialize_obj)

    def serialize_obj(self, obj: Any) -> Any:
        """Turn a dataclass or enum into a serialization friendly representation."""
        if isinstance(obj, Enum) and obj.__class__.__qualname__ in self._enums:
            return {"__enum__": {"type": obj.__class__.__qualname__, "name": obj.name}}
        elif obj.__class__.__qualname__ in self._dataclasses:
            return {"__data__": {"type": obj.__class__.__qualname__, "data": obj.__dict__}}
        elif isinstance(obj, (set, frozenset)):
            return sorted(obj)
        else:
            raise ValueError(f"unserializable object {obj}")

    def deserialize_obj(self, obj: Any) -> Any:
        """Reconstruct a dataclass or enum from a serialized representation."""
        if isinstance(obj, dict) and "__enum__" in obj:
            return self._deserialize_enum(obj)
        elif isinstance(obj, dict) and "__data__" in obj:
            return self._deserialize_dataclass(obj)
        else:
            return obj

    def _deserialize_enum(self, obj: Dict) -> Enum:
        """Reconstruct an enum member from its serialized representation."""
        type_name = obj["__enum__"]["type"]
        member_name = obj["__enum__"]["name"]

        if type_name not in self._enums:
            raise TypeError(f"unknown enum '{type_name}'")

        try:
            return self._enums[type_name][member_name]
        except KeyError:
            raise TypeError(f"unknown member '{member_name}' of enum '{type_name}'")

    def _deserialize_dataclass(self, obj: Dict) -> Any:
        """
        Reconstruct a dataclass from its serialized representation.

        Only previously registered dataclass types can be deserialized.
        """
        type_name = obj["__data__"]["type"]
        type_data = obj["__data__"]["data"]

        if type_name in self._dataclasses:
            try:
                return self._dataclasses[type_name](**type_data)
            except Exception as e:
                raise TypeError(f"failed to deserialize {type_name}: {e}")
        else:
            raise TypeError(f"unknown dataclass '{type_name}'")

    @staticmethod
    def _discover_types(*seed_types: type) -> List[type]:
        """
        Find all dataclass and enum types used with the specified type.

        This includes the class itself, its class members, nested dataclasses, and
        container types like List and Optional.
        """
        candidates = set(seed_types)
        explored = set()
        discovered = set()

        while len(candidates) > 0:
            candidate = candidates.pop()

            if candidate not in explored:
                explored.add(candidate)
            else:
                continue

            if is_dataclass(candidate):
                discovered.add(candidate)

                # Discover member types of dataclass
                for subtype in typing.get_type_hints(candidate).values():
                    candidates.add(subtype)
            elif isinstance(candidate, type) and issubclass(candidate, Enum):
                discovered.add(candidate)
            elif hasattr(candidate, "__origin__"):
                # Discover types nested in constructs like Union[T] and Dict[K, V]
                for subtype in getattr(candidate, "__args__", ()):
                    candidates.add(subtype)

        return list(discovered)
