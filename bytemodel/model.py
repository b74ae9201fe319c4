"""Entity model: primitives, arrays, strings and objects packed into bytes."""

from __future__ import annotations

import copy
import logging
import struct
from itertools import chain
from pathlib import Path
from typing import Iterable, List

from .codec import (
    PathLike,
    Reader,
    Type,
    Wrapper,
    decode_int,
    encode_int,
    encode_value,
    load,
    save,
    type_size,
)

logger = logging.getLogger(__name__)

# wrapper (1) + name length (2) + size (4)
_BASE_SIZE = 7
_EMPTY_NAME = "SYSTEM:empty"


def _decode_value(type: Type, data: bytes):
    if type is Type.FLOAT:
        return struct.unpack(">f", data)[0]
    if type is Type.DOUBLE:
        return struct.unpack(">d", data)[0]
    if type is Type.BOOL:
        return bool(data[0])
    return decode_int(data, len(data))


class Entity:
    """Common header shared by every packed entity."""

    wrapper: int = 0

    def __init__(self, name: str = "unknown") -> None:
        self.name = name
        self.size = _BASE_SIZE + len(self._encoded_name())

    def _encoded_name(self) -> bytes:
        return self.name.encode("utf-8")

    def _frame(self, payload: bytes) -> bytes:
        name = self._encoded_name()
        return b"".join(
            (
                encode_int(self.wrapper, 1),
                encode_int(len(name), 2),
                name,
                payload,
                encode_int(self.size, 4),
            )
        )

    def pack(self) -> bytes:
        return self._frame(b"")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, size={self.size})"


class Primitive(Entity):
    """A single typed value."""

    wrapper = Wrapper.PRIMITIVE

    def __init__(self, name: str, type, data: bytes) -> None:
        super().__init__(name)
        self.type = Type(type)
        self.data = bytes(data)
        self.size += 1 + len(self.data)

    @classmethod
    def create(cls, name: str, type, value) -> "Primitive":
        return cls(name, type, encode_value(type, value))

    def pack(self) -> bytes:
        return self._frame(encode_int(self.type, 1) + self.data)

    @classmethod
    def unpack(cls, reader: Reader) -> "Primitive":
        wrapper = reader.read_u8()
        name = reader.read_name()
        type_ = Type(reader.read_u8())
        data = reader.read_bytes(type_size(type_))
        size = reader.read_i32()
        primitive = cls(name, type_, data)
        primitive.wrapper = wrapper
        primitive.size = size
        return primitive

    def value(self):
        """Decode the stored bytes according to the element type."""
        return _decode_value(self.type, self.data)


class Array(Entity):
    """A sequence of typed values, or a byte string."""

    wrapper = Wrapper.ARRAY

    def __init__(self, name: str, type, count: int, data: bytes,
                 wrapper: int = Wrapper.ARRAY) -> None:
        super().__init__(name)
        self.wrapper = wrapper
        self.type = Type(type)
        self.count = count
        self.data = bytes(data)
        # type (1) + count (4)
        self.size += 5 + len(self.data)

    @classmethod
    def create_array(cls, name: str, type, values: Iterable) -> "Array":
        items = list(values)
        data = b"".join(encode_value(type, item) for item in items)
        return cls(name, type, len(items), data, Wrapper.ARRAY)

    @classmethod
    def create_string(cls, name: str, type, text) -> "Array":
        raw = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        return cls(name, type, len(raw), raw, Wrapper.STRING)

    def pack(self) -> bytes:
        payload = encode_int(self.type, 1) + encode_int(self.count, 4) + self.data
        return self._frame(payload)

    @classmethod
    def _read(cls, reader: Reader, string: bool) -> "Array":
        wrapper = reader.read_u8()
        name = reader.read_name()
        type_ = Type(reader.read_u8())
        count = reader.read_i32()
        length = count if string else type_size(type_) * count
        data = reader.read_bytes(length)
        size = reader.read_i32()
        array = cls(name, type_, count, data, wrapper)
        array.size = size
        return array

    @classmethod
    def unpack(cls, reader: Reader) -> "Array":
        return cls._read(reader, string=False)

    @classmethod
    def unpack_string(cls, reader: Reader) -> "Array":
        return cls._read(reader, string=True)


class Object(Entity):
    """A named container of primitives, arrays, strings and nested objects."""

    wrapper = Wrapper.OBJECT

    def __init__(self, name: str = "default") -> None:
        super().__init__(name)
        # four 16-bit member counts
        self.size += 8
        self.primitives: List[Primitive] = []
        self.arrays: List[Array] = []
        self.strings: List[Array] = []
        self.objects: List[Object] = []

    def _groups(self):
        return (self.primitives, self.arrays, self.strings, self.objects)

    def add_entity(self, entity: Entity) -> None:
        """Store a copy of ``entity`` in the list matching its wrapper."""
        buckets = {
            Wrapper.PRIMITIVE: self.primitives,
            Wrapper.ARRAY: self.arrays,
            Wrapper.STRING: self.strings,
            Wrapper.OBJECT: self.objects,
        }
        bucket = buckets.get(entity.wrapper)
        if bucket is None:
            raise ValueError(f"cannot add entity with wrapper {entity.wrapper!r}")
        bucket.append(copy.deepcopy(entity))
        self.size += entity.size

    def pack(self) -> bytes:
        parts = []
        for group in self._groups():
            parts.append(encode_int(len(group), 2))
            parts.extend(member.pack() for member in group)
        return self._frame(b"".join(parts))

    @classmethod
    def unpack(cls, reader: Reader) -> "Object":
        wrapper = reader.read_u8()
        name = reader.read_name()
        obj = cls(name)
        obj.wrapper = wrapper
        obj.primitives = [Primitive.unpack(reader) for _ in range(reader.read_i16())]
        obj.arrays = [Array.unpack(reader) for _ in range(reader.read_i16())]
        obj.strings = [Array.unpack_string(reader) for _ in range(reader.read_i16())]
        obj.objects = [cls.unpack(reader) for _ in range(reader.read_i16())]
        obj.size = reader.read_i32()
        return obj

    def find_primitive(self, name: str) -> Primitive:
        for primitive in self.primitives:
            if primitive.name == name:
                return primitive
        raise KeyError(name)

    def find_by_name(self, name: str) -> Entity:
        """Return the first member called ``name``, or an empty placeholder object."""
        for member in chain(*self._groups()):
            if member.name == name:
                return member
        logger.debug("no entity named %r in %r", name, self.name)
        return Object(_EMPTY_NAME)


def save_entity(entity: Entity, directory: PathLike = ".") -> Path:
    """Pack ``entity`` into ``<directory>/<name>.abc`` and return the path."""
    path = Path(directory) / f"{entity.name}.abc"
    save(path, entity.pack())
    return path


def load_object(path: PathLike) -> Object:
    """Read a packed object from ``path``."""
    return Object.unpack(Reader(load(path)))