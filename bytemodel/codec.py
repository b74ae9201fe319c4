"""Big-endian encoding helpers and type metadata for the entity format."""

from __future__ import annotations

import os
import struct
from enum import IntEnum
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


class Wrapper(IntEnum):
    """Kind of entity stored in a packed record."""

    PRIMITIVE = 1
    ARRAY = 2
    STRING = 3
    OBJECT = 4


class Type(IntEnum):
    """Element type of a primitive or array."""

    I8 = 1
    I16 = 2
    I32 = 3
    I64 = 4
    FLOAT = 5
    DOUBLE = 6
    BOOL = 7


_SIZES = {
    Type.I8: 1,
    Type.I16: 2,
    Type.I32: 4,
    Type.I64: 8,
    Type.FLOAT: 4,
    Type.DOUBLE: 8,
    Type.BOOL: 1,
}


def type_size(type) -> int:
    """Return the number of bytes one value of ``type`` occupies."""
    return _SIZES[Type(type)]


def encode_int(value: int, size: int) -> bytes:
    """Encode ``value`` as ``size`` big-endian bytes, truncating like a fixed-width integer."""
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    mask = (1 << (8 * size)) - 1
    return (int(value) & mask).to_bytes(size, "big")


def decode_int(data: bytes, size: int) -> int:
    """Decode the first ``size`` bytes of ``data`` as a signed big-endian integer."""
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    if len(data) < size:
        raise ValueError(f"need {size} bytes, got {len(data)}")
    return int.from_bytes(bytes(data[:size]), "big", signed=True)


def encode_value(type, value) -> bytes:
    """Encode a single value of the given element type."""
    type = Type(type)
    if type is Type.FLOAT:
        return struct.pack(">f", value)
    if type is Type.DOUBLE:
        return struct.pack(">d", value)
    if type is Type.BOOL:
        return encode_int(1 if value else 0, 1)
    return encode_int(value, _SIZES[type])


class Reader:
    """Sequential reader over a byte buffer."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = bytes(data)
        self.offset = offset

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError(f"cannot read a negative number of bytes ({count})")
        end = self.offset + count
        if end > len(self.data):
            raise ValueError(
                f"need {count} bytes at offset {self.offset}, "
                f"only {len(self.data) - self.offset} remain"
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def read_int(self, size: int) -> int:
        return decode_int(self.read_bytes(size), size)

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_i16(self) -> int:
        return self.read_int(2)

    def read_i32(self) -> int:
        return self.read_int(4)

    def read_name(self) -> str:
        """Read a 16-bit length followed by that many bytes of UTF-8 text."""
        length = self.read_i16()
        if length < 0:
            raise ValueError(f"invalid name length {length}")
        return self.read_bytes(length).decode("utf-8")


def is_little_endian(value: int) -> bool:
    """Return whether the lowest bit of ``value`` is set."""
    return bool(value & 1)


def save(path: PathLike, data: bytes) -> None:
    """Write ``data`` to ``path``."""
    Path(path).write_bytes(bytes(data))


def load(path: PathLike) -> bytes:
    """Read the whole file at ``path``."""
    return Path(path).read_bytes()