"""Merkle paths: a leaf hash and the sibling hashes leading to a root."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Tuple

from .hash import (
    HASH_SIZE,
    BytesLike,
    Hash,
    deserialise_uint64,
    serialise_uint64,
    sha256_compress,
)


class Direction(Enum):
    """Side at which an element's hash joins the running hash."""

    LEFT = "L"
    RIGHT = "R"


@dataclass(frozen=True)
class PathElement:
    """One step of a path.

    With ``Direction.LEFT`` the element hash is the left operand, so the next
    value is ``H(hash, current)``; with ``Direction.RIGHT`` it is ``H(current, hash)``.
    """

    hash: Hash
    direction: Direction


class Path:
    """A path from a leaf to the root of a Merkle tree."""

    def __init__(
        self,
        leaf: Hash,
        leaf_index: int,
        elements: Iterable[PathElement] = (),
        max_index: int = 0,
    ) -> None:
        self.leaf = leaf
        self.leaf_index = leaf_index
        self.max_index = max_index
        self.elements: List[PathElement] = [
            element if isinstance(element, PathElement) else PathElement(*element)
            for element in elements
        ]

    def root(self) -> Hash:
        """Recompute the root by hashing the leaf along every element."""
        result = self.leaf
        for element in self.elements:
            if element.direction is Direction.LEFT:
                result = sha256_compress(element.hash, result)
            else:
                result = sha256_compress(result, element.hash)
        return result

    def verify(self, expected_root: Hash) -> bool:
        """Return whether the path hashes to ``expected_root``."""
        return self.root() == expected_root

    def serialise(self) -> bytes:
        parts = [
            self.leaf.serialise(),
            serialise_uint64(self.leaf_index),
            serialise_uint64(self.max_index),
            serialise_uint64(len(self.elements)),
        ]
        for element in self.elements:
            parts.append(element.hash.serialise())
            parts.append(b"\x01" if element.direction is Direction.LEFT else b"\x00")
        return b"".join(parts)

    @classmethod
    def deserialise(cls, data: BytesLike, position: int = 0) -> Tuple["Path", int]:
        """Read a path from ``data`` at ``position``; return it and the next position."""
        leaf, position = Hash.deserialise(data, position)
        leaf_index, position = deserialise_uint64(data, position)
        max_index, position = deserialise_uint64(data, position)
        count, position = deserialise_uint64(data, position)
        elements = []
        for _ in range(count):
            element_hash, position = Hash.deserialise(data, position)
            if position >= len(data):
                raise ValueError("not enough bytes")
            direction = Direction.LEFT if data[position] != 0 else Direction.RIGHT
            position += 1
            elements.append(PathElement(element_hash, direction))
        return cls(leaf, leaf_index, elements, max_index), position

    @property
    def serialised_size(self) -> int:
        return len(self.serialise())

    def to_string(self, num_bytes: int = HASH_SIZE, lower_case: bool = True) -> str:
        pieces = [self.leaf.to_string(num_bytes)]
        pieces.extend(
            f"{element.hash.to_string(num_bytes, lower_case)}({element.direction.value})"
            for element in self.elements
        )
        return " ".join(pieces)

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[PathElement]:
        return iter(self.elements)

    def __getitem__(self, index: int) -> Hash:
        return self.elements[index].hash

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Path):
            return NotImplemented
        return self.leaf == other.leaf and self.elements == other.elements

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return (
            f"Path(leaf={self.leaf.to_string()!r}, leaf_index={self.leaf_index}, "
            f"elements={len(self.elements)}, max_index={self.max_index})"
        )