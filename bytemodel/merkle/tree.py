"""Merkle trees with leaf insertion, flushing, retraction, paths and serialisation."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .hash import (
    HASH_SIZE,
    BytesLike,
    Hash,
    deserialise_uint64,
    serialise_uint64,
    sha256_compress,
)
from .path import Direction, Path, PathElement

HashLike = Union[Hash, bytes, bytearray, memoryview]

_UINT64_SIZE = 8


class _Node:
    """A tree node; ``dirty`` marks a hash that still has to be computed."""

    __slots__ = ("hash", "left", "right", "size", "height", "dirty")

    def __init__(self) -> None:
        self.hash = Hash()
        self.left: Optional[_Node] = None
        self.right: Optional[_Node] = None
        self.size = 1
        self.height = 1
        self.dirty = False

    @classmethod
    def leaf(cls, value: Hash) -> "_Node":
        node = cls()
        node.hash = value
        return node

    @classmethod
    def parent(cls, left: "_Node", right: "_Node") -> "_Node":
        node = cls()
        node.left = left
        node.right = right
        node.dirty = True
        node.update_sizes()
        return node

    def assign_from(self, other: "_Node") -> None:
        for slot in self.__slots__:
            setattr(self, slot, getattr(other, slot))

    def invariant(self) -> bool:
        both_or_none = (self.left is None) == (self.right is None)
        sized = (
            self.left is None
            or self.right is None
            or self.size == self.left.size + self.right.size + 1
        )
        left_ok = self.left is None or self.left.invariant()
        right_ok = self.right is None or self.right.invariant()
        return both_or_none and sized and left_ok and right_ok and self.height <= 64

    def is_full(self) -> bool:
        return self.size == (1 << self.height) - 1

    def update_sizes(self) -> None:
        if self.left is not None and self.right is not None:
            self.size = self.left.size + self.right.size + 1
            self.height = max(self.left.height, self.right.height) + 1
        else:
            self.size = self.height = 1


@dataclass
class Statistics:
    """Counters of the operations performed on a tree."""

    num_hash: int = 0
    num_insert: int = 0
    num_root: int = 0
    num_past_root: int = 0
    num_flush: int = 0
    num_retract: int = 0
    num_paths: int = 0
    num_past_paths: int = 0

    def to_string(self) -> str:
        return (
            f"num_insert={self.num_insert} num_hash={self.num_hash} "
            f"num_root={self.num_root} num_retract={self.num_retract} "
            f"num_flush={self.num_flush} num_paths={self.num_paths} "
            f"num_past_paths={self.num_past_paths}"
        )


class Tree:
    """An append-only Merkle tree over SHA-256 compressed node hashes."""

    def __init__(self, hashes: Union[HashLike, Iterable[HashLike]] = ()) -> None:
        self._leaf_nodes: List[_Node] = []
        self._uninserted: List[_Node] = []
        self._num_flushed = 0
        self._root: Optional[_Node] = None
        self.statistics = Statistics()
        self.insert(hashes)

    # -- insertion -----------------------------------------------------------

    def insert(self, hash: Union[HashLike, Iterable[HashLike]]) -> None:
        """Insert one hash, or every hash of an iterable."""
        if isinstance(hash, Hash):
            self._uninserted.append(_Node.leaf(hash))
            self.statistics.num_insert += 1
        elif isinstance(hash, (bytes, bytearray, memoryview)):
            self.insert(Hash(hash))
        else:
            for item in hash:
                self.insert(item)

    def _insert_into(self, node: _Node, new_leaf: _Node) -> _Node:
        if node.is_full():
            return _Node.parent(node, new_leaf)
        node.dirty = True
        if not node.left.is_full():
            node.left = self._insert_into(node.left, new_leaf)
        else:
            node.right = self._insert_into(node.right, new_leaf)
        node.update_sizes()
        return node

    def _insert_leaves(self) -> None:
        for node in self._uninserted:
            self._leaf_nodes.append(node)
            if self._root is None:
                self._root = node
            else:
                self._root = self._insert_into(self._root, node)
        self._uninserted.clear()

    # -- hashing -------------------------------------------------------------

    def _hash(self, node: _Node) -> None:
        stack = [node]
        while stack:
            current = stack[-1]
            if current.left is not None and current.left.dirty:
                stack.append(current.left)
            elif current.right is not None and current.right.dirty:
                stack.append(current.right)
            else:
                current.hash = sha256_compress(current.left.hash, current.right.hash)
                self.statistics.num_hash += 1
                current.dirty = False
                stack.pop()

    def _compute_root(self) -> _Node:
        self._insert_leaves()
        if self.num_leaves() == 0 or self._root is None:
            raise ValueError("empty tree does not have a root")
        if self._root.dirty:
            self._hash(self._root)
        return self._root

    def _walk_to(
        self, index: int, update: bool, visit: Callable[[_Node, bool], bool]
    ) -> _Node:
        if index < self.min_index() or self.max_index() < index:
            raise ValueError("invalid leaf index")
        current = self._compute_root()
        height = current.height
        stack: List[_Node] = []
        while height > 1:
            go_right = bool((index >> (height - 2)) & 1)
            if update:
                stack.append(current)
            if current.height == height:
                if not visit(current, go_right):
                    continue
                current = current.right if go_right else current.left
            height -= 1
        for node in reversed(stack):
            node.update_sizes()
        return current

    # -- structural changes --------------------------------------------------

    def flush_to(self, index: int) -> None:
        """Drop everything left of leaf ``index``; earlier leaves can no longer be proven."""
        self.statistics.num_flush += 1
        if index <= self.min_index():
            return

        def conflate(node: _Node, go_right: bool) -> bool:
            if go_right and node.left is not None:
                if node.left.dirty:
                    self._hash(node.left)
                node.left.left = None
                node.left.right = None
            return True

        self._walk_to(index, False, conflate)
        newly_flushed = index - self._num_flushed
        del self._leaf_nodes[:newly_flushed]
        self._num_flushed += newly_flushed

    def retract_to(self, index: int) -> None:
        """Remove every leaf after ``index``."""
        self.statistics.num_retract += 1
        if self.max_index() < index:
            return
        if index < self.min_index():
            raise ValueError("leaf index out of bounds")

        inserted = self._num_flushed + len(self._leaf_nodes)
        if index >= inserted:
            keep = index - inserted + 1
            del self._uninserted[keep:]
            return

        def eliminate(node: _Node, go_right: bool) -> bool:
            node.dirty = True
            if not go_right and node.right is not None:
                old_left = node.left
                node.right = None
                node.assign_from(old_left)
                if node.left is not None and node.right is not None:
                    node.dirty = True
                return False
            return True

        new_leaf = self._walk_to(index, True, eliminate)
        self._leaf_nodes[index - self._num_flushed] = new_leaf
        num_retracted = self.num_leaves() - index - 1
        if num_retracted < len(self._leaf_nodes):
            del self._leaf_nodes[len(self._leaf_nodes) - num_retracted:]
        else:
            self._leaf_nodes.clear()

    def copy(self) -> "Tree":
        """Return an independent copy with fresh statistics."""
        clone = _copy.deepcopy(self)
        clone.statistics = Statistics()
        return clone

    # -- roots and paths -----------------------------------------------------

    def root(self) -> Hash:
        self.statistics.num_root += 1
        return self._compute_root().hash

    def past_root(self, index: int) -> Hash:
        """Root of the tree as it was when ``index`` was the last leaf."""
        self.statistics.num_past_root += 1
        path = self.path(index)
        result = path.leaf
        for element in path:
            if element.direction is Direction.LEFT:
                result = sha256_compress(element.hash, result)
        return result

    def path(self, index: int) -> Path:
        """Path from leaf ``index`` to the current root."""
        self.statistics.num_paths += 1
        elements: List[PathElement] = []

        def record(node: _Node, go_right: bool) -> bool:
            if go_right:
                elements.append(PathElement(node.left.hash, Direction.LEFT))
            else:
                elements.append(PathElement(node.right.hash, Direction.RIGHT))
            return True

        self._walk_to(index, False, record)
        elements.reverse()
        return Path(self._leaf_node(index).hash, index, elements, self.max_index())

    def past_path(self, index: int, as_of: int) -> Path:
        """Path from leaf ``index`` to the root as of when ``as_of`` was the last leaf."""
        self.statistics.num_past_paths += 1
        if (
            index < self.min_index() or self.max_index() < index
            or as_of < self.min_index() or self.max_index() < as_of
            or index > as_of
        ):
            raise ValueError("invalid leaf indices")

        root = self._compute_root()
        root_to_fork: List[PathElement] = []
        fork_to_index: List[PathElement] = []
        fork_to_as_of: List[PathElement] = []
        fork: Optional[_Node] = None
        cur_i = cur_a = root

        for height in range(root.height, 1, -1):
            shift = height - 2
            right_i = bool((index >> shift) & 1)
            right_a = bool((as_of >> shift) & 1)
            if fork is None and right_i != right_a:
                fork = cur_i
            if fork is None:
                if cur_i.height == height:
                    if right_i:
                        root_to_fork.append(PathElement(cur_i.left.hash, Direction.LEFT))
                    cur_i = cur_a = cur_i.right if right_i else cur_i.left
            else:
                if cur_i.height == height:
                    if right_i:
                        fork_to_index.append(PathElement(cur_i.left.hash, Direction.LEFT))
                    else:
                        fork_to_index.append(PathElement(cur_i.right.hash, Direction.RIGHT))
                    cur_i = cur_i.right if right_i else cur_i.left
                if cur_a.height == height:
                    if right_a:
                        fork_to_as_of.append(PathElement(cur_a.left.hash, Direction.LEFT))
                    cur_a = cur_a.right if right_a else cur_a.left

        elements: List[PathElement] = list(reversed(fork_to_index[1:]))
        if fork is not None:
            as_of_hash = cur_a.hash
            for element in reversed(fork_to_as_of[1:]):
                as_of_hash = sha256_compress(element.hash, as_of_hash)
            elements.append(PathElement(as_of_hash, Direction.RIGHT))
        elements.extend(reversed(root_to_fork))
        return Path(self._leaf_node(index).hash, index, elements, as_of)

    # -- serialisation -------------------------------------------------------

    def _left_edge_extras(self, index: int) -> List[_Node]:
        extras: List[_Node] = []

        def collect(node: _Node, go_right: bool) -> bool:
            if go_right:
                extras.append(node.left)
            return True

        self._walk_to(index, False, collect)
        return extras

    def serialise(self) -> bytes:
        """Serialise the leaves, flushed count and left-edge hashes."""
        parts = [
            serialise_uint64(len(self._leaf_nodes) + len(self._uninserted)),
            serialise_uint64(self._num_flushed),
        ]
        parts.extend(node.hash.serialise() for node in self._leaf_nodes)
        parts.extend(node.hash.serialise() for node in self._uninserted)
        if not self.empty():
            extras = self._left_edge_extras(self.min_index())
            parts.extend(node.hash.serialise() for node in reversed(extras))
        return b"".join(parts)

    def serialise_range(self, start: int, end: int) -> bytes:
        """Serialise leaves ``start`` to ``end`` inclusive as a standalone tree."""
        if (
            start < self.min_index() or self.max_index() < start
            or end < self.min_index() or self.max_index() < end
            or start > end
        ):
            raise ValueError("invalid leaf indices")
        parts = [serialise_uint64(end - start + 1), serialise_uint64(start)]
        parts.extend(self.leaf(i).serialise() for i in range(start, end + 1))
        if not self.empty():
            extras = self._left_edge_extras(start)
            parts.extend(node.hash.serialise() for node in reversed(extras))
        return b"".join(parts)

    @classmethod
    def deserialise(cls, data: BytesLike, position: int = 0) -> Tuple["Tree", int]:
        """Read a tree from ``data`` at ``position``; return it and the next position."""
        tree = cls()
        count, position = deserialise_uint64(data, position)
        flushed, position = deserialise_uint64(data, position)
        tree._num_flushed = flushed
        for _ in range(count):
            value, position = Hash.deserialise(data, position)
            tree._leaf_nodes.append(_Node.leaf(value))

        level = list(tree._leaf_nodes)
        remaining = flushed
        level_no = 0
        while remaining != 0 or len(level) > 1:
            if remaining & 1:
                value, position = Hash.deserialise(data, position)
                extra = _Node.leaf(value)
                extra.height = level_no + 1
                extra.size = (1 << extra.height) - 1
                level.insert(0, extra)
            level = [
                _Node.parent(level[i], level[i + 1]) if i + 1 < len(level) else level[i]
                for i in range(0, len(level), 2)
            ]
            remaining >>= 1
            level_no += 1

        if level:
            tree._root = level[0]
        return tree, position

    def serialised_size(self) -> int:
        """Number of bytes :meth:`serialise` produces."""
        num_extras = 0 if self.empty() else len(self._left_edge_extras(self.min_index()))
        return (
            2 * _UINT64_SIZE
            + (len(self._leaf_nodes) + len(self._uninserted)) * HASH_SIZE
            + num_extras * HASH_SIZE
        )

    # -- accessors -----------------------------------------------------------

    def _leaf_node(self, index: int) -> _Node:
        if index < self._num_flushed or index >= self.num_leaves():
            raise IndexError("leaf index out of bounds")
        offset = index - self._num_flushed
        if offset >= len(self._leaf_nodes):
            return self._uninserted[offset - len(self._leaf_nodes)]
        return self._leaf_nodes[offset]

    def leaf(self, index: int) -> Hash:
        return self._leaf_node(index).hash

    def __getitem__(self, index: int) -> Hash:
        return self.leaf(index)

    def num_leaves(self) -> int:
        return self._num_flushed + len(self._leaf_nodes) + len(self._uninserted)

    def min_index(self) -> int:
        return self._num_flushed

    def max_index(self) -> int:
        count = self.num_leaves()
        return count - 1 if count else 0

    def empty(self) -> bool:
        return self.num_leaves() == 0

    def size(self) -> int:
        """Number of nodes, leaves and internal ones, in the tree."""
        self._insert_leaves()
        return self._root.size if self._root is not None else 0

    def invariant(self) -> bool:
        return self._root.invariant() if self._root is not None else True

    def to_string(self, num_bytes: int = HASH_SIZE) -> str:
        """Render the tree level by level."""
        if self.num_leaves() == 0:
            return "<EMPTY>\n"
        lines: List[str] = []
        if self._root is None:
            lines.append("No root.")
        else:
            dirty_hash = "?" * (2 * num_bytes)
            level = [self._root]
            level_no = 0
            while level:
                pieces = []
                next_level: List[_Node] = []
                for node in level:
                    text = dirty_hash if node.dirty else node.hash.to_string(num_bytes)
                    pieces.append(f"{text}({node.size},{node.height}) ")
                    if node.left is not None:
                        next_level.append(node.left)
                    if node.right is not None:
                        next_level.append(node.right)
                lines.append(f"{level_no}: " + "".join(pieces))
                level = next_level
                level_no += 1
        lines.append(
            f"+: leaves={len(self._leaf_nodes)}, "
            f"uninserted leaves={len(self._uninserted)}, "
            f"flushed={self._num_flushed}"
        )
        lines.append(f"S: {self.statistics.to_string()}")
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_string()