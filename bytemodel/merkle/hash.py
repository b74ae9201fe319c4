"""Fixed-size hashes, 64-bit big-endian integers and the SHA-256 node compression."""

from __future__ import annotations

import struct
from typing import Optional, Tuple, Union

BytesLike = Union[bytes, bytearray, memoryview]

HASH_SIZE = 32

_MASK32 = 0xFFFFFFFF

_K = (
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
)

_INITIAL_STATE = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
)


def serialise_uint64(value: int) -> bytes:
    """Encode ``value`` as eight big-endian bytes."""
    return (int(value) & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "big")


def deserialise_uint64(data: BytesLike, position: int = 0) -> Tuple[int, int]:
    """Read an unsigned 64-bit big-endian integer; return it and the next position."""
    end = position + 8
    if position < 0 or end > len(data):
        raise ValueError("not enough bytes")
    return int.from_bytes(bytes(data[position:end]), "big"), end


class Hash:
    """An immutable hash of ``HASH_SIZE`` bytes."""

    __slots__ = ("_bytes",)

    SIZE = HASH_SIZE

    def __init__(self, data: Optional[BytesLike] = None) -> None:
        if data is None:
            self._bytes = bytes(HASH_SIZE)
            return
        raw = bytes(data)
        if len(raw) < HASH_SIZE:
            raise ValueError("not enough bytes")
        self._bytes = raw[:HASH_SIZE]

    @classmethod
    def from_hex(cls, text: str) -> "Hash":
        """Build a hash from exactly ``2 * HASH_SIZE`` hex digits."""
        if len(text) != 2 * HASH_SIZE:
            raise ValueError("invalid hash string")
        try:
            return cls(bytes.fromhex(text))
        except ValueError as error:
            raise ValueError("invalid hash string") from error

    @classmethod
    def deserialise(cls, data: BytesLike, position: int = 0) -> Tuple["Hash", int]:
        """Read a hash from ``data`` at ``position``; return it and the next position."""
        end = position + HASH_SIZE
        if position < 0 or end > len(data):
            raise ValueError("not enough bytes")
        return cls(bytes(data[position:end])), end

    @property
    def bytes(self) -> bytes:
        return self._bytes

    def __len__(self) -> int:
        return HASH_SIZE

    def __bytes__(self) -> bytes:
        return self._bytes

    def to_string(self, num_bytes: int = HASH_SIZE, lower_case: bool = True) -> str:
        """Hex-encode the first ``num_bytes`` bytes."""
        text = self._bytes[:num_bytes].hex()
        return text if lower_case else text.upper()

    def serialise(self) -> bytes:
        return self._bytes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hash):
            return NotImplemented
        return self._bytes == other._bytes

    def __hash__(self) -> int:
        return hash(self._bytes)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Hash({self.to_string()!r})"


def _rotr(value: int, amount: int) -> int:
    return ((value >> amount) | (value << (32 - amount))) & _MASK32


def sha256_compress(left: Hash, right: Hash) -> Hash:
    """Apply one SHA-256 compression round to the 64-byte block ``left || right``."""
    block = left.serialise() + right.serialise()
    words = list(struct.unpack(">16I", block))
    for i in range(16, 64):
        t15 = words[i - 15]
        t2 = words[i - 2]
        s0 = _rotr(t15, 7) ^ _rotr(t15, 18) ^ (t15 >> 3)
        s1 = _rotr(t2, 17) ^ _rotr(t2, 19) ^ (t2 >> 10)
        words.append((s1 + words[i - 7] + s0 + words[i - 16]) & _MASK32)

    a, b, c, d, e, f, g, h = _INITIAL_STATE
    for k, w in zip(_K, words):
        sigma1 = _rotr(e, 6) ^ _rotr(e, 11) ^ _rotr(e, 25)
        choose = (e & f) ^ (~e & g)
        t1 = (h + sigma1 + choose + k + w) & _MASK32
        sigma0 = _rotr(a, 2) ^ _rotr(a, 13) ^ _rotr(a, 22)
        majority = (a & b) ^ (a & c) ^ (b & c)
        t2 = (sigma0 + majority) & _MASK32
        a, b, c, d, e, f, g, h = (t1 + t2) & _MASK32, a, b, c, (d + t1) & _MASK32, e, f, g

    state = (
        (s + v) & _MASK32
        for s, v in zip(_INITIAL_STATE, (a, b, c, d, e, f, g, h))
    )
    return Hash(struct.pack(">8I", *state))