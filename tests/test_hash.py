import hashlib

import pytest

from bytemodel.merkle.hash import (
    HASH_SIZE,
    Hash,
    deserialise_uint64,
    serialise_uint64,
    sha256_compress,
)


def _padded_block(message: bytes) -> bytes:
    """Single SHA-256 padded block for a message of at most 55 bytes."""
    assert len(message) <= 55
    block = message + b"\x80"
    block += bytes(56 - len(block))
    return block + (8 * len(message)).to_bytes(8, "big")


def test_serialise_uint64_is_big_endian():
    assert serialise_uint64(1) == b"\x00" * 7 + b"\x01"


@pytest.mark.parametrize("value", [0, 1, 255, 256, 2**32, 2**64 - 1])
def test_uint64_round_trip(value):
    data = serialise_uint64(value)
    assert len(data) == 8
    assert deserialise_uint64(data) == (value, 8)


def test_deserialise_uint64_with_offset():
    data = b"\xff\xff" + serialise_uint64(12345)
    assert deserialise_uint64(data, 2) == (12345, 10)


def test_deserialise_uint64_not_enough_bytes():
    with pytest.raises(ValueError):
        deserialise_uint64(b"\x00" * 7)


def test_default_hash_is_zero():
    assert Hash().serialise() == bytes(HASH_SIZE)
    assert Hash() == Hash(bytes(HASH_SIZE))


def test_hash_requires_enough_bytes():
    with pytest.raises(ValueError):
        Hash(b"\x01" * (HASH_SIZE - 1))


def test_hash_takes_first_bytes():
    data = bytes(range(40))
    assert Hash(data).serialise() == data[:HASH_SIZE]


def test_from_hex_round_trip():
    data = bytes(range(HASH_SIZE))
    text = data.hex()
    h = Hash.from_hex(text)
    assert h.serialise() == data
    assert h.to_string() == text


@pytest.mark.parametrize("text", ["", "00", "0" * (2 * HASH_SIZE + 2)])
def test_from_hex_wrong_length(text):
    with pytest.raises(ValueError, match="invalid hash string"):
        Hash.from_hex(text)


def test_to_string_truncation_and_case():
    h = Hash(bytes([0xAB, 0xCD, 0xEF]) + bytes(HASH_SIZE - 3))
    assert h.to_string(3) == "abcdef"
    assert h.to_string(3, False) == "ABCDEF"
    assert len(h.to_string()) == 2 * HASH_SIZE


def test_deserialise_round_trip_with_position():
    h = Hash(bytes(range(1, HASH_SIZE + 1)))
    data = b"\x07\x07" + h.serialise() + b"\x09"
    restored, position = Hash.deserialise(data, 2)
    assert restored == h
    assert position == 2 + HASH_SIZE


def test_deserialise_not_enough_bytes():
    with pytest.raises(ValueError, match="not enough bytes"):
        Hash.deserialise(bytes(HASH_SIZE), 1)


def test_equality_and_hashing():
    a = Hash(b"\x01" * HASH_SIZE)
    b = Hash(b"\x01" * HASH_SIZE)
    c = Hash(b"\x02" * HASH_SIZE)
    assert a == b
    assert a != c
    assert len({a, b, c}) == 2


@pytest.mark.parametrize("message", [b"", b"abc", b"x" * 55])
def test_compress_matches_sha256_single_block(message):
    block = _padded_block(message)
    result = sha256_compress(Hash(block[:32]), Hash(block[32:]))
    assert result.serialise() == hashlib.sha256(message).digest()


def test_compress_empty_message_digest():
    block = _padded_block(b"")
    result = sha256_compress(Hash(block[:32]), Hash(block[32:]))
    assert result.to_string() == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_compress_is_order_sensitive():
    a = Hash(b"\x01" * HASH_SIZE)
    b = Hash(b"\x02" * HASH_SIZE)
    assert sha256_compress(a, b) != sha256_compress(b, a)
    assert sha256_compress(a, b) == sha256_compress(Hash(a.serialise()), b)